"""CLI output formatting for structured JSON results.

Every command prints exactly one JSON line for machine parsing.
"""

import json

from .models import SearchResult, SignedWidget


def _dumps(output: dict) -> str:
    return json.dumps(output, ensure_ascii=False, sort_keys=True, separators=(", ", ": "))


def format_publish_result(result: SignedWidget, published: bool = True) -> str:
    """Format a signed or published widget as a single JSON object.

    CONTRACT:
      Inputs:
        - result: SignedWidget from Widget.publish or Widget.sign_event
        - published: False for dry runs (signed but not sent)

      Outputs:
        - single-line JSON string with keys event, event_id, identifier,
          naddr, pubkey, published (sorted)

      Properties:
        - Deterministic: same inputs produce the same string
        - UTF-8 preserved (no ASCII escaping), no trailing newline
    """
    output = {
        "event_id": result.event_id,
        "pubkey": result.pubkey,
        "identifier": result.identifier,
        "naddr": result.naddr,
        "published": published,
        "event": result.event,
    }
    return _dumps(output)


def format_search_result(result: SearchResult) -> str:
    """Format collected events and their authors as a single JSON object."""
    return _dumps(result.to_dict())
