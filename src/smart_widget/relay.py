"""Relay set defaults and validation.

Smart Widgets are only published to secure (wss://) relays.
"""

from urllib.parse import urlparse

DEFAULT_RELAYS = [
    "wss://nostr-01.yakihonne.com",
    "wss://nostr-02.yakihonne.com",
    "wss://relay.damus.io",
    "wss://nos.lol",
]


def validate_relay_url(url: str) -> bool:
    """Check that a relay URL parses with scheme exactly 'wss' and has a host.

    CONTRACT:
      Inputs:
        - url: value to check (any type)

      Outputs:
        - bool: True if url is a string, parses as a URL, has scheme "wss"
          (case-sensitive, as written) and a non-empty host

      Properties:
        - Pure, never raises
        - "ws://" relays are rejected, as are bare hosts and "wss://"
    """
    if not isinstance(url, str) or not url.startswith("wss://"):
        return False

    try:
        parsed = urlparse(url)
        # Accessing port validates the netloc (raises on out-of-range ports)
        parsed.port
    except ValueError:
        return False

    return parsed.scheme == "wss" and bool(parsed.hostname)


def validate_relay_set(relays) -> bool:
    """Check that relays is a non-empty list of valid wss:// URLs."""
    if not isinstance(relays, (list, tuple)) or len(relays) == 0:
        return False
    return all(validate_relay_url(relay) for relay in relays)
