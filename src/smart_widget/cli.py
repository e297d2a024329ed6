"""CLI entrypoint for smart-widget.

Publishes widget definition files and searches relays for widget events.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from . import __version__
from .cli_output import format_publish_result, format_search_result
from .collector import DEFAULT_QUIET_PERIOD
from .definition import load_definition
from .errors import SmartWidgetError
from .models import WIDGET_KIND
from .relay import DEFAULT_RELAYS
from .widget import DEFAULT_PUBLISH_TIMEOUT, Widget


def main(argv: list[str] | None = None) -> int:
    """Main CLI entrypoint.

    CONTRACT:
      Inputs:
        - argv: command-line arguments (or None to use sys.argv)

      Outputs:
        - exit_code: 0 for success, 1 for any error

      Algorithm:
        publish FILE:
          1. Load and validate the widget definition
          2. Build a Widget with the definition type, relays and key
          3. --dry-run: sign only and print the signed event
          4. Otherwise init(), publish() and print the confirmed event
        search:
          1. Build a filter from --kind/--author/--tag/--identifier/--limit
             (or take --filter JSON verbatim)
          2. init(), search_nostr() and print data and pubkeys

      Error Handling:
        - SmartWidgetError and file errors print "ERROR: {type}: {message}"
          to stderr and return 1; a publish error also prints its cause
    """
    try:
        args = parse_arguments(argv if argv is not None else sys.argv[1:])

        if args["command"] == "publish":
            output = asyncio.run(run_publish(args))
        else:
            output = asyncio.run(run_search(args))

        print(output)
        return 0

    except SmartWidgetError as e:
        sys.stderr.write(f"ERROR: {type(e).__name__}: {str(e)}\n")
        if e.__cause__ is not None:
            sys.stderr.write(f"  caused by {type(e.__cause__).__name__}: {str(e.__cause__)}\n")
        return 1
    except FileNotFoundError as e:
        sys.stderr.write(f"ERROR: FileNotFoundError: {str(e)}\n")
        return 1
    except PermissionError as e:
        sys.stderr.write(f"ERROR: PermissionError: {str(e)}\n")
        return 1
    except UnicodeDecodeError as e:
        sys.stderr.write(f"ERROR: UnicodeDecodeError: {str(e)}\n")
        return 1
    except SystemExit:
        raise
    except Exception as e:
        sys.stderr.write(f"ERROR: {type(e).__name__}: {str(e)}\n")
        return 1


async def run_publish(args: dict) -> str:
    definition = load_definition(args["file"])
    widget = Widget(definition.widget_type, args["relays"], args["secret_key"])
    identifier = args["identifier"] or definition.identifier

    if args["dry_run"]:
        signed = await widget.sign_event(definition.components, definition.title, identifier)
        return format_publish_result(signed, published=False)

    await widget.init()
    signed = await widget.publish(definition.components, definition.title, identifier, args["timeout"])
    return format_publish_result(signed)


async def run_search(args: dict) -> str:
    widget = Widget(relays=args["relays"], secret_key=args["secret_key"])
    await widget.init()
    result = await widget.search_nostr(args["filters"], args["quiet_period"])
    return format_search_result(result)


def build_filter(kinds: list[int], authors: list[str], tags: list[str], identifiers: list[str], limit) -> dict:
    """Build one NIP-01 filter from CLI options; empty options are left out later."""
    return {
        "kinds": kinds or [WIDGET_KIND],
        "authors": authors,
        "#t": tags,
        "#d": identifiers,
        "limit": limit,
    }


def parse_arguments(argv: list[str]) -> dict:
    """Parse CLI arguments into a structured dictionary.

    Invariants:
        - --relay may repeat; defaults to DEFAULT_RELAYS
        - --timeout and --quiet-period must be positive
        - --filter must be a JSON object or array of objects
    """
    parser = argparse.ArgumentParser(prog="smart-widget", description="Build and publish nostr Smart Widgets")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--relay",
        dest="relays",
        action="append",
        default=[],
        help="wss:// relay URL (repeatable, default: built-in relay set)",
    )
    common.add_argument(
        "--secret-key",
        dest="secret_key",
        default=None,
        help="Hex secret key used for signing (default: $SECRET_KEY, else an ephemeral key)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    publish = subparsers.add_parser("publish", parents=[common], help="Publish a widget definition file")
    publish.add_argument("file", help="YAML widget definition")
    publish.add_argument("--identifier", default=None, help="d-tag identifier (overrides the definition)")
    publish.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_PUBLISH_TIMEOUT,
        help=f"Seconds to wait for publish confirmation (default: {DEFAULT_PUBLISH_TIMEOUT})",
    )
    publish.add_argument("--dry-run", dest="dry_run", action="store_true", help="Sign and print without publishing")

    search = subparsers.add_parser("search", parents=[common], help="Search relays for events")
    search.add_argument("--kind", dest="kinds", type=int, action="append", default=[], help="Event kind (repeatable)")
    search.add_argument("--author", dest="authors", action="append", default=[], help="Author pubkey (repeatable)")
    search.add_argument("--tag", dest="tags", action="append", default=[], help="Topic t-tag (repeatable)")
    search.add_argument(
        "--identifier", dest="identifiers", action="append", default=[], help="d-tag identifier (repeatable)"
    )
    search.add_argument("--limit", type=int, default=None, help="Maximum events per relay")
    search.add_argument("--filter", dest="filter_json", default=None, help="Raw JSON filter (overrides other options)")
    search.add_argument(
        "--quiet-period",
        dest="quiet_period",
        type=float,
        default=DEFAULT_QUIET_PERIOD,
        help=f"Seconds without new events before the search ends (default: {DEFAULT_QUIET_PERIOD})",
    )

    parsed = parser.parse_args(argv)
    args = {
        "command": parsed.command,
        "relays": parsed.relays or list(DEFAULT_RELAYS),
        "secret_key": parsed.secret_key,
    }

    if parsed.command == "publish":
        if parsed.timeout <= 0:
            parser.error("--timeout must be positive")
        args.update(
            {
                "file": Path(parsed.file),
                "identifier": parsed.identifier,
                "timeout": parsed.timeout,
                "dry_run": parsed.dry_run,
            }
        )
        return args

    if parsed.quiet_period <= 0:
        parser.error("--quiet-period must be positive")

    if parsed.filter_json is not None:
        try:
            filters = json.loads(parsed.filter_json)
        except json.JSONDecodeError as e:
            parser.error(f"--filter is not valid JSON: {e}")
        if isinstance(filters, dict):
            filters = [filters]
        if not isinstance(filters, list):
            parser.error("--filter must be a JSON object or array of objects")
    else:
        filters = [build_filter(parsed.kinds, parsed.authors, parsed.tags, parsed.identifiers, parsed.limit)]

    args.update({"filters": filters, "quiet_period": parsed.quiet_period})
    return args


if __name__ == "__main__":
    sys.exit(main())
