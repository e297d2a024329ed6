"""Nostr subscription filter helpers.

Normalization strips degenerate fields before a filter is submitted, and
matches_filter implements NIP-01 matching for the client's local event cache.
"""

from .errors import InvalidFilterError


def normalize_filters(filters) -> list[dict]:
    """Return copies of filters with falsy-empty fields removed.

    None, "", [] and {} are stripped; 0 and False are kept.

    Raises:
        - InvalidFilterError: filters is not a list of mappings
    """
    if not isinstance(filters, (list, tuple)):
        raise InvalidFilterError("The filter param must be a list of filter objects")

    normalized = []
    for filter_ in filters:
        if not isinstance(filter_, dict):
            raise InvalidFilterError(f"Filter must be an object, got {type(filter_).__name__}")
        normalized.append({key: value for key, value in filter_.items() if not _is_empty(value)})
    return normalized


def _is_empty(value) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, list, tuple, dict, set)):
        return len(value) == 0
    return False


def matches_filter(event: dict, filter_: dict) -> bool:
    """Check whether an event matches a single NIP-01 filter.

    ids/authors match exactly, kinds by membership, "#x" fields against the
    event's x tags, since/until inclusively against created_at. limit and
    unknown fields do not restrict matching.
    """
    if "ids" in filter_ and event.get("id") not in filter_["ids"]:
        return False
    if "authors" in filter_ and event.get("pubkey") not in filter_["authors"]:
        return False
    if "kinds" in filter_ and event.get("kind") not in filter_["kinds"]:
        return False

    created_at = event.get("created_at", 0)
    if "since" in filter_ and created_at < filter_["since"]:
        return False
    if "until" in filter_ and created_at > filter_["until"]:
        return False

    for key, values in filter_.items():
        if not (key.startswith("#") and len(key) == 2):
            continue
        tag_values = {tag[1] for tag in event.get("tags", []) if len(tag) > 1 and tag[0] == key[1]}
        if not tag_values.intersection(values):
            return False

    return True


def matches_any(event: dict, filters: list[dict]) -> bool:
    return any(matches_filter(event, filter_) for filter_ in filters)


LIST_OF_STRING_FIELDS = ("ids", "authors")
INTEGER_FIELDS = ("since", "until", "limit")


def validate_filter(filter_: dict) -> None:
    """Reject filters a relay would refuse.

    Raises:
        - InvalidFilterError: unknown field or wrongly typed value
    """
    for key, value in filter_.items():
        if key in LIST_OF_STRING_FIELDS or (key.startswith("#") and len(key) == 2):
            if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
                raise InvalidFilterError(f"Filter field '{key}' must be a list of strings")
        elif key == "kinds":
            if not isinstance(value, list) or not all(_is_int(item) for item in value):
                raise InvalidFilterError("Filter field 'kinds' must be a list of integers")
        elif key in INTEGER_FIELDS:
            if not _is_int(value) or value < 0:
                raise InvalidFilterError(f"Filter field '{key}' must be a non-negative integer")
        elif key == "search":
            if not isinstance(value, str):
                raise InvalidFilterError("Filter field 'search' must be a string")
        else:
            raise InvalidFilterError(f"Unknown filter field: '{key}'")


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_filters(filters) -> None:
    """Validate a list of filters as a relay would.

    Raises:
        - InvalidFilterError: not a list, or any filter is malformed
    """
    if not isinstance(filters, (list, tuple)):
        raise InvalidFilterError("The filter param must be a list of filter objects")
    for filter_ in filters:
        if not isinstance(filter_, dict):
            raise InvalidFilterError(f"Filter must be an object, got {type(filter_).__name__}")
        validate_filter(filter_)
