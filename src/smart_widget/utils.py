"""Small shared helpers."""

import secrets

# nanoid default alphabet
IDENTIFIER_ALPHABET = "useandom-26T198340PX75pxJACKVERYMINDBUSHWOLF_GQZbfghjklqvwyzrict"
IDENTIFIER_LENGTH = 21


def deduplicate_preserving_order(items: list) -> list:
    """Remove duplicates while keeping the first occurrence of each item."""
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


def generate_identifier(length: int = IDENTIFIER_LENGTH) -> str:
    """Generate a random URL-safe event identifier (d-tag value)."""
    return "".join(secrets.choice(IDENTIFIER_ALPHABET) for _ in range(length))
