"""Field and component set validation.

All validators here are pure predicates returning ValidationResult; they never
raise. Constructors escalate failures into exceptions.
"""

import re

from .models import BUTTON_TYPES, MAX_BUTTONS, VALID, ValidationResult, invalid

EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")

WEB_URL_PREFIXES = ("https://", "http://", "data:image/")
NOSTR_URL_PREFIXES = ("nostr:", "npub", "nprofile", "note1", "nevent", "naddr")
LIGHTNING_PREFIXES = ("lnurl", "lnbc")
LIGHTNING_MIN_LENGTH = 33

WEB_URL_CONTEXTS = (None, "redirect", "post", "app")


def validate_title(title) -> ValidationResult:
    """Accept an absent, empty or string title."""
    if title is None or isinstance(title, str):
        return VALID
    return invalid("The title should be an empty or valid string")


def validate_url(url, context: str | None = None) -> ValidationResult:
    """Validate a component URL for the given button context.

    CONTRACT:
      Inputs:
        - url: value to validate
        - context: None (icon/image) or a button type
          (redirect | post | app | nostr | zap)

      Outputs:
        - ValidationResult(valid, reason)

      Invariants:
        - None/redirect/post/app: must start with https://, http:// or data:image/
        - nostr: must start with nostr:, npub, nprofile, note1, nevent or naddr
        - zap: must be an email-style lightning address, or an lnurl/lnbc
          string longer than 32 characters
        - Non-string url or unknown context is invalid

      Properties:
        - Pure, never raises
    """
    if not isinstance(url, str):
        return invalid("URL must be a string")

    if context in WEB_URL_CONTEXTS:
        if not url.startswith(WEB_URL_PREFIXES):
            return invalid("Invalid URL")
        return VALID

    if context == "nostr":
        if not url.startswith(NOSTR_URL_PREFIXES):
            return invalid("Invalid nostr URL schema")
        return VALID

    if context == "zap":
        is_lightning = url.startswith(LIGHTNING_PREFIXES) and len(url) >= LIGHTNING_MIN_LENGTH
        if not (EMAIL_PATTERN.fullmatch(url) or is_lightning):
            return invalid("Invalid zap URL, it must be a valid email address, lnurl* address or an lnbc* invoice")
        return VALID

    return invalid(f"Unknown URL context: {context!r}")


def validate_component_set(components, widget_type: str) -> ValidationResult:
    """Validate a component combination against a widget type.

    CONTRACT:
      Inputs:
        - components: list of Icon | Image | Input | Button instances
        - widget_type: "basic", "action" or "tool"

      Outputs:
        - ValidationResult; the first failing rule sets the reason

      Rules (in order):
        1. components is a non-empty list
        2. every element is a known component
        3. exactly one Image
        4. action/tool require exactly one Icon; more than one Icon never allowed
        5. action/tool: an Input together with several Buttons needs an app Button
        6. at most one Input
        7. Button indexes are unique and form 1..N with N <= 6
    """
    from .components import Button, Icon, Image, Input

    if not isinstance(components, (list, tuple)) or len(components) == 0:
        return invalid("The components array must be a non empty array")

    is_basic = widget_type not in ("action", "tool")
    icons = []
    images = []
    inputs = []
    button_indexes = []
    button_types = []

    for component in components:
        if isinstance(component, Icon):
            icons.append(component)
        elif isinstance(component, Image):
            images.append(component)
        elif isinstance(component, Input):
            inputs.append(component)
        elif isinstance(component, Button):
            button_indexes.append(component.index)
            button_types.append(component.type)
        else:
            return invalid("One or more elements are not smart widget components")

    if len(images) == 0:
        return invalid("An image component is required")
    if len(images) > 1:
        return invalid("The number of image components has exceeded the allowed limit (1 max)")

    if len(icons) == 0 and not is_basic:
        return invalid("An icon component is required for smart widgets with (action | tool) types")
    if len(icons) > 1:
        return invalid("The number of icon components has exceeded the allowed limit (1 max)")

    if not is_basic and inputs and len(button_indexes) > 1 and "app" not in button_types:
        return invalid(
            "Only an image and a button of app type are required for smart widgets with (action | tool) types"
        )

    if len(inputs) > 1:
        return invalid("The number of input components has exceeded the allowed limit (1 max)")

    if button_indexes and not is_consecutive_indexes(button_indexes):
        return invalid(
            "The number of button components has either exceeded the allowed limit "
            f"({MAX_BUTTONS} max), or has non consecutive indexes"
        )

    return VALID


def is_consecutive_indexes(indexes: list[int]) -> bool:
    """Check indexes are unique and exactly 1..N with N <= MAX_BUTTONS."""
    unique = sorted(set(indexes))
    if len(unique) > MAX_BUTTONS or len(unique) != len(indexes):
        return False
    return unique == list(range(1, len(unique) + 1))


def validate_button_type(button_type) -> ValidationResult:
    if button_type not in BUTTON_TYPES:
        return invalid("Button type must be one of these values (redirect | nostr | zap | post | app)")
    return VALID
