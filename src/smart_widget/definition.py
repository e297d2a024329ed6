"""Widget definition files.

A definition is a YAML mapping describing one widget:

    type: action
    title: Coffee tips
    identifier: coffee-tips
    icon: https://example.com/icon.png
    image: {file: ./cover.png}
    input: Amount in sats
    buttons:
      - {label: Open app, type: app, url: "https://example.com/app"}
"""

from dataclasses import dataclass
from pathlib import Path

import yaml

from .components import Button, ComponentSet, Icon, Image, Input
from .errors import (
    DefinitionParseError,
    InvalidComponentError,
    InvalidFieldTypeError,
    InvalidFieldValueError,
    MissingFieldError,
    UnknownFieldError,
)
from .image_processing import ICON_MAX_SIZE, IMAGE_MAX_SIZE, image_file_to_data_url, resolve_image_path
from .models import DEFAULT_WIDGET_TYPE, WIDGET_TYPES

ALLOWED_FIELDS = frozenset({"type", "title", "identifier", "image", "icon", "input", "buttons"})
REQUIRED_FIELDS = frozenset({"image"})
BUTTON_FIELDS = frozenset({"index", "label", "type", "url"})


@dataclass
class WidgetDefinition:
    widget_type: str
    components: ComponentSet
    title: str | None = None
    identifier: str | None = None


def parse_definition(content: str) -> dict:
    """Parse YAML definition text into a mapping.

    Raises:
        - DefinitionParseError: invalid YAML, or a document that is not a mapping
    """
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise DefinitionParseError(f"Invalid YAML: {e}") from e

    if not isinstance(data, dict):
        raise DefinitionParseError("Widget definition must be a YAML mapping")

    return data


def validate_definition_dict(data: dict) -> None:
    """Check field names and types before any component is built.

    Unknown fields are reported before missing ones.
    """
    unknown = sorted(str(key) for key in data if key not in ALLOWED_FIELDS)
    if unknown:
        raise UnknownFieldError(f"Unknown field(s): {', '.join(unknown)}")

    missing = sorted(REQUIRED_FIELDS - set(data))
    if missing:
        raise MissingFieldError(f"Missing required field(s): {', '.join(missing)}")

    widget_type = data.get("type", DEFAULT_WIDGET_TYPE)
    if widget_type not in WIDGET_TYPES:
        raise InvalidFieldValueError(f"type must be one of: {', '.join(WIDGET_TYPES)}")

    for field_name in ("title", "identifier", "input"):
        if data.get(field_name) is not None and not isinstance(data[field_name], str):
            raise InvalidFieldTypeError(f"{field_name} must be a string")

    for field_name in ("image", "icon"):
        value = data.get(field_name)
        if value is None or isinstance(value, str):
            continue
        if not isinstance(value, dict) or set(value) != {"file"} or not isinstance(value["file"], str):
            raise InvalidFieldTypeError(f"{field_name} must be a URL string or a mapping with a single 'file' key")

    buttons = data.get("buttons")
    if buttons is None:
        return
    if not isinstance(buttons, list):
        raise InvalidFieldTypeError("buttons must be a list")
    for position, button in enumerate(buttons, start=1):
        if not isinstance(button, dict):
            raise InvalidFieldTypeError(f"buttons[{position}] must be a mapping")
        unknown = sorted(str(key) for key in button if key not in BUTTON_FIELDS)
        if unknown:
            raise UnknownFieldError(f"Unknown field(s) in buttons[{position}]: {', '.join(unknown)}")


def build_definition(data: dict, definition_dir: str | None = None) -> WidgetDefinition:
    """Build a validated WidgetDefinition from a parsed mapping.

    CONTRACT:
      Inputs:
        - data: mapping from parse_definition
        - definition_dir: directory that relative image files resolve against

      Outputs:
        - WidgetDefinition with a ComponentSet validated for its type

      Algorithm:
        1. validate_definition_dict(data)
        2. Build Icon (if any), Image, Input (if any), then Buttons; a button
           without index takes its 1-based position in the list
        3. Wrap them in ComponentSet(widget_type=type)

      Raises:
        - UnknownFieldError, MissingFieldError, InvalidFieldTypeError,
          InvalidFieldValueError: malformed definition
        - InvalidComponentError, InvalidComponentSetError: invalid widget
        - ImageProcessingError: local image could not be embedded
    """
    validate_definition_dict(data)
    widget_type = data.get("type", DEFAULT_WIDGET_TYPE)

    components = []
    if data.get("icon") is not None:
        components.append(Icon(_resolve_url(data["icon"], definition_dir, ICON_MAX_SIZE)))
    components.append(Image(_resolve_url(data["image"], definition_dir, IMAGE_MAX_SIZE)))
    if data.get("input") is not None:
        components.append(Input(data["input"]))

    for position, button in enumerate(data.get("buttons") or [], start=1):
        try:
            components.append(
                Button(button.get("index", position), button.get("label"), button.get("type"), button.get("url"))
            )
        except InvalidComponentError as e:
            raise InvalidComponentError(f"buttons[{position}]: {e}") from e

    return WidgetDefinition(
        widget_type=widget_type,
        components=ComponentSet(components, widget_type=widget_type),
        title=data.get("title"),
        identifier=data.get("identifier"),
    )


def load_definition(file_path: Path) -> WidgetDefinition:
    """Read, parse and build a definition file."""
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    content = file_path.read_text(encoding="utf-8")
    return build_definition(parse_definition(content), str(file_path.parent))


def _resolve_url(value, definition_dir: str | None, max_size: tuple[int, int]) -> str:
    if isinstance(value, str):
        return value
    return image_file_to_data_url(resolve_image_path(value["file"], definition_dir), max_size)
