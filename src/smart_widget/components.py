"""Smart Widget components and component sets.

Components are frozen dataclasses validated in __post_init__: a component
that exists is well-formed. A ComponentSet validates the whole combination
once against a widget type and is immutable afterwards.
"""

from dataclasses import dataclass

from .errors import InvalidComponentError, InvalidComponentSetError, InvalidWidgetTypeError
from .models import DEFAULT_WIDGET_TYPE, WIDGET_TYPES
from .validator import validate_button_type, validate_component_set, validate_url


def _require_label(label, message: str) -> None:
    if not label or not isinstance(label, str):
        raise InvalidComponentError(message)


@dataclass(frozen=True)
class Icon:
    """Square icon, required for action and tool widgets."""

    url: str

    def __post_init__(self):
        result = validate_url(self.url)
        if not result.valid:
            raise InvalidComponentError(result.reason)

    def props(self) -> dict:
        return {"url": self.url}

    def to_tag(self) -> list[str]:
        return ["icon", self.url]


@dataclass(frozen=True)
class Image:
    """Main widget image; every widget has exactly one."""

    url: str

    def __post_init__(self):
        result = validate_url(self.url)
        if not result.valid:
            raise InvalidComponentError(result.reason)

    def props(self) -> dict:
        return {"url": self.url}

    def to_tag(self) -> list[str]:
        return ["image", self.url]


@dataclass(frozen=True)
class Input:
    """Text input, rendered with label as its placeholder."""

    label: str

    def __post_init__(self):
        _require_label(self.label, "Input label is required")

    def props(self) -> dict:
        return {"label": self.label}

    def to_tag(self) -> list[str]:
        return ["input", self.label]


@dataclass(frozen=True)
class Button:
    """Widget button.

    index orders buttons left to right (1-based); url is validated against
    type, so a zap button needs a lightning address and a nostr button a
    nostr reference.
    """

    index: int
    label: str
    type: str
    url: str

    def __post_init__(self):
        if not isinstance(self.index, int) or isinstance(self.index, bool) or self.index < 1:
            raise InvalidComponentError("Button index must be an integer greater than 0")
        _require_label(self.label, "Button label is required")

        type_result = validate_button_type(self.type)
        if not type_result.valid:
            raise InvalidComponentError(type_result.reason)

        if not self.url or not isinstance(self.url, str):
            raise InvalidComponentError("Button url is required")

        url_result = validate_url(self.url, self.type)
        if not url_result.valid:
            raise InvalidComponentError(url_result.reason)

    def props(self) -> dict:
        return {"index": self.index, "label": self.label, "type": self.type, "url": self.url}

    def to_tag(self) -> list[str]:
        return ["button", self.label, self.type, self.url]


def encode_components(components) -> list[list[str]]:
    """Encode components into canonical event tags.

    CONTRACT:
      Inputs:
        - components: validated sequence of components

      Outputs:
        - tags: icon and image tags in their original relative order, then
          input tags, then button tags sorted ascending by index

      Properties:
        - Deterministic and idempotent: same components, same tags
        - Button order never depends on insertion order
    """
    media = []
    inputs = []
    buttons = []

    for component in components:
        if isinstance(component, (Icon, Image)):
            media.append(component.to_tag())
        elif isinstance(component, Input):
            inputs.append(component.to_tag())
        elif isinstance(component, Button):
            buttons.append(component)

    # stable sort
    ordered_buttons = [button.to_tag() for button in sorted(buttons, key=lambda b: b.index)]

    return [*media, *inputs, *ordered_buttons]


class ComponentSet:
    """Validated, immutable collection of components for one widget.

    The widget type comes from the widget instance when one is given, then
    from widget_type, and defaults to basic.
    """

    def __init__(self, components, widget=None, widget_type: str | None = None):
        from .widget import Widget

        if isinstance(widget, Widget):
            widget_type = widget.widget_type
        elif widget_type is None:
            widget_type = DEFAULT_WIDGET_TYPE

        if widget_type not in WIDGET_TYPES:
            raise InvalidWidgetTypeError(
                "The smart widget type should be one of these values (basic | action | tool)"
            )

        result = validate_component_set(components, widget_type)
        if not result.valid:
            raise InvalidComponentSetError(result.reason)

        self._components = tuple(components)
        self._widget_type = widget_type

    @property
    def components(self) -> tuple:
        return self._components

    @property
    def widget_type(self) -> str:
        return self._widget_type

    def tags(self) -> list[list[str]]:
        """Canonical tag encoding of the components."""
        return encode_components(self._components)

    def __iter__(self):
        return iter(self._components)

    def __len__(self) -> int:
        return len(self._components)

    def __repr__(self) -> str:
        return f"ComponentSet({list(self._components)!r}, widget_type={self._widget_type!r})"
