"""Smart Widget event construction.

Deterministic unsigned event generation from a component set, title,
identifier and widget type.
"""

from .models import WIDGET_KIND, UnsignedEvent
from .utils import generate_identifier


def construct_event(
    component_tags: list[list[str]], title: str | None, identifier: str | None, widget_type: str
) -> UnsignedEvent:
    """Construct unsigned Smart Widget event.

    CONTRACT:
      Inputs:
        - component_tags: encoded component tags (ComponentSet.tags())
        - title: optional widget title, becomes the event content
        - identifier: optional d-tag value; a random one is generated when
          empty or not a string
        - widget_type: "basic", "action" or "tool"

      Outputs:
        - event: UnsignedEvent with kind 30033

      Invariants:
        - kind always equals WIDGET_KIND
        - content equals title, or "" when title is None/empty
        - tags[0] == ["d", identifier], tags[1] == ["l", widget_type]
        - component tags follow unchanged, in order
    """
    tags = build_tags(component_tags, identifier, widget_type)
    return UnsignedEvent(kind=WIDGET_KIND, content=title or "", tags=tags)


def build_tags(component_tags: list[list[str]], identifier: str | None, widget_type: str) -> list[list[str]]:
    """Build the tag list: d-tag, l-tag, then component tags."""
    if not identifier or not isinstance(identifier, str):
        identifier = generate_identifier()

    tags = [["d", identifier], ["l", widget_type]]
    tags.extend(list(tag) for tag in component_tags)
    return tags
