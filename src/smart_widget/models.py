"""Data models for smart-widget.

Constants and plain data classes shared by validation, event construction,
the nak client and the widget facade.
"""

from dataclasses import dataclass, field

# Parameterized replaceable event kind for Smart Widgets
WIDGET_KIND = 30033

WIDGET_TYPES = ("basic", "action", "tool")
DEFAULT_WIDGET_TYPE = "basic"

BUTTON_TYPES = ("redirect", "nostr", "zap", "post", "app")

MAX_BUTTONS = 6


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a pure validation check.

    Validators return this instead of raising so call sites decide whether
    a failure is fatal.
    """

    valid: bool
    reason: str | None = None

    def __bool__(self) -> bool:
        return self.valid


VALID = ValidationResult(valid=True)


def invalid(reason: str) -> ValidationResult:
    return ValidationResult(valid=False, reason=reason)


@dataclass
class UnsignedEvent:
    """Unsigned Smart Widget event ready for signing via nak.

    Fields id, sig, pubkey are omitted (signer provides). created_at is
    optional; nak stamps the current time when it is absent.
    """

    kind: int
    content: str
    tags: list[list[str]]
    created_at: int | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        data = {"kind": self.kind, "content": self.content, "tags": self.tags}
        if self.created_at is not None:
            data["created_at"] = self.created_at
        return data


@dataclass
class SignedWidget:
    """Signed Smart Widget event and its NIP-19 naddr address."""

    event: dict
    naddr: str

    @property
    def event_id(self) -> str:
        return self.event["id"]

    @property
    def pubkey(self) -> str:
        return self.event["pubkey"]

    @property
    def identifier(self) -> str:
        for tag in self.event.get("tags", []):
            if tag and tag[0] == "d":
                return tag[1]
        return ""


@dataclass
class PublishResult:
    """Result of a successful nak event invocation."""

    event_id: str
    pubkey: str
    event: dict = field(default_factory=dict)


@dataclass
class SearchResult:
    """Events collected by a time-boxed subscription."""

    data: list[dict] = field(default_factory=list)
    pubkeys: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"data": self.data, "pubkeys": self.pubkeys}
