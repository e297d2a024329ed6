"""Exception hierarchy for smart-widget.

Construction errors are raised synchronously and mean the object was never
created. Network errors surface from the nak client or from the publish path.
"""


class SmartWidgetError(Exception):
    """Base class for all smart-widget errors."""


class InvalidWidgetTypeError(SmartWidgetError):
    """Widget type is not one of basic, action or tool."""


class InvalidRelaySetError(SmartWidgetError):
    """Relay set is empty or contains a non wss:// URL."""


class InvalidSecretKeyError(SmartWidgetError):
    """Secret key is not a valid hex-encoded secp256k1 private key."""


class InvalidTitleError(SmartWidgetError):
    """Widget title is neither empty nor a string."""


class InvalidComponentError(SmartWidgetError):
    """A component field failed validation at construction."""


class InvalidComponentSetError(SmartWidgetError):
    """A component combination is illegal for the widget type."""


class InvalidFilterError(SmartWidgetError):
    """Search filters are not a list of filter objects."""


class DefinitionParseError(SmartWidgetError):
    """Widget definition file is not a YAML mapping."""


class UnknownFieldError(SmartWidgetError):
    """Widget definition contains a field that is not allowed."""


class MissingFieldError(SmartWidgetError):
    """Widget definition is missing a required field."""


class InvalidFieldTypeError(SmartWidgetError):
    """Widget definition field has the wrong type."""


class InvalidFieldValueError(SmartWidgetError):
    """Widget definition field has an invalid value."""


class ImageProcessingError(SmartWidgetError):
    """Local image could not be converted into a data URL."""


class NakInvocationError(SmartWidgetError):
    """The nak client failed to start, exited non-zero or produced bad output."""


class SigningError(SmartWidgetError):
    """The nak client rejected or failed to sign an event."""


class PublishError(SmartWidgetError):
    """Publishing failed; the message carries a configuration hint."""


class PublishTimeoutError(PublishError):
    """No confirming event arrived before the publish timeout."""
