"""smart-widget: build, sign and publish nostr Smart Widgets."""

__version__ = "0.1.0"

from .components import Button, ComponentSet, Icon, Image, Input
from .widget import Widget

__all__ = ["Button", "ComponentSet", "Icon", "Image", "Input", "Widget", "__version__"]
