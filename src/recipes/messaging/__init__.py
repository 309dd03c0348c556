from .bus import MessageBus, MessageStore, Renderer, bus
from .renderer import CliRenderer, JsonRenderer

__all__ = ["MessageBus", "MessageStore", "Renderer", "bus", "CliRenderer", "JsonRenderer"]
