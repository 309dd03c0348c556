from collections import defaultdict
from typing import Any, Callable, Dict, List, Type

from .events import Event

Handler = Callable[[Any], None]


class MessageBus:
    """
    A simple in-memory message bus for dispatching events to subscribers.

    Handlers subscribed to a base class receive every subclass of it, so
    subscribing to `Event` observes everything. Handlers of the most
    specific type are called first.
    """

    def __init__(self):
        self._subscribers: Dict[Type[Event], List[Handler]] = defaultdict(list)

    def subscribe(self, event_type: Type[Event], handler: Handler):
        """Register a handler for an event type and its subclasses."""
        self._subscribers[event_type].append(handler)

    def unsubscribe(self, event_type: Type[Event], handler: Handler):
        handlers = self._subscribers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, event: Event):
        """Dispatch an event to all relevant subscribers."""
        for cls in type(event).__mro__:
            if cls not in self._subscribers:
                continue
            # Copy: handlers may unsubscribe while being called.
            for handler in list(self._subscribers[cls]):
                handler(event)
            if cls is Event:
                break
