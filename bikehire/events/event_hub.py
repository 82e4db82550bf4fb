"""
Event Hub
---------

The hub keeps track of the listeners for each of its events. Events can be
referenced directly (``StoreEvent.changed``) or through the hub
(``hub.changed``), which also allows the shorthand::

    hub.changed += handler
    hub.changed("bookings")
    hub.changed -= handler
"""

from collections import defaultdict
from inspect import signature, Parameter
from typing import Callable, Dict, List, Type, Union

from .event_list import EventList
from .exceptions import NoSuchEventError, NoSuchListenerError, InvalidHandlerError


class BoundEvent:
    """An event accessed through a hub."""

    def __init__(self, hub: 'EventHub', event: Callable):
        self.hub = hub
        self.event = event

    def __iadd__(self, handler: Callable):
        self.hub.subscribe(self.event, handler)
        return self

    def __isub__(self, handler: Callable):
        self.hub.unsubscribe(self.event, handler)
        return self

    def __call__(self, *args, **kwargs):
        self.hub.emit(self.event, *args, **kwargs)


def _event_parameters(event: Callable) -> List[Parameter]:
    """The parameters a handler must accept, skipping the ``self`` of plain event methods."""
    parameters = list(signature(event).parameters.values())
    if parameters and parameters[0].name == "self":
        parameters = parameters[1:]
    return parameters


class EventHub:
    """Routes emitted events to their subscribers, in subscription order."""

    def __init__(self, *event_lists: Type[EventList]):
        self._event_lists: List[Type[EventList]] = list(event_lists)
        self._listeners: Dict[Callable, List[Callable]] = defaultdict(list)

    def add_events(self, *event_lists: Type[EventList]):
        self._event_lists.extend(x for x in event_lists if x not in self._event_lists)

    def subscribe(self, event: Union[Callable, BoundEvent], handler: Callable):
        """
        Subscribes a handler to an event.

        :raises NoSuchEventError: If the event is not on this hub.
        :raises InvalidHandlerError: If the handler cannot take the event's arguments.
        """
        event = self._resolve(event)
        placeholders = [object() for _ in _event_parameters(event)]
        try:
            signature(handler).bind(*placeholders)
        except TypeError as error:
            raise InvalidHandlerError(
                f"Handler {handler} does not match the signature of {event.__name__}."
            ) from error

        self._listeners[event].append(handler)

    def unsubscribe(self, event: Union[Callable, BoundEvent], handler: Callable):
        """
        Removes a handler from an event.

        :raises NoSuchListenerError: If the handler is not subscribed.
        """
        if isinstance(event, BoundEvent):
            event = event.event

        try:
            self._listeners[event].remove(handler)
        except ValueError:
            raise NoSuchListenerError(f"{handler} is not subscribed to {event.__name__}.")

    def emit(self, event: Union[Callable, BoundEvent], *args, **kwargs):
        """Calls every handler of the event with the given arguments."""
        event = self._resolve(event)
        for handler in list(self._listeners[event]):
            handler(*args, **kwargs)

    def _resolve(self, event: Union[Callable, BoundEvent]) -> Callable:
        if isinstance(event, BoundEvent):
            event = event.event
        if event not in self:
            raise NoSuchEventError(f"{getattr(event, '__name__', event)} is not an event on this hub.")
        return event

    def __contains__(self, item) -> bool:
        if isinstance(item, type) and issubclass(item, EventList):
            return item in self._event_lists
        return any(item in event_list for event_list in self._event_lists)

    def __getattr__(self, name: str) -> BoundEvent:
        if name.startswith("_"):
            raise AttributeError(name)

        for event_list in self._event_lists:
            event = getattr(event_list, name, None)
            if event is not None and event in event_list:
                return BoundEvent(self, event)

        raise NoSuchEventError(f"No event named {name} on this hub.")

    def __setattr__(self, name, value):
        # ``hub.event += handler`` assigns the bound event back onto the hub
        if isinstance(value, BoundEvent) and value.hub is self:
            return
        super().__setattr__(name, value)
