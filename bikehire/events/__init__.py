"""
.. autoclasstree:: bikehire.events

This module provides a simple event system. It is centered around the use of hubs.
A hub is created by passing a number of event lists in. These event lists provide
typed callback signatures which subscribers can use to implement their handlers.

>>> class StockEvents(EventList):
>>>     @staticmethod
>>>     def bike_returned(bike_id: int):
>>>         "A bike came back to the shop."
>>>
>>> def returned_handler(bike_id):
>>>     print(f"Bike {bike_id} is back.")
>>>
>>> hub = EventHub(StockEvents)
>>> hub.subscribe(StockEvents.bike_returned, returned_handler)
>>> hub.emit(StockEvents.bike_returned, 4)
Bike 4 is back.
"""

from .event_hub import EventHub, BoundEvent
from .event_list import EventList
from .exceptions import NoSuchEventError, NoSuchListenerError, InvalidHandlerError
