import pytest

from bikehire.events import EventHub, NoSuchEventError, NoSuchListenerError, InvalidHandlerError, EventList


class TestException(Exception):
    pass


class ExampleEvents(EventList):

    @staticmethod
    def something_happened(argument):
        """An example event."""


class SecondExampleEvents(EventList):

    def something_else_happened(self, argument):
        """Another event, declared as a plain method."""


class TestRegistry:

    @staticmethod
    def handler(argument):
        pass

    @staticmethod
    def invalid_handler():
        pass

    async def test_event_list_in_emitter(self):
        """Assert that you can check the existence of an event list on a hub."""
        hub = EventHub(ExampleEvents)
        assert ExampleEvents in hub
        assert SecondExampleEvents not in hub

    async def test_event_in_emitter(self):
        """Assert that you can check the existence of an event on an hub."""
        hub = EventHub(ExampleEvents)
        assert ExampleEvents.something_happened in hub
        assert SecondExampleEvents.something_else_happened not in hub

    async def test_missing_event(self):
        """Assert that getting a non-existent event on an event list raises an error."""
        with pytest.raises(AttributeError):
            ExampleEvents.bad_event

    async def test_event_on_emitter(self):
        """Assert that an event can be accessed through the hub."""
        hub = EventHub(ExampleEvents)
        assert hub.something_happened.event == ExampleEvents.something_happened

    async def test_missing_event_on_emitter(self):
        """Assert that getting a non-existent event on a hub raises an error."""
        hub = EventHub()
        with pytest.raises(NoSuchEventError):
            hub.bad_event

    async def test_subscribe_to_event(self):
        """Assert that a handler can be registered on a hub's event."""
        hub = EventHub(ExampleEvents)
        assert sum((len(l) for l in hub._listeners.values()), 0) == 0
        hub.subscribe(ExampleEvents.something_happened, self.handler)
        assert sum((len(l) for l in hub._listeners.values()), 0) != 0

    async def test_subscribe_to_method_event(self):
        """Assert that the self of an event declared as a method is not part of its signature."""
        hub = EventHub(SecondExampleEvents)
        hub.subscribe(SecondExampleEvents.something_else_happened, self.handler)
        with pytest.raises(InvalidHandlerError):
            hub.subscribe(SecondExampleEvents.something_else_happened, self.invalid_handler)

    async def test_subscriber_has_similar_signature(self):
        """Assert that a subscriber to an event must have a similar signature."""
        hub = EventHub(ExampleEvents)
        with pytest.raises(InvalidHandlerError):
            hub.subscribe(ExampleEvents.something_happened, self.invalid_handler)

    async def test_subscribe_to_missing_event(self):
        """Assert that subscribing to an event from another list fails."""
        hub = EventHub(ExampleEvents)
        with pytest.raises(NoSuchEventError):
            hub.subscribe(SecondExampleEvents.something_else_happened, self.handler)

    async def test_add_events(self):
        """Assert that event lists can be added to a hub after it is created."""
        hub = EventHub(ExampleEvents)
        hub.add_events(SecondExampleEvents)
        assert SecondExampleEvents in hub

    async def test_unsubscribe_from_event(self):
        """Assert that a handler can be unsubscribed from an event."""
        hub = EventHub(ExampleEvents)
        hub.subscribe(hub.something_happened, self.handler)
        hub.unsubscribe(hub.something_happened, self.handler)
        assert not hub._listeners[ExampleEvents.something_happened]

    async def test_bad_unsubscribe(self):
        """Assert that unsubscribing a handler that isn't registered fails."""
        hub = EventHub()
        with pytest.raises(NoSuchListenerError):
            hub.unsubscribe(ExampleEvents.something_happened, self.handler)

    async def test_trigger_event(self):
        """Assert that emitting an event calls its handlers."""
        hub = EventHub(ExampleEvents)

        def raise_listener(argument):
            raise TestException("This runs!")

        hub.subscribe(ExampleEvents.something_happened, raise_listener)
        with pytest.raises(TestException):
            hub.emit(ExampleEvents.something_happened, argument="test")

    async def test_handlers_called_in_order(self):
        """Assert that handlers are called in the order they subscribed."""
        hub = EventHub(ExampleEvents)
        calls = []
        hub.something_happened += lambda argument: calls.append(("first", argument))
        hub.something_happened += lambda argument: calls.append(("second", argument))
        hub.something_happened("test")
        assert calls == [("first", "test"), ("second", "test")]

    async def test_unsubscribe_to_event_natural_syntax(self):
        """Assert that handlers can be removed with the natural syntax."""
        hub = EventHub(ExampleEvents)
        hub.subscribe(ExampleEvents.something_happened, self.handler)
        hub.something_happened -= self.handler
        assert not hub._listeners[ExampleEvents.something_happened]

    async def test_trigger_event_natural_syntax(self):
        """Assert that events can be triggered with the natural syntax."""

        def raise_listener(argument):
            raise TestException("This runs!")

        hub = EventHub(ExampleEvents)
        hub.something_happened += raise_listener
        with pytest.raises(TestException):
            hub.something_happened("test")
