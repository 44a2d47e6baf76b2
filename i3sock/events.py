"""Event fan-out to observers and async listeners."""

import asyncio
from collections.abc import AsyncIterator, Callable
from logging import Logger

from .logging_setup import get_logger
from .models import Event, Message

__all__ = ["EventDispatcher", "EventListener", "Observer"]

Observer = Callable[[Event], object]


class EventListener:
    """Async iterator over the events published after its creation."""

    def __init__(self, dispatcher: "EventDispatcher", maxsize: int = 0) -> None:
        self._dispatcher = dispatcher
        self.queue: asyncio.Queue[Event | None] = asyncio.Queue(maxsize)
        self.closed = False

    def put(self, event: Event) -> None:
        try:
            self.queue.put_nowait(event)
        except asyncio.QueueFull:
            self._dispatcher.log.warning("Listener queue full, dropping %s event", event.name)

    def close(self) -> None:
        """Stop the iteration once the queued events are consumed."""
        if self.closed:
            return
        self.closed = True
        self._dispatcher.forget(self)
        if not self.queue.full():
            # wakes up a consumer waiting on an empty queue
            self.queue.put_nowait(None)

    def __aiter__(self) -> AsyncIterator[Event]:
        return self

    async def __anext__(self) -> Event:
        if self.closed and self.queue.empty():
            raise StopAsyncIteration
        event = await self.queue.get()
        if event is None:
            raise StopAsyncIteration
        return event


class EventDispatcher:
    """Publishes daemon events, in wire order, to every registered consumer.

    Events are not buffered for late consumers.
    """

    def __init__(self, logger: Logger | None = None) -> None:
        self.log = logger or get_logger("i3sock.events")
        self._observers: list[Observer] = []
        self._listeners: list[EventListener] = []

    def add_observer(self, callback: Observer) -> None:
        """Call `callback(event)` for every event."""
        if callback not in self._observers:
            self._observers.append(callback)

    def remove_observer(self, callback: Observer) -> None:
        """Unregister a callback, unknown callbacks are ignored."""
        if callback in self._observers:
            self._observers.remove(callback)

    def listen(self, maxsize: int = 0) -> EventListener:
        """Return a new channel receiving the upcoming events."""
        listener = EventListener(self, maxsize)
        self._listeners.append(listener)
        return listener

    def forget(self, listener: EventListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def publish(self, message: Message) -> Event:
        """Deliver an event message."""
        event = Event.from_message(message)
        self.log.debug("event %s", event.name)
        for callback in list(self._observers):
            try:
                callback(event)
            except Exception:
                self.log.exception("Event observer %s failed on %s", callback, event.name)
        for listener in list(self._listeners):
            listener.put(event)
        return event

    def close(self) -> None:
        """End all listeners."""
        for listener in list(self._listeners):
            listener.close()
