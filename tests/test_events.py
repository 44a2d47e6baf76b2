import asyncio

import pytest

from i3sock.constants import EventType
from i3sock.events import EventDispatcher
from i3sock.models import Event, Message, event_name

from .testtools import frame


def event_message(event_type, data):
    return Message(event_type.wire_type, frame(event_type.wire_type, data)[14:], data=data)


def test_event_names():
    assert event_name(0) == "workspace"
    assert event_name(4) == "barconfig_update"
    assert event_name(7) == "tick"
    assert event_name(42) == "unknown_42"


def test_event_from_message():
    event = Event.from_message(event_message(EventType.BINDING, {"change": "run"}))
    assert event.name == "binding"
    assert event.type == EventType.BINDING.wire_type
    assert event.data == {"change": "run"}


def test_observers_are_called_in_order(test_logger):
    dispatcher = EventDispatcher(test_logger)
    calls = []
    dispatcher.add_observer(lambda e: calls.append(("a", e.name)))
    dispatcher.add_observer(lambda e: calls.append(("b", e.name)))

    dispatcher.publish(event_message(EventType.MODE, {"change": "default"}))

    assert calls == [("a", "mode"), ("b", "mode")]


def test_failing_observer_does_not_stop_others(test_logger):
    dispatcher = EventDispatcher(test_logger)
    calls = []

    def broken(event):
        raise RuntimeError("boom")

    dispatcher.add_observer(broken)
    dispatcher.add_observer(calls.append)

    event = dispatcher.publish(event_message(EventType.WINDOW, {"change": "close"}))

    assert calls == [event]
    test_logger.exception.assert_called_once()


def test_add_and_remove_observer(test_logger):
    dispatcher = EventDispatcher(test_logger)
    calls = []
    dispatcher.add_observer(calls.append)
    dispatcher.add_observer(calls.append)  # registered once
    dispatcher.publish(event_message(EventType.TICK, {"first": True}))
    dispatcher.remove_observer(calls.append)
    dispatcher.remove_observer(calls.append)  # unknown, ignored
    dispatcher.publish(event_message(EventType.TICK, {"first": False}))

    assert len(calls) == 1


@pytest.mark.asyncio
async def test_listener_gets_upcoming_events(test_logger):
    dispatcher = EventDispatcher(test_logger)
    dispatcher.publish(event_message(EventType.OUTPUT, {"change": "unspecified"}))  # before listening: lost
    listener = dispatcher.listen()
    dispatcher.publish(event_message(EventType.WORKSPACE, {"change": "focus"}))
    dispatcher.publish(event_message(EventType.WORKSPACE, {"change": "empty"}))
    dispatcher.close()
    dispatcher.publish(event_message(EventType.WORKSPACE, {"change": "init"}))  # after close: ignored

    assert [e.data["change"] async for e in listener] == ["focus", "empty"]


@pytest.mark.asyncio
async def test_listener_close(test_logger):
    dispatcher = EventDispatcher(test_logger)
    first = dispatcher.listen()
    second = dispatcher.listen()
    first.close()
    first.close()
    dispatcher.publish(event_message(EventType.SHUTDOWN, {"change": "restart"}))
    dispatcher.close()

    assert [e async for e in first] == []
    assert [e.name async for e in second] == ["shutdown"]


def test_full_listener_drops_events(test_logger):
    dispatcher = EventDispatcher(test_logger)
    listener = dispatcher.listen(maxsize=1)
    dispatcher.publish(event_message(EventType.BINDING, {"n": 1}))
    dispatcher.publish(event_message(EventType.BINDING, {"n": 2}))

    assert listener.queue.qsize() == 1
    test_logger.warning.assert_called_once()


@pytest.mark.asyncio
async def test_full_listener_still_ends_on_close(test_logger):
    dispatcher = EventDispatcher(test_logger)
    listener = dispatcher.listen(maxsize=1)
    dispatcher.publish(event_message(EventType.WINDOW, {"change": "title"}))
    dispatcher.close()

    async def drain():
        return [e.data["change"] async for e in listener]

    assert await asyncio.wait_for(drain(), 1) == ["title"]
    test_logger.warning.assert_not_called()


@pytest.mark.asyncio
async def test_close_wakes_up_waiting_listener(test_logger):
    dispatcher = EventDispatcher(test_logger)
    listener = dispatcher.listen(maxsize=1)

    async def drain():
        return [e async for e in listener]

    task = asyncio.create_task(drain())
    await asyncio.sleep(0)
    dispatcher.close()

    assert await asyncio.wait_for(task, 1) == []
