import asyncio

import pytest

from i3sock.connection import Connection
from i3sock.constants import EventType, MessageType, ReplyType
from i3sock.models import (
    CallInProgressError,
    CallTimeout,
    ConnectionLost,
    ConnectionState,
    FramingError,
    StrayReplyError,
)

from .testtools import chunks, frame

TREE = {"id": 94016288438880, "type": "root", "nodes": []}


@pytest.mark.asyncio
async def test_call_returns_reply(opened, transport):
    transport.script(MessageType.GET_TREE, frame(ReplyType.TREE, TREE))

    assert await opened.call(MessageType.GET_TREE, ReplyType.TREE) == TREE
    assert opened.calls.pending is None


@pytest.mark.asyncio
async def test_events_before_reply_are_dispatched_in_order(opened, transport):
    received = []
    opened.events.add_observer(received.append)
    transport.script(
        MessageType.GET_TREE,
        frame(EventType.WINDOW.wire_type, {"change": "focus"}),
        frame(EventType.WORKSPACE.wire_type, {"change": "init"}),
        frame(ReplyType.TREE, TREE),
    )

    assert await opened.call(MessageType.GET_TREE, ReplyType.TREE) == TREE
    assert [(e.name, e.data["change"]) for e in received] == [("window", "focus"), ("workspace", "init")]


@pytest.mark.asyncio
async def test_second_call_is_rejected_without_writing(opened, transport):
    first = asyncio.create_task(opened.call(MessageType.GET_TREE, ReplyType.TREE))
    await asyncio.sleep(0)
    written = len(transport.written)

    with pytest.raises(CallInProgressError):
        await opened.call(MessageType.GET_MARKS, ReplyType.MARKS)
    assert len(transport.written) == written

    transport.receive(frame(ReplyType.TREE, {}))
    assert await first == {}


@pytest.mark.asyncio
async def test_stray_reply_is_dropped(opened, transport, test_logger):
    transport.script(MessageType.GET_MARKS, frame(ReplyType.WORKSPACES, []), frame(ReplyType.MARKS, ["a"]))

    assert await opened.call(MessageType.GET_MARKS, ReplyType.MARKS) == ["a"]
    test_logger.warning.assert_called()


@pytest.mark.asyncio
async def test_too_many_stray_replies(transport, config, test_logger):
    config["max_stray_replies"] = 1
    conn = Connection("/tmp/i3.sock", config=config, transport=transport, logger=test_logger)
    await conn.open()
    transport.script(
        MessageType.GET_MARKS,
        frame(ReplyType.WORKSPACES, []),
        frame(ReplyType.OUTPUTS, []),
        frame(ReplyType.MARKS, []),
    )

    with pytest.raises(StrayReplyError):
        await conn.call(MessageType.GET_MARKS, ReplyType.MARKS)

    # the late reply is dropped, the connection is still usable
    await asyncio.sleep(0)
    assert conn.is_open
    transport.script(MessageType.GET_CONFIG, frame(ReplyType.CONFIG, {"config": ""}))
    assert await conn.call(MessageType.GET_CONFIG, ReplyType.CONFIG) == {"config": ""}


@pytest.mark.asyncio
async def test_timeout_keeps_connection(opened, transport, test_logger):
    with pytest.raises(CallTimeout) as exc_info:
        await opened.call(MessageType.GET_TREE, ReplyType.TREE, timeout=0.05)
    assert isinstance(exc_info.value, TimeoutError)
    assert opened.is_open
    assert opened.calls.pending is None

    # a reply arriving too late is not taken for the next call's
    transport.receive(frame(ReplyType.TREE, TREE))
    test_logger.warning.assert_called()

    transport.script(MessageType.GET_MARKS, frame(ReplyType.MARKS, []))
    assert await opened.call(MessageType.GET_MARKS, ReplyType.MARKS) == []


@pytest.mark.asyncio
async def test_disconnect_during_call(opened, transport):
    task = asyncio.create_task(opened.call(MessageType.GET_WORKSPACES, ReplyType.WORKSPACES))
    await asyncio.sleep(0)

    transport.disconnect(ConnectionResetError(104, "Connection reset by peer"))

    with pytest.raises(ConnectionLost):
        await task
    assert opened.state is ConnectionState.CLOSED


@pytest.mark.asyncio
async def test_framing_error_during_call(opened, transport):
    transport.script(MessageType.GET_OUTPUTS, b"i3-ipX" + b"\x00" * 8)

    with pytest.raises(FramingError):
        await opened.call(MessageType.GET_OUTPUTS, ReplyType.OUTPUTS)
    assert opened.state is ConnectionState.FAULTED
    assert transport.aborted == 1


@pytest.mark.parametrize("size", [3, 7, 14, 64])
@pytest.mark.asyncio
async def test_interleaved_notifications_and_call_loop(opened, transport, size):
    received = []
    opened.events.add_observer(received.append)
    count = 25
    stream = b"".join(frame(EventType.BINDING.wire_type, {"n": i}) for i in range(count))
    stream += frame(ReplyType.WORKSPACES, [{"num": 1}])

    task = asyncio.create_task(opened.call(MessageType.GET_WORKSPACES, ReplyType.WORKSPACES))
    await asyncio.sleep(0)
    # odd chunks are only seen by the waiting call, even ones go through the notification
    for i, part in enumerate(chunks(stream, size)):
        transport.receive(part, notify=i % 2 == 0)
        await asyncio.sleep(0)

    assert await task == [{"num": 1}]
    assert [e.data["n"] for e in received] == list(range(count))
    assert opened.assembler.buffered == 0
