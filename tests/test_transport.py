import asyncio
import contextlib

import pytest
from pytest_asyncio import fixture

from i3sock.client import I3Client
from i3sock.codec import parse_header
from i3sock.constants import HEADER_SIZE, EventType, MessageType, ReplyType
from i3sock.models import ConnectError, ConnectionLost, ConnectionState
from i3sock.transport import UnixSocketTransport

from .testtools import VERSION_REPLY, frame


async def fake_i3(reader, writer):
    "Answers like i3 would, `exit` closes the connection without replying"
    while True:
        try:
            header = await reader.readexactly(HEADER_SIZE)
        except asyncio.IncompleteReadError:
            break
        length, message_type = parse_header(header)
        payload = await reader.readexactly(length)
        if message_type == MessageType.GET_VERSION:
            writer.write(frame(ReplyType.VERSION, VERSION_REPLY))
        elif message_type == MessageType.SUBSCRIBE:
            event = frame(EventType.WORKSPACE.wire_type, {"change": "focus"})
            reply = frame(ReplyType.SUBSCRIBE, {"success": True})
            # split across writes, the event comes first
            writer.write(event + reply[:5])
            await writer.drain()
            writer.write(reply[5:])
        elif payload == b"exit":
            break
        else:
            writer.write(frame(ReplyType.COMMAND, [{"success": True}]))
        await writer.drain()
    writer.close()


@fixture
async def socket_path(tmp_path):
    path = str(tmp_path / "ipc.sock")
    server = await asyncio.start_unix_server(fake_i3, path)
    yield path
    server.close()
    await server.wait_closed()


@pytest.mark.asyncio
async def test_real_socket(socket_path, config, test_logger):
    received = []
    async with I3Client(socket_path, config=config, logger=test_logger) as i3:
        assert i3.get_version_number(1) == 23
        i3.add_observer(received.append)

        assert await i3.subscribe(["workspace"]) == {"success": True}
        assert [e.name for e in received] == ["workspace"]
        assert await i3.run_command("nop") == [{"success": True}]


@pytest.mark.asyncio
async def test_server_going_away(socket_path, config, test_logger):
    i3 = I3Client(socket_path, config=config, logger=test_logger)
    await i3.connect()
    listener = i3.listen()

    with pytest.raises(ConnectionLost):
        await i3.run_command("exit")

    assert i3.connection.state is ConnectionState.CLOSED
    assert [e async for e in listener] == []
    await i3.disconnect()


@pytest.mark.asyncio
async def test_missing_socket(tmp_path, config, test_logger):
    i3 = I3Client(str(tmp_path / "missing.sock"), config=config, logger=test_logger)
    with pytest.raises(ConnectError):
        await i3.connect()
    assert i3.connection.state is ConnectionState.IDLE


@pytest.mark.asyncio
async def test_reader_failure_reports_disconnect(tmp_path, test_logger):
    async def greet(reader, writer):
        writer.write(b"i3-ipc")
        await writer.drain()
        with contextlib.suppress(ConnectionError):
            await reader.read()
        writer.close()

    path = str(tmp_path / "raw.sock")
    server = await asyncio.start_unix_server(greet, path)
    lost = asyncio.get_running_loop().create_future()

    def broken():
        raise RuntimeError("boom")

    transport = UnixSocketTransport(logger=test_logger)
    transport.on_readable = broken
    transport.on_disconnect = lost.set_result
    await transport.open(path)

    error = await asyncio.wait_for(lost, 1)
    assert isinstance(error, RuntimeError)
    assert not transport.is_open
    test_logger.exception.assert_called_once()

    server.close()
    await server.wait_closed()
