" generic fixtures "
from unittest.mock import Mock

import pytest
from pytest_asyncio import fixture

from i3sock.client import I3Client
from i3sock.config import Configuration
from i3sock.connection import Connection

from .testtools import FakeTransport


def pytest_configure():
    "Runs once before all"
    from i3sock.logging_setup import init_logger

    init_logger("/dev/null", force_debug=True)


@pytest.fixture
def test_logger():
    "A logger recording its calls"
    return Mock()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def config(test_logger):
    conf = Configuration.defaults(test_logger)
    conf["call_timeout"] = 2.0
    return conf


@pytest.fixture
def connection(transport, config, test_logger):
    "A connection over the fake transport, not opened"
    return Connection("/run/user/1000/i3/ipc-socket.1", config=config, transport=transport, logger=test_logger)


@fixture
async def opened(connection):
    "An opened connection"
    await connection.open()
    yield connection
    connection.close()


@fixture
async def client(transport, config, test_logger):
    "A connected client"
    i3 = I3Client("/tmp/i3.sock", config=config, transport=transport, logger=test_logger)
    await i3.connect()
    yield i3
    await i3.disconnect()
