"""Stream transports used by the connection."""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Callable
from logging import Logger

from .logging_setup import get_logger

__all__ = ["Transport", "UnixSocketTransport"]

READ_SIZE = 65536


class Transport(ABC):
    """Minimal byte stream capability.

    Owners set `on_readable` (called without blocking each time bytes arrive)
    and `on_disconnect` (called once when the peer goes away).
    """

    on_readable: Callable[[], None] | None = None
    on_disconnect: Callable[[Exception | None], None] | None = None

    @abstractmethod
    async def open(self, address: str, timeout: float | None = None) -> None:
        """Connect to `address`.

        Raises:
            OSError: connection refused, missing socket, timeout...
        """

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """True until the stream is closed or lost."""

    @property
    @abstractmethod
    def bytes_available(self) -> int:
        """Number of bytes that `read_available` would return."""

    @abstractmethod
    def read_available(self) -> bytes:
        """Return (and consume) the bytes received so far, never blocks."""

    @abstractmethod
    def write(self, data: bytes) -> None:
        """Queue `data` for sending."""

    @abstractmethod
    async def wait_readable(self, timeout: float | None = None) -> bool:
        """Wait until bytes are available or the stream is closed.

        Returns:
            False if `timeout` elapsed first
        """

    @abstractmethod
    def abort(self) -> None:
        """Close immediately, dropping pending I/O."""


class UnixSocketTransport(Transport):
    """Unix stream socket read by a background task.

    `abort` detaches the socket: no disconnect notification follows an
    explicit abort.
    """

    def __init__(self, logger: Logger | None = None, read_size: int = READ_SIZE) -> None:
        self.log = logger or get_logger("i3sock.transport")
        self.read_size = read_size
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._task: asyncio.Task | None = None
        self._buffer = bytearray()
        self._readable = asyncio.Event()

    async def open(self, address: str, timeout: float | None = None) -> None:
        self._buffer.clear()
        self._readable.clear()
        try:
            reader, writer = await asyncio.wait_for(asyncio.open_unix_connection(address), timeout)
        except TimeoutError as e:
            msg = f"timed out connecting to {address}"
            raise OSError(msg) from e
        self._reader, self._writer = reader, writer
        self._task = asyncio.create_task(self._read_loop(reader))
        self.log.debug("socket connected")

    async def _read_loop(self, reader: asyncio.StreamReader) -> None:
        error: Exception | None = None
        try:
            while True:
                data = await reader.read(self.read_size)
                if not data or reader is not self._reader:
                    break
                self._buffer += data
                self._readable.set()
                if self.on_readable:
                    self.on_readable()
        except OSError as e:
            error = e
        except Exception as e:
            self.log.exception("Socket reader failed")
            error = e
        if reader is not self._reader:
            return
        self.log.debug("socket closed (%s)", error or "EOF")
        writer = self._detach()
        if writer is not None:
            writer.transport.abort()
        if self.on_disconnect:
            self.on_disconnect(error)

    def _detach(self) -> asyncio.StreamWriter | None:
        writer = self._writer
        self._reader = self._writer = None
        self._task = None
        self._readable.set()
        return writer

    # Transport API

    @property
    def is_open(self) -> bool:
        return self._reader is not None

    @property
    def bytes_available(self) -> int:
        return len(self._buffer)

    def read_available(self) -> bytes:
        data = bytes(self._buffer)
        self._buffer.clear()
        return data

    def write(self, data: bytes) -> None:
        if self._writer is None:
            msg = "socket is not connected"
            raise ConnectionResetError(msg)
        self._writer.write(data)

    async def wait_readable(self, timeout: float | None = None) -> bool:
        if self._buffer or not self.is_open:
            return True
        self._readable.clear()
        try:
            await asyncio.wait_for(self._readable.wait(), timeout)
        except TimeoutError:
            return False
        return True

    def abort(self) -> None:
        task = self._task
        writer = self._detach()
        self._buffer.clear()
        if task is not None and task is not asyncio.current_task():
            task.cancel()
        if writer is not None:
            writer.transport.abort()
