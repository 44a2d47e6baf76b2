"""Connection to the i3 IPC socket.

The connection owns the transport, the inbound assembler and the session
cache. Inbound bytes are processed from two places:

- the transport notification (`_on_readable`), run by the event loop each
  time data arrives; it never blocks
- the wait loop of an in-flight call (`CallMultiplexer.call`)

Both go through `pump`, which assembles messages under a lock and routes
them once the lock is released.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from .assembler import InboundAssembler
from .codec import encode
from .config import Configuration
from .events import EventDispatcher
from .ipc_paths import resolve_socket_path
from .logging_setup import get_logger
from .models import (
    ConnectError,
    ConnectionLost,
    ConnectionState,
    FramingError,
    IpcError,
    JSONResponse,
    Message,
    NotConnectedError,
    PayloadDecodeError,
)
from .multiplexer import CallMultiplexer
from .session import SessionCache
from .transport import Transport, UnixSocketTransport

if TYPE_CHECKING:
    from logging import Logger

__all__ = ["Connection"]


class Connection:
    """A single i3 IPC stream: lifecycle, framing and routing."""

    def __init__(
        self,
        socket_path: str | None = None,
        *,
        config: Configuration | None = None,
        transport: Transport | None = None,
        logger: Logger | None = None,
    ) -> None:
        """Initialize the connection (no I/O is performed).

        Args:
            socket_path: socket to connect to, overrides the configuration and the environment
            config: client configuration (defaults if not set)
            transport: stream implementation (Unix socket if not set)
            logger: logger to use
        """
        self.log = logger or get_logger("i3sock.connection")
        self.config = config or Configuration.defaults(self.log)
        self.socket_path = socket_path or self.config.get_str("socket_path") or resolve_socket_path()
        self.transport = transport or UnixSocketTransport(logger=self.log)
        self.transport.on_readable = self._on_readable
        self.transport.on_disconnect = self._on_disconnect

        self.assembler = InboundAssembler(self.transport.read_available, self.config.get_int("max_payload_size"))
        self.events = EventDispatcher(logger=self.log)
        self.session = SessionCache(logger=self.log)
        self.calls = CallMultiplexer(
            self,
            self.events,
            timeout=self.config.get_float("call_timeout"),
            max_stray_replies=self.config.get_int("max_stray_replies"),
            logger=self.log,
        )
        self.state = ConnectionState.IDLE
        self._lock = threading.Lock()

    @property
    def is_open(self) -> bool:
        """True when calls can be made."""
        return self.state is ConnectionState.OPEN

    async def open(self) -> None:
        """Connect and cache the daemon version.

        Raises:
            ConnectError: the socket can't be reached, the connection stays idle
            ConnectionLost: `close` was called before the socket was connected
            IpcError: the version query failed, the connection is closed again
        """
        if self.state in {ConnectionState.OPEN, ConnectionState.CONNECTING}:
            self.log.debug("Already %s", self.state.value)
            return

        self.log.debug("Connecting to %s", self.socket_path)
        self.state = ConnectionState.CONNECTING
        self.assembler.reset()
        try:
            await self.transport.open(self.socket_path, self.config.get_float("connect_timeout") or None)
        except OSError as e:
            if self.state is ConnectionState.CONNECTING:
                self.state = ConnectionState.IDLE
            self.log.error("Cannot connect to %s: %s", self.socket_path, e)
            msg = f"cannot connect to {self.socket_path}: {e}"
            raise ConnectError(msg) from e
        if self.state is not ConnectionState.CONNECTING:
            # closed while connecting
            self.transport.abort()
            msg = f"connection {self.state.value} while connecting"
            raise ConnectionLost(msg)
        self.state = ConnectionState.OPEN

        try:
            await self.session.refresh(self.call)
        except IpcError as e:
            self.log.error("Version query failed: %s", e)
            self.close()
            raise

    def close(self) -> None:
        """Close the connection, failing the in-flight call. Closing twice is a no-op."""
        if self.state not in {ConnectionState.OPEN, ConnectionState.CONNECTING}:
            return
        self.log.debug("Disconnecting")
        self.state = ConnectionState.CLOSING
        self.transport.abort()
        self._teardown(ConnectionLost("connection closed"))
        self.state = ConnectionState.CLOSED

    def ensure_open(self) -> None:
        """Raise unless the connection is open.

        Raises:
            ConnectionLost: the connection was open before
            NotConnectedError: the connection was never opened
        """
        if self.is_open:
            return
        if self.state in {ConnectionState.IDLE, ConnectionState.CONNECTING}:
            msg = f"not connected ({self.state.value})"
            raise NotConnectedError(msg)
        msg = f"connection is {self.state.value}"
        raise ConnectionLost(msg)

    def send(self, message_type: int, payload: bytes = b"") -> None:
        """Write one frame."""
        self.ensure_open()
        frame = encode(message_type, payload)
        with self._lock:
            self.transport.write(frame)
        self.log.debug("sent type=%d (%d bytes)", message_type, len(payload))

    async def call(self, request_type: int, reply_type: int, payload: bytes = b"", timeout: float | None = None) -> JSONResponse:
        """Send a request and return the matching reply, see `CallMultiplexer.call`."""
        return await self.calls.call(request_type, reply_type, payload, timeout)

    def pump(self) -> int:
        """Assemble the buffered bytes and route the resulting messages.

        A framing error faults the connection, the in-flight call receives the
        error.

        Returns:
            The number of routed messages
        """
        messages, error = self._drain_messages()
        for message in messages:
            self.calls.route(message)
        if error is not None:
            self._fault(error)
        return len(messages)

    def _drain_messages(self) -> tuple[list[Message], FramingError | None]:
        messages = []
        with self._lock:
            while True:
                try:
                    message = self.assembler.feed()
                except PayloadDecodeError as e:
                    self.log.warning("Dropping message: %s", e)
                    continue
                except FramingError as e:
                    return messages, e
                if message is None:
                    return messages, None
                messages.append(message)

    def _on_readable(self) -> None:
        if self.state is ConnectionState.OPEN:
            self.pump()

    def _on_disconnect(self, exc: Exception | None) -> None:
        if self.state not in {ConnectionState.OPEN, ConnectionState.CONNECTING}:
            return
        self.log.warning("Connection lost: %s", exc or "closed by peer")
        self.state = ConnectionState.CLOSED
        self._teardown(ConnectionLost(f"connection lost: {exc or 'closed by peer'}"))

    def _fault(self, error: FramingError) -> None:
        self.log.error("Framing error, dropping the connection: %s", error)
        self.state = ConnectionState.FAULTED
        self.transport.abort()
        self._teardown(error)

    def _teardown(self, error: IpcError) -> None:
        self.assembler.reset()
        self.session.clear()
        self.calls.fail_pending(error)
        self.events.close()
