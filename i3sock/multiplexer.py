"""Synchronous-looking calls over a stream shared with events.

The protocol has no request identifiers: a reply is recognized by its type
only, and a single command may be in flight at a time. While waiting, every
event is forwarded to the dispatcher and any other reply is dropped.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .logging_setup import get_logger
from .models import CallInProgressError, CallTimeout, ConnectionLost, JSONResponse, Message, StrayReplyError

if TYPE_CHECKING:
    from logging import Logger

    from .connection import Connection
    from .events import EventDispatcher

__all__ = ["CallMultiplexer", "PendingCall"]


@dataclass
class PendingCall:
    """The call currently waiting for its reply."""

    expected_reply_type: int
    future: asyncio.Future[JSONResponse] = field(repr=False)
    strays: int = 0


class CallMultiplexer:
    """Runs calls one at a time and classifies every inbound message."""

    def __init__(
        self,
        connection: Connection,
        events: EventDispatcher,
        timeout: float = 0,
        max_stray_replies: int = 0,
        logger: Logger | None = None,
    ) -> None:
        """Initialize the multiplexer.

        Args:
            connection: connection providing send / pump / wait primitives
            events: receives every message flagged as event
            timeout: default reply timeout in seconds, 0 waits forever
            max_stray_replies: fail a call after that many unexpected replies, 0 for no limit
            logger: logger to use
        """
        self.connection = connection
        self.events = events
        self.timeout = timeout
        self.max_stray_replies = max_stray_replies
        self.log = logger or get_logger("i3sock.calls")
        self._pending: PendingCall | None = None

    @property
    def pending(self) -> PendingCall | None:
        """The in-flight call, if any."""
        return self._pending

    async def call(self, request_type: int, reply_type: int, payload: bytes = b"", timeout: float | None = None) -> JSONResponse:
        """Send a request and wait for the reply of type `reply_type`.

        Args:
            request_type: message type to send
            reply_type: message type of the expected reply
            payload: raw request payload
            timeout: override the default timeout (0 waits forever)

        Returns:
            The parsed reply document (None for an empty reply)

        Raises:
            CallInProgressError: another call is waiting, nothing was sent
            NotConnectedError: the connection is not open
            ConnectionLost: disconnected before the reply arrived
            CallTimeout: no reply in time, the connection is kept
            FramingError: the stream got corrupted
            StrayReplyError: too many unexpected replies
        """
        if self._pending is not None:
            msg = f"call of type {self._pending.expected_reply_type} still waiting for its reply"
            raise CallInProgressError(msg)
        self.connection.ensure_open()

        pending = PendingCall(int(reply_type), asyncio.get_running_loop().create_future())
        self._pending = pending
        self.log.debug("call: send=%d expect=%d", request_type, reply_type)
        try:
            self.connection.send(request_type, payload)
            await self._wait_reply(pending, self.timeout if timeout is None else timeout)
            return pending.future.result()
        finally:
            self._pending = None
            if not pending.future.done():
                pending.future.cancel()

    async def _wait_reply(self, pending: PendingCall, timeout: float) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout if timeout else None
        transport = self.connection.transport
        while not pending.future.done():
            if transport.bytes_available:
                self.connection.pump()
                continue
            if not transport.is_open:
                self.fail_pending(ConnectionLost("connection closed while waiting for a reply"))
                break
            remaining = None if deadline is None else max(deadline - loop.time(), 0.0)
            if remaining == 0 or not await transport.wait_readable(remaining):
                msg = f"no reply of type {pending.expected_reply_type} within {timeout}s"
                raise CallTimeout(msg)

    def route(self, message: Message) -> None:
        """Dispatch an event or hand a reply to the pending call."""
        if message.is_event:
            self.events.publish(message)
            return

        pending = self._pending
        if pending is not None and not pending.future.done():
            if message.type == pending.expected_reply_type:
                pending.future.set_result(message.data)
                return
            pending.strays += 1
            self.log.warning(
                "Dropping reply of type %d while waiting for type %d (%d dropped)",
                message.type,
                pending.expected_reply_type,
                pending.strays,
            )
            if self.max_stray_replies and pending.strays > self.max_stray_replies:
                msg = f"{pending.strays} unexpected replies while waiting for type {pending.expected_reply_type}"
                pending.future.set_exception(StrayReplyError(msg))
            return

        self.log.warning("Dropping reply of type %d, no call is waiting", message.type)

    def fail_pending(self, error: BaseException) -> None:
        """Abort the in-flight call with `error`."""
        pending = self._pending
        if pending is not None and not pending.future.done():
            pending.future.set_exception(error)
