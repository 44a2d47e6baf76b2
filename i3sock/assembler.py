"""Inbound message assembly over non-blocking reads."""

from collections.abc import Callable

from .codec import check_magic, decode_document, parse_header
from .constants import HEADER_SIZE, INVALID_MESSAGE_TYPE, MAGIC
from .models import Message

__all__ = ["InboundAssembler"]


class InboundAssembler:
    """Turns "some bytes arrived" notifications into complete messages.

    Each `feed` reads whatever the transport has available (without blocking)
    and completes at most one message, so callers keep feeding until it
    returns None.

    Not thread safe: the owner serializes calls.
    """

    def __init__(self, read_available: Callable[[], bytes], max_payload: int = 0) -> None:
        """Initialize the assembler.

        Args:
            read_available: returns the bytes currently readable, possibly empty
            max_payload: largest accepted payload, 0 for no limit
        """
        self._read_available = read_available
        self.max_payload = max_payload
        self._buffer = bytearray()
        self._payload = bytearray()
        self.pending_type = INVALID_MESSAGE_TYPE
        self.bytes_remaining = 0

    @property
    def header_known(self) -> bool:
        """True while a header was parsed but its payload is incomplete."""
        return self.pending_type != INVALID_MESSAGE_TYPE

    @property
    def buffered(self) -> int:
        """Number of received bytes not yet assigned to a message."""
        return len(self._buffer)

    def reset(self) -> None:
        """Drop any partial message."""
        self._buffer = bytearray()
        self._payload = bytearray()
        self.pending_type = INVALID_MESSAGE_TYPE
        self.bytes_remaining = 0

    def feed(self) -> Message | None:
        """Read available bytes and return the next complete message, if any.

        Raises:
            FramingError: invalid header, the stream can't be resynchronized
            PayloadDecodeError: the message was complete but not valid JSON;
                the state is already reset so the next frame decodes normally
        """
        data = self._read_available()
        if data:
            self._buffer += data

        if not self.header_known:
            if len(self._buffer) < HEADER_SIZE:
                check_magic(bytes(self._buffer[: len(MAGIC)]))
                return None
            length, message_type = parse_header(bytes(self._buffer[:HEADER_SIZE]), self.max_payload)
            del self._buffer[:HEADER_SIZE]
            self.pending_type = message_type
            self.bytes_remaining = length

        if self.bytes_remaining:
            chunk = self._buffer[: self.bytes_remaining]
            del self._buffer[: len(chunk)]
            self._payload += chunk
            self.bytes_remaining -= len(chunk)
            if self.bytes_remaining:
                return None

        payload = bytes(self._payload)
        message_type = self.pending_type
        self._payload = bytearray()
        self.pending_type = INVALID_MESSAGE_TYPE
        return Message(message_type, payload, data=decode_document(payload))
