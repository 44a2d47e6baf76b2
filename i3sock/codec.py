"""Frame codec: pure functions converting between messages and wire bytes.

Wire frame::

    magic "i3-ipc" | payload length (u32 LE) | message type (u32 LE) | payload
"""

import json
import struct

from .constants import HEADER_SIZE, INVALID_MESSAGE_TYPE, MAGIC
from .models import FramingError, JSONResponse, Message, PayloadDecodeError

__all__ = ["check_magic", "decode_document", "encode", "parse_header", "try_decode"]

_FIELDS = struct.Struct("<II")
_MAGIC_LEN = len(MAGIC)


def encode(message_type: int, payload: bytes = b"") -> bytes:
    """Build a wire frame.

    The caller guarantees that `payload` is shorter than 2**32 bytes.
    """
    return MAGIC + _FIELDS.pack(len(payload), message_type) + payload


def check_magic(buffer: bytes | bytearray | memoryview) -> None:
    """Raise FramingError unless `buffer` starts like the magic (it may be shorter)."""
    view = memoryview(buffer)
    size = min(len(view), _MAGIC_LEN)
    if view[:size] != MAGIC[:size]:
        msg = f"invalid magic bytes: {bytes(view[:size])!r}"
        raise FramingError(msg)


def parse_header(buffer: bytes | bytearray | memoryview, max_payload: int = 0) -> tuple[int, int]:
    """Return (payload_length, message_type) from a complete header.

    Args:
        buffer: at least HEADER_SIZE bytes
        max_payload: reject larger payloads (0 disables the check)

    Raises:
        FramingError: bad magic or payload length above `max_payload`
    """
    view = memoryview(buffer)
    check_magic(view[:_MAGIC_LEN])
    length, message_type = _FIELDS.unpack_from(view, _MAGIC_LEN)
    if max_payload and length > max_payload:
        msg = f"payload length {length} exceeds the limit of {max_payload} bytes"
        raise FramingError(msg)
    if message_type == INVALID_MESSAGE_TYPE:
        msg = "reserved message type 0xffffffff in header"
        raise FramingError(msg)
    return length, message_type


def try_decode(buffer: bytes | bytearray | memoryview, max_payload: int = 0) -> tuple[Message | None, int]:
    """Decode the frame found at the start of `buffer`.

    Returns:
        (message, consumed) when a full frame is present, (None, 0) when more
        bytes are needed. Trailing bytes are left untouched.

    Raises:
        FramingError: the buffered bytes can't be the start of a frame
    """
    view = memoryview(buffer)
    check_magic(view)
    if len(view) < HEADER_SIZE:
        return None, 0
    length, message_type = parse_header(view, max_payload)
    end = HEADER_SIZE + length
    if len(view) < end:
        return None, 0
    return Message(message_type, bytes(view[HEADER_SIZE:end])), end


def decode_document(payload: bytes) -> JSONResponse:
    """Parse a JSON payload, an empty payload gives None."""
    if not payload:
        return None
    try:
        return json.loads(payload.decode("utf-8"))  # type: ignore[no-any-return]
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        msg = f"invalid JSON payload ({len(payload)} bytes): {e}"
        raise PayloadDecodeError(msg) from e
