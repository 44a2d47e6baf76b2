"""Common types of the i3 IPC protocol."""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any

from .constants import EVENT_MASK, EventType

__all__ = [
    "CallInProgressError",
    "CallTimeout",
    "ConfigError",
    "ConnectError",
    "ConnectionLost",
    "ConnectionState",
    "Event",
    "ExitCode",
    "FramingError",
    "IpcError",
    "JSONResponse",
    "Message",
    "NotConnectedError",
    "PayloadDecodeError",
    "StrayReplyError",
    "VersionInfo",
]

PlainTypes = float | str | bool | None | dict[str, "PlainTypes"] | list["PlainTypes"]
JSONResponse = dict[str, PlainTypes] | list[PlainTypes] | PlainTypes


@dataclass(frozen=True)
class Message:
    """One decoded frame.

    `data` holds the parsed JSON document (None for an empty payload) and is
    not part of the equality.
    """

    type: int
    payload: bytes = b""
    data: Any = field(default=None, compare=False, repr=False)

    @property
    def is_event(self) -> bool:
        """True if the event flag is set."""
        return bool(self.type & EVENT_MASK)

    @property
    def event_number(self) -> int:
        """Type without the event flag."""
        return self.type & ~EVENT_MASK


def event_name(number: int) -> str:
    """Return the i3 name of an event number."""
    try:
        return EventType(number).name.lower()
    except ValueError:
        return f"unknown_{number}"


@dataclass(frozen=True)
class Event:
    """An event pushed by the daemon."""

    type: int
    name: str
    data: Any = None

    @classmethod
    def from_message(cls, message: Message) -> "Event":
        """Build an event from a message carrying the event flag."""
        return cls(type=message.type, name=event_name(message.event_number), data=message.data)


@dataclass(order=True)
class VersionInfo:
    """Stores version information."""

    major: int = 0
    minor: int = 0
    patch: int = 0
    human_readable: str = field(default="unknown", compare=False)

    def __getitem__(self, index: int) -> int:
        if not 0 <= index <= 2:  # noqa: PLR2004
            msg = "version component index out-of-range"
            raise IndexError(msg)
        return (self.major, self.minor, self.patch)[index]

    @classmethod
    def from_reply(cls, data: JSONResponse) -> "VersionInfo":
        """Parse a GET_VERSION reply document.

        Raises:
            PayloadDecodeError: a version number is not an integer
        """
        if not isinstance(data, dict):
            return cls()
        try:
            return cls(
                major=int(data.get("major") or 0),  # type: ignore[arg-type]
                minor=int(data.get("minor") or 0),  # type: ignore[arg-type]
                patch=int(data.get("patch") or 0),  # type: ignore[arg-type]
                human_readable=str(data.get("human_readable") or "unknown"),
            )
        except (TypeError, ValueError) as e:
            msg = f"invalid version reply: {e}"
            raise PayloadDecodeError(msg) from e


class ConnectionState(Enum):
    """Connection lifecycle."""

    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"
    FAULTED = "faulted"


# Exit codes for the CLI
class ExitCode(IntEnum):
    """Standard exit codes for the i3sock CLI."""

    SUCCESS = 0
    USAGE_ERROR = 1
    CONNECTION_ERROR = 3
    COMMAND_ERROR = 4


class IpcError(Exception):
    """Base class for all i3 IPC errors."""


class FramingError(IpcError):
    """Stream is out of sync with the frame boundaries. Terminal for the connection."""


class ConnectError(IpcError, ConnectionError):
    """The socket could not be connected."""


class NotConnectedError(IpcError):
    """Operation requires an open connection."""


class ConnectionLost(NotConnectedError):
    """The daemon went away while a call was in flight."""


class CallTimeout(IpcError, TimeoutError):
    """No reply within the configured delay."""


class CallInProgressError(IpcError):
    """Another call is already waiting for its reply."""


class PayloadDecodeError(IpcError, ValueError):
    """A well framed message carried invalid JSON."""


class StrayReplyError(IpcError):
    """Too many unexpected replies were received while waiting for a call."""


class ConfigError(IpcError):
    """Invalid configuration file."""
