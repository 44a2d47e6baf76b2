"""Protocol constants and library defaults."""

from enum import IntEnum

__all__ = [
    "CONFIG_FILE_NAME",
    "DEFAULT_CALL_TIMEOUT",
    "DEFAULT_CONNECT_TIMEOUT",
    "DEFAULT_MAX_PAYLOAD_SIZE",
    "DEFAULT_MAX_STRAY_REPLIES",
    "DEFAULT_SOCKET_PATH",
    "EVENT_MASK",
    "HEADER_SIZE",
    "INVALID_MESSAGE_TYPE",
    "MAGIC",
    "SOCKET_PATH_VARIABLES",
    "EventType",
    "MessageType",
    "ReplyType",
]

MAGIC = b"i3-ipc"

# magic + payload length (u32) + message type (u32)
HEADER_SIZE = len(MAGIC) + 4 + 4

# i3 never sends this type, used to flag "no header read yet"
INVALID_MESSAGE_TYPE = 0xFFFFFFFF

EVENT_MASK = 1 << 31


class MessageType(IntEnum):
    """Command (request) message types."""

    RUN_COMMAND = 0
    GET_WORKSPACES = 1
    SUBSCRIBE = 2
    GET_OUTPUTS = 3
    GET_TREE = 4
    GET_MARKS = 5
    GET_BAR_CONFIG = 6
    GET_VERSION = 7
    GET_BINDING_MODES = 8
    GET_CONFIG = 9


class ReplyType(IntEnum):
    """Reply message types, each one answering the request with the same number."""

    COMMAND = 0
    WORKSPACES = 1
    SUBSCRIBE = 2
    OUTPUTS = 3
    TREE = 4
    MARKS = 5
    BAR_CONFIG = 6
    VERSION = 7
    BINDING_MODES = 8
    CONFIG = 9


class EventType(IntEnum):
    """Event numbers, as found in the low bits of an event message type."""

    WORKSPACE = 0
    OUTPUT = 1
    MODE = 2
    WINDOW = 3
    BARCONFIG_UPDATE = 4
    BINDING = 5
    SHUTDOWN = 6
    TICK = 7

    @property
    def wire_type(self) -> int:
        """Message type as sent by the daemon."""
        return EVENT_MASK | int(self)


# Socket lookup: first defined variable wins
SOCKET_PATH_VARIABLES = ("I3_SOCKET_PATH", "I3SOCK", "SWAYSOCK")
DEFAULT_SOCKET_PATH = "/tmp/i3.sock"  # noqa: S108

CONFIG_FILE_NAME = "config.toml"

# Client defaults
DEFAULT_CALL_TIMEOUT = 30.0
DEFAULT_CONNECT_TIMEOUT = 5.0
DEFAULT_MAX_STRAY_REPLIES = 0  # 0 = unbounded
DEFAULT_MAX_PAYLOAD_SIZE = 0  # 0 = unbounded
