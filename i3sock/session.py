"""Per-connection session cache."""

from collections.abc import Awaitable, Callable
from logging import Logger

from .constants import MessageType, ReplyType
from .logging_setup import get_logger
from .models import JSONResponse, VersionInfo

__all__ = ["SessionCache"]

CallFunction = Callable[[int, int], Awaitable[JSONResponse]]


class SessionCache:
    """Daemon version, queried once per connection."""

    def __init__(self, logger: Logger | None = None) -> None:
        self.log = logger or get_logger("i3sock.session")
        self.version = VersionInfo()
        self.loaded = False

    async def refresh(self, call: CallFunction) -> VersionInfo:
        """Query the version using `call(request_type, reply_type)` and cache it."""
        data = await call(MessageType.GET_VERSION, ReplyType.VERSION)
        self.version = VersionInfo.from_reply(data)
        self.loaded = True
        self.log.info("Connected to %s", self.version.human_readable)
        return self.version

    def clear(self) -> None:
        """Forget the cached values."""
        self.version = VersionInfo()
        self.loaded = False
