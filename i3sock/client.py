"""High level i3 IPC client."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Self

from .connection import Connection
from .constants import MessageType, ReplyType
from .logging_setup import get_logger
from .models import JSONResponse, VersionInfo

if TYPE_CHECKING:
    from collections.abc import Iterable
    from logging import Logger
    from types import TracebackType

    from .config import Configuration
    from .events import EventListener, Observer
    from .transport import Transport

__all__ = ["I3Client"]


class I3Client:
    """One typed coroutine per i3 command, on top of a `Connection`.

    Usage::

        async with I3Client() as i3:
            print(i3.get_version_string())
            await i3.run_command("workspace 2")
    """

    def __init__(
        self,
        socket_path: str | None = None,
        *,
        config: Configuration | None = None,
        transport: Transport | None = None,
        logger: Logger | None = None,
    ) -> None:
        self.log = logger or get_logger("i3sock")
        self.connection = Connection(socket_path, config=config, transport=transport, logger=self.log)

    async def __aenter__(self) -> Self:
        await self.connect()
        return self

    async def __aexit__(self, exc_type: type[BaseException] | None, exc: BaseException | None, tb: TracebackType | None) -> None:
        await self.disconnect()

    # Connection {{{

    async def connect(self) -> None:
        """Connect to the daemon, no-op if already connected."""
        await self.connection.open()

    async def disconnect(self) -> None:
        """Disconnect, no-op if not connected."""
        self.connection.close()

    def is_connected(self) -> bool:
        """Return True if the connection is open."""
        return self.connection.is_open

    async def call(self, request_type: int, reply_type: int, payload: bytes | str = b"", timeout: float | None = None) -> JSONResponse:
        """Run a raw command.

        Args:
            request_type: message type of the request
            reply_type: message type of the expected reply
            payload: request payload (text is UTF-8 encoded)
            timeout: reply timeout override
        """
        if isinstance(payload, str):
            payload = payload.encode("utf-8")
        return await self.connection.call(request_type, reply_type, payload, timeout)

    # }}}

    # Commands {{{

    async def run_command(self, command: str) -> list[dict[str, Any]]:
        """Run i3 commands, returns one result object per command."""
        return await self.call(MessageType.RUN_COMMAND, ReplyType.COMMAND, command)  # type: ignore[return-value]

    async def get_workspaces(self) -> list[dict[str, Any]]:
        """Return the list of workspaces."""
        return await self.call(MessageType.GET_WORKSPACES, ReplyType.WORKSPACES)  # type: ignore[return-value]

    async def subscribe(self, events: Iterable[str]) -> dict[str, Any]:
        """Ask the daemon to push the given event categories.

        Whether a new subscription adds to or replaces the previous ones is
        decided by the daemon.

        Args:
            events: event names, eg: ["workspace", "output"]

        Returns:
            The reply object, eg: {"success": true}
        """
        payload = json.dumps(list(events))
        return await self.call(MessageType.SUBSCRIBE, ReplyType.SUBSCRIBE, payload)  # type: ignore[return-value]

    async def get_outputs(self) -> list[dict[str, Any]]:
        """Return the list of outputs."""
        return await self.call(MessageType.GET_OUTPUTS, ReplyType.OUTPUTS)  # type: ignore[return-value]

    async def get_tree(self) -> dict[str, Any]:
        """Return the layout tree."""
        return await self.call(MessageType.GET_TREE, ReplyType.TREE)  # type: ignore[return-value]

    async def get_marks(self) -> list[str]:
        """Return the list of window marks."""
        return await self.call(MessageType.GET_MARKS, ReplyType.MARKS)  # type: ignore[return-value]

    async def get_bar_config(self, bar_id: str | None = None) -> JSONResponse:
        """Return the bar ids, or the configuration of `bar_id`."""
        return await self.call(MessageType.GET_BAR_CONFIG, ReplyType.BAR_CONFIG, bar_id or b"")

    async def get_version(self) -> dict[str, Any]:
        """Query the daemon version (always a round trip)."""
        return await self.call(MessageType.GET_VERSION, ReplyType.VERSION)  # type: ignore[return-value]

    async def get_binding_modes(self) -> list[str]:
        """Return the names of the binding modes."""
        return await self.call(MessageType.GET_BINDING_MODES, ReplyType.BINDING_MODES)  # type: ignore[return-value]

    async def get_config(self) -> dict[str, Any]:
        """Return the last loaded configuration."""
        return await self.call(MessageType.GET_CONFIG, ReplyType.CONFIG)  # type: ignore[return-value]

    # }}}

    # Cached version {{{

    def get_cached_version(self) -> VersionInfo:
        """Version of the connected daemon, as queried when connecting."""
        return self.connection.session.version

    def get_version_string(self) -> str:
        """Human readable version of the connected daemon."""
        return self.connection.session.version.human_readable

    def get_version_number(self, index: int = 0) -> int:
        """Return the major (0), minor (1) or patch (2) number."""
        return self.connection.session.version[index]

    # }}}

    # Events {{{

    def add_observer(self, callback: Observer) -> None:
        """Call `callback(event)` for every event received."""
        self.connection.events.add_observer(callback)

    def remove_observer(self, callback: Observer) -> None:
        """Stop calling `callback`."""
        self.connection.events.remove_observer(callback)

    def listen(self, maxsize: int = 0) -> EventListener:
        """Return an async iterator over the upcoming events."""
        return self.connection.events.listen(maxsize)

    # }}}
