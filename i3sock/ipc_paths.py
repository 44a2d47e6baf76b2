"""IPC socket path lookup."""

import os
from collections.abc import Mapping

from .constants import DEFAULT_SOCKET_PATH, SOCKET_PATH_VARIABLES

__all__ = ["resolve_socket_path"]


def resolve_socket_path(env: Mapping[str, str] | None = None, default: str = DEFAULT_SOCKET_PATH) -> str:
    """Return the daemon socket path.

    Priority: I3_SOCKET_PATH > I3SOCK (set by i3) > SWAYSOCK (set by sway) > `default`.

    Args:
        env: environment mapping (os.environ if not set)
        default: path used when no variable is set
    """
    env = os.environ if env is None else env
    for name in SOCKET_PATH_VARIABLES:
        value = env.get(name)
        if value:
            return os.path.expanduser(value)
    return default
