"""i3sock - command line client for the i3 IPC socket."""

import asyncio
import json
import sys
from collections.abc import Awaitable, Callable
from functools import partial
from typing import Any

from .client import I3Client
from .config import load_config
from .logging_setup import get_logger, init_logger, set_debug
from .models import ConfigError, ConnectError, Event, ExitCode, IpcError

__all__ = ["main", "run_client"]

USAGE = """Usage: i3sock [--debug LOGFILE] [--config FILE] [--socket PATH] <command> [args]

Commands:
 version              print the version of the connected daemon
 command TEXT...      run i3 commands
 workspaces           list workspaces
 outputs              list outputs
 tree                 print the layout tree
 marks                list window marks
 modes                list binding modes
 config               print the loaded i3 configuration
 bar [ID]             list bars or print the configuration of bar ID
 subscribe EVENT...   print events until interrupted
 demo                 run a sample of every command
"""

# command name: client method (no argument)
QUERIES = {
    "workspaces": "get_workspaces",
    "outputs": "get_outputs",
    "tree": "get_tree",
    "marks": "get_marks",
    "modes": "get_binding_modes",
    "config": "get_config",
}


def print_json(data: Any) -> None:  # noqa: ANN401
    """Print a JSON document."""
    print(json.dumps(data, indent=2))


def print_event(event: Event) -> None:
    """Print an event as a JSON line."""
    print(json.dumps({"event": event.name, "data": event.data}), flush=True)


async def run_demo(client: I3Client) -> None:
    """Exercise every command once."""
    print(f"Version: {client.get_version_string()}")
    steps: list[tuple[str, Callable[[], Awaitable[Any]]]] = [
        ("Command (nop)", partial(client.run_command, "nop")),
        ("Command (err)", partial(client.run_command, "invalid")),
        ("get_workspaces", partial(client.get_workspaces)),
        ("subscribe", partial(client.subscribe, ["output", "workspace"])),
        ("get_outputs", partial(client.get_outputs)),
        ("get_config", partial(client.get_config)),
        ("get_marks", partial(client.get_marks)),
        ("get_binding_modes", partial(client.get_binding_modes)),
        ("get_bar_config", partial(client.get_bar_config)),
        ("get_bar_config(n)", partial(client.get_bar_config, "bar-0")),
        ("get_tree", partial(client.get_tree)),
        ("Command (ws)", partial(client.run_command, "workspace 5")),
        ("Command (ws)", partial(client.run_command, "workspace 1")),
        ("get_workspaces", partial(client.get_workspaces)),
    ]
    for title, step in steps:
        print(f"{title}: {json.dumps(await step())}")


async def run_client(args: list[str], client: I3Client) -> ExitCode:
    """Run one CLI command with a connected client."""
    cmd, params = args[0], args[1:]

    if cmd == "version":
        print(client.get_version_string())
    elif cmd == "command":
        if not params:
            print(USAGE, file=sys.stderr)
            return ExitCode.USAGE_ERROR
        results = await client.run_command(" ".join(params))
        print_json(results)
        if not isinstance(results, list) or not all(isinstance(r, dict) and r.get("success") for r in results):
            return ExitCode.COMMAND_ERROR
    elif cmd in QUERIES:
        print_json(await getattr(client, QUERIES[cmd])())
    elif cmd == "bar":
        print_json(await client.get_bar_config(params[0] if params else None))
    elif cmd == "subscribe":
        if not params:
            print(USAGE, file=sys.stderr)
            return ExitCode.USAGE_ERROR
        listener = client.listen()
        reply = await client.subscribe(params)
        if not reply or not reply.get("success"):
            print(f"Error: subscription refused: {reply}", file=sys.stderr)
            return ExitCode.COMMAND_ERROR
        async for event in listener:
            print_event(event)
    elif cmd == "demo":
        await run_demo(client)
    else:
        print(f'Error: unknown command "{cmd}"\n{USAGE}', file=sys.stderr)
        return ExitCode.USAGE_ERROR
    return ExitCode.SUCCESS


async def run(args: list[str], config_file: str = "", socket_path: str = "") -> ExitCode:
    """Load the configuration, connect and run the command."""
    log = get_logger("i3sock")
    try:
        config = await load_config(config_file or None)
    except ConfigError as e:
        log.critical("Invalid configuration: %s", e)
        return ExitCode.USAGE_ERROR
    if config.get_bool("debug"):
        set_debug(True)

    client = I3Client(socket_path or None, config=config)
    try:
        await client.connect()
    except ConnectError as e:
        print(f"Error: {e}\nIs i3 running?", file=sys.stderr)
        return ExitCode.CONNECTION_ERROR

    try:
        return await run_client(args, client)
    except IpcError as e:
        print(f"Error: {e}", file=sys.stderr)
        return ExitCode.COMMAND_ERROR
    finally:
        await client.disconnect()


def use_param(txt: str) -> str:
    """Check if parameter `txt` is in sys.argv.

    if found, removes it from sys.argv & returns the argument value
    """
    v = ""
    if txt in sys.argv:
        i = sys.argv.index(txt)
        if i + 1 >= len(sys.argv):
            del sys.argv[i]
            return v
        v = sys.argv[i + 1]
        del sys.argv[i : i + 2]
    return v


def main() -> None:
    """Run the command."""
    debug_file = use_param("--debug")
    if debug_file:
        init_logger(filename=debug_file, force_debug=True)
    else:
        init_logger()
    config_file = use_param("--config")
    socket_path = use_param("--socket")

    args = sys.argv[1:]
    if not args or args[0] in {"--help", "-h", "help"}:
        print(USAGE)
        sys.exit(ExitCode.SUCCESS if args else ExitCode.USAGE_ERROR)

    try:
        code = asyncio.run(run(args, config_file, socket_path))
    except KeyboardInterrupt:
        code = ExitCode.SUCCESS
    sys.exit(code)


if __name__ == "__main__":
    main()
