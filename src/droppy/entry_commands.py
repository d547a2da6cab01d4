"""
Command registry and dispatch for the droppy CLI.

Every handler takes the CommandContext and the command's positional arguments
and returns the process exit code.
"""

import asyncio
import shutil
import subprocess
import traceback
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional, Sequence, assert_never

from droppy.core import cfg as cfg_mod
from droppy.core import db as db_mod
from droppy.core import resources as resources_mod
from droppy.core import server as server_mod
from droppy.core import update as update_mod
from droppy.core.editor import editor_candidates, open_in_editor, resolve_editor
from droppy.core.errors import DroppyError, ProcessLookupFailed
from droppy.core.process import collect_instances, stop_instances
from droppy.core.utils.logging import get_logger
from droppy.entry_command_context import CommandContext

logger = get_logger("droppy.cli")

NO_USERS = "No users defined. Use 'add' to add one."


class Command(str, Enum):
    START = "start"
    STOP = "stop"
    UPDATE = "update"
    CONFIG = "config"
    LIST = "list"
    ADD = "add"
    DEL = "del"
    BUILD = "build"
    VERSION = "version"

    @classmethod
    def lookup(cls, name: str) -> Optional["Command"]:
        try:
            return cls(name)
        except ValueError:
            return None


@dataclass(frozen=True)
class CommandDescriptor:
    usage: str
    description: str
    min_args: int = 0
    max_args: Optional[int] = None

    def accepts(self, count: int) -> bool:
        if count < self.min_args:
            return False
        return self.max_args is None or count <= self.max_args


COMMANDS: Mapping[Command, CommandDescriptor] = {
    Command.START: CommandDescriptor("start", "Start the server"),
    Command.STOP: CommandDescriptor("stop", "Stop all daemonized servers"),
    Command.UPDATE: CommandDescriptor("update", "Self-Update (may require root)"),
    Command.CONFIG: CommandDescriptor("config", "Edit the config"),
    Command.LIST: CommandDescriptor("list", "List users"),
    Command.ADD: CommandDescriptor(
        "add <user> <pass> [p]", "Add or update a user. Specify 'p' for privileged", 2, 3
    ),
    Command.DEL: CommandDescriptor("del <user>", "Delete a user", 1, 1),
    Command.BUILD: CommandDescriptor("build", "Build client resources"),
    Command.VERSION: CommandDescriptor("version, -v", "Print version"),
}

OPTIONS: Sequence[tuple[str, str]] = (
    ("-c, --configdir <dir>", "Config directory. Default: ~/.droppy/config"),
    ("-f, --filesdir <dir>", "Files directory. Default: ~/.droppy/files"),
    ("-d, --daemon", "Daemonize (background) process"),
    ("-l, --log <file>", "Log to file instead of stdout"),
    ("--dev", "Enable developing mode"),
    ("--color", "Force enable color in terminal"),
    ("--no-color", "Force disable color in terminal"),
)

_COLUMN = 23


def render_help(app_name: str = "droppy") -> str:
    lines = [f"Usage: {app_name} command [options]", "", " Commands:"]
    for desc in COMMANDS.values():
        lines.append(f"   {desc.usage.ljust(_COLUMN)}{desc.description}")
    lines += ["", " Options:"]
    for flags, text in OPTIONS:
        lines.append(f"   {flags.ljust(_COLUMN)}{text}")
    return "\n".join(lines)


def render_users(users: Mapping[str, object]) -> str:
    if not users:
        return NO_USERS
    return "Current Users:\n" + "\n".join(f"  - {name}" for name in users)


def _print_help(ctx: CommandContext) -> None:
    ctx.print_line(render_help(ctx.runtime.app_name))


def _cmd_start(ctx: CommandContext, args: Sequence[str]) -> int:
    try:
        return server_mod.start(ctx.runtime, ctx.paths, foreground=True)
    except DroppyError as e:
        logger.error("server start failed", code=e.code, error=e.message, hint=e.hint)
        return 1
    except KeyboardInterrupt:
        return 0


def _cmd_stop(ctx: CommandContext, args: Sequence[str]) -> int:
    try:
        records = collect_instances(ctx.runtime.app_name)
    except ProcessLookupFailed as e:
        logger.error("process lookup failed", error=e.message)
        return 1
    if not records:
        logger.info("No processes found")
        ctx.print_line("No processes found")
        return 0

    result = asyncio.run(stop_instances(records))
    if not result.ok:
        for pid, error in result.failed:
            logger.error("failed to kill process", pid=pid, error=error)
        return 1
    for pid in result.killed:
        ctx.print_line(f"Killed PID {pid}")
    return 0


def _cmd_update(ctx: CommandContext, args: Sequence[str]) -> int:
    try:
        message = update_mod.check(ctx.runtime.version, ctx.runtime.update_url)
    except Exception as e:
        ctx.print_err("".join(traceback.format_exception(e)).rstrip())
        return 1
    if message:
        ctx.print_line(message)
    return 0


def _cmd_config(ctx: CommandContext, args: Sequence[str]) -> int:
    cfg_file = ctx.paths.cfg_file
    if not cfg_file.exists():
        try:
            ctx.paths.config.mkdir(parents=True, exist_ok=True)
            cfg_mod.init(ctx.paths)
        except (DroppyError, OSError) as e:
            ctx.print_err("".join(traceback.format_exception(e)).rstrip())
            return 1

    editor = resolve_editor(editor_candidates(ctx.environ), which=shutil.which)
    if not editor:
        ctx.print_err(f"No suitable editor found, please edit {cfg_file}")
        return 0
    open_in_editor(editor, str(cfg_file), call=subprocess.call)
    return 0


def _load_db(ctx: CommandContext) -> db_mod.UserDB:
    return db_mod.UserDB(ctx.paths.db_file).load()


def _db_failed(ctx: CommandContext, e: Exception) -> int:
    message = getattr(e, "message", None) or str(e)
    logger.error("user database failed", error=message, hint=getattr(e, "hint", ""))
    ctx.print_err(message)
    return 1


def _cmd_list(ctx: CommandContext, args: Sequence[str]) -> int:
    try:
        users = _load_db(ctx).users()
    except (DroppyError, OSError) as e:
        return _db_failed(ctx, e)
    ctx.print_line(render_users(users))
    return 0


def _cmd_add(ctx: CommandContext, args: Sequence[str]) -> int:
    privileged = len(args) > 2 and args[2] == "p"
    try:
        db = _load_db(ctx)
        db.add_or_update_user(args[0], args[1], privileged)
    except (DroppyError, OSError) as e:
        return _db_failed(ctx, e)
    ctx.print_line(render_users(db.users()))
    return 0


def _cmd_del(ctx: CommandContext, args: Sequence[str]) -> int:
    try:
        db = _load_db(ctx)
        db.del_user(args[0])
    except (DroppyError, OSError) as e:
        return _db_failed(ctx, e)
    ctx.print_line(render_users(db.users()))
    return 0


def _cmd_build(ctx: CommandContext, args: Sequence[str]) -> int:
    ctx.print_line("Building resources ...")
    try:
        resources_mod.build(ctx.paths)
    except DroppyError as e:
        ctx.print_line(e.message)
        return 1
    ctx.print_line("Resources built successfully")
    return 0


def _cmd_version(ctx: CommandContext, args: Sequence[str]) -> int:
    ctx.print_line(ctx.runtime.version)
    return 0


def dispatch(ctx: CommandContext, command: Optional[str], args: Sequence[str]) -> int:
    if not command:
        _print_help(ctx)
        return 0

    cmd = Command.lookup(command)
    if cmd is None:
        _print_help(ctx)
        return 1
    if not COMMANDS[cmd].accepts(len(args)):
        _print_help(ctx)
        return 1

    match cmd:
        case Command.START:
            return _cmd_start(ctx, args)
        case Command.STOP:
            return _cmd_stop(ctx, args)
        case Command.UPDATE:
            return _cmd_update(ctx, args)
        case Command.CONFIG:
            return _cmd_config(ctx, args)
        case Command.LIST:
            return _cmd_list(ctx, args)
        case Command.ADD:
            return _cmd_add(ctx, args)
        case Command.DEL:
            return _cmd_del(ctx, args)
        case Command.BUILD:
            return _cmd_build(ctx, args)
        case Command.VERSION:
            return _cmd_version(ctx, args)
        case _:
            assert_never(cmd)
