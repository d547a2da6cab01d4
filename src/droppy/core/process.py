"""
Process lifecycle helpers for the droppy CLI.

Finds sibling droppy instances, terminates them concurrently and detaches the
current invocation into the background.
"""

import asyncio
import os
import subprocess
import sys
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping, Optional, Sequence

import psutil

from droppy.core.constants import DAEMON_CHILD_ENV, KILL_GRACE_SECONDS
from droppy.core.errors import ProcessLookupFailed
from droppy.core.utils.logging import get_logger

logger = get_logger("droppy.process")

DAEMON_FLAGS = frozenset({"-d", "--daemon"})

# Interpreter options whose value is the next token.
PYTHON_VALUE_OPTIONS = frozenset({"-X", "-W", "-Q"})


@dataclass(frozen=True)
class ProcessRecord:
    pid: int
    name: str


@dataclass(frozen=True)
class StopResult:
    killed: tuple[int, ...] = ()
    failed: tuple[tuple[int, str], ...] = ()

    @property
    def ok(self) -> bool:
        return not self.failed


def _is_python(exe: str) -> bool:
    return os.path.basename(exe).lower().startswith("python")


def matches_app(info: Mapping[str, object], app_name: str) -> bool:
    """
    True when a psutil info row belongs to `app_name`.

    Accepts the process name, a console script (directly or through the
    interpreter) and `python -m <app_name>`.
    """
    name = str(info.get("name") or "")
    if name == app_name:
        return True
    cmdline = [str(part) for part in (info.get("cmdline") or [])]
    if not cmdline:
        return False
    if os.path.basename(cmdline[0]) == app_name:
        return True
    if not _is_python(cmdline[0]):
        return False
    args = iter(cmdline[1:])
    for part in args:
        if part == "-m":
            return next(args, None) == app_name
        if part in PYTHON_VALUE_OPTIONS:
            next(args, None)
            continue
        if part.startswith("-"):
            continue
        return os.path.basename(part) == app_name
    return False


def collect_instances(
    app_name: str,
    *,
    own_pid: Optional[int] = None,
    psutil_module=psutil,
) -> list[ProcessRecord]:
    this_pid = os.getpid() if own_pid is None else int(own_pid)
    found: list[ProcessRecord] = []
    try:
        for proc in psutil_module.process_iter(["pid", "name", "cmdline"]):
            info = getattr(proc, "info", {}) or {}
            try:
                pid = int(info.get("pid") or 0)
            except (TypeError, ValueError):
                continue
            if pid <= 0 or pid == this_pid:
                continue
            if matches_app(info, app_name):
                found.append(ProcessRecord(pid=pid, name=str(info.get("name") or app_name)))
    except psutil_module.Error as e:
        raise ProcessLookupFailed(f"Unable to list processes: {e}") from e
    return found


def kill_pid(
    pid: int,
    *,
    grace: float = KILL_GRACE_SECONDS,
    psutil_module=psutil,
) -> int:
    """SIGTERM, then SIGKILL after `grace` seconds. A vanished process counts as killed."""
    try:
        proc = psutil_module.Process(pid)
        proc.terminate()
        try:
            proc.wait(timeout=grace)
        except psutil_module.TimeoutExpired:
            proc.kill()
            proc.wait(timeout=grace)
    except psutil_module.NoSuchProcess:
        pass
    return pid


async def stop_instances(
    records: Sequence[ProcessRecord],
    *,
    kill: Callable[[int], int] = kill_pid,
) -> StopResult:
    results = await asyncio.gather(
        *(asyncio.to_thread(kill, record.pid) for record in records),
        return_exceptions=True,
    )
    killed: list[int] = []
    failed: list[tuple[int, str]] = []
    for record, outcome in zip(records, results):
        if isinstance(outcome, BaseException):
            failed.append((record.pid, str(outcome) or type(outcome).__name__))
        else:
            killed.append(record.pid)
    return StopResult(killed=tuple(killed), failed=tuple(failed))


def is_daemon_child(env: Mapping[str, str] = os.environ) -> bool:
    return env.get(DAEMON_CHILD_ENV) == "1"


def strip_daemon_flags(argv: Iterable[str]) -> list[str]:
    return [arg for arg in argv if arg not in DAEMON_FLAGS]


def daemonize(
    argv: Sequence[str],
    *,
    env: Optional[Mapping[str, str]] = None,
    popen: Callable[..., subprocess.Popen] = subprocess.Popen,
) -> int:
    """
    Re-run this CLI in a new session without the daemon flag.

    The child inherits the environment plus a marker so it does not detach
    again. Its stdio goes to /dev/null; a -l log file is opened by the child.
    Returns the child PID; the caller is expected to exit afterwards.
    """
    child_env = dict(env if env is not None else os.environ)
    child_env[DAEMON_CHILD_ENV] = "1"
    cmd = [sys.executable, "-m", "droppy", *strip_daemon_flags(argv)]
    proc = popen(
        cmd,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        start_new_session=True,
        env=child_env,
        cwd=os.getcwd(),
    )
    logger.debug("daemonized", pid=proc.pid, cmd=cmd)
    return int(proc.pid)
