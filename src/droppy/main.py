import os
import sys
from typing import List

from droppy.core.constants import APP_NAME, RUNTIME_ENV
from droppy.core.process import daemonize, is_daemon_child
from droppy.core.settings import RuntimeConfig
from droppy.core.utils.logging import configure_logging, open_log_file
from droppy.entry_bootstrap import UsageError, parse_invocation
from droppy.entry_command_context import CommandContext
from droppy.entry_commands import dispatch, render_help


def main(argv: List[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    try:
        invocation = parse_invocation(argv)
    except UsageError as e:
        print(f"{APP_NAME}: {e}", file=sys.stderr)
        print(render_help(APP_NAME))
        return 1
    runtime = RuntimeConfig.from_invocation(invocation)

    # Collaborators started in child processes read the mode from here.
    os.environ[RUNTIME_ENV] = runtime.mode

    if invocation.flags.get("version"):
        print(runtime.version)
        return 0

    # Detach before touching the log file so the child owns its descriptors.
    if runtime.daemon and not is_daemon_child():
        pid = daemonize(argv)
        print(f"[{runtime.app_name}] running in background (PID {pid})", file=sys.stderr)
        return 0

    log_fh = None
    if runtime.log_file:
        try:
            log_fh = open_log_file(runtime.log_file)
        except OSError as e:
            print(f"Unable to open log file for writing: {e.strerror or e}", file=sys.stderr)
            return 1

    configure_logging(
        log_file=log_fh,
        color=runtime.color,
        level=runtime.log_level,
        json_logs=runtime.log_json,
    )
    try:
        return dispatch(CommandContext.from_runtime(runtime), invocation.command, invocation.args)
    finally:
        if log_fh:
            log_fh.close()


def entry() -> None:
    raise SystemExit(main())
