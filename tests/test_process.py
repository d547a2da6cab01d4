import asyncio
import subprocess
import sys
from types import SimpleNamespace

import psutil
import pytest

import droppy.core.process as p
from droppy.core.errors import ProcessLookupFailed


def _fake_psutil(rows, error=None):
    def process_iter(_attrs):
        if error is not None:
            raise error
        return [SimpleNamespace(info=row) for row in rows]

    return SimpleNamespace(process_iter=process_iter, Error=psutil.Error)


@pytest.mark.parametrize(
    "info",
    [
        {"name": "droppy", "cmdline": []},
        {"name": "python3", "cmdline": ["/usr/local/bin/droppy", "start"]},
        {"name": "python3", "cmdline": ["/usr/bin/python3", "/usr/local/bin/droppy", "start"]},
        {"name": "python3", "cmdline": ["python3", "-u", "-m", "droppy", "start"]},
        {"name": "python3", "cmdline": ["python3", "-X", "dev", "-m", "droppy", "start"]},
        {"name": "python3", "cmdline": ["python3", "-W", "ignore", "/usr/local/bin/droppy", "start"]},
    ],
)
def test_matches_app_accepts_known_launch_forms(info):
    assert p.matches_app(info, "droppy") is True


@pytest.mark.parametrize(
    "info",
    [
        {"name": "bash", "cmdline": ["bash", "droppy"]},
        {"name": "python3", "cmdline": ["python3", "-m", "http.server"]},
        {"name": "python3", "cmdline": ["python3", "/srv/other.py", "droppy"]},
        {"name": "kworker", "cmdline": None},
    ],
)
def test_matches_app_rejects_others(info):
    assert p.matches_app(info, "droppy") is False


def test_collect_instances_excludes_own_pid():
    fake = _fake_psutil([
        {"pid": 100, "name": "droppy", "cmdline": ["droppy", "stop"]},
        {"pid": 200, "name": "droppy", "cmdline": ["droppy", "start"]},
        {"pid": 300, "name": "nginx", "cmdline": ["nginx"]},
    ])

    found = p.collect_instances("droppy", own_pid=100, psutil_module=fake)

    assert [r.pid for r in found] == [200]


def test_collect_instances_only_self_is_empty():
    fake = _fake_psutil([{"pid": 42, "name": "droppy", "cmdline": ["droppy", "stop"]}])
    assert p.collect_instances("droppy", own_pid=42, psutil_module=fake) == []


def test_collect_instances_wraps_psutil_errors():
    fake = _fake_psutil([], error=psutil.AccessDenied(pid=1))
    with pytest.raises(ProcessLookupFailed):
        p.collect_instances("droppy", own_pid=1, psutil_module=fake)


class _Proc:
    def __init__(self, pid, log, survive_term=False):
        self.pid = pid
        self.log = log
        self.survive_term = survive_term

    def terminate(self):
        self.log.append(("term", self.pid))

    def kill(self):
        self.log.append(("kill", self.pid))

    def wait(self, timeout=None):
        if self.survive_term and ("kill", self.pid) not in self.log:
            raise psutil.TimeoutExpired(timeout, pid=self.pid)
        return 0


def test_kill_pid_escalates_to_sigkill_after_grace():
    log = []
    fake = SimpleNamespace(
        Process=lambda pid: _Proc(pid, log, survive_term=True),
        TimeoutExpired=psutil.TimeoutExpired,
        NoSuchProcess=psutil.NoSuchProcess,
    )

    assert p.kill_pid(7, grace=0.01, psutil_module=fake) == 7
    assert log == [("term", 7), ("kill", 7)]


def test_kill_pid_treats_vanished_process_as_killed():
    def gone(pid):
        raise psutil.NoSuchProcess(pid)

    fake = SimpleNamespace(Process=gone, TimeoutExpired=psutil.TimeoutExpired, NoSuchProcess=psutil.NoSuchProcess)
    assert p.kill_pid(8, psutil_module=fake) == 8


def test_stop_instances_collects_every_outcome():
    records = [p.ProcessRecord(1, "droppy"), p.ProcessRecord(2, "droppy"), p.ProcessRecord(3, "droppy")]

    def kill(pid):
        if pid == 2:
            raise psutil.AccessDenied(pid=pid)
        return pid

    result = asyncio.run(p.stop_instances(records, kill=kill))

    assert result.killed == (1, 3)
    assert [pid for pid, _err in result.failed] == [2]
    assert result.ok is False


def test_stop_instances_all_succeed():
    records = [p.ProcessRecord(10, "droppy"), p.ProcessRecord(11, "droppy")]
    result = asyncio.run(p.stop_instances(records, kill=lambda pid: pid))
    assert result.ok is True
    assert sorted(result.killed) == [10, 11]


def test_strip_daemon_flags():
    assert p.strip_daemon_flags(["-d", "start", "--daemon", "-l", "x.log"]) == ["start", "-l", "x.log"]


def test_daemonize_reexecs_in_new_session_without_daemon_flag():
    captured = {}

    def popen(cmd, **kwargs):
        captured["cmd"] = cmd
        captured.update(kwargs)
        return SimpleNamespace(pid=4321)

    pid = p.daemonize(["-d", "start", "-f", "/srv"], env={"PATH": "/bin"}, popen=popen)

    assert pid == 4321
    assert captured["cmd"] == [sys.executable, "-m", "droppy", "start", "-f", "/srv"]
    assert captured["start_new_session"] is True
    assert captured["stdout"] is subprocess.DEVNULL
    assert captured["env"]["DROPPY_DAEMON_CHILD"] == "1"
    assert captured["env"]["PATH"] == "/bin"


def test_is_daemon_child():
    assert p.is_daemon_child({"DROPPY_DAEMON_CHILD": "1"}) is True
    assert p.is_daemon_child({}) is False
