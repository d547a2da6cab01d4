import io

import pytest

from droppy.core.paths import Paths
from droppy.core.settings import RuntimeConfig
from droppy.entry_command_context import CommandContext


@pytest.fixture(autouse=True)
def droppy_env(monkeypatch, tmp_path):
    monkeypatch.setenv("DROPPY_CONFIG_DIR", str(tmp_path / "config"))
    monkeypatch.setenv("DROPPY_FILES_DIR", str(tmp_path / "files"))
    monkeypatch.setenv("DROPPY_ENV", "test")
    monkeypatch.delenv("DROPPY_DAEMON_CHILD", raising=False)
    monkeypatch.delenv("VISUAL", raising=False)
    monkeypatch.delenv("EDITOR", raising=False)


@pytest.fixture
def runtime(tmp_path):
    return RuntimeConfig(
        config_dir=str(tmp_path / "config"),
        files_dir=str(tmp_path / "files"),
        host="127.0.0.1",
        port=0,
    )


@pytest.fixture
def paths(runtime):
    return Paths.from_runtime(runtime)


@pytest.fixture
def ctx(runtime, paths):
    return CommandContext(
        runtime=runtime,
        paths=paths,
        stdout=io.StringIO(),
        stderr=io.StringIO(),
        environ={},
    )
