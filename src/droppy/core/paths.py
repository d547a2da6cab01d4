import os
from dataclasses import dataclass
from pathlib import Path

from droppy.core.constants import CACHE_DIR_NAME, CONFIG_FILE_NAME, DB_FILE_NAME


def normalize_path(p: str) -> str:
    """Expand '~' and make the path absolute without resolving symlinks."""
    if not p:
        return ""
    expanded = os.path.expanduser(str(p))
    return os.path.abspath(expanded)


def client_dir() -> Path:
    return Path(__file__).resolve().parent.parent / "client"


@dataclass(frozen=True)
class Paths:
    config: Path
    files: Path
    client: Path

    @property
    def cfg_file(self) -> Path:
        return self.config / CONFIG_FILE_NAME

    @property
    def db_file(self) -> Path:
        return self.config / DB_FILE_NAME

    @property
    def cache(self) -> Path:
        return self.config / CACHE_DIR_NAME

    @classmethod
    def resolve(cls, config_dir: str, files_dir: str, client: Path | None = None) -> "Paths":
        return cls(
            config=Path(normalize_path(config_dir)),
            files=Path(normalize_path(files_dir)),
            client=client or client_dir(),
        )

    @classmethod
    def from_runtime(cls, runtime) -> "Paths":
        return cls.resolve(runtime.config_dir, runtime.files_dir)

    def ensure_dirs(self) -> None:
        self.config.mkdir(parents=True, exist_ok=True)
        self.files.mkdir(parents=True, exist_ok=True)
