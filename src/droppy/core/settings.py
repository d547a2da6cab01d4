from dataclasses import dataclass
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from droppy.version import __version__
from droppy.core.constants import (
    APP_NAME,
    DEFAULT_CONFIG_DIR,
    DEFAULT_FILES_DIR,
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_UPDATE_URL,
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DROPPY_",
        case_sensitive=True,
        extra="ignore",
    )

    # --- PATHS ---
    CONFIG_DIR: str = DEFAULT_CONFIG_DIR
    FILES_DIR: str = DEFAULT_FILES_DIR

    # --- SERVER ---
    HOST: str = DEFAULT_HOST
    PORT: int = DEFAULT_PORT

    # --- LOGGING ---
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # --- UPDATE ---
    UPDATE_URL: str = DEFAULT_UPDATE_URL


@dataclass(frozen=True)
class RuntimeConfig:
    """
    Process-wide settings resolved once at startup.

    CLI flags win over DROPPY_* environment values. Every command handler
    receives this object instead of reading the environment itself.
    """

    config_dir: str
    files_dir: str
    log_file: Optional[str] = None
    daemon: bool = False
    dev: bool = False
    color: Optional[bool] = None
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    log_level: str = "INFO"
    log_json: bool = False
    update_url: str = DEFAULT_UPDATE_URL
    app_name: str = APP_NAME
    version: str = __version__

    @property
    def production(self) -> bool:
        return not self.dev

    @property
    def mode(self) -> str:
        return "development" if self.dev else "production"

    @classmethod
    def from_invocation(cls, invocation, settings_obj: Optional[Settings] = None) -> "RuntimeConfig":
        s = settings_obj or Settings()
        flags = invocation.flags
        return cls(
            config_dir=flags.get("configdir") or s.CONFIG_DIR,
            files_dir=flags.get("filesdir") or s.FILES_DIR,
            log_file=flags.get("log") or None,
            daemon=bool(flags.get("daemon")),
            dev=bool(flags.get("dev")),
            color=flags.get("color"),
            host=s.HOST,
            port=s.PORT,
            log_level="DEBUG" if flags.get("dev") else s.LOG_LEVEL.upper(),
            log_json=s.LOG_JSON,
            update_url=s.UPDATE_URL,
        )
