import json
import os
from pathlib import Path
from typing import Optional

from droppy.core.errors import ConfigInitError
from droppy.core.utils.logging import get_logger

logger = get_logger("droppy.cfg")

DEFAULTS: dict[str, object] = {
    "listeners": [
        {"host": ["0.0.0.0", "::"], "port": 8989, "protocol": "http"},
    ],
    "public": False,
    "timestamps": True,
    "linkLength": 5,
    "linkExtensions": False,
    "logLevel": 2,
    "maxFileSize": 0,
    "updateInterval": 1000,
    "pollingInterval": 0,
    "keepAlive": 20000,
    "uploadTimeout": 604800000,
    "allowFrame": False,
    "readOnly": False,
    "compression": True,
    "dev": False,
}


def _read(cfg_file: Path) -> dict[str, object]:
    try:
        with open(cfg_file, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigInitError(
            f"Invalid config file at {cfg_file}: {e}",
            hint="fix the JSON or delete the file to regenerate defaults",
        ) from e
    if not isinstance(data, dict):
        raise ConfigInitError(f"Invalid config file at {cfg_file}: expected a JSON object")
    return data


def _write(cfg_file: Path, data: dict[str, object]) -> None:
    tmp = cfg_file.with_suffix(cfg_file.suffix + ".tmp")
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
        f.write("\n")
    os.replace(tmp, cfg_file)


def load(paths) -> dict[str, object]:
    """Defaults overlaid with the user's config file, if any."""
    merged = dict(DEFAULTS)
    if paths.cfg_file.exists():
        merged.update(_read(paths.cfg_file))
    return merged


def init(paths, overrides: Optional[dict[str, object]] = None) -> dict[str, object]:
    """
    Write the default config when the file is missing and return the merged config.

    An existing file is kept as-is; only keys it lacks are filled from DEFAULTS
    in the returned mapping.
    """
    try:
        paths.config.mkdir(parents=True, exist_ok=True)
        if not paths.cfg_file.exists():
            data = dict(DEFAULTS)
            data.update(overrides or {})
            _write(paths.cfg_file, data)
            logger.info("config created", path=str(paths.cfg_file))
            return data
        return load(paths)
    except OSError as e:
        raise ConfigInitError(f"Unable to write config {paths.cfg_file}: {e}") from e
