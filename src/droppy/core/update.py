"""
Self-update for droppy.

Looks up the newest release in the package index JSON metadata and upgrades
the installed distribution with pip when it is newer than the running one.
"""

import json
import subprocess
import sys
import urllib.error
import urllib.request
from typing import Callable, Optional

from droppy.core.constants import APP_NAME, DEFAULT_UPDATE_URL, UPDATE_TIMEOUT_SECONDS
from droppy.core.errors import UpdateError
from droppy.core.utils.logging import get_logger

logger = get_logger("droppy.update")


def parse_version(version: str) -> tuple[int, ...]:
    """
    Dotted numeric prefix of a version string.

    Non-numeric suffixes are dropped: "1.2.3rc1" -> (1, 2, 3).
    """
    parts: list[int] = []
    for chunk in str(version).strip().lstrip("v").split("."):
        digits = ""
        for ch in chunk:
            if not ch.isdigit():
                break
            digits += ch
        if not digits:
            break
        parts.append(int(digits))
    return tuple(parts)


def fetch_latest_version(url: str = DEFAULT_UPDATE_URL, timeout: float = UPDATE_TIMEOUT_SECONDS) -> str:
    req = urllib.request.Request(url, headers={"Accept": "application/json"})
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            payload = json.loads(resp.read().decode("utf-8"))
    except (urllib.error.URLError, OSError, ValueError) as e:
        raise UpdateError(f"Unable to fetch release metadata from {url}: {e}") from e
    latest = str((payload.get("info") or {}).get("version") or "")
    if not latest:
        raise UpdateError(f"Release metadata from {url} carries no version")
    return latest


def install_version(version: str, *, run: Callable[..., subprocess.CompletedProcess] = subprocess.run) -> None:
    cmd = [sys.executable, "-m", "pip", "install", "--upgrade", f"{APP_NAME}=={version}"]
    proc = run(cmd, capture_output=True, text=True, check=False)
    if proc.returncode != 0:
        detail = (proc.stderr or proc.stdout or "").strip().splitlines()
        raise UpdateError(
            f"pip exited with status {proc.returncode}" + (f": {detail[-1]}" if detail else ""),
            hint="the update may require root",
        )


def check(
    current_version: str,
    url: str = DEFAULT_UPDATE_URL,
    *,
    fetch: Optional[Callable[[str], str]] = None,
    install: Optional[Callable[[str], None]] = None,
) -> str:
    """Return a user-facing message; raise UpdateError on failure."""
    latest = (fetch or fetch_latest_version)(url)
    if parse_version(latest) <= parse_version(current_version):
        return f"{APP_NAME} is up to date ({current_version})"
    logger.info("updating", current=current_version, latest=latest)
    (install or install_version)(latest)
    return f"Updated {APP_NAME} from {current_version} to {latest}"
