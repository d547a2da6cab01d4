"""
Centralized constants for droppy.

Defaults shared by the CLI and the server collaborators.
"""

# ============================================================================
# Application
# ============================================================================

APP_NAME = "droppy"
"""Name used for the console script and for matching running instances."""

DAEMON_CHILD_ENV = "DROPPY_DAEMON_CHILD"
"""Marks the re-executed background process so it does not detach again."""

RUNTIME_ENV = "DROPPY_ENV"
"""production|development, exported for collaborators in child processes."""


# ============================================================================
# Paths
# ============================================================================

DEFAULT_HOME_DIR = "~/.droppy"
DEFAULT_CONFIG_DIR = "~/.droppy/config"
DEFAULT_FILES_DIR = "~/.droppy/files"
CONFIG_FILE_NAME = "config.json"
DB_FILE_NAME = "db.json"
CACHE_DIR_NAME = "cache"
LOG_FILE_MODE = 0o644


# ============================================================================
# Server
# ============================================================================

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8989


# ============================================================================
# Process control
# ============================================================================

KILL_GRACE_SECONDS = 1.0
"""Time a process gets to exit after SIGTERM before SIGKILL is sent."""


# ============================================================================
# Editor
# ============================================================================

FALLBACK_EDITORS = ("vim", "nano", "vi", "npp", "pico", "emacs", "notepad")


# ============================================================================
# Update
# ============================================================================

DEFAULT_UPDATE_URL = "https://pypi.org/pypi/droppy/json"
UPDATE_TIMEOUT_SECONDS = 10.0
