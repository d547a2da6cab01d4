import os
import shutil
import subprocess
from typing import Callable, Mapping, Optional, Sequence

from droppy.core.constants import FALLBACK_EDITORS


def preferred_editor(env: Mapping[str, str]) -> str:
    raw = env.get("VISUAL") or env.get("EDITOR") or ""
    return os.path.basename(raw.strip())


def editor_candidates(
    env: Mapping[str, str],
    fallback: Sequence[str] = FALLBACK_EDITORS,
) -> tuple[str, ...]:
    """User's editor first unless it is already a fallback, then the fallbacks in order."""
    user = preferred_editor(env)
    if user and user not in fallback:
        return (user, *fallback)
    return tuple(fallback)


def resolve_editor(
    candidates: Sequence[str],
    *,
    which: Callable[[str], Optional[str]] = shutil.which,
) -> Optional[str]:
    for name in candidates:
        path = which(name)
        if path:
            return path
    return None


def open_in_editor(
    editor: str,
    path: str,
    *,
    call: Callable[..., int] = subprocess.call,
) -> int:
    return int(call([editor, str(path)]))
