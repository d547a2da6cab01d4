import hashlib
import hmac
import json
import os
import secrets
from pathlib import Path
from typing import Optional

from filelock import FileLock

from droppy.core.errors import UserDBError
from droppy.core.utils.logging import get_logger

logger = get_logger("droppy.db")

PBKDF2_ITERATIONS = 260000


def hash_password(password: str, salt: Optional[str] = None, iterations: int = PBKDF2_ITERATIONS) -> str:
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), iterations)
    return f"pbkdf2_sha256${iterations}${salt}${digest.hex()}"


def verify_password(password: str, encoded: str) -> bool:
    try:
        algo, iterations, salt, _digest = encoded.split("$", 3)
    except ValueError:
        return False
    if algo != "pbkdf2_sha256":
        return False
    return hmac.compare_digest(hash_password(password, salt, int(iterations)), encoded)


class UserDB:
    """
    JSON user store kept next to the config.

    Layout: {"users": {name: {"hash": str, "privileged": bool}}}. Writes go
    through a FileLock so a running server and the CLI do not interleave.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self._lock = FileLock(str(self.path.with_suffix(self.path.suffix + ".lock")), timeout=10)
        self._data: dict[str, dict] = {"users": {}}

    def _load_unlocked(self) -> dict[str, dict]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {"users": {}}
        except json.JSONDecodeError as e:
            raise UserDBError(
                f"Invalid user database at {self.path}: {e}",
                hint="fix the JSON or delete the file to start with no users",
            ) from e
        if not isinstance(data, dict):
            data = {}
        users = data.get("users")
        data["users"] = users if isinstance(users, dict) else {}
        return data

    def _save_unlocked(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(self._data, f, indent=2, ensure_ascii=False)
            f.write("\n")
        os.replace(tmp, self.path)

    def load(self) -> "UserDB":
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock:
            self._data = self._load_unlocked()
        return self

    def users(self) -> dict[str, dict]:
        return dict(self._data["users"])

    def add_or_update_user(self, name: str, password: str, privileged: bool = False) -> None:
        with self._lock:
            self._data = self._load_unlocked()
            existed = name in self._data["users"]
            self._data["users"][name] = {
                "hash": hash_password(password),
                "privileged": bool(privileged),
            }
            self._save_unlocked()
        logger.info("user updated" if existed else "user added", user=name, privileged=bool(privileged))

    def del_user(self, name: str) -> bool:
        with self._lock:
            self._data = self._load_unlocked()
            if name not in self._data["users"]:
                return False
            del self._data["users"][name]
            self._save_unlocked()
        logger.info("user deleted", user=name)
        return True

    def authenticate(self, name: str, password: str) -> bool:
        user = self._data["users"].get(name)
        if not user:
            return False
        return verify_password(password, str(user.get("hash") or ""))
