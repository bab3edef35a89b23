# =============================================================================
# File: intake/users.py
# Purpose: Admin credentials in a JSON file, bcrypt hashed, seeded on first run.
# =============================================================================
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

import bcrypt

from .errors import PersistenceError, UserNotFound

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class User:
    username: str
    password_hash: str


def hash_password(password: str, rounds: int = 10) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds)).decode("ascii")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("ascii"))
    except ValueError:
        # malformed stored hash
        return False


class UserStore:
    def __init__(self, path: str | os.PathLike, bcrypt_rounds: int = 10):
        self.path = Path(path)
        self.bcrypt_rounds = bcrypt_rounds

    def _read(self) -> list[User]:
        if not self.path.exists():
            return []
        try:
            with self.path.open("r", encoding="utf-8") as f:
                raw = json.load(f) or []
            # "password" is the key used by the earlier Node.js app (bcrypt hash)
            return [
                User(username=u["username"], password_hash=u.get("password_hash") or u["password"])
                for u in raw
            ]
        except (OSError, ValueError, KeyError, TypeError) as e:
            log.error("Could not read users from %s: %s", self.path, e)
            raise PersistenceError(f"cannot read {self.path}") from e

    def _write(self, users: list[User]) -> None:
        payload = [{"username": u.username, "password_hash": u.password_hash} for u in users]
        try:
            with self.path.open("w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
        except OSError as e:
            log.error("Could not write users to %s: %s", self.path, e)
            raise PersistenceError(f"cannot write {self.path}") from e

    def bootstrap(self, username: str, password: str) -> bool:
        """Seed a single admin account if the store is empty.

        Returns True when the account was created.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if self._read():
            return False

        self._write([User(username, hash_password(password, self.bcrypt_rounds))])
        log.warning("Seeded default admin account %r; change its password", username)
        return True

    def all(self) -> list[User]:
        return self._read()

    def find_by_username(self, username: str) -> User:
        for user in self._read():
            if user.username == username:
                return user
        raise UserNotFound(username)
