# intake/auth.py
from __future__ import annotations

import logging
from functools import wraps
from typing import MutableMapping

from flask import session

from .errors import InvalidCredentials, Unauthorized, UserNotFound
from .users import UserStore, hash_password, verify_password

log = logging.getLogger(__name__)


class AuthGate:
    """Session login/logout and the admin predicate.

    A session is either anonymous or carries logged_in=True and a username.
    """

    def __init__(self, users: UserStore, admin_username: str = "admin"):
        self.users = users
        self.admin_username = admin_username
        self._dummy_hash: str | None = None

    def _burn_check(self, password: str) -> None:
        # Unknown users still pay for one bcrypt check
        if self._dummy_hash is None:
            self._dummy_hash = hash_password("not-a-password", self.users.bcrypt_rounds)
        verify_password(password, self._dummy_hash)

    def login(self, session: MutableMapping, username: str, password: str) -> str:
        try:
            user = self.users.find_by_username(username)
        except UserNotFound:
            self._burn_check(password)
            log.info("Login failed for %r", username)
            raise InvalidCredentials() from None

        if not verify_password(password, user.password_hash):
            log.info("Login failed for %r", username)
            raise InvalidCredentials()

        session.clear()
        session["logged_in"] = True
        session["username"] = user.username
        # Flask permanent sessions expire after PERMANENT_SESSION_LIFETIME
        # of inactivity (the cookie is refreshed on every request).
        if hasattr(session, "permanent"):
            session.permanent = True
        log.info("User %r logged in", user.username)
        return user.username

    @staticmethod
    def logout(session: MutableMapping) -> None:
        session.clear()

    @staticmethod
    def is_logged_in(session: MutableMapping) -> bool:
        return bool(session.get("logged_in"))

    def is_admin(self, session: MutableMapping) -> bool:
        return self.is_logged_in(session) and session.get("username") == self.admin_username


def admin_required(view_func):
    """Let the view run only for the admin.

    Denial raises Unauthorized, which the app turns into a redirect to the
    login page.
    """
    @wraps(view_func)
    def wrapper(*args, **kwargs):
        from .services import services

        if not services().auth.is_admin(session):
            raise Unauthorized()

        return view_func(*args, **kwargs)

    return wrapper
