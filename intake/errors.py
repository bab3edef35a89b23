# intake/errors.py
from __future__ import annotations


class IntakeError(Exception):
    """Base class for every error raised by the intake components."""


class NotFound(IntakeError):
    """Requested item does not exist."""


class RecordNotFound(NotFound):
    def __init__(self, index):
        super().__init__(f"no record at index {index}")
        self.index = index


class UserNotFound(NotFound):
    def __init__(self, username: str):
        super().__init__(f"unknown user {username!r}")
        self.username = username


class InvalidCredentials(IntakeError):
    """Login failed. Never says whether the user or the password was wrong."""


class PersistenceError(IntakeError):
    """Backing storage could not be read or written."""


class AttachmentError(PersistenceError):
    """An uploaded file could not be written to the upload directory."""


class Unauthorized(IntakeError):
    """Admin gate denial. Views turn this into a redirect to the login page."""
