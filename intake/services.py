# intake/services.py
from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from .attachments import AttachmentStore
from .auth import AuthGate
from .records import RecordStore
from .users import UserStore


@dataclass
class Services:
    """Components injected into the app by create_app()."""

    records: RecordStore
    attachments: AttachmentStore
    users: UserStore
    auth: AuthGate


def services() -> Services:
    return current_app.extensions["intake"]
