# =============================================================================
# File: intake/models.py
# Purpose: ORM model backing SqlRecordStore.
# Notes:
# - SQLAlchemy 2.0 style (Mapped[...] + mapped_column)
# - Row order (autoincrement id) is the positional record index
# - created_at stored naive in SQLite, interpreted as UTC by the store
# =============================================================================
from __future__ import annotations

import datetime as dt
from sqlalchemy import Integer, String, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from .db import Base


class SubmissionRow(Base):
    __tablename__ = "submissions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    surname: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[str] = mapped_column(String(100), nullable=False)
    residence: Mapped[str] = mapped_column(String(500), default="", nullable=False)
    workplace: Mapped[str] = mapped_column(String(500), default="", nullable=False)

    created_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False)

    # attachment filenames (None when nothing was uploaded)
    document_file: Mapped[str | None] = mapped_column(String(255), nullable=True)
    photo_file: Mapped[str | None] = mapped_column(String(255), nullable=True)
