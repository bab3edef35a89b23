# =============================================================================
# File: intake/records.py
# Purpose: Record Store. Ordered collection of form submissions addressed by
#          positional index, with a JSON-file backend and a SQL backend.
# Notes:
# - No cache: every read loads the durable snapshot, every mutation writes it.
# - No cross-request locking. Two concurrent mutations race and the last
#   writer wins.
# =============================================================================
from __future__ import annotations

import datetime as dt
import json
import logging
import os
import stat
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Mapping

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from .errors import PersistenceError, RecordNotFound
from .models import SubmissionRow

log = logging.getLogger(__name__)

REQUIRED_FIELDS = ("name", "surname", "phone")
OPTIONAL_FIELDS = ("residence", "workplace")
NEW_FILE_MODE = 0o644

# Record key -> key used in records files of the earlier Node.js app
LEGACY_KEYS = {
    "name": "ismi",
    "surname": "familiyasi",
    "phone": "telefon",
    "residence": "yashash_joyi",
    "workplace": "ishlash_joyi",
    "created_at": "timestamp",
    "document_file": "pasport_file",
    "photo_file": "foto",
}


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def parse_timestamp(value: str) -> dt.datetime:
    """Parse an ISO-8601 timestamp. A trailing 'Z' (JavaScript style) is accepted."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = dt.datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed


@dataclass
class RecordFields:
    """The mutable part of a record: what the form submits and the admin edits."""

    name: str
    surname: str
    phone: str
    residence: str = ""
    workplace: str = ""

    @classmethod
    def from_form(cls, form: Mapping[str, Any]) -> "RecordFields":
        def clean(key: str) -> str:
            return (form.get(key) or "").strip()

        return cls(**{key: clean(key) for key in REQUIRED_FIELDS + OPTIONAL_FIELDS})

    def missing(self) -> list[str]:
        """Names of required fields left empty."""
        return [key for key in REQUIRED_FIELDS if not getattr(self, key)]


@dataclass
class Record:
    name: str
    surname: str
    phone: str
    residence: str
    workplace: str
    created_at: dt.datetime
    document_file: str | None = None
    photo_file: str | None = None

    @property
    def fields(self) -> RecordFields:
        return RecordFields(
            name=self.name,
            surname=self.surname,
            phone=self.phone,
            residence=self.residence,
            workplace=self.workplace,
        )

    @property
    def attachments(self) -> list[str]:
        return [f for f in (self.document_file, self.photo_file) if f]

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Record":
        """Build a record from its JSON form.

        Files written by the earlier Node.js version of the app use other
        key names; those are mapped through LEGACY_KEYS.
        """
        def pick(key: str):
            if key in data:
                return data[key]
            return data.get(LEGACY_KEYS[key])

        created_at = pick("created_at")
        if not created_at:
            raise KeyError("created_at")

        return cls(
            name=pick("name") or "",
            surname=pick("surname") or "",
            phone=pick("phone") or "",
            residence=pick("residence") or "",
            workplace=pick("workplace") or "",
            created_at=parse_timestamp(created_at),
            document_file=pick("document_file"),
            photo_file=pick("photo_file"),
        )


class RecordStore(ABC):
    """Contract shared by every record backend.

    Indices are positions in insertion order. A valid index satisfies
    0 <= index < len(store); deleting a record shifts every later index down
    by one.
    """

    @abstractmethod
    def list(self) -> list[Record]:
        """Full ordered snapshot."""

    @abstractmethod
    def append(
        self,
        fields: RecordFields,
        *,
        document_file: str | None = None,
        photo_file: str | None = None,
    ) -> Record:
        """Create a record stamped with the current time and persist it."""

    @abstractmethod
    def get(self, index: int) -> Record:
        """Raise RecordNotFound when index is out of range."""

    @abstractmethod
    def update(self, index: int, fields: RecordFields) -> Record:
        """Replace the mutable fields. created_at and attachments are kept."""

    @abstractmethod
    def delete(self, index: int) -> Record:
        """Remove the record and return it so the caller can release its files."""

    def __len__(self) -> int:
        return len(self.list())


def _check_index(index: int, length: int) -> None:
    if not isinstance(index, int) or index < 0 or index >= length:
        raise RecordNotFound(index)


class JsonRecordStore(RecordStore):
    """Records kept as one JSON array in a single file."""

    def __init__(self, path: str | os.PathLike):
        self.path = Path(path)

    def bootstrap(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.path.exists():
            self._write([])

    # ---------------------------------------------------------------------
    # Storage
    # ---------------------------------------------------------------------

    def _read(self) -> list[Record]:
        if not self.path.exists():
            return []
        try:
            with self.path.open("r", encoding="utf-8") as f:
                raw = json.load(f)
            if not isinstance(raw, list):
                raise ValueError("records file must hold a JSON array")
            return [Record.from_dict(item) for item in raw]
        except (OSError, ValueError, KeyError, TypeError) as e:
            log.error("Could not read records from %s: %s", self.path, e)
            raise PersistenceError(f"cannot read {self.path}") from e

    def _write(self, records: list[Record]) -> None:
        # Write a sibling temp file then swap it in; a failed write leaves the
        # previous snapshot untouched.
        payload = [r.to_dict() for r in records]
        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
            # mkstemp creates 0600; keep the mode the records file already has
            try:
                mode = stat.S_IMODE(os.stat(self.path).st_mode)
            except FileNotFoundError:
                mode = NEW_FILE_MODE
            os.chmod(tmp_name, mode)
            os.replace(tmp_name, self.path)
        except OSError as e:
            log.error("Could not write records to %s: %s", self.path, e)
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise PersistenceError(f"cannot write {self.path}") from e

    # ---------------------------------------------------------------------
    # Contract
    # ---------------------------------------------------------------------

    def list(self) -> list[Record]:
        return self._read()

    def append(self, fields, *, document_file=None, photo_file=None) -> Record:
        records = self._read()
        record = Record(
            **asdict(fields),
            created_at=utcnow(),
            document_file=document_file,
            photo_file=photo_file,
        )
        records.append(record)
        self._write(records)
        return record

    def get(self, index: int) -> Record:
        records = self._read()
        _check_index(index, len(records))
        return records[index]

    def update(self, index: int, fields: RecordFields) -> Record:
        records = self._read()
        _check_index(index, len(records))
        record = records[index]
        for key, value in asdict(fields).items():
            setattr(record, key, value)
        self._write(records)
        return record

    def delete(self, index: int) -> Record:
        records = self._read()
        _check_index(index, len(records))
        removed = records.pop(index)
        self._write(records)
        return removed


class SqlRecordStore(RecordStore):
    """Same contract over a SQL table; row order by id is the index."""

    def __init__(self, session_factory: sessionmaker):
        self.SessionLocal = session_factory

    @staticmethod
    def _to_record(row: SubmissionRow) -> Record:
        created = row.created_at
        if created.tzinfo is None:
            created = created.replace(tzinfo=dt.timezone.utc)
        return Record(
            name=row.name,
            surname=row.surname,
            phone=row.phone,
            residence=row.residence or "",
            workplace=row.workplace or "",
            created_at=created,
            document_file=row.document_file,
            photo_file=row.photo_file,
        )

    @staticmethod
    def _row_at(session, index: int) -> SubmissionRow:
        if not isinstance(index, int) or index < 0:
            raise RecordNotFound(index)
        row = (
            session.query(SubmissionRow)
            .order_by(SubmissionRow.id.asc())
            .offset(index)
            .limit(1)
            .first()
        )
        if row is None:
            raise RecordNotFound(index)
        return row

    def list(self) -> list[Record]:
        try:
            with self.SessionLocal() as s:
                rows = s.query(SubmissionRow).order_by(SubmissionRow.id.asc()).all()
                return [self._to_record(r) for r in rows]
        except SQLAlchemyError as e:
            log.error("Could not list records: %s", e)
            raise PersistenceError("cannot read records") from e

    def __len__(self) -> int:
        try:
            with self.SessionLocal() as s:
                return s.query(SubmissionRow).count()
        except SQLAlchemyError as e:
            raise PersistenceError("cannot read records") from e

    def append(self, fields, *, document_file=None, photo_file=None) -> Record:
        # SQLite keeps datetimes naive; store UTC without tzinfo
        now = utcnow()
        row = SubmissionRow(
            **asdict(fields),
            created_at=now.replace(tzinfo=None),
            document_file=document_file,
            photo_file=photo_file,
        )
        try:
            with self.SessionLocal() as s:
                s.add(row)
                s.commit()
                return self._to_record(row)
        except SQLAlchemyError as e:
            log.error("Could not append record: %s", e)
            raise PersistenceError("cannot write records") from e

    def get(self, index: int) -> Record:
        try:
            with self.SessionLocal() as s:
                return self._to_record(self._row_at(s, index))
        except SQLAlchemyError as e:
            raise PersistenceError("cannot read records") from e

    def update(self, index: int, fields: RecordFields) -> Record:
        try:
            with self.SessionLocal() as s:
                row = self._row_at(s, index)
                for key, value in asdict(fields).items():
                    setattr(row, key, value)
                s.commit()
                return self._to_record(row)
        except SQLAlchemyError as e:
            log.error("Could not update record %s: %s", index, e)
            raise PersistenceError("cannot write records") from e

    def delete(self, index: int) -> Record:
        try:
            with self.SessionLocal() as s:
                row = self._row_at(s, index)
                removed = self._to_record(row)
                s.delete(row)
                s.commit()
                return removed
        except SQLAlchemyError as e:
            log.error("Could not delete record %s: %s", index, e)
            raise PersistenceError("cannot write records") from e
