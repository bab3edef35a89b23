# tests/test_records.py
import datetime as dt
import json
import os
import stat

import pytest

from intake import records as records_mod
from intake.db import init_db
from intake.errors import PersistenceError, RecordNotFound
from intake.records import (
    JsonRecordStore,
    Record,
    RecordFields,
    SqlRecordStore,
    parse_timestamp,
)


def make_fields(n: int, **extra) -> RecordFields:
    values = dict(name=f"Name{n}", surname=f"Surname{n}", phone=f"+1 555 000{n}")
    values.update(extra)
    return RecordFields(**values)


@pytest.fixture(params=["json", "sql"])
def store(request, tmp_path):
    if request.param == "json":
        s = JsonRecordStore(tmp_path / "data" / "records.json")
        s.bootstrap()
        return s
    return SqlRecordStore(init_db(f"sqlite:///{tmp_path / 'records.db'}"))


def test_append_then_get_returns_submitted_fields(store):
    fields = make_fields(1, residence="Samarkand", workplace="")
    before = dt.datetime.now(dt.timezone.utc)

    store.append(fields, document_file="document-1-2.pdf")

    got = store.get(0)
    assert got.fields == fields
    assert got.document_file == "document-1-2.pdf"
    assert got.photo_file is None
    assert got.created_at.tzinfo is not None
    assert got.created_at >= before - dt.timedelta(seconds=1)


def test_get_out_of_range(store):
    store.append(make_fields(0))
    for bad in (-1, 1, 100):
        with pytest.raises(RecordNotFound):
            store.get(bad)


def test_empty_store(store):
    assert store.list() == []
    assert len(store) == 0
    with pytest.raises(RecordNotFound):
        store.get(0)
    with pytest.raises(RecordNotFound):
        store.delete(0)
    with pytest.raises(RecordNotFound):
        store.update(0, make_fields(0))


def test_delete_shifts_later_records(store):
    for i in range(4):
        store.append(make_fields(i))
    before = store.list()

    removed = store.delete(1)

    after = store.list()
    assert removed == before[1]
    assert len(after) == 3
    assert after[0] == before[0]
    assert after[1:] == before[2:]


def test_update_changes_only_mutable_fields(store):
    store.append(make_fields(0), document_file="document-a.pdf", photo_file="photo-b.jpg")
    original = store.get(0)

    new_fields = RecordFields(
        name="New", surname="Person", phone="42", residence="Bukhara", workplace="School"
    )
    store.update(0, new_fields)

    updated = store.get(0)
    assert updated.fields == new_fields
    assert updated.created_at == original.created_at
    assert updated.document_file == "document-a.pdf"
    assert updated.photo_file == "photo-b.jpg"


def test_list_matches_replayed_mutations(store):
    model = []

    for i in range(5):
        store.append(make_fields(i))
        model.append(make_fields(i))

    store.delete(0)
    model.pop(0)
    store.update(2, make_fields(99))
    model[2] = make_fields(99)
    store.delete(3)
    model.pop(3)
    store.append(make_fields(7))
    model.append(make_fields(7))

    assert [r.fields for r in store.list()] == model


def test_index_scenario_keeps_attachment_reference(store):
    store.append(make_fields(0))
    store.append(make_fields(1), document_file="document-b.pdf")

    store.delete(0)

    remaining = store.list()
    assert len(remaining) == 1
    assert remaining[0].fields == make_fields(1)
    assert remaining[0].document_file == "document-b.pdf"

    removed = store.delete(0)
    assert removed.attachments == ["document-b.pdf"]
    assert store.list() == []


# ---------------------------------------------------------------------------
# JSON backend specifics
# ---------------------------------------------------------------------------

def test_json_missing_file_reads_as_empty(tmp_path):
    s = JsonRecordStore(tmp_path / "nope.json")
    assert s.list() == []


def test_json_bootstrap_creates_empty_array(tmp_path):
    path = tmp_path / "data" / "records.json"
    JsonRecordStore(path).bootstrap()
    assert json.loads(path.read_text(encoding="utf-8")) == []


def test_json_malformed_file_raises(tmp_path):
    path = tmp_path / "records.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(PersistenceError):
        JsonRecordStore(path).list()


def test_json_failed_write_keeps_last_snapshot(tmp_path, monkeypatch):
    s = JsonRecordStore(tmp_path / "records.json")
    s.bootstrap()
    s.append(make_fields(0))

    def boom(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(records_mod.os, "replace", boom)
    with pytest.raises(PersistenceError):
        s.append(make_fields(1))
    monkeypatch.undo()

    assert [r.fields for r in s.list()] == [make_fields(0)]
    # no temp files left behind
    assert [p.name for p in tmp_path.iterdir()] == ["records.json"]


def test_json_layout_on_disk(tmp_path):
    path = tmp_path / "records.json"
    s = JsonRecordStore(path)
    s.append(make_fields(0, residence="Qo'qon"), photo_file="photo-1-1.png")

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw[0]["name"] == "Name0"
    assert raw[0]["residence"] == "Qo'qon"
    assert raw[0]["document_file"] is None
    assert raw[0]["photo_file"] == "photo-1-1.png"
    parse_timestamp(raw[0]["created_at"])


def test_reads_javascript_timestamps():
    rec = Record.from_dict(
        {
            "name": "A",
            "surname": "B",
            "phone": "1",
            "created_at": "2024-05-01T10:20:30.123Z",
        }
    )
    assert rec.created_at == dt.datetime(2024, 5, 1, 10, 20, 30, 123000, tzinfo=dt.timezone.utc)
    assert rec.residence == ""
    assert rec.attachments == []


def test_fields_from_form_strips_and_reports_missing():
    fields = RecordFields.from_form({"name": "  Ann ", "surname": "", "phone": " "})
    assert fields.name == "Ann"
    assert fields.residence == ""
    assert fields.missing() == ["surname", "phone"]


def test_reads_records_file_of_the_nodejs_app(tmp_path):
    path = tmp_path / "data.json"
    path.write_text(
        json.dumps(
            [
                {
                    "ismi": "Ali",
                    "familiyasi": "Valiyev",
                    "telefon": "+998901234567",
                    "yashash_joyi": "Toshkent",
                    "ishlash_joyi": None,
                    "timestamp": "2024-05-01T10:20:30.123Z",
                    "pasport_file": "pasport_file-1714558830123-42.pdf",
                    "foto": None,
                }
            ]
        ),
        encoding="utf-8",
    )
    s = JsonRecordStore(path)

    [rec] = s.list()
    assert rec.fields == RecordFields("Ali", "Valiyev", "+998901234567", "Toshkent", "")
    assert rec.created_at.year == 2024
    assert rec.document_file == "pasport_file-1714558830123-42.pdf"
    assert rec.photo_file is None

    # rewrites use the current key names
    s.update(0, rec.fields)
    assert "created_at" in json.loads(path.read_text(encoding="utf-8"))[0]


def test_record_without_timestamp_is_a_read_error(tmp_path):
    path = tmp_path / "records.json"
    path.write_text('[{"name": "A", "surname": "B", "phone": "1"}]', encoding="utf-8")
    with pytest.raises(PersistenceError):
        JsonRecordStore(path).list()


@pytest.mark.skipif(os.name == "nt", reason="POSIX permission bits")
def test_json_write_keeps_file_mode(tmp_path):
    path = tmp_path / "records.json"
    s = JsonRecordStore(path)
    s.bootstrap()
    assert stat.S_IMODE(path.stat().st_mode) == records_mod.NEW_FILE_MODE

    path.chmod(0o640)
    s.append(make_fields(0))

    assert stat.S_IMODE(path.stat().st_mode) == 0o640
