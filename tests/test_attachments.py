# tests/test_attachments.py
import io
import re

import pytest
from werkzeug.datastructures import FileStorage

from intake import attachments as attachments_mod
from intake.errors import AttachmentError
from intake.attachments import AttachmentStore, generate_name


def upload(content=b"hello", filename="Passport.PDF"):
    return FileStorage(stream=io.BytesIO(content), filename=filename)


@pytest.fixture
def files(tmp_path):
    s = AttachmentStore(tmp_path / "uploads")
    s.bootstrap()
    return s


def test_generate_name_keeps_extension():
    name = generate_name("photo", "my selfie.JPG")
    assert re.fullmatch(r"photo-\d+-\d+\.jpg", name)


def test_generate_name_without_extension():
    assert re.fullmatch(r"document-\d+-\d+", generate_name("document", "README"))


def test_store_writes_content(files):
    name = files.store(upload(b"%PDF-1.4"), "document")
    assert name.startswith("document-") and name.endswith(".pdf")
    assert (files.directory / name).read_bytes() == b"%PDF-1.4"
    assert files.exists(name)


def test_store_never_overwrites(files, monkeypatch):
    taken = files.directory / "document-1-1.pdf"
    taken.write_bytes(b"original")
    names = iter(["document-1-1.pdf", "document-1-2.pdf"])
    monkeypatch.setattr(attachments_mod, "generate_name", lambda kind, filename: next(names))

    name = files.store(upload(b"new"), "document")

    assert name == "document-1-2.pdf"
    assert taken.read_bytes() == b"original"
    assert (files.directory / name).read_bytes() == b"new"


def test_store_rejects_unknown_kind(files):
    with pytest.raises(ValueError):
        files.store(upload(), "video")


def test_store_optional_skips_empty_upload(files):
    assert files.store_optional(None, "photo") is None
    assert files.store_optional(FileStorage(stream=io.BytesIO(b""), filename=""), "photo") is None
    assert list(files.directory.iterdir()) == []


def test_release_is_idempotent(files):
    name = files.store(upload(), "photo")
    files.release(name)
    assert not files.exists(name)

    files.release(name)
    files.release("never-existed.png")
    files.release(None)


def test_release_ignores_paths_outside_directory(files, tmp_path):
    outside = tmp_path / "secret.txt"
    outside.write_text("keep me")

    files.release("../secret.txt")

    assert outside.exists()
    assert files.path_for("../secret.txt") is None
    assert not files.exists("../secret.txt")


def test_store_write_failure_raises_and_removes_partial_file(files, monkeypatch):
    def broken_save(self, dst, buffer_size=16384):
        dst.write(b"partial")
        raise OSError("disk full")

    monkeypatch.setattr(FileStorage, "save", broken_save)

    with pytest.raises(AttachmentError):
        files.store(upload(), "document")

    assert list(files.directory.iterdir()) == []


def test_release_logs_and_continues_on_os_error(files, caplog):
    name = "photo-1-1.png"
    (files.directory / name).mkdir()
    (files.directory / name / "inside.txt").write_text("x")

    files.release(name)

    assert (files.directory / name).is_dir()
    assert "Could not release attachment" in caplog.text
