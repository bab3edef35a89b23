# =============================================================================
# File: intake/attachments.py
# Purpose: Uploaded files (document / photo) stored flat in one directory.
# =============================================================================
from __future__ import annotations

import logging
import os
import random
import time
from pathlib import Path

from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from .errors import AttachmentError

log = logging.getLogger(__name__)

ATTACHMENT_KINDS = ("document", "photo")

# Retries when a generated name already exists
MAX_NAME_ATTEMPTS = 5


def generate_name(kind: str, original_filename: str | None) -> str:
    """'<kind>-<epoch ms>-<random>.<ext>'. Collisions are unlikely, not impossible."""
    ext = os.path.splitext(secure_filename(original_filename or ""))[1].lower()
    millis = int(time.time() * 1000)
    suffix = random.randint(0, 10**9)
    return f"{kind}-{millis}-{suffix}{ext}"


class AttachmentStore:
    def __init__(self, directory: str | os.PathLike):
        self.directory = Path(directory).resolve()

    def bootstrap(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)

    def _safe_path(self, filename: str | None) -> Path | None:
        # Only plain names; anything with a separator is never ours
        if not filename or filename != os.path.basename(filename) or filename in (".", ".."):
            return None
        return self.directory / filename

    def path_for(self, filename: str) -> Path | None:
        return self._safe_path(filename)

    def exists(self, filename: str | None) -> bool:
        path = self._safe_path(filename)
        return path is not None and path.is_file()

    def store(self, upload: FileStorage, kind: str) -> str:
        """Save the upload under a fresh name and return that name."""
        if kind not in ATTACHMENT_KINDS:
            raise ValueError(f"unknown attachment kind: {kind}")

        for _ in range(MAX_NAME_ATTEMPTS):
            name = generate_name(kind, upload.filename)
            path = self.directory / name
            try:
                # "xb" refuses to overwrite an existing file
                with path.open("xb") as fh:
                    upload.save(fh)
            except FileExistsError:
                continue
            except OSError as e:
                log.error("Could not store %s upload: %s", kind, e)
                if path.exists():
                    path.unlink()
                raise AttachmentError(f"cannot write {name}") from e
            log.info("Stored %s as %s", kind, name)
            return name

        raise AttachmentError(f"could not find a free name for {kind} upload")

    def store_optional(self, upload: FileStorage | None, kind: str) -> str | None:
        """Like store(), but returns None when no file was chosen."""
        if upload is None or not upload.filename:
            return None
        return self.store(upload, kind)

    def release(self, filename: str | None) -> None:
        """Delete the file if present. Releasing a missing file is a no-op."""
        path = self._safe_path(filename)
        if path is None:
            return
        try:
            path.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            # The owning record is already gone; leave the file for manual cleanup
            log.warning("Could not release attachment %s: %s", filename, e)
            return
        log.info("Released attachment %s", filename)
