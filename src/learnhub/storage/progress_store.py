"""Progress record persistence (JSON + fcntl.flock + atomic write)."""

import contextlib
import fcntl
import os
import re
import tempfile
from pathlib import Path

import structlog
from pydantic import ValidationError

from learnhub.models.progress import ProgressRecord

logger = structlog.get_logger()

_SAFE_ID = re.compile(r"[^A-Za-z0-9_.-]")


class StoreError(RuntimeError):
    """Raised when the progress store cannot be read or written."""


class ProgressStore:
    """Whole-record persistence for one user's progress.

    Every save replaces the file atomically, so readers never see a partial
    record.

    Args:
        user_id: Owner of the record; determines the file name.
        directory: Directory holding one JSON file per user.
    """

    def __init__(self, user_id: str, directory: Path):
        self.user_id = user_id
        self.directory = Path(directory)

    @property
    def path(self) -> Path:
        return self.directory / f"{_SAFE_ID.sub('_', self.user_id)}.json"

    def load(self) -> ProgressRecord | None:
        """Read the persisted record, or None if nothing has been saved yet."""
        path = self.path
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                fcntl.flock(f, fcntl.LOCK_SH)
                try:
                    raw = f.read()
                finally:
                    fcntl.flock(f, fcntl.LOCK_UN)
            return ProgressRecord.model_validate_json(raw)
        except (OSError, ValidationError) as e:
            raise StoreError(f"Could not load progress for {self.user_id}: {e}") from e

    def save(self, record: ProgressRecord) -> None:
        path = self.path
        tmp_name = None
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", dir=self.directory, delete=False, suffix=".json", encoding="utf-8"
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(record.model_dump_json(indent=2))
            os.replace(tmp_name, path)
        except OSError as e:
            if tmp_name is not None:
                with contextlib.suppress(OSError):
                    Path(tmp_name).unlink(missing_ok=True)
            logger.error("progress_save_failed", user_id=self.user_id, error=str(e))
            raise StoreError(f"Could not save progress for {self.user_id}: {e}") from e
        logger.debug("progress_saved", user_id=self.user_id, path=str(path))

    def quarantine(self) -> Path | None:
        """Move an unreadable record aside to ``<id>.corrupt.json``.

        Returns the new location, or None when there was no file to move.
        """
        path = self.path
        target = path.with_suffix(".corrupt.json")
        try:
            os.replace(path, target)
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StoreError(f"Could not quarantine progress for {self.user_id}: {e}") from e
        logger.warning("progress_quarantined", user_id=self.user_id, path=str(target))
        return target

    def clear(self) -> None:
        """Remove the persisted record; a missing file is not an error."""
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise StoreError(f"Could not clear progress for {self.user_id}: {e}") from e
        logger.info("progress_cleared", user_id=self.user_id)
