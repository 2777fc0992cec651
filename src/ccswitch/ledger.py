"""Persistence for sequence.json."""

from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path

from ccswitch.exceptions import InvalidStateError, StorageError
from ccswitch.models import Ledger, get_timestamp
from ccswitch.settings import Settings

logger = logging.getLogger("ccswitch")


def write_private(path: Path, content: str) -> None:
    """Write ``content`` to a file that is owner-only from creation.

    Raises:
        OSError: If the file cannot be written.
    """
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(content)
        f.flush()
        os.fsync(f.fileno())
    if sys.platform != "win32":
        os.chmod(path, 0o600)


def write_atomic(path: Path, content: str) -> None:
    """Write a JSON file: validate, temp file, rename, chmod 600.

    The destination is left untouched unless ``content`` parses as JSON and
    the temp file was fully written.

    Raises:
        InvalidStateError: If ``content`` is not valid JSON.
        StorageError: If the file cannot be written.
    """
    try:
        json.loads(content)
    except json.JSONDecodeError as e:
        raise InvalidStateError(f"Refusing to write invalid JSON to {path}: {e}")

    temp_path = path.with_name(f"{path.name}.{os.getpid()}.tmp")
    try:
        write_private(temp_path, content)
        os.replace(temp_path, path)
    except OSError as e:
        temp_path.unlink(missing_ok=True)
        raise StorageError(f"Cannot write {path}: {e}")


class LedgerStore:
    """Loads and saves the ledger at ``settings.sequence_file``."""

    def __init__(self, settings: Settings):
        self.path = settings.sequence_file

    def load(self) -> Ledger:
        """Load the ledger.

        A missing file is a first run and yields an empty ledger. A file that
        exists but cannot be parsed is never reset.

        Raises:
            InvalidStateError: If the file is malformed.
            StorageError: If the file cannot be read.
        """
        if not self.path.exists():
            return Ledger(last_updated=get_timestamp())
        try:
            content = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to read {self.path}: {e}")
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise InvalidStateError(
                f"Invalid JSON in {self.path}: {e}. Fix or move the file aside; "
                "it will not be reset automatically."
            )
        try:
            return Ledger.from_dict(data)
        except InvalidStateError as e:
            raise InvalidStateError(f"Invalid ledger in {self.path}: {e}")

    def save(self, ledger: Ledger) -> None:
        problem = ledger.check_invariants()
        if problem:
            raise InvalidStateError(f"Refusing to save inconsistent ledger: {problem}")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        write_atomic(self.path, json.dumps(ledger.to_dict(), indent=2))
        logger.debug(f"Saved ledger with {len(ledger.slots)} account(s)")
