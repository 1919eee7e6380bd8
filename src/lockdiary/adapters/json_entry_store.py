"""JSON file entry storage adapter."""

import fcntl
import json
import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Callable

from lockdiary.config import DEFAULT_TIMESTAMP_FORMAT
from lockdiary.core.entries import (
    DiaryEntry,
    ImageAction,
    ImageChange,
    duplicate_ids,
    find_entry,
    is_empty,
)
from lockdiary.core.identity import IdentityAllocator
from lockdiary.errors import (
    CorruptionError,
    DuplicateIdError,
    EmptyEntryError,
    NotFoundError,
    PersistenceError,
)

logger = logging.getLogger(__name__)

# One in-process lock per document, shared by every store opened on it
_thread_locks: dict[Path, threading.Lock] = {}
_thread_locks_guard = threading.Lock()


def _thread_lock_for(path: Path) -> threading.Lock:
    with _thread_locks_guard:
        return _thread_locks.setdefault(path, threading.Lock())


class _DocumentLock:
    """Exclusive lock around one read-modify-write cycle.

    Serializes threads through a per-path lock and processes through
    flock on a sidecar file. Not reentrant.
    """

    def __init__(self, path: Path):
        self._thread_lock = _thread_lock_for(path)
        self._lock_path = path.parent / f".{path.name}.lock"
        self._file = None

    def __enter__(self) -> "_DocumentLock":
        self._thread_lock.acquire()
        try:
            self._lock_path.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(self._lock_path, "w")
            fcntl.flock(self._file.fileno(), fcntl.LOCK_EX)
        except OSError as e:
            if self._file is not None:
                self._file.close()
                self._file = None
            self._thread_lock.release()
            raise PersistenceError(self._lock_path, f"Could not lock {self._lock_path}: {e}") from e
        return self

    def __exit__(self, *exc) -> None:
        try:
            fcntl.flock(self._file.fileno(), fcntl.LOCK_UN)
            self._file.close()
        finally:
            self._file = None
            self._thread_lock.release()


class JsonEntryStore:
    """
    Single-document JSON entry storage.

    Implements EntryStore protocol. Every operation reads the whole
    document, applies one change in memory and writes the whole document
    back, inside a per-document lock. There is no cache.
    """

    def __init__(
        self,
        path: Path | str,
        allocator: IdentityAllocator | None = None,
        now: Callable[[], datetime] = datetime.now,
        timestamp_format: str = DEFAULT_TIMESTAMP_FORMAT,
    ):
        self.path = Path(path).expanduser()
        self.allocator = allocator or IdentityAllocator()
        self.timestamp_format = timestamp_format
        self._now = now
        self.last_corruption: CorruptionError | None = None

    def _lock(self) -> _DocumentLock:
        return _DocumentLock(self.path)

    def _read(self) -> list[DiaryEntry]:
        """Read and decode the document. Raises CorruptionError or PersistenceError."""
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except UnicodeDecodeError as e:
            raise CorruptionError(self.path, f"not valid UTF-8 ({e.reason})") from e
        except OSError as e:
            raise PersistenceError(self.path, f"Could not read {self.path}: {e}") from e

        if not raw.strip():
            return []

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise CorruptionError(self.path, f"invalid JSON at line {e.lineno} column {e.colno}") from e
        except (ValueError, RecursionError) as e:
            # Oversized number literals and pathological nesting
            raise CorruptionError(self.path, f"undecodable JSON ({e})") from e

        if not isinstance(data, list):
            raise CorruptionError(self.path, f"expected a JSON array, found {type(data).__name__}")

        entries = []
        for index, item in enumerate(data):
            try:
                entries.append(DiaryEntry.from_json(item))
            except ValueError as e:
                raise CorruptionError(self.path, f"entry {index}: {e}") from e

        dupes = duplicate_ids(entries)
        if dupes:
            raise CorruptionError(self.path, f"duplicate ids {sorted(dupes)}")

        return entries

    def _write(self, entries: list[DiaryEntry]) -> None:
        """Encode and overwrite the whole document."""
        content = json.dumps([e.to_json() for e in entries], indent=4, ensure_ascii=False)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise PersistenceError(
                self.path,
                f"Could not write {self.path}: {e}. The previous contents may have been lost.",
            ) from e
        logger.debug(f"Wrote {len(entries)} entries to {self.path}")

    def _load_for_write(self) -> list[DiaryEntry]:
        """Load inside a transaction. Corruption aborts the write."""
        entries = self._read()
        self.allocator.observe(e.id for e in entries)
        return entries

    def load(self) -> list[DiaryEntry]:
        """Load all entries in storage order. A corrupt document loads as empty."""
        with self._lock():
            try:
                entries = self._read()
            except CorruptionError as e:
                logger.warning(f"{e}; showing no entries")
                self.last_corruption = e
                return []
        self.last_corruption = None
        return entries

    def get(self, entry_id: int) -> DiaryEntry:
        """Get one entry. Raises NotFoundError if absent."""
        entry = find_entry(self.load(), entry_id)
        if entry is None:
            raise NotFoundError(entry_id)
        return entry

    def append(self, text: str, image_ref: str | None = None) -> DiaryEntry:
        """Create and persist a new entry."""
        text = (text or "").strip()
        image_ref = image_ref or None
        if is_empty(text, image_ref):
            raise EmptyEntryError()

        with self._lock():
            entries = self._load_for_write()
            entry = DiaryEntry(
                id=self.allocator.next(),
                created_at=self._now().strftime(self.timestamp_format),
                text=text,
                image_ref=image_ref,
            )
            if find_entry(entries, entry.id) is not None:
                raise DuplicateIdError(entry.id)
            entries.append(entry)
            self._write(entries)

        logger.info(f"Saved entry {entry.id} ({len(entries)} total)")
        return entry

    def update(
        self, entry_id: int, text: str | None, image: ImageChange = ImageChange.keep()
    ) -> DiaryEntry:
        """Replace an entry's text and apply an image change. text=None keeps the stored text."""
        if text is not None:
            text = text.strip()
        # Replace and remove fix the final image, so this can be checked before I/O
        if text is not None and image.action is not ImageAction.KEEP and is_empty(text, image.apply(None)):
            raise EmptyEntryError()

        with self._lock():
            entries = self._load_for_write()
            entry = find_entry(entries, entry_id)
            if entry is None:
                raise NotFoundError(entry_id)

            if text is None:
                text = entry.text
            new_image = image.apply(entry.image_ref)
            if is_empty(text, new_image):
                raise EmptyEntryError()

            entry.text = text
            entry.image_ref = new_image
            self._write(entries)

        logger.info(f"Updated entry {entry_id}")
        return entry

    def delete(self, entry_id: int) -> DiaryEntry:
        """Remove an entry and return it."""
        with self._lock():
            entries = self._load_for_write()
            removed = find_entry(entries, entry_id)
            if removed is None:
                raise NotFoundError(entry_id)
            remaining = [e for e in entries if e.id != entry_id]
            self._write(remaining)

        logger.info(f"Deleted entry {entry_id} ({len(remaining)} left)")
        return removed
