"""Error types raised by the diary core."""

from pathlib import Path


class DiaryError(Exception):
    """Base class for all diary errors."""

    pass


class EmptyEntryError(DiaryError):
    """Raised when an entry has neither text nor an image."""

    def __init__(self, message: str = "Entry needs text or an image."):
        super().__init__(message)


class NotFoundError(DiaryError):
    """Raised when no entry matches the requested id."""

    def __init__(self, entry_id: int):
        self.entry_id = entry_id
        super().__init__(f"No entry with id {entry_id}.")


class DuplicateIdError(DiaryError):
    """Raised when a new entry id already exists in the collection."""

    def __init__(self, entry_id: int):
        self.entry_id = entry_id
        super().__init__(f"Entry id {entry_id} is already in use.")


class CorruptionError(DiaryError):
    """Raised (or recorded) when the entries document cannot be decoded."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Entries file {path} is corrupt: {reason}")


class PersistenceError(DiaryError):
    """Raised when the entries document cannot be read or written."""

    def __init__(self, path: Path, message: str):
        self.path = path
        super().__init__(message)


class GrantError(DiaryError):
    """Raised when a long-lived read grant cannot be obtained for an attachment."""

    def __init__(self, ref: str, reason: str):
        self.ref = ref
        self.reason = reason
        super().__init__(f"Could not get a lasting grant for {ref}: {reason}")


class ResolutionError(DiaryError):
    """Raised when an attachment reference no longer resolves."""

    def __init__(self, ref: str, reason: str):
        self.ref = ref
        self.reason = reason
        super().__init__(f"Cannot open attachment {ref}: {reason}")


class AuthError(DiaryError):
    """Raised when the PIN is malformed or wrong."""

    pass
