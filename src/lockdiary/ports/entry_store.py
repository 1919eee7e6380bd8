"""Entry storage interface."""

from typing import Protocol

from lockdiary.core.entries import DiaryEntry, ImageChange


class EntryStore(Protocol):
    """Interface for loading and mutating the diary entry collection."""

    def load(self) -> list[DiaryEntry]:
        """Load all entries in storage order. Never fails on a corrupt document."""
        ...

    def get(self, entry_id: int) -> DiaryEntry:
        """Get one entry. Raises NotFoundError if absent."""
        ...

    def append(self, text: str, image_ref: str | None = None) -> DiaryEntry:
        """Create and persist a new entry."""
        ...

    def update(
        self, entry_id: int, text: str | None, image: ImageChange = ImageChange.keep()
    ) -> DiaryEntry:
        """Replace an entry's text (None keeps it) and apply an image change."""
        ...

    def delete(self, entry_id: int) -> DiaryEntry:
        """Remove an entry and return it."""
        ...
