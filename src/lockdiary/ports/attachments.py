"""Attachment reference interface."""

from typing import Protocol

from lockdiary.core.attachments import AttachResult, Grant, Resource


class AttachmentManager(Protocol):
    """Interface for turning picked locators into durable references."""

    def attach(self, locator: str) -> AttachResult:
        """Obtain and persist a read grant. Always returns a reference to store."""
        ...

    def resolve(self, ref: str) -> Resource:
        """Resolve a stored reference. Raises ResolutionError when it no longer works."""
        ...

    def release(self, ref: str) -> bool:
        """Drop the grant for a reference. Returns whether one existed."""
        ...

    def grants(self) -> list[Grant]:
        """List persisted grants."""
        ...
