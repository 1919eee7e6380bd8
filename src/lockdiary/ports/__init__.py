"""Ports - interfaces/protocols for storage and attachments."""

from .entry_store import EntryStore
from .attachments import AttachmentManager

__all__ = [
    "EntryStore",
    "AttachmentManager",
]
