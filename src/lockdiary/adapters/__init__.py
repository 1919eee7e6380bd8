"""Adapters - I/O implementations of ports."""

from .json_entry_store import JsonEntryStore
from .attachments import FileGrantRegistry

__all__ = [
    "JsonEntryStore",
    "FileGrantRegistry",
]
