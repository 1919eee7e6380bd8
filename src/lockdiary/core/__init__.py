"""Functional core - pure diary logic with no I/O."""

from .entries import (
    DiaryEntry,
    ImageAction,
    ImageChange,
    duplicate_ids,
    find_entry,
    is_empty,
    newest_first,
)
from .identity import IdentityAllocator
from .attachments import AttachResult, Grant, Resource, parse_locator

__all__ = [
    # Entries
    "DiaryEntry",
    "ImageAction",
    "ImageChange",
    "duplicate_ids",
    "find_entry",
    "is_empty",
    "newest_first",
    # Identity
    "IdentityAllocator",
    # Attachments
    "AttachResult",
    "Grant",
    "Resource",
    "parse_locator",
]
