"""Shared workflow layer between the CLI and the store.

Each function composes the entry store and the attachment registry into one
user-level action. Attachment grants are always requested before a locator
is written into an entry.
"""

import logging
from dataclasses import dataclass

from .adapters.attachments import FileGrantRegistry
from .adapters.json_entry_store import JsonEntryStore
from .auth import PinGate
from .config import Config, PinRecord
from .core.attachments import AttachResult, Resource
from .core.entries import DiaryEntry, ImageChange, is_empty, newest_first
from .errors import DiaryError, EmptyEntryError, ResolutionError
from .ports import AttachmentManager, EntryStore

logger = logging.getLogger(__name__)


@dataclass
class SavedEntry:
    """An entry that was just written, plus how its image attach went."""

    entry: DiaryEntry
    attachment: AttachResult | None = None

    @property
    def grant_failed(self) -> bool:
        return self.attachment is not None and not self.attachment.granted


def get_store(config: Config) -> JsonEntryStore:
    """Resolve the entries document from config."""
    return JsonEntryStore(config.entries_path, timestamp_format=config.timestamp_format)


def get_attachments(config: Config) -> FileGrantRegistry:
    """Resolve the grant registry from config."""
    return FileGrantRegistry(config.grants_path, timeout=config.http_timeout)


def get_gate(config: Config) -> PinGate:
    """Resolve the PIN gate from config."""
    return PinGate(PinRecord.load(config.pin_path), length=config.pin_length)


def _release_if_unused(store: EntryStore, attachments: AttachmentManager, ref: str | None) -> None:
    """Drop a grant once no entry points at it any more."""
    if not ref:
        return
    if any(e.image_ref == ref for e in store.load()):
        return
    try:
        attachments.release(ref)
    except OSError as e:
        logger.warning(f"Could not release grant for {ref}: {e}")


def list_entries(store: EntryStore) -> list[DiaryEntry]:
    """All entries, most recent first."""
    return newest_first(store.load())


def add_entry(
    store: EntryStore,
    attachments: AttachmentManager,
    text: str,
    image_locator: str | None = None,
) -> SavedEntry:
    """Attach the image (if any), then save a new entry."""
    if is_empty(text, image_locator):
        raise EmptyEntryError()

    attach = attachments.attach(image_locator) if image_locator else None
    try:
        entry = store.append(text, attach.ref if attach else None)
    except DiaryError:
        if attach and attach.granted:
            _release_if_unused(store, attachments, attach.ref)
        raise
    return SavedEntry(entry=entry, attachment=attach)


def edit_entry(
    store: EntryStore,
    attachments: AttachmentManager,
    entry_id: int,
    text: str | None = None,
    image_locator: str | None = None,
    remove_image: bool = False,
) -> SavedEntry:
    """
    Update an entry.

    text=None keeps the current text. The image is kept unless a new
    locator is given (replace) or remove_image is set (remove).
    """
    if image_locator and remove_image:
        raise ValueError("Pass either a new image or remove_image, not both")

    # Only the old image is read here; text=None is resolved inside the update transaction
    current = store.get(entry_id)

    attach = None
    if image_locator:
        attach = attachments.attach(image_locator)
        change = ImageChange.replace(attach.ref)
    elif remove_image:
        change = ImageChange.remove()
    else:
        change = ImageChange.keep()

    try:
        entry = store.update(entry_id, text, change)
    except DiaryError:
        if attach and attach.granted:
            _release_if_unused(store, attachments, attach.ref)
        raise
    if current.image_ref != entry.image_ref:
        _release_if_unused(store, attachments, current.image_ref)
    return SavedEntry(entry=entry, attachment=attach)


def remove_entry(store: EntryStore, attachments: AttachmentManager, entry_id: int) -> DiaryEntry:
    """Delete an entry and release its image grant if nothing else uses it."""
    removed = store.delete(entry_id)
    _release_if_unused(store, attachments, removed.image_ref)
    return removed


def resolve_image(attachments: AttachmentManager, entry: DiaryEntry) -> Resource | None:
    """Resolve an entry's image for display, or None if it cannot be shown."""
    if not entry.image_ref:
        return None
    try:
        return attachments.resolve(entry.image_ref)
    except ResolutionError as e:
        logger.warning(f"Entry {entry.id}: {e}")
        return None
