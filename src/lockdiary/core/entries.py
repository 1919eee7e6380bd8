"""Pure diary entry domain logic - no I/O dependencies."""

from dataclasses import dataclass, field
from enum import Enum

from .identity import MAX_ID, MIN_ID

# Keys written by the storage format; anything else is carried in DiaryEntry.extra
KNOWN_KEYS = ("uniqueId", "timestamp", "text", "imageUri")


@dataclass
class DiaryEntry:
    """A single diary record."""

    id: int
    created_at: str
    text: str = ""
    image_ref: str | None = None
    extra: dict = field(default_factory=dict, compare=False, repr=False)

    @property
    def has_image(self) -> bool:
        return bool(self.image_ref)

    @classmethod
    def from_json(cls, data: dict) -> "DiaryEntry":
        """Build an entry from one element of the stored JSON array.

        Raises ValueError if required fields are missing or mistyped.
        """
        if not isinstance(data, dict):
            raise ValueError(f"entry is {type(data).__name__}, not an object")
        if "uniqueId" not in data or "timestamp" not in data:
            raise ValueError("entry is missing uniqueId or timestamp")

        entry_id = data["uniqueId"]
        # bool is an int subclass
        if not isinstance(entry_id, int) or isinstance(entry_id, bool):
            raise ValueError(f"uniqueId {entry_id!r} is not an integer")
        if not MIN_ID <= entry_id <= MAX_ID:
            raise ValueError(f"uniqueId {entry_id} does not fit in 64 bits")
        if not isinstance(data["timestamp"], str):
            raise ValueError(f"timestamp of entry {entry_id} is not a string")

        text = data.get("text", "")
        if not isinstance(text, str):
            raise ValueError(f"text of entry {entry_id} is not a string")

        image_ref = data.get("imageUri")
        if image_ref is not None and not isinstance(image_ref, str):
            raise ValueError(f"imageUri of entry {entry_id} is not a string")
        image_ref = image_ref or None

        return cls(
            id=entry_id,
            created_at=data["timestamp"],
            text=text,
            image_ref=image_ref,
            extra={k: v for k, v in data.items() if k not in KNOWN_KEYS},
        )

    def to_json(self) -> dict:
        """Serialize to the stored JSON object shape."""
        data = dict(self.extra)
        data["uniqueId"] = self.id
        data["timestamp"] = self.created_at
        data["text"] = self.text
        if self.image_ref:
            data["imageUri"] = self.image_ref
        return data


def is_empty(text: str | None, image_ref: str | None) -> bool:
    """An entry with no visible text and no image must not be saved."""
    return not (text or "").strip() and not image_ref


def newest_first(entries: list[DiaryEntry]) -> list[DiaryEntry]:
    """Presentation order: most recently created first."""
    return list(reversed(entries))


def find_entry(entries: list[DiaryEntry], entry_id: int) -> DiaryEntry | None:
    """Return the entry with the given id, or None."""
    for entry in entries:
        if entry.id == entry_id:
            return entry
    return None


def duplicate_ids(entries: list[DiaryEntry]) -> set[int]:
    """Ids that appear more than once."""
    seen: set[int] = set()
    dupes: set[int] = set()
    for entry in entries:
        if entry.id in seen:
            dupes.add(entry.id)
        seen.add(entry.id)
    return dupes


class ImageAction(Enum):
    """What an update does to an entry's image."""

    KEEP = "keep"
    REPLACE = "replace"
    REMOVE = "remove"


@dataclass(frozen=True)
class ImageChange:
    """
    Explicit image instruction for an update.

    Use the constructors rather than building one directly:
    ImageChange.keep(), ImageChange.replace(ref), ImageChange.remove().
    """

    action: ImageAction
    ref: str | None = None

    def __post_init__(self):
        if self.action is ImageAction.REPLACE and not self.ref:
            raise ValueError("ImageChange.replace needs a reference")
        if self.action is not ImageAction.REPLACE and self.ref is not None:
            raise ValueError(f"ImageChange.{self.action.value} takes no reference")

    @classmethod
    def keep(cls) -> "ImageChange":
        return cls(ImageAction.KEEP)

    @classmethod
    def replace(cls, ref: str) -> "ImageChange":
        return cls(ImageAction.REPLACE, ref)

    @classmethod
    def remove(cls) -> "ImageChange":
        return cls(ImageAction.REMOVE)

    def apply(self, current: str | None) -> str | None:
        """Return the image reference after this change."""
        if self.action is ImageAction.REPLACE:
            return self.ref
        if self.action is ImageAction.REMOVE:
            return None
        return current
