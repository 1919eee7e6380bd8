"""Attachment reference types and locator parsing - no I/O."""

import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from urllib.parse import unquote, urlparse

from lockdiary.errors import GrantError

FILE = "file"
URL = "url"


@dataclass
class Grant:
    """A persisted long-lived read grant for one attachment reference."""

    ref: str
    kind: str
    location: str
    granted_at: datetime

    def to_json(self) -> dict:
        return {
            "kind": self.kind,
            "location": self.location,
            "granted_at": self.granted_at.isoformat(),
        }

    @classmethod
    def from_json(cls, ref: str, data: dict) -> "Grant":
        return cls(
            ref=ref,
            kind=data["kind"],
            location=data["location"],
            granted_at=datetime.fromisoformat(data["granted_at"]),
        )


@dataclass
class AttachResult:
    """Outcome of attaching a picked locator."""

    ref: str
    granted: bool
    error: GrantError | None = None


@dataclass
class Resource:
    """A resolved attachment, ready to be displayed."""

    ref: str
    kind: str
    location: Path | str

    def __str__(self) -> str:
        return str(self.location)


def parse_locator(locator: str) -> tuple[str, str, str]:
    """
    Normalize a picked locator.

    Returns (ref, kind, location): ref is the string to store in an entry,
    kind is "file" or "url", location is the filesystem path or the URL.
    Local paths become absolute file:// URIs so they stay valid no matter
    which directory the program runs from.

    Raises GrantError for empty or unsupported locators.
    """
    locator = locator.strip()
    if not locator:
        raise GrantError(locator, "empty locator")

    parsed = urlparse(locator)
    scheme = parsed.scheme.lower()

    if scheme in ("http", "https"):
        if not parsed.netloc:
            raise GrantError(locator, "URL has no host")
        return locator, URL, locator

    if scheme == "file":
        path = os.path.abspath(unquote(parsed.path))
        return Path(path).as_uri(), FILE, path

    # A single letter "scheme" is a Windows drive
    if not scheme or len(scheme) == 1:
        path = os.path.abspath(os.path.expanduser(locator))
        return Path(path).as_uri(), FILE, path

    raise GrantError(locator, f"unsupported scheme '{scheme}'")
