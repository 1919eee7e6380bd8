"""Attachment grant registry - keeps picked image references usable across restarts."""

import json
import logging
import os
from datetime import datetime
from pathlib import Path

import requests

from lockdiary.core.attachments import (
    FILE,
    URL,
    AttachResult,
    Grant,
    Resource,
    parse_locator,
)
from lockdiary.errors import GrantError, ResolutionError

logger = logging.getLogger(__name__)


class FileGrantRegistry:
    """
    Grant registry persisted as a JSON file.

    Implements AttachmentManager protocol. A grant is recorded only after
    the resource has been checked: local files must exist and be readable,
    URLs must answer a HEAD request. The entry store never sees this file;
    it only stores the reference string returned by attach().
    """

    def __init__(
        self,
        grants_file: Path | str,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ):
        self.grants_file = Path(grants_file).expanduser()
        self.timeout = timeout
        self._session = session or requests.Session()

    def _read_grants(self) -> dict[str, Grant]:
        if not self.grants_file.exists():
            return {}
        try:
            data = json.loads(self.grants_file.read_text())
            return {ref: Grant.from_json(ref, item) for ref, item in data.items()}
        except (OSError, json.JSONDecodeError, AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring unreadable grants file {self.grants_file}: {e}")
            return {}

    def _write_grants(self, grants: dict[str, Grant]) -> None:
        self.grants_file.parent.mkdir(parents=True, exist_ok=True)
        self.grants_file.write_text(
            json.dumps({ref: g.to_json() for ref, g in grants.items()}, indent=2)
        )
        self.grants_file.chmod(0o600)

    def _check_file(self, ref: str, path: str) -> None:
        if not os.path.isfile(path):
            raise GrantError(ref, "file does not exist")
        if not os.access(path, os.R_OK):
            raise GrantError(ref, "file is not readable")

    def _check_url(self, ref: str, url: str) -> None:
        try:
            resp = self._session.head(url, allow_redirects=True, timeout=self.timeout)
        except requests.RequestException as e:
            raise GrantError(ref, f"request failed: {e}") from e
        if resp.status_code >= 400:
            raise GrantError(ref, f"server answered {resp.status_code}")

    def attach(self, locator: str) -> AttachResult:
        """Obtain and persist a read grant. Always returns a reference to store."""
        try:
            ref, kind, location = parse_locator(locator)
        except GrantError as e:
            logger.warning(f"{e}; saving the reference without a grant")
            return AttachResult(ref=locator.strip(), granted=False, error=e)

        try:
            if kind == FILE:
                self._check_file(ref, location)
            else:
                self._check_url(ref, location)

            grants = self._read_grants()
            grants[ref] = Grant(ref=ref, kind=kind, location=location, granted_at=datetime.now())
            try:
                self._write_grants(grants)
            except OSError as e:
                raise GrantError(ref, f"could not save grant: {e}") from e
        except GrantError as e:
            logger.warning(f"{e}; saving the reference without a grant")
            return AttachResult(ref=ref, granted=False, error=e)

        logger.debug(f"Grant persisted for {ref}")
        return AttachResult(ref=ref, granted=True)

    def resolve(self, ref: str) -> Resource:
        """Resolve a stored reference. Raises ResolutionError when it no longer works."""
        grant = self._read_grants().get(ref)
        if grant is None:
            raise ResolutionError(ref, "no grant recorded")

        if grant.kind == FILE:
            path = Path(grant.location)
            if not path.is_file():
                raise ResolutionError(ref, "file is gone")
            if not os.access(path, os.R_OK):
                raise ResolutionError(ref, "file is no longer readable")
            return Resource(ref=ref, kind=FILE, location=path)

        if grant.kind == URL:
            try:
                self._check_url(ref, grant.location)
            except GrantError as e:
                raise ResolutionError(ref, e.reason) from e
            return Resource(ref=ref, kind=URL, location=grant.location)

        raise ResolutionError(ref, f"unknown grant kind '{grant.kind}'")

    def release(self, ref: str) -> bool:
        """Drop the grant for a reference. Returns whether one existed."""
        grants = self._read_grants()
        if grants.pop(ref, None) is None:
            return False
        self._write_grants(grants)
        logger.debug(f"Grant released for {ref}")
        return True

    def grants(self) -> list[Grant]:
        """List persisted grants, oldest first."""
        return sorted(self._read_grants().values(), key=lambda g: g.granted_at)
