"""PIN gate in front of the diary."""

import hashlib
import hmac
import logging
import secrets

from .config import PinRecord
from .errors import AuthError

logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 200_000


def _hash_pin(pin: str, salt: str, iterations: int) -> str:
    return hashlib.pbkdf2_hmac(
        "sha256", pin.encode(), bytes.fromhex(salt), iterations
    ).hex()


class PinGate:
    """
    Set-or-check unlock code.

    The first PIN entered becomes the diary's PIN; later PINs must match it.
    Only a salted hash is stored. This gates the CLI, it does not encrypt
    the entries file.
    """

    def __init__(self, record: PinRecord, length: int = 4):
        self.record = record
        self.length = length

    @property
    def is_set(self) -> bool:
        return self.record.is_set

    def _validate(self, pin: str) -> None:
        if len(pin) != self.length or not pin.isdigit():
            raise AuthError(f"PIN must be {self.length} digits long.")

    def _store(self, pin: str) -> None:
        salt = secrets.token_hex(16)
        self.record.salt = salt
        self.record.iterations = PBKDF2_ITERATIONS
        self.record.hash = _hash_pin(pin, salt, PBKDF2_ITERATIONS)
        self.record.save()

    def check(self, pin: str) -> bool:
        """True if the PIN matches the stored one."""
        if not self.is_set:
            return False
        candidate = _hash_pin(pin, self.record.salt, self.record.iterations)
        return hmac.compare_digest(candidate, self.record.hash)

    def unlock(self, pin: str) -> bool:
        """
        Set the PIN on first use, otherwise verify it.

        Returns True if this call set a new PIN. Raises AuthError on a
        malformed or wrong PIN.
        """
        self._validate(pin)
        if not self.is_set:
            self._store(pin)
            logger.info("PIN set")
            return True
        if not self.check(pin):
            logger.warning("Incorrect PIN entered")
            raise AuthError("Incorrect PIN.")
        return False

    def change(self, current: str, new: str) -> None:
        """Replace the PIN after verifying the current one."""
        if not self.check(current):
            raise AuthError("Incorrect PIN.")
        self._validate(new)
        self._store(new)
        logger.info("PIN changed")
