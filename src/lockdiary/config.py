"""Configuration management for lockdiary."""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

LOCKDIARY_HOME = Path(os.environ.get("LOCKDIARY_HOME", Path.home() / "lockdiary"))
CONFIG_DIR = LOCKDIARY_HOME / "config"
CONFIG_FILE = CONFIG_DIR / "lockdiary.conf"
PIN_FILE = CONFIG_DIR / ".pin.json"
DATA_DIR = LOCKDIARY_HOME / "data"

DEFAULT_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M"


@dataclass
class Config:
    """lockdiary configuration."""

    entries_file: str = ""
    grants_file: str = ""
    pin_file: str = ""
    timestamp_format: str = DEFAULT_TIMESTAMP_FORMAT
    http_timeout: float = 10.0
    pin_length: int = 4

    @property
    def entries_path(self) -> Path:
        if self.entries_file:
            return Path(self.entries_file).expanduser()
        return DATA_DIR / "diary_entries.json"

    @property
    def grants_path(self) -> Path:
        if self.grants_file:
            return Path(self.grants_file).expanduser()
        return CONFIG_DIR / "grants.json"

    @property
    def pin_path(self) -> Path:
        if self.pin_file:
            return Path(self.pin_file).expanduser()
        return PIN_FILE


@dataclass
class PinRecord:
    """Salted hash of the unlock PIN."""

    salt: str = ""
    hash: str = ""
    iterations: int = 0
    path: Path = field(default=PIN_FILE, compare=False, repr=False)

    @property
    def is_set(self) -> bool:
        return bool(self.hash)

    def save(self) -> None:
        """Save the PIN record to file."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps(
                {
                    "salt": self.salt,
                    "hash": self.hash,
                    "iterations": self.iterations,
                }
            )
        )
        self.path.chmod(0o600)

    @classmethod
    def load(cls, path: Path = PIN_FILE) -> "PinRecord":
        """Load the PIN record from file."""
        if not path.exists():
            return cls(path=path)
        try:
            data = json.loads(path.read_text())
            return cls(
                salt=data["salt"],
                hash=data["hash"],
                iterations=int(data["iterations"]),
                path=path,
            )
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring unreadable PIN file {path}: {e}")
            return cls(path=path)


def _unquote(value: str) -> str:
    # Handle quoted values with inline comments: "value" # comment
    if value.startswith('"') or value.startswith("'"):
        quote = value[0]
        end_quote = value.find(quote, 1)
        if end_quote != -1:
            return value[1:end_quote]
        return value[1:]
    # Unquoted: strip inline comments
    if "#" in value:
        value = value.split("#")[0].strip()
    return value


def load_config(config_file: Path | None = None) -> Config:
    """Load configuration from lockdiary.conf file."""
    config = Config()
    config_file = config_file or CONFIG_FILE

    if not config_file.exists():
        return config

    for line in config_file.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if "=" not in line:
            continue

        key, _, value = line.partition("=")
        key = key.strip().lower()
        value = _unquote(value.strip())

        match key:
            case "entries_file":
                config.entries_file = value
            case "grants_file":
                config.grants_file = value
            case "pin_file":
                config.pin_file = value
            case "timestamp_format":
                config.timestamp_format = value
            case "http_timeout":
                try:
                    config.http_timeout = float(value)
                except ValueError:
                    logger.warning(f"Invalid HTTP_TIMEOUT: {value}")
            case "pin_length":
                try:
                    config.pin_length = int(value)
                except ValueError:
                    logger.warning(f"Invalid PIN_LENGTH: {value}")
            case _:
                logger.debug(f"Ignoring unknown config key: {key}")

    return config
