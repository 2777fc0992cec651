"""Claude Code's live config file and per-account config backups."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from ccswitch.exceptions import (
    ConfigNotFoundError,
    InvalidConfigError,
    InvalidStateError,
    MissingBackupError,
    StorageError,
)
from ccswitch.ledger import write_atomic, write_private
from ccswitch.settings import Settings

logger = logging.getLogger("ccswitch")

OAUTH_KEY = "oauthAccount"


@dataclass(frozen=True)
class Identity:
    """Account identity embedded in Claude Code's config."""

    email: str
    uuid: str = ""


def identity_from_config(data: dict) -> Identity | None:
    oauth = data.get(OAUTH_KEY)
    if not isinstance(oauth, dict):
        return None
    email = oauth.get("emailAddress") or ""
    if not isinstance(email, str) or not email:
        return None
    return Identity(email=email, uuid=oauth.get("accountUuid") or "")


class HostConfig:
    """The live ``.claude.json`` used by Claude Code."""

    def __init__(self, settings: Settings):
        self.primary = settings.claude_dir / ".claude.json"
        self.fallback = settings.home / ".claude.json"

    def path(self) -> Path:
        """Get Claude configuration file path with fallback."""
        if self.primary.exists():
            try:
                data = json.loads(self.primary.read_text(encoding="utf-8"))
                if isinstance(data, dict) and OAUTH_KEY in data:
                    return self.primary
            except (OSError, json.JSONDecodeError):
                pass
        return self.fallback

    def load(self) -> dict:
        """Read and parse the live config.

        Raises:
            ConfigNotFoundError: If the file does not exist.
            InvalidConfigError: If the file is not a JSON object.
            StorageError: If the file cannot be read.
        """
        path = self.path()
        try:
            content = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise ConfigNotFoundError(
                f"Claude config not found at {path}. Log in to Claude Code first."
            )
        except OSError as e:
            raise StorageError(f"Cannot read Claude config at {path}: {e}")
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise InvalidConfigError(f"Invalid JSON in {path}: {e}")
        if not isinstance(data, dict):
            raise InvalidConfigError(f"Claude config at {path} is not a JSON object")
        return data

    def save(self, data: dict) -> None:
        write_atomic(self.path(), json.dumps(data, indent=2))

    def current_identity(self) -> Identity | None:
        """Identity of the logged-in OAuth account, if any."""
        try:
            data = self.load()
        except (ConfigNotFoundError, InvalidConfigError, StorageError):
            return None
        return identity_from_config(data)


class ConfigMirror:
    """Per-account copies of the Claude config."""

    def __init__(self, settings: Settings):
        self.configs_dir = settings.configs_dir

    def path_for(self, number: int, label: str) -> Path:
        return self.configs_dir / f".claude-config-{number}-{label}.json"

    def backup(self, number: int, label: str, data: dict) -> None:
        """Write account config to backup."""
        path = self.path_for(number, label)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            write_private(path, json.dumps(data, indent=2))
        except OSError as e:
            raise StorageError(f"Cannot write config backup to {path}: {e}")

    def restore(self, number: int, label: str) -> dict:
        """Read account config from backup.

        Raises:
            MissingBackupError: If no backup exists for the account.
            InvalidStateError: If the backup is not a JSON object.
        """
        path = self.path_for(number, label)
        try:
            content = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise MissingBackupError(
                f"Missing config backup for Account {number}. "
                f"Remove it and add it again."
            )
        except OSError as e:
            raise StorageError(f"Cannot read config backup from {path}: {e}")
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise InvalidStateError(f"Invalid JSON in config backup {path}: {e}")
        if not isinstance(data, dict):
            raise InvalidStateError(f"Config backup {path} is not a JSON object")
        return data

    def delete(self, number: int, label: str) -> None:
        path = self.path_for(number, label)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to delete config backup {path}: {e}")
