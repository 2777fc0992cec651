"""Credential storage for live and backed-up Claude Code credentials.

Claude Code stores its live credentials in:
- macOS: Keychain with service "Claude Code-credentials"
- Linux/WSL/Windows: File at ~/.claude/.credentials.json

Backups and the active-token slot follow the platform:
- macOS: Keychain, through the ``security`` utility
- Windows: Windows Credential Manager, through ``keyring``
- Linux/WSL: owner-only files under ~/.claude-switch-backup/credentials
"""

from __future__ import annotations

import logging
import os
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path

import keyring
import keyring.errors

from ccswitch.exceptions import (
    CredentialNotFoundError,
    CredentialReadError,
    CredentialWriteError,
)
from ccswitch.ledger import write_private
from ccswitch.models import CredentialBackend
from ccswitch.settings import Settings

logger = logging.getLogger("ccswitch")

LIVE_SERVICE = "live"
ACTIVE_TOKEN_SERVICE = "active-token"
BACKUP_PREFIX = "backup-"

# Keyring service name on Windows
KEYRING_SERVICE = "ccswitch"

KEYCHAIN_LIVE = "Claude Code-credentials"
KEYCHAIN_ACTIVE_TOKEN = "Claude Code-active-token"
SECURITY_ITEM_NOT_FOUND = 44


def backup_service(number: int, label: str) -> str:
    """Service name of the credential backup for an account."""
    return f"{BACKUP_PREFIX}{number}-{label}"


def _split_backup(service: str) -> tuple[str, str]:
    number, _, label = service[len(BACKUP_PREFIX):].partition("-")
    return number, label


class CredentialStore(ABC):
    """Opaque secrets keyed by service name."""

    @abstractmethod
    def read(self, service: str) -> str:
        """Return the stored blob.

        Raises:
            CredentialNotFoundError: If nothing is stored under ``service``.
            CredentialReadError: If the backend fails.
        """

    @abstractmethod
    def write(self, service: str, blob: str) -> None:
        """Store ``blob``, replacing any previous value.

        Raises:
            CredentialWriteError: If the backend fails.
        """

    @abstractmethod
    def delete(self, service: str) -> None:
        """Remove ``service``; succeeds when it is already absent."""


class FileCredentialStore(CredentialStore):
    """Credentials in owner-only files."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def path_for(self, service: str) -> Path:
        if service == LIVE_SERVICE:
            return self.settings.live_credentials_file
        if service == ACTIVE_TOKEN_SERVICE:
            return self.settings.credentials_dir / ".active-token"
        if service.startswith(BACKUP_PREFIX):
            number, label = _split_backup(service)
            return (
                self.settings.credentials_dir
                / f".claude-credentials-{number}-{label}.json"
            )
        raise ValueError(f"Unknown credential service: {service}")

    def read(self, service: str) -> str:
        path = self.path_for(service)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise CredentialNotFoundError(f"No credentials found at {path}")
        except OSError as e:
            raise CredentialReadError(f"Cannot read credentials from {path}: {e}")

    def write(self, service: str, blob: str) -> None:
        path = self.path_for(service)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            write_private(path, blob)
        except OSError as e:
            raise CredentialWriteError(f"Cannot write credentials to {path}: {e}")

    def delete(self, service: str) -> None:
        path = self.path_for(service)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise CredentialWriteError(f"Cannot delete credentials at {path}: {e}")


class KeychainCredentialStore(CredentialStore):
    """macOS Keychain through the ``security`` command line utility."""

    def __init__(self, account: str | None = None):
        self.account = account or os.environ.get("USER", "user")

    @staticmethod
    def item_name(service: str) -> str:
        if service == LIVE_SERVICE:
            return KEYCHAIN_LIVE
        if service == ACTIVE_TOKEN_SERVICE:
            return KEYCHAIN_ACTIVE_TOKEN
        if service.startswith(BACKUP_PREFIX):
            number, label = _split_backup(service)
            return f"Claude Code-Account-{number}-{label}"
        raise ValueError(f"Unknown credential service: {service}")

    def _run(
        self, args: list[str], error: type[Exception] = CredentialReadError
    ) -> subprocess.CompletedProcess:
        try:
            return subprocess.run(["security", *args], capture_output=True, text=True)
        except OSError as e:
            raise error(f"Failed to run `security {args[0]}`: {e}")

    def read(self, service: str) -> str:
        name = self.item_name(service)
        result = self._run(["find-generic-password", "-s", name, "-w"])
        if result.returncode == SECURITY_ITEM_NOT_FOUND:
            raise CredentialNotFoundError(f"No keychain entry found for {name}")
        if result.returncode != 0:
            raise CredentialReadError(
                f"`security find-generic-password -s {name}` failed: "
                f"{result.stderr.strip()}"
            )
        value = result.stdout
        # security(1) appends a newline to the password
        if value.endswith("\n"):
            value = value[:-1]
        return value

    def write(self, service: str, blob: str) -> None:
        name = self.item_name(service)
        result = self._run(
            ["add-generic-password", "-U", "-s", name, "-a", self.account, "-w", blob],
            error=CredentialWriteError,
        )
        if result.returncode != 0:
            raise CredentialWriteError(
                f"`security add-generic-password -s {name}` failed: "
                f"{result.stderr.strip()}"
            )

    def delete(self, service: str) -> None:
        name = self.item_name(service)
        result = self._run(["delete-generic-password", "-s", name], error=CredentialWriteError)
        if result.returncode not in (0, SECURITY_ITEM_NOT_FOUND):
            logger.warning(f"Failed to delete keychain entry {name}: {result.stderr.strip()}")


class KeyringCredentialStore(CredentialStore):
    """System keyring for backups; the live credential stays a file."""

    def __init__(self, settings: Settings, service_name: str = KEYRING_SERVICE):
        self._service = service_name
        self._live = FileCredentialStore(settings)

    def read(self, service: str) -> str:
        if service == LIVE_SERVICE:
            return self._live.read(service)
        try:
            value = keyring.get_password(self._service, service)
        except keyring.errors.KeyringError as e:
            raise CredentialReadError(f"Failed to read {service} from keyring: {e}")
        if value is None:
            raise CredentialNotFoundError(f"No keyring entry found for {service}")
        return value

    def write(self, service: str, blob: str) -> None:
        if service == LIVE_SERVICE:
            self._live.write(service, blob)
            return
        try:
            keyring.set_password(self._service, service, blob)
        except keyring.errors.KeyringError as e:
            raise CredentialWriteError(f"Failed to write {service} to keyring: {e}")

    def delete(self, service: str) -> None:
        if service == LIVE_SERVICE:
            self._live.delete(service)
            return
        try:
            keyring.delete_password(self._service, service)
        except keyring.errors.PasswordDeleteError:
            pass  # Credential doesn't exist, that's fine
        except keyring.errors.KeyringError as e:
            logger.warning(f"Failed to delete {service} from keyring: {e}")


def create_credential_store(settings: Settings) -> CredentialStore:
    """Pick the credential store for the current platform."""
    backend = settings.credential_backend
    if backend is CredentialBackend.KEYCHAIN:
        return KeychainCredentialStore()
    if backend is CredentialBackend.KEYRING:
        return KeyringCredentialStore(settings)
    return FileCredentialStore(settings)


def rc_file_content(settings: Settings) -> str:
    """Shell snippet that exports the active token."""
    if settings.credential_backend is CredentialBackend.KEYCHAIN:
        reader = f'security find-generic-password -s "{KEYCHAIN_ACTIVE_TOKEN}" -w 2>/dev/null'
    else:
        token_file = settings.credentials_dir / ".active-token"
        reader = f'cat "{token_file}" 2>/dev/null'
    return (
        "# Generated by ccswitch. Source this file from ~/.zshrc or ~/.bashrc.\n"
        f"_ccswitch_token=\"$({reader})\"\n"
        'if [ -n "$_ccswitch_token" ]; then\n'
        f'  export {settings.token_env_var}="$_ccswitch_token"\n'
        "fi\n"
        "unset _ccswitch_token\n"
    )


def ensure_rc_file(settings: Settings) -> bool:
    """Create ~/.ccswitchrc once.

    Returns:
        True if the file was created by this call.
    """
    path = settings.rc_file
    if path.exists():
        return False
    try:
        write_private(path, rc_file_content(settings))
    except OSError as e:
        raise CredentialWriteError(f"Cannot write {path}: {e}")
    logger.info(f"Created {path}")
    return True
