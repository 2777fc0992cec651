"""Data models for ccswitch."""

from __future__ import annotations

import logging
import os
import platform as platform_module
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, auto
from pathlib import Path

from ccswitch.exceptions import InvalidStateError

logger = logging.getLogger("ccswitch")


class CredentialBackend(Enum):
    """Where credential backups live."""

    KEYCHAIN = auto()
    KEYRING = auto()
    FILE = auto()


class Platform(Enum):
    """Supported platforms."""

    MACOS = auto()
    LINUX = auto()
    WSL = auto()
    WINDOWS = auto()
    UNKNOWN = auto()

    @classmethod
    def detect(cls) -> Platform:
        """Detect current platform."""
        system = platform_module.system()
        if system == "Darwin":
            return cls.MACOS
        elif system == "Windows":
            return cls.WINDOWS
        elif system == "Linux":
            if os.environ.get("WSL_DISTRO_NAME") or os.environ.get("WSL_INTEROP"):
                return cls.WSL
            return cls.LINUX
        return cls.UNKNOWN

    @property
    def credential_backend(self) -> CredentialBackend:
        if self is Platform.MACOS:
            return CredentialBackend.KEYCHAIN
        if self is Platform.WINDOWS:
            return CredentialBackend.KEYRING
        return CredentialBackend.FILE


def is_running_in_container(current: Platform) -> bool:
    """Check if running inside a container."""
    # Check environment variables (works on all platforms)
    if os.environ.get("CONTAINER") or os.environ.get("container"):
        return True

    if current == Platform.WINDOWS:
        return False

    if Path("/.dockerenv").exists():
        return True

    markers = {
        "/proc/1/cgroup": ["docker", "lxc", "containerd", "kubepods"],
        "/proc/self/mountinfo": ["docker", "overlay"],
    }
    for path, keywords in markers.items():
        try:
            content = Path(path).read_text()
        except OSError:
            continue
        if any(x in content for x in keywords):
            return True

    return False


class AuthKind(Enum):
    """How an account authenticates."""

    OAUTH = "oauth"
    TOKEN = "token"


@dataclass
class AccountSlot:
    """A managed account registered in the ledger."""

    number: int
    email: str
    uuid: str = ""
    added: str = ""
    auth_kind: AuthKind = AuthKind.OAUTH

    @classmethod
    def from_dict(cls, number: int, data: dict) -> AccountSlot:
        """Create AccountSlot from its sequence.json entry."""
        if not isinstance(data, dict):
            raise InvalidStateError(f"Account {number} entry is not an object")
        email = data.get("email", "")
        if not isinstance(email, str):
            raise InvalidStateError(f"Account {number} has a non-string email")
        try:
            auth_kind = AuthKind(data.get("authKind", AuthKind.OAUTH.value))
        except ValueError:
            raise InvalidStateError(
                f"Account {number} has unknown authKind {data.get('authKind')!r}"
            )
        return cls(
            number=number,
            email=email,
            uuid=data.get("uuid") or "",
            added=data.get("added") or "",
            auth_kind=auth_kind,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "email": self.email,
            "uuid": self.uuid,
            "added": self.added,
            "authKind": self.auth_kind.value,
        }

    @property
    def is_token(self) -> bool:
        return self.auth_kind is AuthKind.TOKEN


@dataclass
class Ledger:
    """Slots, rotation order and the active slot.

    ``slots`` is keyed by slot number and kept in insertion order.
    ``rotation_order`` holds exactly the keys of ``slots``.
    """

    active_slot: int | None = None
    last_updated: str = ""
    rotation_order: list[int] = field(default_factory=list)
    slots: dict[int, AccountSlot] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: object) -> Ledger:
        """Parse sequence.json content.

        Raises:
            InvalidStateError: If the document does not describe a valid ledger.
        """
        if not isinstance(data, dict):
            raise InvalidStateError("Ledger root is not an object")

        raw_accounts = data.get("accounts", {})
        raw_sequence = data.get("sequence", [])
        if not isinstance(raw_accounts, dict) or not isinstance(raw_sequence, list):
            raise InvalidStateError("Ledger 'accounts' or 'sequence' has the wrong type")

        slots: dict[int, AccountSlot] = {}
        for key, entry in raw_accounts.items():
            try:
                number = int(key)
            except ValueError:
                raise InvalidStateError(f"Ledger account key {key!r} is not a number")
            if str(number) != key:
                raise InvalidStateError(f"Ledger account key {key!r} is not canonical")
            slots[number] = AccountSlot.from_dict(number, entry)

        if not all(isinstance(n, int) and not isinstance(n, bool) for n in raw_sequence):
            raise InvalidStateError("Ledger 'sequence' must contain only numbers")

        active = data.get("activeAccountNumber")
        if active is not None and (not isinstance(active, int) or isinstance(active, bool)):
            raise InvalidStateError("Ledger 'activeAccountNumber' must be a number or null")

        ledger = cls(
            active_slot=active,
            last_updated=data.get("lastUpdated") or "",
            rotation_order=list(raw_sequence),
            slots=slots,
        )

        if ledger.active_slot is not None and ledger.active_slot not in slots:
            logger.warning(
                f"Active account {ledger.active_slot} is not managed, clearing it"
            )
            ledger.active_slot = None

        problem = ledger.check_invariants()
        if problem:
            raise InvalidStateError(problem)
        return ledger

    def to_dict(self) -> dict:
        """Convert to the sequence.json layout."""
        return {
            "activeAccountNumber": self.active_slot,
            "lastUpdated": self.last_updated,
            "sequence": list(self.rotation_order),
            "accounts": {str(n): slot.to_dict() for n, slot in self.slots.items()},
        }

    def check_invariants(self) -> str | None:
        """Return a description of the first violated invariant, if any."""
        if len(set(self.rotation_order)) != len(self.rotation_order):
            return "Ledger 'sequence' contains duplicates"
        if set(self.rotation_order) != set(self.slots):
            return "Ledger 'sequence' does not match 'accounts'"
        if self.active_slot is not None and self.active_slot not in self.slots:
            return f"Active account {self.active_slot} is not managed"
        return None

    def next_slot_id(self) -> int:
        """Next account number.

        Numbers are not permanent: removing the highest slot frees its number
        for the next add.
        """
        return max(self.slots, default=0) + 1

    def find_by_label(self, label: str) -> int | None:
        for number, slot in self.slots.items():
            if slot.email == label:
                return number
        return None

    def resolve(self, identifier: str) -> int | None:
        """Resolve an account number or email to a managed account number."""
        identifier = identifier.strip()
        if identifier.isascii() and identifier.isdigit():
            number = int(identifier)
            return number if number in self.slots else None
        return self.find_by_label(identifier)

    def add_slot(self, slot: AccountSlot) -> None:
        self.slots[slot.number] = slot
        self.rotation_order.append(slot.number)
        self.active_slot = slot.number
        self.last_updated = get_timestamp()

    def remove_slot(self, number: int) -> AccountSlot:
        slot = self.slots.pop(number)
        self.rotation_order = [n for n in self.rotation_order if n != number]
        if self.active_slot == number:
            self.active_slot = None
        self.last_updated = get_timestamp()
        return slot

    def next_in_rotation(self, number: int) -> int:
        """Number that follows ``number`` in rotation order, wrapping around."""
        try:
            index = self.rotation_order.index(number)
        except ValueError:
            index = 0
        return self.rotation_order[(index + 1) % len(self.rotation_order)]


def get_timestamp() -> str:
    """Get current UTC timestamp in ISO format."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class OutcomeKind(Enum):
    """Result of a mutating engine call."""

    ADDED = auto()
    ALREADY_MANAGED = auto()
    SWITCHED = auto()
    ALREADY_ACTIVE = auto()
    REMOVED = auto()


@dataclass
class Outcome:
    """What an add, switch or remove did."""

    kind: OutcomeKind
    slot: AccountSlot
    message: str
    previous: AccountSlot | None = None
    rc_file_created: bool = False


@dataclass
class AccountRow:
    slot: AccountSlot
    active: bool


@dataclass
class StatusReport:
    """Active account as seen by the ledger and by Claude Code's config."""

    active: AccountSlot | None
    live_email: str | None
    token_override: bool
    total: int

    @property
    def managed(self) -> bool:
        return self.active is not None
