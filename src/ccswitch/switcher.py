"""Core account switcher logic for Claude Code."""

from __future__ import annotations

import json
import time

from ccswitch.credentials import (
    ACTIVE_TOKEN_SERVICE,
    LIVE_SERVICE,
    CredentialStore,
    backup_service,
    create_credential_store,
    ensure_rc_file,
)
from ccswitch.exceptions import (
    AccountNotFoundError,
    ConfigNotFoundError,
    CredentialNotFoundError,
    InvalidConfigError,
    InvalidStateError,
    MissingBackupError,
    NoActiveAccountError,
    NotEnoughAccountsError,
)
from ccswitch.host_config import OAUTH_KEY, ConfigMirror, HostConfig
from ccswitch.ledger import LedgerStore
from ccswitch.logging_config import setup_logging
from ccswitch.models import (
    AccountRow,
    AccountSlot,
    AuthKind,
    Ledger,
    Outcome,
    OutcomeKind,
    StatusReport,
    get_timestamp,
)
from ccswitch.settings import Settings


def default_token_label() -> str:
    """Placeholder label for a token account, unique per second."""
    return f"token-{int(time.time()) & 0xFFFFFFFF:08X}"


def extract_token(blob: str, number: int) -> str:
    """Pull the raw token out of a token account's credential backup."""
    try:
        data = json.loads(blob)
    except json.JSONDecodeError:
        raise InvalidStateError(f"Invalid JSON in credentials backup for Account {number}")
    token = data.get("token") if isinstance(data, dict) else None
    if not isinstance(token, str) or not token:
        raise InvalidStateError(
            f"Cannot extract token from credentials backup for Account {number}. "
            "Remove it and add it again with `ccswitch add`."
        )
    return token


class AccountSwitcher:
    """Multi-account switcher for Claude Code.

    Every operation loads the ledger from disk; nothing is cached between calls.
    Live state is only touched after the outgoing account has been backed up,
    and the ledger is saved last.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        credentials: CredentialStore | None = None,
        debug: bool = False,
    ):
        self.settings = settings or Settings.from_environment(debug=debug)
        self.ledger_store = LedgerStore(self.settings)
        self.credentials = credentials or create_credential_store(self.settings)
        self.host_config = HostConfig(self.settings)
        self.config_mirror = ConfigMirror(self.settings)
        self._logger = setup_logging(self.settings.backup_dir, debug=self.settings.debug)

    # -- helpers ---------------------------------------------------------------

    def load_ledger(self) -> Ledger:
        return self.ledger_store.load()

    def detect_auth_mode(self) -> AuthKind:
        """Token mode when no OAuth login exists or the token env var is set.

        The env var takes priority over the credentials file in Claude Code, so
        a stale oauthAccount in the config does not count.
        """
        if self.settings.token_override_active():
            return AuthKind.TOKEN
        if self.host_config.current_identity() is None:
            return AuthKind.TOKEN
        return AuthKind.OAUTH

    def _read_live_credentials(self) -> str:
        try:
            creds = self.credentials.read(LIVE_SERVICE)
        except CredentialNotFoundError as e:
            raise CredentialNotFoundError(f"{e}. Log in to Claude Code first.")
        if not creds:
            raise CredentialNotFoundError(
                "No credentials found for the current account. Log in to Claude Code first."
            )
        return creds

    def _snapshot_live(self, slot: AccountSlot) -> None:
        """Copy live credentials and config into the slot's backups."""
        live_creds = self._read_live_credentials()
        live_config = self.host_config.load()
        self.credentials.write(backup_service(slot.number, slot.email), live_creds)
        self.config_mirror.backup(slot.number, slot.email, live_config)
        self._logger.info(f"Backed up account {slot.number}")

    def _read_backup_credentials(self, slot: AccountSlot) -> str:
        try:
            creds = self.credentials.read(backup_service(slot.number, slot.email))
        except CredentialNotFoundError:
            creds = ""
        if not creds:
            raise MissingBackupError(
                f"Missing credentials backup for Account {slot.number} ({slot.email}). "
                "Remove it and add it again."
            )
        return creds

    def _resolve(self, ledger: Ledger, identifier: str | int) -> int:
        if not ledger.slots:
            raise AccountNotFoundError("No accounts are managed yet. Run `ccswitch add` first.")
        number = ledger.resolve(str(identifier))
        if number is None:
            raise AccountNotFoundError(f"No account found matching '{identifier}'")
        return number

    def _resolve_source(self, ledger: Ledger) -> AccountSlot:
        """Account being switched away from.

        Token accounts always keep activeAccountNumber set, so only OAuth logins
        ever need the config lookup.
        """
        if ledger.active_slot is not None:
            return ledger.slots[ledger.active_slot]
        identity = self.host_config.current_identity()
        if identity is None:
            raise NoActiveAccountError(
                "No active Claude account found. Run `ccswitch add` first."
            )
        number = ledger.find_by_label(identity.email)
        if number is None:
            raise NoActiveAccountError(
                f"Account '{identity.email}' is not managed. Run `ccswitch add` first."
            )
        return ledger.slots[number]

    # -- add -------------------------------------------------------------------

    def add(self, token: str | None = None, label: str | None = None) -> Outcome:
        """Add the currently logged-in account to managed accounts."""
        if self.detect_auth_mode() is AuthKind.TOKEN:
            if not token:
                raise NoActiveAccountError(
                    "No active Claude account found. Log in to Claude Code first, "
                    "or add a long-lived token (claude setup-token)."
                )
            return self.add_token(token, label)
        return self.add_oauth()

    def add_oauth(self) -> Outcome:
        identity = self.host_config.current_identity()
        if identity is None:
            raise NoActiveAccountError(
                "No active Claude account found. Please log in to Claude Code first."
            )

        self.settings.setup_directories()
        ledger = self.load_ledger()

        existing = ledger.find_by_label(identity.email)
        if existing is not None:
            return Outcome(
                OutcomeKind.ALREADY_MANAGED,
                ledger.slots[existing],
                f"Account {identity.email} is already managed.",
            )

        slot = AccountSlot(
            number=ledger.next_slot_id(),
            email=identity.email,
            uuid=identity.uuid,
            added=get_timestamp(),
            auth_kind=AuthKind.OAUTH,
        )
        # No rollback: a half-written backup surfaces as MissingBackupError on switch
        self._snapshot_live(slot)

        ledger.add_slot(slot)
        self.ledger_store.save(ledger)
        self._logger.info(f"Added account {slot.number}: {slot.email}")
        return Outcome(
            OutcomeKind.ADDED, slot, f"Added {slot.email} as Account {slot.number}"
        )

    def add_token(self, token: str, label: str | None = None) -> Outcome:
        """Add a long-lived token account and make it active."""
        token = token.strip()
        if not token:
            raise NoActiveAccountError("No token provided.")
        label = (label or "").strip() or default_token_label()

        self.settings.setup_directories()
        ledger = self.load_ledger()

        existing = ledger.find_by_label(label)
        if existing is not None:
            return Outcome(
                OutcomeKind.ALREADY_MANAGED,
                ledger.slots[existing],
                f"Account {label} is already managed.",
            )

        slot = AccountSlot(
            number=ledger.next_slot_id(),
            email=label,
            added=get_timestamp(),
            auth_kind=AuthKind.TOKEN,
        )
        self.credentials.write(
            backup_service(slot.number, slot.email), json.dumps({"token": token})
        )
        # Token accounts may have no oauthAccount; keep whatever config exists
        try:
            config = self.host_config.load()
        except (ConfigNotFoundError, InvalidConfigError):
            config = {}
        self.config_mirror.backup(slot.number, slot.email, config)

        self.credentials.write(ACTIVE_TOKEN_SERVICE, token)
        rc_created = ensure_rc_file(self.settings)

        ledger.add_slot(slot)
        self.ledger_store.save(ledger)
        self._logger.info(f"Added token account {slot.number}: {slot.email}")
        return Outcome(
            OutcomeKind.ADDED,
            slot,
            f"Added {slot.email} as Account {slot.number} (token)",
            rc_file_created=rc_created,
        )

    # -- switch ----------------------------------------------------------------

    def switch_to(self, identifier: str) -> Outcome:
        """Switch to a specific account number or email."""
        return self.switch(self._resolve(self.load_ledger(), identifier))

    def switch_next(self) -> Outcome:
        """Switch to the next account in rotation order.

        An unmanaged OAuth login with no active account is added instead, and
        the returned outcome is ADDED rather than SWITCHED.
        """
        ledger = self.load_ledger()
        if not ledger.slots:
            raise AccountNotFoundError("No accounts managed yet. Run `ccswitch add` first.")
        if len(ledger.rotation_order) < 2:
            raise NotEnoughAccountsError(
                "Only one account managed. Add another with `ccswitch add`."
            )
        if ledger.active_slot is None and not self.settings.token_override_active():
            identity = self.host_config.current_identity()
            if identity is not None and ledger.find_by_label(identity.email) is None:
                self._logger.info(f"Adding unmanaged live account {identity.email} before rotating")
                return self.add_oauth()
        source = self._resolve_source(ledger)
        return self.switch(ledger.next_in_rotation(source.number))

    def switch(self, number: int) -> Outcome:
        """Make account ``number`` the active one."""
        ledger = self.load_ledger()
        target = ledger.slots.get(number)
        if target is None:
            raise AccountNotFoundError(f"Account {number} does not exist")

        already = Outcome(
            OutcomeKind.ALREADY_ACTIVE,
            target,
            f"Already using {target.email} (Account {number}).",
        )
        if ledger.active_slot == number:
            return already

        source = self._resolve_source(ledger)
        if source.number == number:
            return already

        # Step 1: back up the outgoing account before touching anything live.
        # Claude Code refreshes OAuth credentials while in use; tokens never change.
        if not source.is_token:
            self._snapshot_live(source)

        # Step 2: everything the target needs must be present
        target_creds = self._read_backup_credentials(target)

        # Step 3: activate
        if target.is_token:
            token = extract_token(target_creds, number)
            self.credentials.write(ACTIVE_TOKEN_SERVICE, token)
            self._logger.info("Updated active token")
        else:
            target_config = self.config_mirror.restore(number, target.email)
            oauth_section = target_config.get(OAUTH_KEY)
            if not isinstance(oauth_section, dict) or not oauth_section:
                raise InvalidConfigError(
                    f"Missing {OAUTH_KEY} in config backup for Account {number}"
                )
            live_config = self.host_config.load()

            self.credentials.write(LIVE_SERVICE, target_creds)
            self._logger.info("Wrote target credentials")

            live_config[OAUTH_KEY] = oauth_section
            self.host_config.save(live_config)
            self._logger.info("Updated config file")

            # Stop new shells from exporting a token that would override OAuth
            self.credentials.delete(ACTIVE_TOKEN_SERVICE)

        # Step 4: persist
        ledger.active_slot = number
        ledger.last_updated = get_timestamp()
        self.ledger_store.save(ledger)

        self._logger.info(f"Switched from account {source.number} to {number}")
        return Outcome(
            OutcomeKind.SWITCHED,
            target,
            f"Switched {source.email} -> {target.email} (Account {number}).",
            previous=source,
        )

    # -- remove ----------------------------------------------------------------

    def remove(self, identifier: str | int) -> Outcome:
        """Forget an account and delete its backups.

        Live credentials and config are left alone even when the account is
        active; the logged-in session keeps working, just unmanaged.
        """
        ledger = self.load_ledger()
        number = self._resolve(ledger, identifier)
        slot = ledger.slots[number]

        try:
            self.credentials.delete(backup_service(number, slot.email))
        except CredentialNotFoundError:
            pass
        self.config_mirror.delete(number, slot.email)

        ledger.remove_slot(number)
        self.ledger_store.save(ledger)
        self._logger.info(f"Removed account {number}: {slot.email}")
        return Outcome(
            OutcomeKind.REMOVED, slot, f"Removed Account {number} ({slot.email})"
        )

    # -- read-only views -------------------------------------------------------

    def _active_number(self, ledger: Ledger) -> int | None:
        if ledger.active_slot is not None:
            return ledger.active_slot
        identity = self.host_config.current_identity()
        if identity is None:
            return None
        return ledger.find_by_label(identity.email)

    def list_accounts(self) -> list[AccountRow]:
        """Managed accounts in rotation order."""
        ledger = self.load_ledger()
        active = self._active_number(ledger)
        return [
            AccountRow(slot=ledger.slots[n], active=n == active)
            for n in ledger.rotation_order
        ]

    def status(self) -> StatusReport:
        """Current account status."""
        ledger = self.load_ledger()
        identity = self.host_config.current_identity()
        active = self._active_number(ledger)
        return StatusReport(
            active=ledger.slots.get(active) if active is not None else None,
            live_email=identity.email if identity else None,
            token_override=self.settings.token_override_active(),
            total=len(ledger.slots),
        )
