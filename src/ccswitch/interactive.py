"""Interactive account picker.

Mutating engine calls only happen from ``InteractiveSession.confirm``; the
request methods merely move the session into ``PendingConfirmation``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Union

from ccswitch.exceptions import CCSwitchError
from ccswitch.models import AccountRow, AuthKind, Outcome, OutcomeKind
from ccswitch.switcher import AccountSwitcher


@dataclass(frozen=True)
class SwitchAction:
    number: int
    email: str

    def prompt(self) -> str:
        return f"Switch to Account {self.number} ({self.email})?"


@dataclass(frozen=True)
class RemoveAction:
    number: int
    email: str

    def prompt(self) -> str:
        return f"Remove Account {self.number} ({self.email})?"


@dataclass(frozen=True)
class AddAction:
    email: str

    def prompt(self) -> str:
        return f"Add {self.email} to managed accounts?"


Action = Union[SwitchAction, RemoveAction, AddAction]


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class PendingConfirmation:
    action: Action


@dataclass(frozen=True)
class Completed:
    outcome: Outcome

    @property
    def needs_new_shell(self) -> bool:
        return self.outcome.slot.is_token


State = Union[Idle, PendingConfirmation, Completed]


@dataclass
class Flash:
    message: str
    is_error: bool = False


class InteractiveSession:
    """Confirm-then-act state machine over an ``AccountSwitcher``."""

    def __init__(self, switcher: AccountSwitcher):
        self.switcher = switcher
        self.state: State = Idle()
        self.flash: Flash | None = None
        self.rows: list[AccountRow] = []
        self.reload()

    def reload(self) -> None:
        self.rows = self.switcher.list_accounts()

    def row(self, number: int) -> AccountRow | None:
        for row in self.rows:
            if row.slot.number == number:
                return row
        return None

    def request_switch(self, number: int) -> None:
        row = self.row(number)
        if row is None:
            self.flash = Flash(f"No account {number}", is_error=True)
        elif row.active:
            self.flash = Flash("Already the active account")
        else:
            self.state = PendingConfirmation(SwitchAction(number, row.slot.email))

    def request_remove(self, number: int) -> None:
        row = self.row(number)
        if row is None:
            self.flash = Flash(f"No account {number}", is_error=True)
        else:
            self.state = PendingConfirmation(RemoveAction(number, row.slot.email))

    def request_add(self) -> None:
        if self.switcher.detect_auth_mode() is AuthKind.TOKEN:
            if self.switcher.settings.token_override_active():
                self.flash = Flash("Token accounts: run  ccswitch add  in a terminal to set up")
            else:
                self.flash = Flash(
                    "No active Claude account found - log in to Claude Code first",
                    is_error=True,
                )
            return
        identity = self.switcher.host_config.current_identity()
        if any(row.slot.email == identity.email for row in self.rows):
            self.flash = Flash(f"{identity.email} is already managed")
        else:
            self.state = PendingConfirmation(AddAction(identity.email))

    def cancel(self) -> None:
        if isinstance(self.state, PendingConfirmation):
            self.state = Idle()
            self.flash = Flash("Cancelled")

    def confirm(self) -> None:
        """Run the pending action."""
        if not isinstance(self.state, PendingConfirmation):
            return
        action = self.state.action
        self.state = Idle()
        try:
            if isinstance(action, SwitchAction):
                outcome = self.switcher.switch(action.number)
            elif isinstance(action, RemoveAction):
                outcome = self.switcher.remove(action.number)
            else:
                outcome = self.switcher.add_oauth()
        except CCSwitchError as e:
            verb = type(action).__name__.replace("Action", "")
            self.flash = Flash(f"{verb} failed: {e}", is_error=True)
            return

        self.reload()
        if outcome.kind is OutcomeKind.SWITCHED:
            self.state = Completed(outcome)
        else:
            self.flash = Flash(outcome.message)


HELP = "[number] switch  d [number] remove  a add  q quit"


def render(session: InteractiveSession, output: Callable[[str], None]) -> None:
    output("")
    output("  Managed Accounts")
    output("  " + "-" * 40)
    if not session.rows:
        output("  No accounts managed yet. Press 'a' to add the current account.")
    for row in session.rows:
        badge = " [token]" if row.slot.is_token else ""
        marker = ">" if row.active else " "
        suffix = "  (active)" if row.active else ""
        output(f"  {marker} {row.slot.number:>2}  {row.slot.email}{badge}{suffix}")
    output("  " + "-" * 40)
    if session.flash:
        prefix = "!" if session.flash.is_error else "·"
        output(f"  {prefix} {session.flash.message}")
        session.flash = None
    output(f"  {HELP}")


def run_interactive(
    switcher: AccountSwitcher,
    input_fn: Callable[[str], str] = input,
    output: Callable[[str], None] = print,
) -> None:
    """Line-based picker loop."""
    session = InteractiveSession(switcher)
    while True:
        if isinstance(session.state, PendingConfirmation):
            try:
                answer = input_fn(f"  {session.state.action.prompt()} [y/N] ").strip()
            except EOFError:
                answer = ""
            if answer.lower() == "y":
                session.confirm()
            else:
                session.cancel()
            continue

        if isinstance(session.state, Completed):
            output(f"\n  {session.state.outcome.message}")
            if session.state.needs_new_shell:
                output("  Restart Claude Code · open a new shell for token to take effect")
            else:
                output("  Restart Claude Code to apply.")
            return

        render(session, output)
        try:
            command = input_fn("  > ").strip()
        except EOFError:
            return
        if command in ("q", "quit"):
            return
        parts = command.split()
        if not parts:
            continue
        if parts[0] == "a":
            session.request_add()
        elif parts[0] == "d" and len(parts) == 2 and parts[1].isascii() and parts[1].isdigit():
            session.request_remove(int(parts[1]))
        elif parts[0].isascii() and parts[0].isdigit():
            session.request_switch(int(parts[0]))
        else:
            session.flash = Flash(f"Unknown command: {command}", is_error=True)
