"""Command-line interface for ccswitch."""

from __future__ import annotations

import argparse
import getpass
import os
import sys

from ccswitch import __version__
from ccswitch.exceptions import CCSwitchError
from ccswitch.interactive import run_interactive
from ccswitch.models import AuthKind, OutcomeKind, is_running_in_container
from ccswitch.switcher import AccountSwitcher, default_token_label


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ccswitch",
        description="Multi-Account Switcher for Claude Code",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Run without a command to open the interactive picker.

Examples:
  %(prog)s add
  %(prog)s list
  %(prog)s switch
  %(prog)s switch 2
  %(prog)s switch user@example.com
  %(prog)s remove user@example.com
  %(prog)s status
        """,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    commands = parser.add_subparsers(dest="command", metavar="COMMAND")
    commands.add_parser("add", help="Add the currently logged-in account to managed accounts")
    remove = commands.add_parser("remove", help="Remove a managed account by number or email")
    remove.add_argument("account", metavar="NUM|EMAIL")
    remove.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")
    commands.add_parser("list", aliases=["ls"], help="List all managed accounts")
    commands.add_parser("status", help="Show the currently active account")
    switch = commands.add_parser(
        "switch", help="Switch accounts; rotates to the next one if no account is given"
    )
    switch.add_argument("account", metavar="NUM|EMAIL", nargs="?")
    return parser


def print_accounts(switcher: AccountSwitcher) -> None:
    rows = switcher.list_accounts()
    if not rows:
        print("No accounts are managed yet. Run 'ccswitch add' to add the current account.")
        return
    print("Accounts:")
    for row in rows:
        badge = " [token]" if row.slot.is_token else ""
        suffix = " (active)" if row.active else ""
        print(f"  {row.slot.number}: {row.slot.email}{badge}{suffix}")


def print_status(switcher: AccountSwitcher) -> None:
    report = switcher.status()
    if report.active is not None:
        badge = " [token]" if report.active.is_token else ""
        print(f"Status: Account-{report.active.number} ({report.active.email}){badge}")
        print(f"  Total managed accounts: {report.total}")
    elif report.live_email:
        print(f"Status: Active account: {report.live_email} (not managed)")
    elif report.token_override:
        print("Status: Token active (not managed - run 'ccswitch add')")
    else:
        print("Status: No active Claude account")


def add_account(switcher: AccountSwitcher) -> None:
    if switcher.detect_auth_mode() is AuthKind.OAUTH:
        outcome = switcher.add_oauth()
        print(outcome.message)
        return

    print("No active Claude account found via OAuth.")
    print("Looks like you're using a long-lived token (claude setup-token).")
    token = getpass.getpass("Paste your token (sk-ant-oat01-...): ").strip()
    if not token:
        print("No token provided.")
        sys.exit(1)
    default_label = default_token_label()
    label = input(f"Email / label for this account [{default_label}]: ").strip()

    outcome = switcher.add_token(token, label or default_label)
    print(outcome.message)
    if outcome.rc_file_created:
        print()
        print("One-time setup: add this line to ~/.zshrc (or ~/.bashrc):")
        print(f"    source {switcher.settings.rc_file}")
        print("Then open a new terminal; ccswitch will set")
        print(f"{switcher.settings.token_env_var} automatically on every switch.")


def remove_account(switcher: AccountSwitcher, identifier: str, assume_yes: bool) -> None:
    ledger = switcher.load_ledger()
    if not assume_yes and ledger.slots:
        number = ledger.resolve(identifier)
        if number is not None:
            slot = ledger.slots[number]
            if ledger.active_slot == number:
                print(f"Warning: Account-{number} ({slot.email}) is currently active")
            confirm = input(
                f"Are you sure you want to permanently remove "
                f"Account-{number} ({slot.email})? [y/N] "
            )
            if confirm.strip().lower() != "y":
                print("Cancelled")
                return
    outcome = switcher.remove(identifier)
    print(f"Account-{outcome.slot.number} ({outcome.slot.email}) has been removed")


def switch_account(switcher: AccountSwitcher, identifier: str | None) -> None:
    if identifier is None:
        outcome = switcher.switch_next()
    else:
        outcome = switcher.switch_to(identifier)

    print(outcome.message)
    if outcome.kind is OutcomeKind.ADDED:
        print("The current login was not managed, so it has been added.")
        print("Run `ccswitch switch` again to rotate to the next account.")
        return
    if outcome.kind is not OutcomeKind.SWITCHED:
        return
    print_accounts(switcher)
    print()
    if outcome.slot.is_token:
        print("Restart Claude Code and open a new shell for the token to take effect.")
    else:
        print("Please restart Claude Code to use the new authentication.")
    print()


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the CLI."""
    args = build_parser().parse_args(argv)

    switcher = AccountSwitcher(debug=args.debug)

    # Check for root (unless in container) - POSIX only
    if sys.platform != "win32":
        if os.geteuid() == 0 and not is_running_in_container(switcher.settings.platform):
            print("Error: Do not run this script as root (unless running in a container)")
            sys.exit(1)

    try:
        if args.command is None:
            run_interactive(switcher)
        elif args.command == "add":
            add_account(switcher)
        elif args.command == "remove":
            remove_account(switcher, args.account, args.yes)
        elif args.command in ("list", "ls"):
            print_accounts(switcher)
        elif args.command == "status":
            print_status(switcher)
        elif args.command == "switch":
            switch_account(switcher, args.account)
    except CCSwitchError as e:
        print(f"Error: {e}")
        sys.exit(1)
    except EOFError:
        print("\nCancelled")
    except KeyboardInterrupt:
        print("\nOperation cancelled")
        sys.exit(130)


if __name__ == "__main__":
    main()
