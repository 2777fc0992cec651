"""Tests for the CLI module."""

from __future__ import annotations

import json
import os
import subprocess
import sys
from pathlib import Path

from ccswitch import __version__


def run_cli(home: Path | None, *args: str, input: str | None = None):
    env = {k: v for k, v in os.environ.items() if k != "CLAUDE_CODE_OAUTH_TOKEN"}
    # Allow the suite to run as root inside CI containers
    env["CONTAINER"] = "1"
    if home is not None:
        env["HOME"] = str(home)
        env["USERPROFILE"] = str(home)
    return subprocess.run(
        [sys.executable, "-m", "ccswitch", *args],
        capture_output=True,
        text=True,
        input=input,
        env=env,
    )


class TestCLI:
    """Test CLI argument parsing and execution."""

    def test_version_flag(self):
        result = run_cli(None, "--version")
        assert result.returncode == 0
        assert __version__ in result.stdout

    def test_help_flag(self):
        result = run_cli(None, "--help")
        assert result.returncode == 0
        assert "Multi-Account Switcher" in result.stdout
        for command in ("add", "remove", "list", "status", "switch"):
            assert command in result.stdout

    def test_unknown_command(self):
        result = run_cli(None, "frobnicate")
        assert result.returncode != 0
        assert "invalid choice" in result.stderr.lower()


class TestCLICommands:
    """Test individual CLI commands."""

    def test_status_no_account(self, temp_home: Path):
        result = run_cli(temp_home, "status")
        assert result.returncode == 0
        assert "No active Claude account" in result.stdout

    def test_list_no_accounts(self, temp_home: Path):
        result = run_cli(temp_home, "list")
        assert result.returncode == 0
        assert "No accounts are managed yet" in result.stdout

    def test_switch_without_accounts_fails(self, temp_home: Path):
        result = run_cli(temp_home, "switch")
        assert result.returncode == 1
        assert "Error:" in result.stdout

    def test_malformed_ledger_fails(self, temp_home: Path):
        backup_dir = temp_home / ".claude-switch-backup"
        backup_dir.mkdir()
        (backup_dir / "sequence.json").write_text("{oops")

        result = run_cli(temp_home, "list")

        assert result.returncode == 1
        assert "Invalid JSON" in result.stdout

    def test_add_list_remove(self, temp_home: Path, login_as):
        login_as("alice@x.com")

        added = run_cli(temp_home, "add")
        listed = run_cli(temp_home, "ls")
        cancelled = run_cli(temp_home, "remove", "1", input="n\n")
        removed = run_cli(temp_home, "remove", "alice@x.com", "--yes")

        assert added.returncode == 0
        assert "Added alice@x.com as Account 1" in added.stdout
        assert "1: alice@x.com (active)" in listed.stdout
        assert "Cancelled" in cancelled.stdout
        assert removed.returncode == 0
        assert "has been removed" in removed.stdout
        data = json.loads((temp_home / ".claude-switch-backup" / "sequence.json").read_text())
        assert data["accounts"] == {}

    def test_switch_non_ascii_digit(self, temp_home: Path, login_as):
        login_as("alice@x.com")
        run_cli(temp_home, "add")

        result = run_cli(temp_home, "switch", "²")

        assert result.returncode == 1
        assert "Error:" in result.stdout
        assert "Traceback" not in result.stderr

    def test_rotate_adds_unmanaged_login(self, temp_home: Path, login_as):
        for email in ("alice@x.com", "bob@x.com", "carol@x.com"):
            login_as(email)
            run_cli(temp_home, "add")
        run_cli(temp_home, "remove", "carol@x.com", "--yes")

        result = run_cli(temp_home, "switch")

        assert result.returncode == 0
        assert "Added carol@x.com as Account 3" in result.stdout
        assert "switch` again" in result.stdout
