"""Tests for the live Claude config and config backups."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

from ccswitch.exceptions import (
    ConfigNotFoundError,
    InvalidConfigError,
    InvalidStateError,
    MissingBackupError,
)
from ccswitch.host_config import ConfigMirror, HostConfig, Identity
from ccswitch.settings import Settings


class TestHostConfigPath:
    """Test config file location."""

    def test_primary_with_oauth(self, settings: Settings, mock_claude_config: Path):
        assert HostConfig(settings).path() == mock_claude_config

    def test_primary_without_oauth_falls_back(self, settings: Settings, temp_home: Path):
        (temp_home / ".claude" / ".claude.json").write_text(json.dumps({"other": "data"}))
        assert HostConfig(settings).path() == temp_home / ".claude.json"

    def test_primary_invalid_falls_back(self, settings: Settings, temp_home: Path):
        (temp_home / ".claude" / ".claude.json").write_text("{{{")
        assert HostConfig(settings).path() == temp_home / ".claude.json"

    def test_fallback_identity(self, settings: Settings, temp_home: Path):
        (temp_home / ".claude.json").write_text(
            json.dumps({"oauthAccount": {"emailAddress": "home@example.com"}})
        )
        assert HostConfig(settings).current_identity() == Identity("home@example.com", "")


class TestCurrentIdentity:
    """Test getting current account."""

    def test_no_config_file(self, settings: Settings):
        assert HostConfig(settings).current_identity() is None

    def test_with_valid_config(self, settings: Settings, mock_claude_config: Path):
        identity = HostConfig(settings).current_identity()
        assert identity == Identity("test@example.com", "test-uuid-1234")

    def test_config_with_empty_email(self, settings: Settings, temp_home: Path):
        (temp_home / ".claude" / ".claude.json").write_text(
            json.dumps({"oauthAccount": {"emailAddress": "", "accountUuid": "uuid"}})
        )
        assert HostConfig(settings).current_identity() is None

    def test_invalid_config(self, settings: Settings, temp_home: Path):
        (temp_home / ".claude.json").write_text("not json")
        assert HostConfig(settings).current_identity() is None


class TestHostConfigLoadSave:
    def test_load_missing(self, settings: Settings):
        with pytest.raises(ConfigNotFoundError):
            HostConfig(settings).load()

    def test_load_invalid(self, settings: Settings, temp_home: Path):
        (temp_home / ".claude.json").write_text("[1, 2]")
        with pytest.raises(InvalidConfigError):
            HostConfig(settings).load()

    def test_save_keeps_location(self, settings: Settings, mock_claude_config: Path):
        host = HostConfig(settings)
        data = host.load()
        data["theme"] = "dark"

        host.save(data)

        assert json.loads(mock_claude_config.read_text())["theme"] == "dark"


class TestConfigMirror:
    """Test per-account config backups."""

    def test_backup_and_restore(self, settings: Settings):
        mirror = ConfigMirror(settings)
        data = {"oauthAccount": {"emailAddress": "a@example.com"}, "x": [1, 2]}

        mirror.backup(1, "a@example.com", data)

        path = settings.configs_dir / ".claude-config-1-a@example.com.json"
        assert path.read_text() == json.dumps(data, indent=2)
        assert mirror.restore(1, "a@example.com") == data

    @pytest.mark.skipif(sys.platform == "win32", reason="File permissions work differently on Windows")
    def test_backup_is_owner_only(self, settings: Settings):
        mirror = ConfigMirror(settings)
        mirror.backup(1, "a@example.com", {})
        assert mirror.path_for(1, "a@example.com").stat().st_mode & 0o777 == 0o600

    @pytest.mark.skipif(sys.platform == "win32", reason="File permissions work differently on Windows")
    def test_backup_is_created_owner_only(self, settings: Settings):
        mirror = ConfigMirror(settings)
        with patch("ccswitch.ledger.os.chmod"):
            mirror.backup(1, "a@example.com", {"theme": "dark"})
        assert mirror.path_for(1, "a@example.com").stat().st_mode & 0o777 == 0o600

    def test_restore_missing(self, settings: Settings):
        with pytest.raises(MissingBackupError):
            ConfigMirror(settings).restore(1, "a@example.com")

    def test_restore_malformed(self, settings: Settings):
        mirror = ConfigMirror(settings)
        settings.configs_dir.mkdir(parents=True)
        mirror.path_for(1, "a@example.com").write_text("{oops")
        with pytest.raises(InvalidStateError):
            mirror.restore(1, "a@example.com")

    def test_delete_is_best_effort(self, settings: Settings):
        mirror = ConfigMirror(settings)
        mirror.delete(1, "missing@example.com")
        mirror.backup(1, "a@example.com", {})
        mirror.delete(1, "a@example.com")
        assert not mirror.path_for(1, "a@example.com").exists()
