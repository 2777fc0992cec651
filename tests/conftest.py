"""Pytest fixtures for ccswitch tests."""

from __future__ import annotations

import json
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from ccswitch.models import Platform
from ccswitch.settings import TOKEN_ENV_VAR, Settings
from ccswitch.switcher import AccountSwitcher


@pytest.fixture
def temp_home(tmp_path: Path):
    """Create a temporary home directory for testing."""
    home = tmp_path / "home"
    home.mkdir()
    (home / ".claude").mkdir()

    env = {k: v for k, v in os.environ.items() if k != TOKEN_ENV_VAR}
    env.update({"HOME": str(home), "USERPROFILE": str(home)})
    with patch.dict(os.environ, env, clear=True):
        with patch("pathlib.Path.home", return_value=home):
            yield home


@pytest.fixture
def settings(temp_home: Path) -> Settings:
    """File-backed settings regardless of the host running the tests."""
    return Settings(home=temp_home, platform=Platform.LINUX)


@pytest.fixture
def switcher(settings: Settings) -> AccountSwitcher:
    return AccountSwitcher(settings)


def login(
    home: Path,
    email: str,
    uuid: str = "",
    credentials: str | None = None,
    **extra_config,
) -> None:
    """Simulate Claude Code being logged in as ``email``."""
    config = {
        "numStartups": 3,
        "oauthAccount": {
            "emailAddress": email,
            "accountUuid": uuid or f"uuid-{email}",
        },
        **extra_config,
    }
    (home / ".claude" / ".claude.json").write_text(json.dumps(config))
    if credentials is None:
        credentials = json.dumps(
            {"claudeAiOauth": {"accessToken": f"access-{email}", "refreshToken": f"refresh-{email}"}}
        )
    (home / ".claude" / ".credentials.json").write_text(credentials)


@pytest.fixture
def login_as(temp_home: Path):
    def _login(email: str, **kwargs) -> None:
        login(temp_home, email, **kwargs)

    return _login


@pytest.fixture
def mock_claude_config(temp_home: Path):
    """Create a mock Claude configuration file."""
    config = {
        "oauthAccount": {
            "emailAddress": "test@example.com",
            "accountUuid": "test-uuid-1234",
        }
    }
    config_path = temp_home / ".claude" / ".claude.json"
    config_path.write_text(json.dumps(config))
    return config_path


@pytest.fixture
def mock_credentials_file(temp_home: Path):
    """Create a mock credentials file for Linux/WSL."""
    creds = {"accessToken": "test-token", "refreshToken": "test-refresh"}
    cred_path = temp_home / ".claude" / ".credentials.json"
    cred_path.write_text(json.dumps(creds))
    return cred_path


@pytest.fixture
def sample_sequence_data():
    """Sample sequence.json data."""
    return {
        "activeAccountNumber": 1,
        "lastUpdated": "2024-01-01T00:00:00Z",
        "sequence": [1, 2],
        "accounts": {
            "1": {
                "email": "account1@example.com",
                "uuid": "uuid-1",
                "added": "2024-01-01T00:00:00Z",
                "authKind": "oauth",
            },
            "2": {
                "email": "account2@example.com",
                "uuid": "uuid-2",
                "added": "2024-01-02T00:00:00Z",
                "authKind": "token",
            },
        },
    }
