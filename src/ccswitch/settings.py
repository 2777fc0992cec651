"""Paths and environment settings shared by every component."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path

from ccswitch.models import CredentialBackend, Platform

TOKEN_ENV_VAR = "CLAUDE_CODE_OAUTH_TOKEN"


@dataclass(frozen=True)
class Settings:
    """Resolved locations for one run of ccswitch."""

    home: Path
    platform: Platform
    debug: bool = False
    token_env_var: str = TOKEN_ENV_VAR

    @classmethod
    def from_environment(cls, debug: bool = False) -> Settings:
        return cls(home=Path.home(), platform=Platform.detect(), debug=debug)

    @property
    def credential_backend(self) -> CredentialBackend:
        return self.platform.credential_backend

    @property
    def backup_dir(self) -> Path:
        return self.home / ".claude-switch-backup"

    @property
    def sequence_file(self) -> Path:
        return self.backup_dir / "sequence.json"

    @property
    def configs_dir(self) -> Path:
        return self.backup_dir / "configs"

    @property
    def credentials_dir(self) -> Path:
        return self.backup_dir / "credentials"

    @property
    def rc_file(self) -> Path:
        return self.home / ".ccswitchrc"

    @property
    def claude_dir(self) -> Path:
        return self.home / ".claude"

    @property
    def live_credentials_file(self) -> Path:
        return self.claude_dir / ".credentials.json"

    def token_override_active(self) -> bool:
        """True when the token environment variable forces token mode."""
        return self.token_env_var in os.environ

    def setup_directories(self) -> None:
        """Create backup directories with proper permissions."""
        for directory in [self.backup_dir, self.configs_dir, self.credentials_dir]:
            directory.mkdir(parents=True, exist_ok=True)
            if sys.platform != "win32":
                os.chmod(directory, 0o700)
