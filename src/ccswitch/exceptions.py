"""Custom exceptions for ccswitch."""


class CCSwitchError(Exception):
    """Base exception for ccswitch errors."""

    pass


class NotFoundError(CCSwitchError):
    """Something the operation needs does not exist."""

    pass


class AccountNotFoundError(NotFoundError):
    """Account not found."""

    pass


class NoActiveAccountError(NotFoundError):
    """No active account could be determined."""

    pass


class NotEnoughAccountsError(NotFoundError):
    """Rotation needs at least two managed accounts."""

    pass


class MissingBackupError(NotFoundError):
    """A slot has no credential or config backup."""

    pass


class CredentialNotFoundError(NotFoundError):
    """No credential stored under the requested service."""

    pass


class ConfigNotFoundError(NotFoundError):
    """Claude config file not found."""

    pass


class InvalidStateError(CCSwitchError):
    """Persisted data is malformed and will not be repaired automatically."""

    pass


class InvalidConfigError(InvalidStateError):
    """Claude config or config backup is malformed."""

    pass


class StorageError(CCSwitchError):
    """Filesystem or external command failure."""

    pass


class CredentialReadError(StorageError):
    """Failed to read credentials."""

    pass


class CredentialWriteError(StorageError):
    """Failed to write credentials."""

    pass
