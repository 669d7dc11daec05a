"""Exception hierarchy for Credo Mastery."""


class CredoError(Exception):
    """Base class for all user-facing errors."""


class CatalogError(CredoError):
    """The content catalog could not be loaded or failed validation."""


class BackupError(CredoError):
    """A backup file could not be parsed; nothing was imported."""


class NotFoundError(CredoError):
    """A referenced credo, goal or card does not exist."""


class ValidationError(CredoError):
    """User input was rejected before any state changed."""
