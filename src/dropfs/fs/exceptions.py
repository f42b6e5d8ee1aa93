"""Custom exception hierarchy for the dropfs filesystem layer."""


class DropFSError(Exception):
    """Base exception for all dropfs errors."""


class DirectoryNotEmptyError(DropFSError):
    """Raised when a non-recursive delete targets a directory with children."""


class ConfigurationError(DropFSError):
    """Raised when a backend cannot be built from the supplied configuration."""
