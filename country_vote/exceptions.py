"""Domain-specific exceptions for the Country Vote API."""

from typing import Any


class CountryVoteError(Exception):
    """Base exception for all Country Vote API errors."""

    def __init__(self, message: str, details: Any = None) -> None:
        self.message = message
        self.details = details
        super().__init__(message)


class ValidationError(CountryVoteError):
    """Malformed vote input (not the Pydantic class); details hold per-field messages."""


class DuplicateVoteError(CountryVoteError):
    """The normalized email has already voted."""


class DirectoryUnavailableError(CountryVoteError):
    """The external country directory could not be reached and nothing is cached."""


class StorageUnavailableError(CountryVoteError):
    """Error related to vote storage operations."""


class UniqueConstraintError(StorageUnavailableError):
    """The storage layer rejected a write because of a uniqueness constraint."""


class ConfigurationError(CountryVoteError):
    """Error related to configuration issues."""
