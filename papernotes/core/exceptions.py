"""Base exceptions for the domain layer."""

from __future__ import annotations


class DomainError(Exception):
    """Base class for all domain level exceptions."""


class NotFoundError(DomainError):
    """Raised when an entity cannot be located."""


class InvalidInputError(DomainError):
    """Raised for malformed caller input (URL, page list, question)."""


class InvalidPageError(InvalidInputError):
    """Raised when a page number is out of range for the current document."""


class ConfigurationError(DomainError):
    """Raised when a required credential or endpoint is not configured."""


class ExtractionServiceError(DomainError):
    """Raised when the remote text extraction service fails."""


class MalformedResponseError(DomainError):
    """Raised when generation output does not match the expected shape."""


class PersistenceError(DomainError):
    """Raised when a store rejects a read or write."""


__all__ = [
    "DomainError",
    "NotFoundError",
    "InvalidInputError",
    "InvalidPageError",
    "ConfigurationError",
    "ExtractionServiceError",
    "MalformedResponseError",
    "PersistenceError",
]
