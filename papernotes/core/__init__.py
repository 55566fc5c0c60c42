"""Core library exposing domain models, settings, exceptions and types."""

from .settings import Settings, get_settings
from .exceptions import (
    DomainError,
    NotFoundError,
    InvalidInputError,
    InvalidPageError,
    ConfigurationError,
    ExtractionServiceError,
    MalformedResponseError,
    PersistenceError,
)
from .models import (
    Segment,
    Note,
    PaperRecord,
    EmbeddingRecord,
    RetrievedSegment,
    QaRecord,
    QaResult,
)
from .types import Found, NotFound, StoreError, PaperLookup

__all__ = [
    "Settings",
    "get_settings",
    "DomainError",
    "NotFoundError",
    "InvalidInputError",
    "InvalidPageError",
    "ConfigurationError",
    "ExtractionServiceError",
    "MalformedResponseError",
    "PersistenceError",
    "Segment",
    "Note",
    "PaperRecord",
    "EmbeddingRecord",
    "RetrievedSegment",
    "QaRecord",
    "QaResult",
    "Found",
    "NotFound",
    "StoreError",
    "PaperLookup",
]
