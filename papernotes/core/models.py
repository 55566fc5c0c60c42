"""Pydantic models representing core domain entities."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Segment(BaseModel):
    """One page-tagged unit of extracted paper text."""

    model_config = ConfigDict(frozen=True)

    text: str = ""
    page_number: Optional[int] = Field(default=None, ge=1)
    source_url: Optional[str] = None

    def with_source_url(self, url: str) -> "Segment":
        return self.model_copy(update={"source_url": url})


class Note(BaseModel):
    """A distilled, page-cited fact about a paper."""

    model_config = ConfigDict(populate_by_name=True)

    note: str = Field(..., min_length=1)
    page_numbers: List[int] = Field(default_factory=list, alias="pageNumbers")

    @field_validator("note")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("note must not be blank")
        return value

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class PaperRecord(BaseModel):
    """Persisted paper: full text, source URL, display name and notes."""

    id: Optional[int] = None
    paper: str
    url: str
    name: str
    notes: List[Note] = Field(default_factory=list)
    created_at: Optional[datetime] = None


class EmbeddingRecord(BaseModel):
    """Vector representation of one segment, keyed by the paper URL."""

    text: str
    embedding: List[float]
    url: str
    page_number: Optional[int] = None


class RetrievedSegment(BaseModel):
    """Single hit returned by the vector index."""

    text: str
    url: Optional[str] = None
    page_number: Optional[int] = None
    score: Optional[float] = None


class QaRecord(BaseModel):
    """Logged question/answer exchange."""

    question: str
    answer: str
    context: str
    followup_questions: List[str] = Field(default_factory=list)


class QaResult(QaRecord):
    """Answer returned to the caller, with the hits the context was built from."""

    sources: List[RetrievedSegment] = Field(default_factory=list)


__all__ = [
    "Segment",
    "Note",
    "PaperRecord",
    "EmbeddingRecord",
    "RetrievedSegment",
    "QaRecord",
    "QaResult",
]
