"""Commonly used typing helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeAlias, Union

from .models import PaperRecord


@dataclass(frozen=True)
class Found:
    record: PaperRecord


@dataclass(frozen=True)
class NotFound:
    url: str


@dataclass(frozen=True)
class StoreError:
    url: str
    error: Exception


# Outcome of a paper lookup that keeps "absent" and "store failed" apart.
PaperLookup: TypeAlias = Union[Found, NotFound, StoreError]

__all__ = ["Found", "NotFound", "StoreError", "PaperLookup"]
