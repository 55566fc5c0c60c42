"""Vector retrieval over stored paper segments."""

from .vector_index import VectorIndex

__all__ = ["VectorIndex"]
