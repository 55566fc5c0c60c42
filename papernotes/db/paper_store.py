from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from papernotes.core.exceptions import PersistenceError
from papernotes.core.models import EmbeddingRecord, Note, PaperRecord, Segment
from papernotes.core.types import Found, NotFound, PaperLookup, StoreError
from papernotes.llm import EmbeddingsProvider
from papernotes.rag import VectorIndex
from . import models
from .repositories import PaperRepo

logger = logging.getLogger(__name__)


def _to_record(row: models.Paper) -> PaperRecord:
    return PaperRecord(
        id=row.id,
        paper=row.paper,
        url=row.url,
        name=row.name,
        notes=[Note.model_validate(n) for n in row.notes or []],
        created_at=row.created_at,
    )


class PaperStore:
    """Paper records in the relational store, segment embeddings in the vector index.

    The two writes are independent: a failed embedding write does not undo a
    stored paper row and vice versa.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        embeddings: EmbeddingsProvider | None = None,
        index: VectorIndex | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.embeddings = embeddings
        self.index = index

    async def add_paper(
        self, paper: str, url: str, name: str, notes: Sequence[Note]
    ) -> None:
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    await PaperRepo(session).create(
                        paper=paper,
                        url=url,
                        name=name,
                        notes=[n.to_json() for n in notes],
                    )
        except SQLAlchemyError as exc:
            logger.error("paper_write_failed", extra={"url": url, "detail": str(exc)})
            raise PersistenceError(f"Error adding paper to database: {exc}") from exc
        logger.info("paper_saved", extra={"url": url, "notes": len(notes)})

    async def lookup_paper(self, url: str) -> PaperLookup:
        """Fetch the first record for ``url`` keeping absent and failed apart."""
        try:
            async with self.session_factory() as session:
                row = await PaperRepo(session).first_by_url(url)
                record = _to_record(row) if row is not None else None
        except (SQLAlchemyError, ValueError) as exc:
            return StoreError(url=url, error=exc)
        if record is None:
            return NotFound(url=url)
        return Found(record=record)

    async def get_paper(self, url: str) -> Optional[PaperRecord]:
        """Return the first record for ``url``; ``None`` when absent or on error."""
        result = await self.lookup_paper(url)
        if isinstance(result, Found):
            return result.record
        if isinstance(result, StoreError):
            logger.error(
                "paper_lookup_failed",
                extra={"url": url, "detail": str(result.error)},
            )
        else:
            logger.info("paper_not_found", extra={"url": url})
        return None

    async def add_embeddings(
        self, segments: Sequence[Segment], metadata: Dict[str, Any] | None = None
    ) -> None:
        """Embed each segment and insert it into the vector index.

        ``metadata["url"]`` overrides each segment's own ``source_url``.
        """
        if self.embeddings is None or self.index is None:
            raise PersistenceError("Embedding store is not configured")
        metadata = metadata or {}
        if not segments:
            return
        try:
            vectors = await asyncio.to_thread(
                self.embeddings.embed_texts, [s.text for s in segments]
            )
            records: List[EmbeddingRecord] = [
                EmbeddingRecord(
                    text=seg.text,
                    embedding=vec,
                    url=metadata.get("url") or seg.source_url or "",
                    page_number=seg.page_number,
                )
                for seg, vec in zip(segments, vectors)
            ]
            await asyncio.to_thread(self.index.insert_embeddings, records)
        except Exception as exc:
            logger.error(
                "embedding_write_failed",
                extra={"url": metadata.get("url"), "detail": str(exc)},
            )
            raise PersistenceError(f"Error adding embeddings: {exc}") from exc
        logger.info(
            "embeddings_saved", extra={"url": metadata.get("url"), "count": len(records)}
        )


__all__ = ["PaperStore"]
