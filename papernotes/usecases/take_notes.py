from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Sequence

from papernotes.core.exceptions import ExtractionServiceError, InvalidInputError
from papernotes.core.models import Note
from papernotes.db import PaperStore
from papernotes.notes import NoteGenerator, join_segments
from papernotes.pdf import TextExtractor, fetch_pdf, remove_pages, validate_pdf_url

logger = logging.getLogger(__name__)

PdfFetcher = Callable[[str], Awaitable[bytes]]


def _check_pages(pages_to_delete: Optional[Sequence[int]]) -> List[int]:
    pages = list(pages_to_delete or [])
    for page in pages:
        if isinstance(page, bool) or not isinstance(page, int) or page < 1:
            raise InvalidInputError(f"Invalid page number: {page!r}")
    return pages


class TakeNotes:
    """Pipeline: fetch PDF, drop pages, extract text, generate notes, persist."""

    def __init__(
        self,
        extractor: TextExtractor,
        generator: NoteGenerator,
        store: PaperStore,
        fetcher: PdfFetcher = fetch_pdf,
    ) -> None:
        self.extractor = extractor
        self.generator = generator
        self.store = store
        self.fetcher = fetcher

    # ------------------------------------------------------------------
    async def __call__(
        self,
        paper_url: str,
        name: str,
        pages_to_delete: Optional[Sequence[int]] = None,
    ) -> List[Note]:
        validate_pdf_url(paper_url)
        pages = _check_pages(pages_to_delete)
        logger.info(
            "take_notes_started", extra={"url": paper_url, "pages_to_delete": pages}
        )

        pdf = await self.fetcher(paper_url)
        if pages:
            pdf = await asyncio.to_thread(remove_pages, pdf, pages)

        segments = await self.extractor.extract(pdf)
        if not segments:
            raise ExtractionServiceError(f"No text extracted from {paper_url}")

        notes = await asyncio.to_thread(self.generator.generate_notes, segments)

        tagged = [s.with_source_url(paper_url) for s in segments]
        results = await asyncio.gather(
            self.store.add_paper(
                paper=join_segments(tagged),
                url=paper_url,
                name=name,
                notes=notes,
            ),
            self.store.add_embeddings(tagged, {"url": paper_url}),
            return_exceptions=True,
        )
        errors = [r for r in results if isinstance(r, BaseException)]
        if errors:
            # The write that succeeded is left in place
            logger.error(
                "take_notes_partial_write",
                extra={
                    "url": paper_url,
                    "paper_saved": not isinstance(results[0], BaseException),
                    "embeddings_saved": not isinstance(results[1], BaseException),
                },
            )
            raise errors[0]

        logger.info("take_notes_finished", extra={"url": paper_url, "notes": len(notes)})
        return notes


__all__ = ["TakeNotes"]
