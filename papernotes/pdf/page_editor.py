from __future__ import annotations

import logging
from typing import Optional, Sequence

import fitz  # PyMuPDF

from papernotes.core.exceptions import InvalidInputError, InvalidPageError

logger = logging.getLogger(__name__)


def _open(pdf_bytes: bytes) -> fitz.Document:
    try:
        return fitz.open(stream=pdf_bytes, filetype="pdf")
    except Exception as exc:
        raise InvalidInputError(f"Could not open PDF: {exc}") from exc


def page_count(pdf_bytes: bytes) -> int:
    with _open(pdf_bytes) as doc:
        return doc.page_count


def remove_pages(pdf_bytes: bytes, page_numbers: Optional[Sequence[int]]) -> bytes:
    """Remove 1-based ``page_numbers`` from a PDF and return the new bytes.

    Pages are removed one at a time in the order given. Every removal shifts
    the pages after it down by one, so the n-th requested page is removed at
    index ``page - n`` (0-based). Results only match the caller's intent when
    the list is ascending and free of duplicates; ``[5, 2]`` removes pages 5
    and 1 of the original document, not 5 and 2.
    """
    if not page_numbers:
        return pdf_bytes

    with _open(pdf_bytes) as doc:
        offset = 1
        for page in page_numbers:
            index = page - offset
            if index < 0 or index >= doc.page_count:
                raise InvalidPageError(
                    f"Page {page} is out of range (document has {doc.page_count} "
                    f"pages after {offset - 1} removals)"
                )
            doc.delete_page(index)
            offset += 1
        if doc.page_count == 0:
            raise InvalidInputError("Cannot remove every page of the document")
        logger.debug(
            "pages_removed", extra={"pages": list(page_numbers), "remaining": doc.page_count}
        )
        return doc.tobytes()


__all__ = ["remove_pages", "page_count"]
