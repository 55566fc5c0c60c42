"""PDF fetching, page editing and text extraction."""

from .extractor import TextExtractor, transient_pdf
from .fetcher import fetch_pdf, validate_pdf_url
from .page_editor import page_count, remove_pages

__all__ = [
    "TextExtractor",
    "transient_pdf",
    "fetch_pdf",
    "validate_pdf_url",
    "page_count",
    "remove_pages",
]
