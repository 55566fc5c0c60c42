from __future__ import annotations

import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List

import httpx

from papernotes.core.exceptions import ConfigurationError, ExtractionServiceError
from papernotes.core.models import Segment
from papernotes.core.settings import Settings, get_settings

logger = logging.getLogger(__name__)


@contextmanager
def transient_pdf(pdf_bytes: bytes, directory: str | Path | None = None) -> Iterator[Path]:
    """Write ``pdf_bytes`` to a temporary file that is removed on exit."""
    fd, name = tempfile.mkstemp(suffix=".pdf", dir=directory)
    path = Path(name)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(pdf_bytes)
        yield path
    finally:
        path.unlink(missing_ok=True)


class TextExtractor:
    """Turns PDF bytes into page-tagged segments via the Unstructured API."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        tmp_dir: str | Path | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.api_key = getattr(self.settings, "unstructured_api_key", "")
        if not self.api_key:
            raise ConfigurationError("UNSTRUCTURED_API_KEY not set")
        self.api_url = self.settings.unstructured_api_url
        self.strategy = getattr(self.settings, "unstructured_strategy", "hi_res")
        self.timeout = float(getattr(self.settings, "http_timeout", 120.0))
        self.client = client
        self.tmp_dir = tmp_dir

    async def extract(self, pdf_bytes: bytes, *, drop_empty: bool = True) -> List[Segment]:
        """Return ordered segments; empty ones are dropped unless ``drop_empty`` is False."""
        with transient_pdf(pdf_bytes, self.tmp_dir) as path:
            elements = await self._partition(path)

        segments = [self._to_segment(el) for el in elements]
        if drop_empty:
            segments = [s for s in segments if s.text.strip()]
        logger.info(
            "pdf_extracted",
            extra={"elements": len(elements), "segments": len(segments)},
        )
        return segments

    # Internal helpers -------------------------------------------------
    async def _partition(self, path: Path) -> List[Any]:
        headers = {"unstructured-api-key": self.api_key, "accept": "application/json"}
        owns_client = self.client is None
        client = self.client or httpx.AsyncClient(timeout=self.timeout)
        try:
            with path.open("rb") as fh:
                response = await client.post(
                    self.api_url,
                    headers=headers,
                    files={"files": (path.name, fh, "application/pdf")},
                    data={"strategy": self.strategy},
                )
        except httpx.HTTPError as exc:
            raise ExtractionServiceError(f"Error contacting extraction service: {exc}") from exc
        finally:
            if owns_client:
                await client.aclose()

        if response.status_code != 200:
            raise ExtractionServiceError(
                f"Extraction service error {response.status_code}: {response.text[:200]}"
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise ExtractionServiceError("Extraction service returned invalid JSON") from exc
        if not isinstance(data, list):
            raise ExtractionServiceError(
                f"Unexpected extraction payload of type {type(data).__name__}"
            )
        return data

    @staticmethod
    def _to_segment(element: Any) -> Segment:
        if not isinstance(element, dict):
            raise ExtractionServiceError(f"Unexpected element: {element!r}"[:200])
        metadata = element.get("metadata") or {}
        page = metadata.get("page_number")
        return Segment(
            text=element.get("text") or "",
            page_number=page if isinstance(page, int) and page >= 1 else None,
        )


__all__ = ["TextExtractor", "transient_pdf"]
