from __future__ import annotations

import logging

import httpx

from papernotes.core.exceptions import InvalidInputError

logger = logging.getLogger(__name__)

# Same bound as the url column of the vector index, in UTF-8 bytes
MAX_URL_LEN = 2048


def validate_pdf_url(url: str) -> str:
    """Reject anything that is not a URL ending in ``.pdf`` (case-sensitive)."""
    if not isinstance(url, str) or not url.endswith(".pdf"):
        raise InvalidInputError(f"Not a pdf: {url!r}")
    if len(url.encode("utf-8")) > MAX_URL_LEN:
        raise InvalidInputError(f"URL longer than {MAX_URL_LEN} bytes")
    return url


async def fetch_pdf(
    url: str, *, timeout: float = 60.0, client: httpx.AsyncClient | None = None
) -> bytes:
    """Download the PDF at ``url`` and return its raw bytes."""
    validate_pdf_url(url)
    owns_client = client is None
    if client is None:
        client = httpx.AsyncClient(follow_redirects=True, timeout=timeout)
    try:
        response = await client.get(url)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise InvalidInputError(
            f"Fetching {url} failed with status {exc.response.status_code}"
        ) from exc
    except httpx.HTTPError as exc:
        raise InvalidInputError(f"Fetching {url} failed: {exc}") from exc
    finally:
        if owns_client:
            await client.aclose()
    logger.info("pdf_fetched", extra={"url": url, "bytes": len(response.content)})
    return response.content


__all__ = ["validate_pdf_url", "fetch_pdf"]
