import sys
from pathlib import Path
from typing import List

import fitz
import pytest

# Ensure project root on sys.path
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from papernotes.core.settings import Settings  # noqa: E402


def make_pdf(pages: List[str]) -> bytes:
    """Build an in-memory PDF with one page per entry; "" gives a blank page."""
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


def page_texts(pdf: bytes) -> List[str]:
    with fitz.open(stream=pdf, filetype="pdf") as doc:
        return [page.get_text().strip() for page in doc]


@pytest.fixture()
def settings() -> Settings:
    """Settings isolated from the developer's environment and .env file."""
    return Settings(
        _env_file=None,
        unstructured_api_key="test-key",
        unstructured_api_url="https://extract.test/general/v0/general",
        postgres_uri="sqlite+aiosqlite://",
        milvus_uri="milvus:19530",
        prompts_path=ROOT / "config" / "prompts.yaml",
    )


@pytest.fixture()
def pdf_factory():
    return make_pdf


@pytest.fixture()
def read_pages():
    return page_texts
