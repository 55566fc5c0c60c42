from __future__ import annotations

from contextlib import asynccontextmanager
from functools import partial
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import Depends, FastAPI, Query, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from papernotes.core import (
    ConfigurationError,
    DomainError,
    ExtractionServiceError,
    InvalidInputError,
    MalformedResponseError,
    NotFoundError,
    PersistenceError,
    get_settings,
)
from papernotes.db import PaperStore, QaStore, get_sessionmaker
from papernotes.llm import EmbeddingsProvider, LLMClientError, ReplicateLLMClient
from papernotes.logging import setup_logging
from papernotes.notes import NoteGenerator
from papernotes.pdf import TextExtractor, fetch_pdf
from papernotes.rag import VectorIndex
from papernotes.usecases import AnswerQuestion, TakeNotes

# Most specific first: InvalidPageError is an InvalidInputError
_STATUS_BY_ERROR = [
    (InvalidInputError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConfigurationError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (ExtractionServiceError, status.HTTP_502_BAD_GATEWAY),
    (MalformedResponseError, status.HTTP_502_BAD_GATEWAY),
    (LLMClientError, status.HTTP_502_BAD_GATEWAY),
    (PersistenceError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def status_for(exc: DomainError) -> int:
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


# ---------------------------------------------------------------------------
# Dependency factories


def get_llm_client() -> ReplicateLLMClient:
    return ReplicateLLMClient()


def get_embeddings_provider() -> EmbeddingsProvider:
    return EmbeddingsProvider()


def get_index() -> VectorIndex:
    return VectorIndex()


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return get_sessionmaker()


def get_extractor() -> TextExtractor:
    return TextExtractor()


def get_paper_store(
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> PaperStore:
    return PaperStore(factory)


def take_notes_uc(
    extractor: TextExtractor = Depends(get_extractor),
    llm: ReplicateLLMClient = Depends(get_llm_client),
    emb: EmbeddingsProvider = Depends(get_embeddings_provider),
    index: VectorIndex = Depends(get_index),
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> TakeNotes:
    settings = get_settings()
    return TakeNotes(
        extractor,
        NoteGenerator(llm),
        PaperStore(factory, emb, index),
        fetcher=partial(fetch_pdf, timeout=settings.http_timeout),
    )


def answer_question_uc(
    llm: ReplicateLLMClient = Depends(get_llm_client),
    emb: EmbeddingsProvider = Depends(get_embeddings_provider),
    index: VectorIndex = Depends(get_index),
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> AnswerQuestion:
    return AnswerQuestion(llm, emb, index, QaStore(factory))


# ---------------------------------------------------------------------------
# Pydantic schemas


class TakeNotesRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    paper_url: str = Field(..., alias="paperUrl")
    name: str
    pages_to_delete: Optional[List[int]] = Field(default=None, alias="pagesToDelete")


class QaRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question: str
    paper_url: str = Field(..., alias="paperUrl")


# ---------------------------------------------------------------------------
# FastAPI application


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    setup_logging()
    yield


app = FastAPI(title="Paper Notes API", lifespan=lifespan)


@app.exception_handler(DomainError)
async def domain_error_handler(_: Request, exc: DomainError) -> JSONResponse:
    return JSONResponse(status_code=status_for(exc), content={"detail": str(exc)})


@app.get("/", response_class=PlainTextResponse)
def health() -> str:
    return "OK"


@app.post("/take-notes")
async def take_notes(
    req: TakeNotesRequest,
    uc: TakeNotes = Depends(take_notes_uc),
) -> Dict[str, Any]:
    notes = await uc(req.paper_url, req.name, req.pages_to_delete)
    return {"notes": [n.to_json() for n in notes]}


@app.post("/qa")
async def question_answering(
    req: QaRequest,
    uc: AnswerQuestion = Depends(answer_question_uc),
) -> Dict[str, Any]:
    result = await uc(req.question, req.paper_url)
    return {
        "answer": result.answer,
        "followupQuestions": result.followup_questions,
        "context": result.context,
    }


@app.get("/papers")
async def get_paper(
    url: str = Query(...),
    store: PaperStore = Depends(get_paper_store),
) -> Dict[str, Any]:
    record = await store.get_paper(url)
    if record is None:
        raise NotFoundError(f"Paper not found: {url}")
    return {
        "url": record.url,
        "name": record.name,
        "paper": record.paper,
        "notes": [n.to_json() for n in record.notes],
    }


__all__ = ["app"]
