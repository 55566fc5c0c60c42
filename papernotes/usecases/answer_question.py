from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from papernotes.core.exceptions import (
    InvalidInputError,
    MalformedResponseError,
    PersistenceError,
)
from papernotes.core.models import QaResult, RetrievedSegment
from papernotes.core.settings import Settings, get_settings
from papernotes.db import QaStore
from papernotes.llm import EmbeddingsProvider, LLMClient, ToolCall
from papernotes.rag import VectorIndex

logger = logging.getLogger(__name__)

ANSWER_TOOL_NAME = "formatAnswer"

ANSWER_TOOL_SCHEMA: Dict[str, Any] = {
    "type": "function",
    "function": {
        "name": ANSWER_TOOL_NAME,
        "description": "Formats the answer to a question about a paper",
        "parameters": {
            "type": "object",
            "properties": {
                "answer": {
                    "type": "string",
                    "description": "The answer to the question",
                },
                "followupQuestions": {
                    "type": "array",
                    "items": {
                        "type": "string",
                        "description": "Follow up questions the reader may have",
                    },
                },
            },
            "required": ["answer"],
        },
    },
}


def assemble_context(hits: Sequence[RetrievedSegment], max_chars: int) -> str:
    """Join hit texts in rank order, cutting the last one to stay within ``max_chars``."""
    parts: List[str] = []
    size = 0
    for hit in hits:
        sep = 2 if parts else 0
        room = max_chars - size - sep
        if room <= 0:
            break
        text = hit.text[:room]
        parts.append(text)
        size += sep + len(text)
        if len(text) < len(hit.text):
            break
    return "\n\n".join(parts)


def parse_answer_tool_calls(tool_calls: Sequence[ToolCall]) -> Tuple[str, List[str]]:
    """Return ``(answer, followup_questions)`` from the first answer tool call."""
    if not tool_calls:
        raise MalformedResponseError("No tool calls found")
    call = next((c for c in tool_calls if c.name == ANSWER_TOOL_NAME), tool_calls[0])
    try:
        args = json.loads(call.arguments)
    except (TypeError, ValueError) as exc:
        raise MalformedResponseError("Answer tool arguments are not valid JSON") from exc
    if not isinstance(args, dict):
        raise MalformedResponseError("Answer tool arguments are not an object")

    answer = args.get("answer")
    if not isinstance(answer, str) or not answer.strip():
        raise MalformedResponseError("Answer tool call has no 'answer'")
    followups = args.get("followupQuestions") or []
    if not isinstance(followups, list) or not all(isinstance(q, str) for q in followups):
        raise MalformedResponseError("'followupQuestions' must be a list of strings")
    return answer, followups


class AnswerQuestion:
    """Retrieve relevant segments, synthesize a grounded answer and log the exchange."""

    def __init__(
        self,
        llm: LLMClient,
        embeddings: EmbeddingsProvider,
        index: VectorIndex,
        store: QaStore,
        settings: Settings | None = None,
        *,
        k: Optional[int] = None,
        max_context_chars: Optional[int] = None,
        scope_to_url: Optional[bool] = None,
    ) -> None:
        settings = settings or get_settings()
        self.llm = llm
        self.embeddings = embeddings
        self.index = index
        self.store = store
        self.model = settings.qa_model
        self.k = k if k is not None else settings.qa_top_k
        self.max_context_chars = (
            max_context_chars
            if max_context_chars is not None
            else settings.qa_max_context_chars
        )
        self.scope_to_url = (
            scope_to_url if scope_to_url is not None else settings.qa_scope_to_url
        )

    # ------------------------------------------------------------------
    async def __call__(self, question: str, url: str) -> QaResult:
        if not question or not question.strip():
            raise InvalidInputError("Question must not be empty")

        hits = await self._retrieve(question, url)
        context = assemble_context(hits, self.max_context_chars)
        answer, followups = await asyncio.to_thread(self._synthesize, question, context)

        await self.store.save_qa(question, answer, context, followups)
        logger.info(
            "question_answered",
            extra={"url": url, "hits": len(hits), "followups": len(followups)},
        )
        return QaResult(
            question=question,
            answer=answer,
            context=context,
            followup_questions=followups,
            sources=hits,
        )

    async def _retrieve(self, question: str, url: str) -> List[RetrievedSegment]:
        query_vec = await asyncio.to_thread(self.embeddings.embed_query, question)
        try:
            return await asyncio.to_thread(
                self.index.search,
                query_vec,
                self.k,
                url if self.scope_to_url else None,
            )
        except Exception as exc:
            raise PersistenceError(f"Similarity search failed: {exc}") from exc

    def _synthesize(self, question: str, context: str) -> Tuple[str, List[str]]:
        tool_calls = self.llm.invoke_tools(
            self.model,
            self.llm.prompt("qa", "system"),
            self.llm.prompt("qa", "user").format(question=question, context=context),
            [ANSWER_TOOL_SCHEMA],
        )
        return parse_answer_tool_calls(tool_calls)


__all__ = [
    "ANSWER_TOOL_SCHEMA",
    "AnswerQuestion",
    "assemble_context",
    "parse_answer_tool_calls",
]
