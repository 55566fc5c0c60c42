from __future__ import annotations

import logging
from typing import Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from papernotes.core.exceptions import PersistenceError
from .repositories import QaRepo

logger = logging.getLogger(__name__)


class QaStore:
    """Write-only log of question/answer exchanges. Failures always propagate."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def save_qa(
        self,
        question: str,
        answer: str,
        context: str,
        followup_questions: Sequence[str],
    ) -> None:
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    await QaRepo(session).create(
                        question=question,
                        answer=answer,
                        context=context,
                        followup_questions=list(followup_questions),
                    )
        except SQLAlchemyError as exc:
            logger.error("qa_write_failed", extra={"detail": str(exc)})
            raise PersistenceError(f"Error saving QA to database: {exc}") from exc
        logger.info("qa_saved", extra={"followups": len(followup_questions)})


__all__ = ["QaStore"]
