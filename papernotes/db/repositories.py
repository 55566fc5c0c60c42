"""Repository classes for CRUD operations on ORM models."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from . import models


class PaperRepo:
    """CRUD operations for :class:`models.Paper`."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(
        self,
        paper: str,
        url: str,
        name: str,
        notes: List[Dict[str, Any]],
    ) -> models.Paper:
        row = models.Paper(paper=paper, url=url, name=name, notes=notes)
        self.session.add(row)
        await self.session.flush()
        return row

    async def first_by_url(self, url: str) -> Optional[models.Paper]:
        stmt = (
            select(models.Paper)
            .where(models.Paper.url == url)
            .order_by(models.Paper.id)
            .limit(1)
        )
        res = await self.session.execute(stmt)
        return res.scalars().first()


class QaRepo:
    """CRUD operations for :class:`models.QuestionAnswering`."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(
        self,
        question: str,
        answer: str,
        context: str,
        followup_questions: List[str],
    ) -> models.QuestionAnswering:
        row = models.QuestionAnswering(
            question=question,
            answer=answer,
            context=context,
            followup_questions=list(followup_questions),
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def list(self) -> List[models.QuestionAnswering]:
        res = await self.session.execute(
            select(models.QuestionAnswering).order_by(models.QuestionAnswering.id)
        )
        return list(res.scalars().all())


__all__ = ["PaperRepo", "QaRepo"]
