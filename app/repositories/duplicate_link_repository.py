"""중복 신고 연결 레포지토리.

Duplicate Link Repository — Stores confirmed duplicate relationships between
reports, in either direction of lookup.
"""

from typing import Sequence
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.report import DuplicateLink
from app.repositories.base import BaseRepository


class DuplicateLinkRepository(BaseRepository[DuplicateLink]):

    def __init__(self) -> None:
        super().__init__(DuplicateLink)

    async def get_link(
        self,
        db: AsyncSession,
        original_report_id: UUID,
        duplicate_report_id: UUID,
    ) -> DuplicateLink | None:
        result = await db.execute(
            select(DuplicateLink).where(
                DuplicateLink.original_report_id == original_report_id,
                DuplicateLink.duplicate_report_id == duplicate_report_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_for_report(self, db: AsyncSession, report_id: UUID) -> Sequence[DuplicateLink]:
        """원본/중복 어느 쪽이든 해당 신고가 포함된 연결 — Links touching ``report_id``."""
        result = await db.execute(
            select(DuplicateLink)
            .where(
                or_(
                    DuplicateLink.original_report_id == report_id,
                    DuplicateLink.duplicate_report_id == report_id,
                )
            )
            .order_by(DuplicateLink.similarity_score.desc())
        )
        return result.scalars().all()


duplicate_link_repository: DuplicateLinkRepository = DuplicateLinkRepository()
