"""워크플로 이력 레포지토리 — 추가 전용(append-only) 감사 기록.

Workflow History Repository — Append-only audit trail.
There is intentionally no update or delete method.
"""

from datetime import datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import ReportStatus
from app.models.report import WorkflowHistory
from app.repositories.base import BaseRepository


class WorkflowHistoryRepository(BaseRepository[WorkflowHistory]):

    def __init__(self) -> None:
        super().__init__(WorkflowHistory)

    async def next_sequence(self, db: AsyncSession, report_id: UUID) -> int:
        result = await db.execute(
            select(func.max(WorkflowHistory.sequence)).where(WorkflowHistory.report_id == report_id)
        )
        return (result.scalar() or 0) + 1

    async def append(
        self,
        db: AsyncSession,
        report_id: UUID,
        from_status: ReportStatus | None,
        to_status: ReportStatus,
        action: str,
        actor_id: UUID,
        notes: str | None = None,
        created_at: datetime | None = None,
    ) -> WorkflowHistory:
        """이력 1건을 추가합니다 — Append one entry with the next per-report sequence.

        The row is added to the session but not flushed, so it is written in the
        same flush as the report update it describes.
        """
        entry = WorkflowHistory(
            report_id=report_id,
            sequence=await self.next_sequence(db, report_id),
            from_status=from_status,
            to_status=to_status,
            action=action,
            actor_id=actor_id,
            notes=notes,
        )
        if created_at is not None:
            entry.created_at = created_at
        db.add(entry)
        return entry

    async def list_for_report(self, db: AsyncSession, report_id: UUID) -> Sequence[WorkflowHistory]:
        result = await db.execute(
            select(WorkflowHistory)
            .where(WorkflowHistory.report_id == report_id)
            .order_by(WorkflowHistory.sequence)
        )
        return result.scalars().all()


workflow_history_repository: WorkflowHistoryRepository = WorkflowHistoryRepository()
