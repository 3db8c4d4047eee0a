"""신고 레포지토리 — reports 테이블 쿼리 담당.

Report Repository — Handles reports table queries for the workflow engine,
the duplicate detector and the SLA scan.
"""

from datetime import datetime
from typing import Iterable, Sequence
from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import Category, ReportStatus
from app.models.report import Report
from app.repositories.base import BaseRepository


class ReportRepository(BaseRepository[Report]):
    """신고 레포지토리.

    Report repository. Status changes are applied by WorkflowService on the
    loaded instance and written on flush, where the version column rejects
    concurrent writers.

    Extends:
        BaseRepository[Report]
    """

    def __init__(self) -> None:
        super().__init__(Report)

    async def get_by_ticket_code(self, db: AsyncSession, ticket_code: str) -> Report | None:
        result = await db.execute(select(Report).where(Report.ticket_code == ticket_code))
        return result.scalar_one_or_none()

    async def list_reports(
        self,
        db: AsyncSession,
        status: ReportStatus | None = None,
        submitted_by: UUID | None = None,
        page: int = 1,
        per_page: int = 20,
    ) -> tuple[Sequence[Report], int]:
        """신고 목록을 최신순으로 페이지네이션하여 조회합니다.

        Retrieve paginated reports, newest first.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            status: 상태 필터, 선택 (Optional status filter)
            submitted_by: 신고자 필터, 선택 (Optional submitter filter)
            page: 페이지 번호 (Page number, 1-based)
            per_page: 페이지당 항목 수 (Items per page)

        Returns:
            tuple[Sequence[Report], int]: (신고 목록, 전체 개수)
        """
        query: Select = select(Report).order_by(Report.created_at.desc())
        if status is not None:
            query = query.where(Report.status == status)
        if submitted_by is not None:
            query = query.where(Report.submitted_by == submitted_by)
        return await self.get_paginated(db, query, page, per_page)

    async def get_duplicate_candidates(
        self,
        db: AsyncSession,
        since: datetime,
        excluded_statuses: Iterable[ReportStatus],
        category: Category | None = None,
        block_id: UUID | None = None,
    ) -> Sequence[Report]:
        """중복 후보 신고를 최신순으로 조회합니다.

        Retrieve duplicate candidates created since ``since`` that are not in an
        excluded status, newest first. Category and block narrowing are optional.
        """
        query: Select = (
            select(Report)
            .where(
                Report.created_at >= since,
                Report.status.not_in(list(excluded_statuses)),
            )
            .order_by(Report.created_at.desc())
        )
        if category is not None:
            query = query.where(Report.category == category)
        if block_id is not None:
            query = query.where(Report.block_id == block_id)
        result = await db.execute(query)
        return result.scalars().all()

    async def get_open_with_priority(
        self,
        db: AsyncSession,
        statuses: Iterable[ReportStatus],
    ) -> Sequence[Report]:
        """SLA 검사 대상 — Reports in ``statuses`` whose priority is set."""
        result = await db.execute(
            select(Report)
            .where(
                Report.status.in_(list(statuses)),
                Report.priority.is_not(None),
            )
            .order_by(Report.created_at)
        )
        return result.scalars().all()

    async def get_max_ticket_code(self, db: AsyncSession, prefix: str) -> str | None:
        """접두사별 최대 티켓 코드 — 길이 우선 정렬로 9999 이후 순번도 처리.

        Highest ticket code for a prefix. Codes are ordered by length first so a
        sequence past 9999 still ranks above the zero-padded ones.
        """
        result = await db.execute(
            select(Report.ticket_code)
            .where(Report.ticket_code.like(f"{prefix}%"))
            .order_by(func.length(Report.ticket_code).desc(), Report.ticket_code.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def count_by_status(self, db: AsyncSession) -> dict[str, int]:
        result = await db.execute(select(Report.status, func.count()).group_by(Report.status))
        return {ReportStatus(status).value: count for status, count in result.all()}

    async def average_time_spent(self, db: AsyncSession) -> float | None:
        """완료/종료 신고의 평균 작업 시간(분) — Average minutes spent on finished reports."""
        result = await db.execute(
            select(func.avg(Report.time_spent_minutes)).where(
                Report.status.in_([ReportStatus.COMPLETED, ReportStatus.CLOSED])
            )
        )
        value = result.scalar()
        return float(value) if value is not None else None


# 싱글턴 인스턴스 — Singleton instance
report_repository: ReportRepository = ReportRepository()
