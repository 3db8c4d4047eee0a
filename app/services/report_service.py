"""신고 서비스 — 신고 제출 및 조회.

Report Service — Submission and lookup of facility reports.
Submission runs the advisory duplicate check, issues a ticket code, stores
the report in ``submitted`` with its creation history entry and publishes
``report.created``. It never commits; the caller owns the transaction.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import ReportStatus, UserRole
from app.models.report import Report
from app.repositories.report_repository import report_repository
from app.repositories.user_repository import block_repository
from app.repositories.workflow_history_repository import workflow_history_repository
from app.schemas.events import REPORT_CREATED, DomainEvent, EventPublisher
from app.schemas.report import Actor, ReportCreate
from app.services.duplicate_detection_service import (
    DuplicateCheckResult,
    DuplicateDetectionService,
    duplicate_detection_service,
)
from app.services.notification_service import notification_service
from app.utils.clock import as_utc, utcnow
from app.utils.exceptions import NotFoundError, PermissionDeniedError
from app.utils.ticket_code import generate_ticket_code


@dataclass
class SubmissionResult:
    """제출 결과 — The stored report plus the advisory duplicate check."""

    report: Report
    duplicate_check: DuplicateCheckResult


class ReportService:
    """신고 제출/조회 서비스.

    Args:
        duplicates: 중복 탐지 서비스 (Duplicate detection service)
        publisher: 이벤트 발행자 (Event publisher, defaults to notifications)
    """

    def __init__(
        self,
        duplicates: DuplicateDetectionService | None = None,
        publisher: EventPublisher | None = None,
    ) -> None:
        self.duplicates: DuplicateDetectionService = duplicates or duplicate_detection_service
        self.publisher: EventPublisher = publisher if publisher is not None else notification_service

    async def submit_report(
        self,
        db: AsyncSession,
        data: ReportCreate,
        submitter: Actor,
        now: datetime | None = None,
    ) -> SubmissionResult:
        """새 신고를 제출합니다.

        Submit a new report. A duplicate warning never blocks the submission;
        the caller decides whether to surface it.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            data: 검증된 신고 데이터 (Validated submission)
            submitter: 신고자 (Submitting actor)
            now: 기준 시각, 기본값 현재 UTC (Reference time)

        Returns:
            SubmissionResult: 저장된 신고와 중복 검사 결과 (Stored report and duplicate check)

        Raises:
            NotFoundError: 존재하지 않는 건물 (Unknown block_id)
        """
        current = as_utc(now) if now is not None else utcnow()
        if data.block_id is not None and await block_repository.get_by_id(db, data.block_id) is None:
            raise NotFoundError("Block not found")

        duplicate_check = await self.duplicates.check_for_duplicates(db, data, current)

        report = await report_repository.create(
            db,
            {
                "ticket_code": await generate_ticket_code(db, data.category, current.date()),
                "category": data.category,
                "location_type": data.location_type,
                "block_id": data.block_id,
                "room_number": data.room_number,
                "location_description": data.location_description,
                "equipment_description": data.equipment_description.strip(),
                "problem_description": data.problem_description.strip(),
                "status": ReportStatus.SUBMITTED,
                "submitted_by": submitter.id,
                "created_at": current,
                "updated_at": current,
            },
        )
        await workflow_history_repository.append(
            db,
            report_id=report.id,
            from_status=None,
            to_status=ReportStatus.SUBMITTED,
            action="submit",
            actor_id=submitter.id,
            created_at=current,
        )
        await db.flush()

        await self.publisher.publish(
            db,
            DomainEvent(
                name=REPORT_CREATED,
                report_id=report.id,
                ticket_code=report.ticket_code,
                occurred_at=current,
                payload={"category": report.category.value, "has_duplicates": duplicate_check.has_duplicates},
            ),
        )
        return SubmissionResult(report=report, duplicate_check=duplicate_check)

    async def get_report(self, db: AsyncSession, report_id: UUID, actor: Actor | None = None) -> Report:
        """신고 단건 조회 — 신고자는 본인 신고만 조회 가능.

        Retrieve one report. Reporters may only read their own reports.
        """
        report = await report_repository.get_by_id(db, report_id)
        if report is None:
            raise NotFoundError("Report not found")
        if actor is not None and actor.role is UserRole.REPORTER and report.submitted_by != actor.id:
            raise PermissionDeniedError("You can only view your own reports", PermissionDeniedError.OWNERSHIP)
        return report

    async def get_by_ticket_code(self, db: AsyncSession, ticket_code: str) -> Report:
        report = await report_repository.get_by_ticket_code(db, ticket_code)
        if report is None:
            raise NotFoundError("Report not found")
        return report

    async def list_reports(
        self,
        db: AsyncSession,
        status: ReportStatus | None = None,
        submitted_by: UUID | None = None,
        page: int = 1,
        per_page: int = 20,
    ) -> tuple[Sequence[Report], int]:
        return await report_repository.list_reports(db, status, submitted_by, page, per_page)


# 싱글턴 인스턴스 — Singleton instance
report_service: ReportService = ReportService()
