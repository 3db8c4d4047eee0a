"""컴플라이언스 서비스 — SLA 위반 검사 및 알림 보존 정리.

Compliance Service — The work behind the two recurring jobs: the SLA scan
and the notification retention sweep. Both run inside a session supplied by
the caller and never commit.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.enums import SLA_OPEN_STATUSES, Priority, Severity
from app.repositories.notification_repository import notification_repository
from app.repositories.report_repository import report_repository
from app.schemas.events import REPORT_SLA_VIOLATED, DomainEvent, EventPublisher
from app.services.notification_service import notification_service
from app.services.sla_policy import SLAPolicy
from app.utils.clock import as_utc, utcnow

logger = logging.getLogger("app.services.compliance")


@dataclass(frozen=True)
class SLAViolation:
    """SLA 위반 1건 — One overdue open report found by a scan."""

    report_id: UUID
    ticket_code: str
    priority: Priority
    severity: Severity
    deadline: datetime
    overdue_minutes: int


class ComplianceService:
    """컴플라이언스 서비스.

    Args:
        policy: SLA 정책 (SLA policy, defaults to settings)
        publisher: 이벤트 발행자 (Event publisher, defaults to notifications)
    """

    def __init__(
        self,
        policy: SLAPolicy | None = None,
        publisher: EventPublisher | None = None,
    ) -> None:
        self.policy: SLAPolicy = policy or SLAPolicy.from_settings()
        self.publisher: EventPublisher = publisher if publisher is not None else notification_service

    async def scan_sla_violations(
        self,
        db: AsyncSession,
        now: datetime | None = None,
    ) -> list[SLAViolation]:
        """열린 신고 중 SLA를 넘긴 신고를 찾아 이벤트를 발행합니다.

        Find open reports past their SLA deadline and publish one
        ``report.sla_violated`` event per report. A report still overdue on
        the next scan is reported again.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            now: 기준 시각, 기본값 현재 UTC (Reference time)

        Returns:
            list[SLAViolation]: 이번 검사에서 발견된 위반 (Violations found by this scan)
        """
        current = as_utc(now) if now is not None else utcnow()
        violations: list[SLAViolation] = []

        for report in await report_repository.get_open_with_priority(db, SLA_OPEN_STATUSES):
            status = self.policy.remaining(report, current)
            if status is None or not status.is_overdue:
                continue
            violation = SLAViolation(
                report_id=report.id,
                ticket_code=report.ticket_code,
                priority=report.priority,
                severity=self.policy.severity_for(report.priority),
                deadline=status.deadline,
                overdue_minutes=status.minutes,
            )
            violations.append(violation)
            await self.publisher.publish(
                db,
                DomainEvent(
                    name=REPORT_SLA_VIOLATED,
                    report_id=report.id,
                    ticket_code=report.ticket_code,
                    occurred_at=current,
                    payload={
                        "severity": violation.severity.value,
                        "overdue_minutes": violation.overdue_minutes,
                        "sla_hours": self.policy.duration_for(report.priority).total_seconds() / 3600,
                    },
                ),
            )

        if violations:
            logger.warning("SLA scan found %d overdue report(s)", len(violations))
        else:
            logger.debug("SLA scan found no overdue reports")
        return violations

    async def purge_notifications(
        self,
        db: AsyncSession,
        now: datetime | None = None,
        retention_days: int | None = None,
    ) -> int:
        """보존 기간이 지난 알림을 삭제합니다 — Delete notifications past retention.

        Returns:
            int: 삭제된 알림 수 (Count of deleted notifications)
        """
        current = as_utc(now) if now is not None else utcnow()
        days = retention_days if retention_days is not None else settings.NOTIFICATION_RETENTION_DAYS
        deleted = await notification_repository.delete_older_than(db, current - timedelta(days=days))
        logger.info("Notification sweep deleted %d record(s) older than %d days", deleted, days)
        return deleted


# 싱글턴 인스턴스 — Singleton instance
compliance_service: ComplianceService = ComplianceService()
