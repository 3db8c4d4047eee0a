"""컴플라이언스 서비스 테스트 — SLA 검사 및 알림 보존 정리.

Compliance service tests — SLA scan and notification retention sweep.
"""

from datetime import timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import NotificationType, Priority, ReportStatus, Severity
from app.models.notification import Notification
from app.schemas.events import REPORT_SLA_VIOLATED
from app.services.compliance_service import ComplianceService
from app.services.sla_policy import SLAPolicy
from tests.conftest import T0, RecordingPublisher, create_report

DEFAULT_HOURS = {"emergency": 2, "high": 24, "medium": 72, "low": 168}


@pytest.fixture
def compliance(publisher: RecordingPublisher) -> ComplianceService:
    return ComplianceService(policy=SLAPolicy(DEFAULT_HOURS), publisher=publisher)


class TestSLAScan:
    """SLA 위반 검사 테스트."""

    async def test_emergency_report_overdue_after_three_hours(
        self, db: AsyncSession, compliance, publisher, reporter
    ):
        report = await create_report(db, reporter, status=ReportStatus.APPROVED, priority=Priority.EMERGENCY)

        violations = await compliance.scan_sla_violations(db, now=T0 + timedelta(hours=3))

        assert len(violations) == 1
        assert violations[0].report_id == report.id
        assert violations[0].severity is Severity.CRITICAL
        assert violations[0].overdue_minutes == 60
        assert violations[0].deadline == T0 + timedelta(hours=2)
        assert publisher.names() == [REPORT_SLA_VIOLATED]
        assert publisher.events[0].payload == {"severity": "critical", "overdue_minutes": 60, "sla_hours": 2.0}

    async def test_still_overdue_report_is_flagged_on_every_scan(
        self, db: AsyncSession, compliance, publisher, reporter
    ):
        await create_report(db, reporter, status=ReportStatus.IN_PROGRESS, priority=Priority.EMERGENCY)

        first = await compliance.scan_sla_violations(db, now=T0 + timedelta(hours=3))
        second = await compliance.scan_sla_violations(db, now=T0 + timedelta(hours=3, minutes=30))

        assert len(first) == len(second) == 1
        assert second[0].overdue_minutes == 90
        assert publisher.names() == [REPORT_SLA_VIOLATED, REPORT_SLA_VIOLATED]

    async def test_low_priority_breach_is_medium_severity(self, db: AsyncSession, compliance, reporter):
        await create_report(db, reporter, status=ReportStatus.ASSIGNED, priority=Priority.LOW)

        violations = await compliance.scan_sla_violations(db, now=T0 + timedelta(days=8))

        assert [v.severity for v in violations] == [Severity.MEDIUM]

    @pytest.mark.parametrize(
        "status, priority",
        [
            (ReportStatus.COMPLETED, Priority.EMERGENCY),
            (ReportStatus.CLOSED, Priority.EMERGENCY),
            (ReportStatus.REOPENED, Priority.EMERGENCY),
            (ReportStatus.REJECTED, Priority.EMERGENCY),
            (ReportStatus.SUBMITTED, None),
        ],
    )
    async def test_not_scanned(self, db: AsyncSession, compliance, publisher, reporter, status, priority):
        await create_report(db, reporter, status=status, priority=priority)

        assert await compliance.scan_sla_violations(db, now=T0 + timedelta(days=30)) == []
        assert publisher.events == []

    async def test_within_deadline(self, db: AsyncSession, compliance, reporter):
        await create_report(db, reporter, status=ReportStatus.APPROVED, priority=Priority.HIGH)

        assert await compliance.scan_sla_violations(db, now=T0 + timedelta(hours=23)) == []


class TestNotificationSweep:
    """알림 보존 정리 테스트."""

    async def _notification(self, db: AsyncSession, user, age: timedelta, is_read: bool) -> Notification:
        notification = Notification(
            user_id=user.id,
            type=NotificationType.INFO,
            title="Report under review",
            message="Your report is now under review.",
            is_read=is_read,
            created_at=T0 - age,
        )
        db.add(notification)
        await db.flush()
        return notification

    async def test_old_notifications_deleted_regardless_of_read_state(
        self, db: AsyncSession, compliance, reporter
    ):
        await self._notification(db, reporter, timedelta(days=31), is_read=True)
        await self._notification(db, reporter, timedelta(days=45), is_read=False)
        recent = await self._notification(db, reporter, timedelta(days=2), is_read=False)

        deleted = await compliance.purge_notifications(db, now=T0)

        assert deleted == 2
        remaining = (await db.execute(select(Notification.id))).scalars().all()
        assert remaining == [recent.id]

    async def test_custom_retention(self, db: AsyncSession, compliance, reporter):
        await self._notification(db, reporter, timedelta(days=2), is_read=True)

        assert await compliance.purge_notifications(db, now=T0, retention_days=1) == 1
        count = (await db.execute(select(func.count()).select_from(Notification))).scalar()
        assert count == 0
