"""알림 서비스 테스트.

Notification service tests — domain events turned into notifications, and
the read/unread operations.
"""

from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import LocationType, NotificationType, Priority, ReportStatus
from app.models.notification import Notification
from app.schemas.events import REPORT_CREATED, REPORT_SLA_VIOLATED, DomainEvent
from app.schemas.report import ReportCreate, TransitionPayload
from app.services.compliance_service import ComplianceService
from app.services.notification_service import notification_service
from app.services.report_service import ReportService
from app.services.sla_policy import SLAPolicy
from app.services.workflow_service import WorkflowService
from tests.conftest import T0, actor, create_report


async def _for_user(db: AsyncSession, user) -> list[Notification]:
    result = await db.execute(
        select(Notification).where(Notification.user_id == user.id).order_by(Notification.created_at)
    )
    return list(result.scalars().all())


class TestPublish:
    """도메인 이벤트 → 알림 변환 테스트."""

    async def test_report_created_notifies_staff(self, db: AsyncSession, reporter, coordinator, admin):
        report = await create_report(db, reporter)

        await notification_service.publish(
            db, DomainEvent(name=REPORT_CREATED, report_id=report.id, ticket_code=report.ticket_code)
        )

        for user in (coordinator, admin):
            notifications = await _for_user(db, user)
            assert len(notifications) == 1
            assert notifications[0].type is NotificationType.INFO
            assert report.ticket_code in notifications[0].message
        assert await _for_user(db, reporter) == []

    async def test_sla_violation_alerts_staff(self, db: AsyncSession, reporter, coordinator):
        report = await create_report(db, reporter)

        await notification_service.publish(
            db,
            DomainEvent(
                name=REPORT_SLA_VIOLATED,
                report_id=report.id,
                ticket_code=report.ticket_code,
                payload={"severity": "critical", "overdue_minutes": 60, "sla_hours": 2.0},
            ),
        )

        [alert] = await _for_user(db, coordinator)
        assert alert.type is NotificationType.ALERT
        assert alert.title == "SLA violation (critical)"
        assert "60 minutes past its 2h SLA" in alert.message

    async def test_unknown_event_is_ignored(self, db: AsyncSession, reporter, coordinator):
        report = await create_report(db, reporter)
        await notification_service.publish(
            db, DomainEvent(name="report.archived", report_id=report.id, ticket_code=report.ticket_code)
        )
        assert await _for_user(db, coordinator) == []

    async def test_workflow_notifies_submitter_and_assignee(
        self, db: AsyncSession, reporter, coordinator, electrical_fixer
    ):
        workflow = WorkflowService()
        report = await create_report(db, reporter)
        await workflow.execute_transition(db, report.id, ReportStatus.UNDER_REVIEW, actor(coordinator))
        await workflow.execute_transition(
            db, report.id, ReportStatus.APPROVED, actor(coordinator), TransitionPayload(priority=Priority.HIGH)
        )
        await workflow.execute_transition(
            db, report.id, ReportStatus.ASSIGNED, actor(coordinator),
            TransitionPayload(assigned_to=electrical_fixer.id),
        )

        submitter_messages = [n.message for n in await _for_user(db, reporter)]
        assert len(submitter_messages) == 3
        assert f"Your report {report.ticket_code} has been assigned to a fixer." in submitter_messages
        [assignment] = await _for_user(db, electrical_fixer)
        assert assignment.title == "New assignment"

    async def test_rejection_is_a_warning(self, db: AsyncSession, reporter, coordinator):
        report = await create_report(db, reporter)
        await WorkflowService().execute_transition(
            db, report.id, ReportStatus.REJECTED, actor(coordinator),
            TransitionPayload(rejection_reason="Out of scope"),
        )
        [notification] = await _for_user(db, reporter)
        assert notification.type is NotificationType.WARNING

    async def test_submission_and_sla_scan_use_default_publisher(
        self, db: AsyncSession, reporter, coordinator, block
    ):
        data = ReportCreate(
            category="electrical",
            location_type=LocationType.SPECIFIC,
            block_id=block.id,
            equipment_description="Socket",
            problem_description="Socket sparks when plugging in a laptop",
        )
        result = await ReportService().submit_report(db, data, actor(reporter), now=T0)
        result.report.status = ReportStatus.APPROVED
        result.report.priority = Priority.EMERGENCY
        await db.flush()

        await ComplianceService(policy=SLAPolicy.from_settings()).scan_sla_violations(
            db, now=T0 + timedelta(hours=3)
        )

        types = {n.type for n in await _for_user(db, coordinator)}
        assert types == {NotificationType.INFO, NotificationType.ALERT}


class TestReadState:
    """읽음 처리 테스트."""

    async def _seed(self, db: AsyncSession, user, count: int) -> list[Notification]:
        notifications = [
            Notification(
                user_id=user.id,
                type=NotificationType.INFO,
                title=f"Notice {i}",
                message=f"Test notification {i}",
                created_at=T0 + timedelta(minutes=i),
            )
            for i in range(count)
        ]
        db.add_all(notifications)
        await db.flush()
        return notifications

    async def test_list_is_paginated_newest_first(self, db: AsyncSession, reporter):
        await self._seed(db, reporter, 3)
        items, total = await notification_service.list_notifications(db, reporter.id, page=1, per_page=2)
        assert total == 3
        assert [n.title for n in items] == ["Notice 2", "Notice 1"]

    async def test_mark_read_and_unread_count(self, db: AsyncSession, reporter, other_reporter):
        notifications = await self._seed(db, reporter, 3)

        assert await notification_service.get_unread_count(db, reporter.id) == 3
        assert await notification_service.mark_read(db, notifications[0].id, reporter.id) is True
        assert await notification_service.mark_read(db, notifications[1].id, other_reporter.id) is False
        assert await notification_service.get_unread_count(db, reporter.id) == 2

    async def test_mark_all_read(self, db: AsyncSession, reporter):
        await self._seed(db, reporter, 3)
        assert await notification_service.mark_all_read(db, reporter.id) == 3
        assert await notification_service.get_unread_count(db, reporter.id) == 0
