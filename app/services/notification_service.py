"""알림 서비스 — 도메인 이벤트를 사용자 알림으로 변환.

Notification Service — Default EventPublisher. Turns workflow domain events
into persisted notifications and serves the read/unread operations.
Email/push/SMS delivery is handled outside this service.

Recipients:
    - report.created: 코디네이터/관리자 (Coordinators and admins)
    - report.transitioned: 신고자, assigned 전이 시 담당자 추가
      (Submitter; also the assignee on transitions into assigned)
    - report.sla_violated: 코디네이터/관리자 (Coordinators and admins)
"""

from typing import Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import NotificationType, ReportStatus, Severity, UserRole
from app.models.notification import Notification
from app.repositories.notification_repository import notification_repository
from app.repositories.report_repository import report_repository
from app.repositories.user_repository import user_repository
from app.schemas.events import (
    REPORT_CREATED,
    REPORT_SLA_VIOLATED,
    REPORT_TRANSITIONED,
    DomainEvent,
)

_STAFF_ROLES: tuple[UserRole, ...] = (UserRole.COORDINATOR, UserRole.ADMIN)

# 상태별 신고자 알림 문구 — Submitter-facing wording per target status
_STATUS_MESSAGES: dict[ReportStatus, str] = {
    ReportStatus.UNDER_REVIEW: "is now under review",
    ReportStatus.APPROVED: "has been approved",
    ReportStatus.REJECTED: "has been rejected",
    ReportStatus.ASSIGNED: "has been assigned to a fixer",
    ReportStatus.IN_PROGRESS: "is being worked on",
    ReportStatus.COMPLETED: "has been completed, please rate the repair",
    ReportStatus.CLOSED: "has been closed",
    ReportStatus.REOPENED: "has been reopened",
}

# 재작업이 필요한 상태는 warning — Statuses that signal rework
_WARNING_STATUSES: frozenset[ReportStatus] = frozenset({ReportStatus.REOPENED, ReportStatus.REJECTED})


class NotificationService:
    """알림 서비스.

    Notification service providing shared read/unread operations and the
    ``publish`` hook used by WorkflowService and ComplianceService.
    """

    # --- 공통 조회/읽음 처리 (Shared read/unread operations) ---

    async def list_notifications(
        self,
        db: AsyncSession,
        user_id: UUID,
        page: int = 1,
        per_page: int = 20,
    ) -> tuple[Sequence[Notification], int]:
        """사용자의 알림 목록을 페이지네이션하여 조회합니다.

        List paginated notifications for a user.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            user_id: 사용자 UUID (User UUID)
            page: 페이지 번호 (Page number)
            per_page: 페이지당 항목 수 (Items per page)

        Returns:
            tuple[Sequence[Notification], int]: (알림 목록, 전체 개수)
                                                 (List of notifications, total count)
        """
        return await notification_repository.get_user_notifications(
            db, user_id, page, per_page
        )

    async def get_unread_count(self, db: AsyncSession, user_id: UUID) -> int:
        return await notification_repository.get_unread_count(db, user_id)

    async def mark_read(self, db: AsyncSession, notification_id: UUID, user_id: UUID) -> bool:
        return await notification_repository.mark_read(db, notification_id, user_id)

    async def mark_all_read(self, db: AsyncSession, user_id: UUID) -> int:
        return await notification_repository.mark_all_read(db, user_id)

    # --- 이벤트 발행 (Event publishing) ---

    async def publish(self, db: AsyncSession, event: DomainEvent) -> None:
        """도메인 이벤트를 알림으로 저장합니다.

        Persist notifications for a domain event inside the caller's
        transaction. Unknown event names are ignored.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            event: 도메인 이벤트 (Domain event)
        """
        if event.name == REPORT_CREATED:
            await self._notify_staff(
                db,
                event,
                NotificationType.INFO,
                "New report submitted",
                f"Report {event.ticket_code} was submitted and awaits review.",
            )
        elif event.name == REPORT_TRANSITIONED:
            await self._notify_transition(db, event)
        elif event.name == REPORT_SLA_VIOLATED:
            severity = Severity(event.payload["severity"])
            await self._notify_staff(
                db,
                event,
                NotificationType.ALERT,
                f"SLA violation ({severity.value})",
                f"Report {event.ticket_code} is {event.payload['overdue_minutes']} minutes past "
                f"its {event.payload['sla_hours']:g}h SLA.",
            )

    async def _notify_staff(
        self,
        db: AsyncSession,
        event: DomainEvent,
        notification_type: NotificationType,
        title: str,
        message: str,
    ) -> None:
        for user in await user_repository.get_active_by_roles(db, _STAFF_ROLES):
            await notification_repository.create_notification(
                db,
                user_id=user.id,
                notification_type=notification_type,
                title=title,
                message=message,
                report_id=event.report_id,
            )

    async def _notify_transition(self, db: AsyncSession, event: DomainEvent) -> None:
        report = await report_repository.get_by_id(db, event.report_id)
        if report is None:
            return
        to_status = ReportStatus(event.payload["to"])
        notification_type = (
            NotificationType.WARNING if to_status in _WARNING_STATUSES else NotificationType.INFO
        )
        await notification_repository.create_notification(
            db,
            user_id=report.submitted_by,
            notification_type=notification_type,
            title=f"Report {to_status.value.replace('_', ' ')}",
            message=f"Your report {event.ticket_code} {_STATUS_MESSAGES[to_status]}.",
            report_id=report.id,
        )
        if to_status is ReportStatus.ASSIGNED and report.assigned_to is not None:
            await notification_repository.create_notification(
                db,
                user_id=report.assigned_to,
                notification_type=NotificationType.INFO,
                title="New assignment",
                message=f"Report {event.ticket_code} has been assigned to you.",
                report_id=report.id,
            )


# 싱글턴 인스턴스 — Singleton instance
notification_service: NotificationService = NotificationService()
