"""워크플로 서비스 — 신고 상태 전이의 유일한 진입점.

Workflow Service — The sole authority for report status transitions.
Every accepted transition updates the report, appends exactly one history
entry and publishes one domain event, all in the caller's transaction.
Rejected attempts raise before anything is written.

Check order for execute_transition:
    NotFound -> pair legality -> role -> ownership -> required data
    -> assignee lookup/specialization -> completion bounds -> apply
"""

from datetime import datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from app.config import settings
from app.models.enums import SLA_OPEN_STATUSES, ReportStatus, UserRole
from app.models.report import Report, WorkflowHistory
from app.repositories.report_repository import report_repository
from app.repositories.user_repository import user_repository
from app.repositories.workflow_history_repository import workflow_history_repository
from app.schemas.events import REPORT_TRANSITIONED, DomainEvent, EventPublisher
from app.schemas.report import Actor, TransitionOption, TransitionPayload, WorkflowStatistics
from app.services.notification_service import notification_service
from app.services.sla_policy import SLAPolicy
from app.services.workflow_rules import (
    TransitionRule,
    allowed_targets,
    get_rule,
    rating_destination,
    validate_completion,
    validate_rating,
)
from app.utils.clock import as_utc, utcnow
from app.utils.exceptions import (
    AlreadyRatedError,
    ConflictError,
    IllegalTransitionError,
    NotFoundError,
    PermissionDeniedError,
)


class WorkflowService:
    """신고 워크플로 서비스.

    Args:
        policy: SLA 정책, 기본값은 설정 기반 (SLA policy, defaults to settings)
        publisher: 이벤트 발행자, 기본값은 알림 서비스 (Event publisher, defaults to notifications)
    """

    def __init__(
        self,
        policy: SLAPolicy | None = None,
        publisher: EventPublisher | None = None,
    ) -> None:
        self.policy: SLAPolicy = policy or SLAPolicy.from_settings()
        self.publisher: EventPublisher = publisher if publisher is not None else notification_service

    async def _get_report(self, db: AsyncSession, report_id: UUID) -> Report:
        report = await report_repository.get_by_id(db, report_id)
        if report is None:
            raise NotFoundError("Report not found")
        return report

    # --- 상태 전이 (Transitions) ---

    async def execute_transition(
        self,
        db: AsyncSession,
        report_id: UUID,
        to_status: ReportStatus | str,
        actor: Actor,
        payload: TransitionPayload | None = None,
        now: datetime | None = None,
    ) -> Report:
        """신고 상태를 한 단계 전이합니다.

        Apply one transition to a report. Transitions out of ``completed`` go
        through ``rate``, except a manager ``close`` once the report is rated.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            report_id: 신고 UUID (Report UUID)
            to_status: 대상 상태 (Target status)
            actor: 요청 주체 (Authenticated actor)
            payload: 전이 데이터 (Transition data)
            now: 기준 시각, 기본값 현재 UTC (Reference time)

        Returns:
            Report: 전이된 신고 (Updated report)

        Raises:
            NotFoundError: 신고 또는 담당자가 없음 (Report or assignee missing)
            IllegalTransitionError: 허용되지 않은 전이 또는 데이터 누락 (Illegal pair or missing data)
            PermissionDeniedError: 역할/소유권 부족 (Role or ownership guard failed)
            ValidationFailedError: 완료 보고 조건 위반 (Completion data out of bounds)
            ConflictError: 동시 수정 감지 (Concurrent write detected)
        """
        report = await self._get_report(db, report_id)
        payload = payload or TransitionPayload()
        current = as_utc(now) if now is not None else utcnow()

        try:
            target = ReportStatus(to_status)
        except ValueError:
            raise IllegalTransitionError(f"Unknown status: {to_status}") from None

        from_status = report.status
        rule = get_rule(from_status, target, rated=report.rating is not None)
        if rule is None:
            raise IllegalTransitionError(
                f"Transition from {from_status.value} to {target.value} is not allowed"
            )
        if rule.via_rating:
            raise IllegalTransitionError("Completed reports can only move on through a rating")

        self._check_actor(report, rule, actor)

        missing = [name for name in rule.required_fields if _is_blank(getattr(payload, name))]
        if missing:
            raise IllegalTransitionError(
                f"Missing required data for {rule.action}: {', '.join(missing)}"
            )

        if target is ReportStatus.ASSIGNED:
            await self._check_assignee(db, report, payload.assigned_to)
        if target is ReportStatus.COMPLETED:
            validate_completion(
                payload.completion_notes,
                payload.time_spent_minutes,
                settings.COMPLETION_TIME_MIN_MINUTES,
                settings.COMPLETION_TIME_MAX_MINUTES,
            )

        # 전이별 필드 반영 — Fields written by this transition
        if target is ReportStatus.APPROVED:
            report.priority = payload.priority
        elif target is ReportStatus.REJECTED:
            report.rejection_reason = payload.rejection_reason.strip()
        elif target is ReportStatus.ASSIGNED:
            report.assigned_to = payload.assigned_to
        elif target is ReportStatus.COMPLETED:
            report.completion_notes = payload.completion_notes.strip()
            report.parts_used = payload.parts_used
            report.time_spent_minutes = payload.time_spent_minutes
            report.completed_at = current

        notes = payload.notes
        if notes is None and target is ReportStatus.REJECTED:
            notes = report.rejection_reason
        return await self._apply(db, report, target, rule.action, actor, notes, current)

    async def rate(
        self,
        db: AsyncSession,
        report_id: UUID,
        actor: Actor,
        rating: int,
        comment: str | None = None,
        mark_still_broken: bool = False,
        now: datetime | None = None,
    ) -> Report:
        """완료된 신고를 평가하고 평가 결과에 따라 전이합니다.

        Rate a completed report and move it according to the rating:
        0~1 or still broken -> reopened, 2~3 -> under_review, 4~5 -> closed.
        Exactly one rating per report succeeds.

        Raises:
            NotFoundError: 신고 없음 (Report missing)
            PermissionDeniedError: 신고자 역할 아님(role) 또는 본인 신고 아님(ownership)
            AlreadyRatedError: 완료 상태가 아니거나 이미 평가됨 (Not completed or already rated)
            ValidationFailedError: 점수/코멘트 조건 위반 (Rating or comment rule broken)
            ConflictError: 동시 수정 감지 (Concurrent write detected)
        """
        report = await self._get_report(db, report_id)
        current = as_utc(now) if now is not None else utcnow()

        if actor.role is not UserRole.REPORTER:
            raise PermissionDeniedError("Only reporters can rate reports", PermissionDeniedError.ROLE)
        if report.submitted_by != actor.id:
            raise PermissionDeniedError(
                "Only the original submitter can rate this report", PermissionDeniedError.OWNERSHIP
            )
        if report.status is not ReportStatus.COMPLETED or report.rating is not None:
            raise AlreadyRatedError()

        validate_rating(
            rating,
            comment,
            settings.RATING_COMMENT_MIN_LENGTH,
            settings.RATING_COMMENT_MAX_LENGTH,
        )
        target = rating_destination(rating, mark_still_broken)
        feedback = (comment or "").strip() or None

        report.rating = rating
        report.feedback = feedback

        notes = f"Rating: {rating}/5"
        if feedback:
            notes += f" - {feedback}"
        if mark_still_broken:
            notes += " (marked as still broken)"
        return await self._apply(db, report, target, "rate", actor, notes, current)

    def _check_actor(self, report: Report, rule: TransitionRule, actor: Actor) -> None:
        if actor.role not in rule.allowed_roles:
            raise PermissionDeniedError(
                f"Role {actor.role.value} cannot {rule.action} reports", PermissionDeniedError.ROLE
            )
        if rule.assignee_only and report.assigned_to != actor.id:
            raise PermissionDeniedError(
                "Only the assigned fixer can perform this step", PermissionDeniedError.OWNERSHIP
            )

    async def _check_assignee(self, db: AsyncSession, report: Report, assignee_id: UUID) -> None:
        assignee = await user_repository.get_by_id(db, assignee_id)
        if assignee is None or not assignee.is_active:
            raise NotFoundError("Assignee not found")
        if assignee.specialization is not report.category:
            raise IllegalTransitionError(
                f"Assignee cannot handle {report.category.value} reports"
            )

    async def _apply(
        self,
        db: AsyncSession,
        report: Report,
        target: ReportStatus,
        action: str,
        actor: Actor,
        notes: str | None,
        current: datetime,
    ) -> Report:
        """상태 변경 + 이력 1건 + 이벤트 1건 — Status change, one history entry, one event."""
        from_status = report.status
        report.status = target
        report.updated_at = current
        try:
            await workflow_history_repository.append(
                db,
                report_id=report.id,
                from_status=from_status,
                to_status=target,
                action=action,
                actor_id=actor.id,
                notes=notes,
                created_at=current,
            )
            await db.flush()
        except StaleDataError as exc:
            await db.rollback()
            raise ConflictError() from exc

        await self.publisher.publish(
            db,
            DomainEvent(
                name=REPORT_TRANSITIONED,
                report_id=report.id,
                ticket_code=report.ticket_code,
                occurred_at=current,
                payload={"from": from_status.value, "to": target.value, "action": action},
            ),
        )
        return report

    # --- 조회 (Queries) ---

    async def get_history(self, db: AsyncSession, report_id: UUID) -> Sequence[WorkflowHistory]:
        await self._get_report(db, report_id)
        return await workflow_history_repository.list_for_report(db, report_id)

    async def get_available_transitions(
        self,
        db: AsyncSession,
        report_id: UUID,
        actor: Actor,
    ) -> list[TransitionOption]:
        """현재 사용자가 수행 가능한 전이 목록.

        Transitions the actor could attempt now, with the data each one needs.
        Rating destinations collapse into a single ``rate`` option.
        """
        report = await self._get_report(db, report_id)
        options: list[TransitionOption] = []
        for target in allowed_targets(report.status):
            rule = get_rule(report.status, target, rated=report.rating is not None)
            if rule.via_rating:
                continue
            try:
                self._check_actor(report, rule, actor)
            except PermissionDeniedError:
                continue
            options.append(
                TransitionOption(to_status=target, action=rule.action, requires_data=list(rule.required_fields))
            )

        if (
            report.status is ReportStatus.COMPLETED
            and report.rating is None
            and actor.role is UserRole.REPORTER
            and report.submitted_by == actor.id
        ):
            for target in allowed_targets(report.status):
                options.append(TransitionOption(to_status=target, action="rate", requires_data=["rating"]))
        return options

    async def get_statistics(self, db: AsyncSession, now: datetime | None = None) -> WorkflowStatistics:
        """상태 분포, 평균 작업 시간, 열린 신고의 SLA 위반 수.

        Status distribution, average time spent on finished work, and the
        number of open reports currently past their SLA.
        """
        distribution = await report_repository.count_by_status(db)
        open_reports = await report_repository.get_open_with_priority(db, SLA_OPEN_STATUSES)
        violations = sum(1 for report in open_reports if self.policy.is_violated(report, now))
        return WorkflowStatistics(
            status_distribution=distribution,
            average_resolution_time_minutes=await report_repository.average_time_spent(db),
            sla_violations=violations,
            total_reports=sum(distribution.values()),
        )


def _is_blank(value: object) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


# 싱글턴 인스턴스 — Singleton instance
workflow_service: WorkflowService = WorkflowService()
