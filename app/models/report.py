"""시설 결함 신고 관련 SQLAlchemy ORM 모델 정의.

Facility defect report SQLAlchemy ORM model definitions.
The report row is the only mutable shared resource of the workflow engine;
all status changes go through WorkflowService, never direct attribute writes.

Tables:
    - reports: 결함 신고 (Defect reports with workflow, completion and rating fields)
    - workflow_history: 상태 전이 감사 기록 (Append-only transition audit trail)
    - duplicate_links: 중복 신고 연결 (Confirmed duplicate relationships)
"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import (
    String, DateTime, Text, Integer, Float, ForeignKey, UniqueConstraint,
    Enum as SAEnum, Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, validates

from app.database import Base
from app.models.enums import Category, LocationType, Priority, ReportStatus


def _enum_column(enum_cls: type, name: str) -> SAEnum:
    return SAEnum(enum_cls, name=name, values_callable=lambda e: [m.value for m in e])


class Report(Base):
    """결함 신고 모델 — 제출부터 종료까지의 신고 수명 주기.

    Report model — A facility defect report from submission to closure.

    Invariants (enforced by WorkflowService):
        - priority는 approved 전이 이전에는 설정되지 않음
          (priority is set no earlier than the approved transition)
        - assigned_to는 assigned 전이 이전에는 설정되지 않음
          (assignee is set no earlier than the assigned transition)
        - rating은 completed 이후 최대 1회만 기록
          (rating is written at most once, after completed)

    Status, priority, category and location type are coerced to their enums on
    assignment, so an invalid value raises ``ValueError`` at construction time.

    Attributes:
        id: 고유 식별자 UUID (Opaque identifier)
        ticket_code: 사람이 읽는 티켓 코드, 고유 (AASTU-<CATEGORY>-<YYYYMMDD>-<NNNN>)
        category: 분류 (electrical | mechanical)
        location_type: 위치 유형 (specific | general)
        block_id: 건물 FK (Block, specific locations only)
        room_number: 호실 (Room, optional)
        location_description: 일반 위치 서술 (General area free text)
        equipment_description: 장비 설명 (Equipment narrative)
        problem_description: 문제 설명 (Problem narrative)
        status: 워크플로 상태 (Workflow status)
        priority: 우선순위, 승인 시 설정 (Priority, nullable until approval)
        submitted_by: 신고자 FK (Original submitter)
        assigned_to: 담당 수리자 FK (Assignee, nullable until assignment)
        rejection_reason: 반려 사유 (Reason supplied on rejection)
        completion_notes / parts_used / time_spent_minutes: 완료 보고 (Completion report)
        completed_at: 완료 일시 (Completion timestamp)
        rating / feedback: 신고자 평가 (Submitter rating 0~5 and feedback)
        version: 낙관적 잠금 버전 (Optimistic concurrency counter)
    """

    __tablename__ = "reports"

    # 신고 고유 식별자 — Report unique identifier (UUID v4, auto-generated)
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # 티켓 코드 — Human-readable unique ticket code
    ticket_code: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)

    # 분류 및 위치 — Classification and location
    category: Mapped[Category] = mapped_column(_enum_column(Category, "report_category"), nullable=False)
    location_type: Mapped[LocationType] = mapped_column(_enum_column(LocationType, "location_type"), nullable=False)
    block_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("blocks.id", ondelete="SET NULL"), nullable=True)
    room_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    location_description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # 서술 — Narrative (길이 검증은 호출자 책임, validated by the caller)
    equipment_description: Mapped[str] = mapped_column(Text, nullable=False)
    problem_description: Mapped[str] = mapped_column(Text, nullable=False)

    # 워크플로 필드 — Workflow fields
    status: Mapped[ReportStatus] = mapped_column(
        _enum_column(ReportStatus, "report_status"), nullable=False, default=ReportStatus.SUBMITTED
    )
    priority: Mapped[Priority | None] = mapped_column(_enum_column(Priority, "report_priority"), nullable=True)
    submitted_by: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    assigned_to: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id"), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # 완료 보고 — Written once by the assignee on transition into completed
    completion_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    parts_used: Mapped[str | None] = mapped_column(Text, nullable=True)
    time_spent_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # 평가 — Written at most once, by the original submitter
    rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    feedback: Mapped[str | None] = mapped_column(Text, nullable=True)

    # 생성/수정 일시 — Timestamps (UTC)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    # 낙관적 잠금 — UPDATE ... WHERE version = :old 실패 시 StaleDataError
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @validates("status")
    def _validate_status(self, key: str, value: ReportStatus | str) -> ReportStatus:
        return ReportStatus(value)

    @validates("priority")
    def _validate_priority(self, key: str, value: Priority | str | None) -> Priority | None:
        return None if value is None else Priority(value)

    @validates("category")
    def _validate_category(self, key: str, value: Category | str) -> Category:
        return Category(value)

    @validates("location_type")
    def _validate_location_type(self, key: str, value: LocationType | str) -> LocationType:
        return LocationType(value)


class WorkflowHistory(Base):
    """워크플로 이력 모델 — 승인된 상태 전이 1건당 1행, 수정/삭제 불가.

    Workflow history model — One immutable row per accepted transition.
    ``sequence`` increases by one per report so the timeline is replayable
    independent of timestamp resolution. The creation entry has no from_status.

    Attributes:
        id: 고유 식별자 UUID (Unique identifier)
        report_id: 신고 FK (Owning report)
        sequence: 신고별 순번 1부터 (Per-report order, starting at 1)
        from_status: 이전 상태 (Previous status, NULL for the creation entry)
        to_status: 새 상태 (New status)
        action: 전이 동작 이름 (Action name: review, approve, rate, ...)
        actor_id: 수행자 FK (User who triggered the transition)
        notes: 자유 서술 상세 (Optional free-text detail)
        created_at: 기록 일시 UTC (Entry timestamp)
    """

    __tablename__ = "workflow_history"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    report_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("reports.id", ondelete="CASCADE"), nullable=False, index=True)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    from_status: Mapped[ReportStatus | None] = mapped_column(_enum_column(ReportStatus, "report_status"), nullable=True)
    to_status: Mapped[ReportStatus] = mapped_column(_enum_column(ReportStatus, "report_status"), nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    actor_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("report_id", "sequence", name="uq_workflow_history_report_sequence"),
    )


class DuplicateLink(Base):
    """중복 신고 연결 모델 — 원본 신고와 중복 신고의 관계.

    Duplicate link model — Records that a report was confirmed as a duplicate
    of an earlier one, with the similarity score at detection time.
    """

    __tablename__ = "duplicate_links"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    original_report_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("reports.id", ondelete="CASCADE"), nullable=False)
    duplicate_report_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("reports.id", ondelete="CASCADE"), nullable=False)
    similarity_score: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("original_report_id", "duplicate_report_id", name="uq_duplicate_link_pair"),
    )
