"""신고 워크플로 Pydantic 스키마.

Report workflow request/response schemas.
Actors arrive already authenticated; the engine only checks role and ownership.
"""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.models.enums import Category, LocationType, Priority, ReportStatus, UserRole


class Actor(BaseModel):
    """인증된 요청 주체 — Authenticated principal acting on a report.

    Attributes:
        id: 사용자 UUID (User identifier)
        role: 역할 (Role)
    """

    model_config = ConfigDict(frozen=True)

    id: UUID
    role: UserRole

    @classmethod
    def from_user(cls, user) -> "Actor":
        return cls(id=user.id, role=user.role)


class ReportCreate(BaseModel):
    """신고 제출 요청 스키마.

    Report submission request schema. Narrative length limits are enforced
    here, before the workflow engine sees the data.
    """

    category: Category
    location_type: LocationType
    block_id: UUID | None = None  # specific 위치일 때 필수 (Required for specific locations)
    room_number: str | None = Field(None, max_length=50)
    location_description: str | None = Field(None, max_length=500)  # general 위치 서술
    equipment_description: str = Field(..., min_length=3, max_length=500)
    problem_description: str = Field(..., min_length=10, max_length=500)

    @model_validator(mode="after")
    def _check_location(self) -> "ReportCreate":
        if self.location_type is LocationType.SPECIFIC and self.block_id is None:
            raise ValueError("block_id is required for a specific location")
        if self.location_type is LocationType.GENERAL and not (self.location_description or "").strip():
            raise ValueError("location_description is required for a general location")
        return self


class TransitionPayload(BaseModel):
    """상태 전이 요청 데이터 — 전이별 필수 항목은 workflow_rules 참조.

    Data accompanying a transition. Which fields are required depends on the
    target status (see ``workflow_rules.required_fields_for``).
    """

    priority: Priority | None = None  # approved
    rejection_reason: str | None = None  # rejected
    assigned_to: UUID | None = None  # assigned
    completion_notes: str | None = None  # completed
    parts_used: str | None = None  # completed, optional
    time_spent_minutes: int | None = None  # completed
    notes: str | None = None  # 이력 상세 (History detail, optional)


class TransitionOption(BaseModel):
    """현재 사용자가 수행 가능한 전이 — Transition available to the current actor."""

    to_status: ReportStatus
    action: str
    requires_data: list[str] = []


class WorkflowStatistics(BaseModel):
    """워크플로 통계 — Status distribution and SLA compliance summary."""

    status_distribution: dict[str, int]
    average_resolution_time_minutes: float | None
    sla_violations: int
    total_reports: int
