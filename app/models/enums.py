"""도메인 열거형 정의.

Domain enumerations shared by models, schemas and services.
All enums are str-valued so they serialize as their plain value.
"""

import enum


class ReportStatus(str, enum.Enum):
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CLOSED = "closed"
    REOPENED = "reopened"


# SLA 검사 대상 상태 — Statuses scanned for SLA breaches
SLA_OPEN_STATUSES: frozenset[ReportStatus] = frozenset({
    ReportStatus.SUBMITTED,
    ReportStatus.UNDER_REVIEW,
    ReportStatus.APPROVED,
    ReportStatus.ASSIGNED,
    ReportStatus.IN_PROGRESS,
})

# 중복 탐지 제외 상태 — Statuses never offered as duplicate candidates
DUPLICATE_EXCLUDED_STATUSES: frozenset[ReportStatus] = frozenset({
    ReportStatus.CLOSED,
    ReportStatus.REJECTED,
})


class Priority(str, enum.Enum):
    EMERGENCY = "emergency"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Category(str, enum.Enum):
    ELECTRICAL = "electrical"
    MECHANICAL = "mechanical"


class LocationType(str, enum.Enum):
    SPECIFIC = "specific"  # 건물(block) + 호실 (Block + room)
    GENERAL = "general"  # 자유 서술 위치 (Free-text area)


class UserRole(str, enum.Enum):
    REPORTER = "reporter"
    COORDINATOR = "coordinator"
    ELECTRICAL_FIXER = "electrical_fixer"
    MECHANICAL_FIXER = "mechanical_fixer"
    ADMIN = "admin"

    @property
    def specialization(self) -> "Category | None":
        """수리 담당자의 전문 분야 — Fixer specialization, None for other roles."""
        if self is UserRole.ELECTRICAL_FIXER:
            return Category.ELECTRICAL
        if self is UserRole.MECHANICAL_FIXER:
            return Category.MECHANICAL
        return None


class NotificationType(str, enum.Enum):
    INFO = "info"
    WARNING = "warning"
    ALERT = "alert"


class Severity(str, enum.Enum):
    CRITICAL = "critical"
    MEDIUM = "medium"
