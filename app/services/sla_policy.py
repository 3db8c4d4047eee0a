"""SLA 정책 — 우선순위별 처리 기한 계산.

SLA policy — Translates a report priority into a time budget and evaluates
deadline status. Read-only with respect to report data.

The hours table is deployment configuration (``settings.SLA_HOURS``).
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Mapping, Protocol

from app.config import settings
from app.models.enums import Priority, Severity
from app.utils.clock import as_utc, utcnow


class SLASubject(Protocol):
    """SLA 계산에 필요한 최소 속성 — Minimal shape needed to evaluate an SLA."""

    created_at: datetime
    priority: Priority | None


@dataclass(frozen=True)
class SLAStatus:
    """남은/초과 시간 (분 단위) — Remaining or overdue time at minute resolution.

    Attributes:
        minutes: 기한까지 남은 시간 또는 초과 시간의 절댓값 (Absolute difference to deadline)
        is_overdue: 현재 시각이 기한을 지났는지 (now > deadline)
        deadline: 처리 기한 (Deadline timestamp, UTC)
    """

    minutes: int
    is_overdue: bool
    deadline: datetime


class SLAPolicy:
    """우선순위 → 처리 기한 매핑.

    Maps each priority to a resolution window. Every priority must be present
    in the table; a partial table is rejected at construction time.

    Args:
        hours_by_priority: 우선순위별 시간 (Hours per priority, enum or str keys)
    """

    # 긴급/높음은 critical 알림 — emergency/high breaches page as critical
    CRITICAL_PRIORITIES: frozenset[Priority] = frozenset({Priority.EMERGENCY, Priority.HIGH})

    def __init__(self, hours_by_priority: Mapping[Priority | str, float]) -> None:
        table: dict[Priority, timedelta] = {}
        for key, hours in hours_by_priority.items():
            if hours <= 0:
                raise ValueError(f"SLA hours for {key} must be positive")
            table[Priority(key)] = timedelta(hours=hours)
        missing = [p.value for p in Priority if p not in table]
        if missing:
            raise ValueError(f"SLA table is missing priorities: {', '.join(missing)}")
        self._durations: dict[Priority, timedelta] = table

    @classmethod
    def from_settings(cls) -> "SLAPolicy":
        return cls(settings.SLA_HOURS)

    def duration_for(self, priority: Priority | str) -> timedelta:
        return self._durations[Priority(priority)]

    def deadline(self, report: SLASubject) -> datetime | None:
        """created_at + duration; 우선순위 미설정 시 None (no deadline yet)."""
        if report.priority is None:
            return None
        return as_utc(report.created_at) + self.duration_for(report.priority)

    def remaining(self, report: SLASubject, now: datetime | None = None) -> SLAStatus | None:
        """기한 대비 남은/초과 시간을 분 단위로 계산합니다.

        Compute time left (or overdue) at minute resolution.

        Args:
            report: created_at/priority를 가진 신고 (Report-like object)
            now: 기준 시각, 기본값 현재 UTC (Reference time, default now)

        Returns:
            SLAStatus | None: 우선순위가 없으면 None (None when priority is unset)
        """
        deadline = self.deadline(report)
        if deadline is None:
            return None
        current = as_utc(now) if now is not None else utcnow()
        delta = current - deadline
        return SLAStatus(
            minutes=int(abs(delta).total_seconds() // 60),
            is_overdue=current > deadline,
            deadline=deadline,
        )

    def is_violated(self, report: SLASubject, now: datetime | None = None) -> bool:
        status = self.remaining(report, now)
        return status is not None and status.is_overdue

    def severity_for(self, priority: Priority | str) -> Severity:
        if Priority(priority) in self.CRITICAL_PRIORITIES:
            return Severity.CRITICAL
        return Severity.MEDIUM
