"""도메인 이벤트 스키마 — 워크플로 엔진이 발행하는 이벤트.

Domain events emitted by the workflow engine and the SLA scan.
The notifier consumes them; it owns delivery channels and deduplication.
"""

from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from app.utils.clock import utcnow

REPORT_CREATED: str = "report.created"
REPORT_TRANSITIONED: str = "report.transitioned"  # payload: from, to, action
REPORT_SLA_VIOLATED: str = "report.sla_violated"  # payload: severity, overdue_minutes, sla_hours


class DomainEvent(BaseModel):
    """도메인 이벤트 — One fact about a report.

    Attributes:
        name: 이벤트 이름 (report.created | report.transitioned | report.sla_violated)
        report_id: 신고 UUID (Report identifier)
        ticket_code: 티켓 코드 (Ticket code for human-readable messages)
        occurred_at: 발생 일시 UTC (Event timestamp)
        payload: 이벤트별 데이터 (Event-specific data)
    """

    name: str
    report_id: UUID
    ticket_code: str
    occurred_at: datetime = Field(default_factory=utcnow)
    payload: dict[str, Any] = {}


class EventPublisher(Protocol):
    """이벤트 발행자 인터페이스 — Consumer of domain events.

    Publishing happens inside the caller's transaction so persisted side
    effects commit or roll back together with the transition.
    """

    async def publish(self, db: AsyncSession, event: DomainEvent) -> None: ...
