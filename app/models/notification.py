"""알림 관련 SQLAlchemy ORM 모델 정의.

Notification SQLAlchemy ORM model definitions.
Rows are written by the notifier when it consumes workflow domain events;
delivery over email/push/SMS is handled outside this service.

Tables:
    - notifications: 사용자 알림 (User notifications linked to a report)
"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import String, Boolean, DateTime, ForeignKey, Enum as SAEnum, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.models.enums import NotificationType


class Notification(Base):
    """알림 모델 — 사용자에게 전달되는 시스템 알림.

    Notification model — System notifications delivered to users.

    Notification Types (type 필드 값):
        - "info": 일반 상태 변경 (Regular status change)
        - "warning": 재검토/재오픈 (Review or reopen after poor rating)
        - "alert": SLA 위반 (SLA violation)

    Attributes:
        id: 고유 식별자 UUID (Unique identifier)
        user_id: 수신자 FK (Recipient user foreign key)
        report_id: 관련 신고 FK (Related report, optional)
        type: 알림 유형 (Notification type, see above)
        title: 알림 제목 (Short title)
        message: 알림 메시지 (Human-readable notification message)
        is_read: 읽음 여부 (Whether the user has read this notification)
        created_at: 생성 일시 UTC (Creation timestamp, drives retention sweep)
    """

    __tablename__ = "notifications"

    # 알림 고유 식별자 — Notification unique identifier (UUID v4, auto-generated)
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # 수신자 FK — Target user who receives this notification
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    # 관련 신고 FK — Report that triggered the notification
    report_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("reports.id", ondelete="CASCADE"), nullable=True)
    # 알림 유형 — info | warning | alert
    type: Mapped[NotificationType] = mapped_column(
        SAEnum(NotificationType, name="notification_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    # 알림 제목 — Short title
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    # 알림 메시지 — Human-readable message displayed to the user
    message: Mapped[str] = mapped_column(String(1000), nullable=False)
    # 읽음 여부 — False=미읽음, True=읽음 (Unread by default)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False)
    # 생성 일시 — Notification creation timestamp (UTC, immutable)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
