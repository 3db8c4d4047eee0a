"""SQLAlchemy ORM 모델 패키지 — 모든 도메인 모델의 중앙 임포트 지점.

SQLAlchemy ORM models package — Central import point for all domain models.
Importing from this package ensures all models are registered with the
SQLAlchemy metadata, which is required for relationship resolution and
``Base.metadata.create_all``.

Modules:
    enums: 상태/우선순위/분류/역할 열거형 (Status, priority, category, role enums)
    user: 사용자 및 건물 (User and Block)
    report: 신고, 워크플로 이력, 중복 연결 (Report, WorkflowHistory, DuplicateLink)
    notification: 알림 (User notifications)
"""

from app.models.user import User, Block
from app.models.report import Report, WorkflowHistory, DuplicateLink
from app.models.notification import Notification

__all__ = [
    "User", "Block",
    "Report", "WorkflowHistory", "DuplicateLink",
    "Notification",
]
