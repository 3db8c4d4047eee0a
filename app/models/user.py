"""사용자 및 건물(Block) SQLAlchemy ORM 모델 정의.

User and Block SQLAlchemy ORM model definitions.
Credentials and sessions live in the identity service; this table only keeps
what the workflow guards and the notifier need (role, contact, active flag).

Tables:
    - users: 사용자 계정 (Reporters, coordinators, fixers, admins)
    - blocks: 캠퍼스 건물 (Campus blocks referenced by specific locations)
"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import String, Boolean, DateTime, Integer, Enum as SAEnum, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.models.enums import Category, UserRole


class User(Base):
    """사용자 모델 — 시스템 사용자 계정 정보.

    User model — System user account information.
    Fixer specialization is derived from the role
    (electrical_fixer -> electrical, mechanical_fixer -> mechanical).

    Attributes:
        id: 고유 식별자 UUID (Unique identifier)
        full_name: 사용자 실명 (Display name)
        email: 이메일 주소, 고유 (Email address, unique)
        role: 역할 (reporter | coordinator | electrical_fixer | mechanical_fixer | admin)
        is_active: 활성 상태 (Inactive users receive no notifications)
        created_at: 생성 일시 UTC (Creation timestamp)
    """

    __tablename__ = "users"

    # 사용자 고유 식별자 — User unique identifier (UUID v4, auto-generated)
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # 사용자 실명 — Display name shown in notifications and history
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    # 이메일 — Unique contact address
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    # 역할 — Role used by workflow guards
    role: Mapped[UserRole] = mapped_column(
        SAEnum(UserRole, name="user_role", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    # 활성 상태 — False이면 알림 대상에서 제외 (Excluded from notification fan-out)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    # 생성 일시 — Record creation timestamp (UTC)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    @property
    def specialization(self) -> Category | None:
        return UserRole(self.role).specialization


class Block(Base):
    """건물 모델 — 캠퍼스 건물 번호와 이름.

    Block model — Campus building referenced by reports with a specific location.

    Attributes:
        id: 고유 식별자 UUID (Unique identifier)
        block_number: 건물 번호 1~100, 고유 (Block number, unique)
        name: 건물 이름 (Optional display name)
    """

    __tablename__ = "blocks"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # 건물 번호 — Block number printed on campus signage (1~100)
    block_number: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
