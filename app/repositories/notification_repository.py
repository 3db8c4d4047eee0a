"""알림 레포지토리 — 알림 관련 DB 쿼리 담당.

Notification Repository — Handles all notification-related database queries,
including the retention sweep.
"""

from datetime import datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy import Select, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import NotificationType
from app.models.notification import Notification
from app.repositories.base import BaseRepository


class NotificationRepository(BaseRepository[Notification]):
    """알림 레포지토리.

    Notification repository with user-specific read/unread operations.

    Extends:
        BaseRepository[Notification]
    """

    def __init__(self) -> None:
        super().__init__(Notification)

    async def get_user_notifications(
        self,
        db: AsyncSession,
        user_id: UUID,
        page: int = 1,
        per_page: int = 20,
    ) -> tuple[Sequence[Notification], int]:
        """사용자의 알림 목록을 페이지네이션하여 조회합니다.

        Retrieve paginated notifications for a user, newest first.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            user_id: 사용자 UUID (User UUID)
            page: 페이지 번호, 1부터 시작 (Page number, 1-based)
            per_page: 페이지당 항목 수 (Items per page)

        Returns:
            tuple[Sequence[Notification], int]: (알림 목록, 전체 개수)
                                                 (List of notifications, total count)
        """
        query: Select = (
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc())
        )
        return await self.get_paginated(db, query, page, per_page)

    async def get_unread_count(
        self,
        db: AsyncSession,
        user_id: UUID,
    ) -> int:
        query: Select = (
            select(func.count())
            .select_from(Notification)
            .where(
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
        )
        count: int = (await db.execute(query)).scalar() or 0
        return count

    async def mark_read(
        self,
        db: AsyncSession,
        notification_id: UUID,
        user_id: UUID,
    ) -> bool:
        """단일 알림을 읽음 처리합니다 — 본인 알림만 가능.

        Mark a single notification as read. Only the recipient's own
        notification matches.

        Returns:
            bool: 처리 성공 여부 (Whether a row was updated)
        """
        result = await db.execute(
            update(Notification)
            .where(
                Notification.id == notification_id,
                Notification.user_id == user_id,
            )
            .values(is_read=True)
        )
        await db.flush()
        return result.rowcount > 0

    async def mark_all_read(
        self,
        db: AsyncSession,
        user_id: UUID,
    ) -> int:
        result = await db.execute(
            update(Notification)
            .where(
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
            .values(is_read=True)
        )
        await db.flush()
        return result.rowcount

    async def create_notification(
        self,
        db: AsyncSession,
        user_id: UUID,
        notification_type: NotificationType,
        title: str,
        message: str,
        report_id: UUID | None = None,
    ) -> Notification:
        """새 알림을 생성합니다.

        Create a new notification.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            user_id: 수신자 UUID (Recipient user UUID)
            notification_type: 알림 유형 (info | warning | alert)
            title: 알림 제목 (Short title)
            message: 알림 메시지 (Notification message)
            report_id: 관련 신고 UUID, 선택 (Optional related report)

        Returns:
            Notification: 생성된 알림 (Created notification)
        """
        notification: Notification = Notification(
            user_id=user_id,
            report_id=report_id,
            type=notification_type,
            title=title,
            message=message,
        )
        db.add(notification)
        await db.flush()
        return notification

    async def delete_older_than(
        self,
        db: AsyncSession,
        cutoff: datetime,
    ) -> int:
        """보존 기간이 지난 알림을 읽음 여부와 관계없이 삭제합니다.

        Delete notifications created before ``cutoff`` regardless of read state.

        Returns:
            int: 삭제된 알림 수 (Count of deleted notifications)
        """
        result = await db.execute(
            delete(Notification)
            .where(Notification.created_at < cutoff)
            .execution_options(synchronize_session=False)
        )
        await db.flush()
        return result.rowcount


# 싱글턴 인스턴스 — Singleton instance
notification_repository: NotificationRepository = NotificationRepository()
