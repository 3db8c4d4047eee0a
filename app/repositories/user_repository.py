"""사용자 레포지토리 — 사용자 및 건물 조회 쿼리.

User Repository — Lookup queries for users (assignees, notification
recipients) and blocks.
"""

from typing import Iterable, Sequence

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import UserRole
from app.models.user import Block, User
from app.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """사용자 테이블에 대한 데이터베이스 쿼리를 담당하는 레포지토리.

    Repository handling database queries for the users table.
    """

    def __init__(self) -> None:
        super().__init__(User)

    async def get_active_by_roles(
        self,
        db: AsyncSession,
        roles: Iterable[UserRole],
    ) -> Sequence[User]:
        """주어진 역할의 활성 사용자 목록을 조회합니다.

        Retrieve active users holding any of the given roles.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            roles: 역할 목록 (Roles to match)

        Returns:
            Sequence[User]: 사용자 목록, 생성순 (Users ordered by creation)
        """
        query: Select = (
            select(User)
            .where(User.role.in_(list(roles)), User.is_active.is_(True))
            .order_by(User.created_at)
        )
        result = await db.execute(query)
        return result.scalars().all()


class BlockRepository(BaseRepository[Block]):
    """건물 레포지토리 — Block repository."""

    def __init__(self) -> None:
        super().__init__(Block)


# 싱글턴 인스턴스 — Singleton instances
user_repository: UserRepository = UserRepository()
block_repository: BlockRepository = BlockRepository()
