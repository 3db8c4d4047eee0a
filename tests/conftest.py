"""테스트 인프라 — 인메모리 SQLite DB, 세션, httpx 클라이언트 픽스처.

Test infrastructure — In-memory aiosqlite database, session, and httpx client
fixtures. Every test gets a fresh schema, so no cleanup is needed.
"""

import itertools
from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from typing import Any

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from app.database import Base
from app.main import app
from app.models import *  # noqa: F401,F403 — register all models with metadata
from app.models.enums import Category, LocationType, Priority, ReportStatus, UserRole
from app.models.report import Report
from app.models.user import Block, User
from app.schemas.events import DomainEvent
from app.schemas.report import Actor, TransitionPayload
from app.services.workflow_service import WorkflowService

# ---------------------------------------------------------------------------
# 테스트 DB 설정
# ---------------------------------------------------------------------------
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# 고정 기준 시각 — Fixed reference time for time-dependent tests
T0 = datetime(2024, 3, 15, 9, 0, tzinfo=timezone.utc)

_ticket_numbers = itertools.count(1)


# ---------------------------------------------------------------------------
# Function-scoped: 엔진, 세션, 클라이언트
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """테스트용 async 엔진 — 단일 연결을 공유하는 인메모리 DB."""
    eng = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    """각 테스트에 격리된 DB 세션을 제공합니다."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """FastAPI 테스트 클라이언트 (lifespan 미실행 — lifespan is not run)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ---------------------------------------------------------------------------
# 이벤트 기록용 발행자
# ---------------------------------------------------------------------------
class RecordingPublisher:
    """발행된 도메인 이벤트를 기록합니다 — Collects published events."""

    def __init__(self) -> None:
        self.events: list[DomainEvent] = []

    async def publish(self, db: AsyncSession, event: DomainEvent) -> None:
        self.events.append(event)

    def names(self) -> list[str]:
        return [event.name for event in self.events]


@pytest_asyncio.fixture
async def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest_asyncio.fixture
async def workflow(publisher: RecordingPublisher) -> WorkflowService:
    return WorkflowService(publisher=publisher)


# ---------------------------------------------------------------------------
# 헬퍼 픽스처: 테스트용 데이터 생성
# ---------------------------------------------------------------------------
async def _create_user(db: AsyncSession, name: str, role: UserRole) -> User:
    user = User(full_name=name, email=f"{name.lower().replace(' ', '.')}@aastu.test", role=role)
    db.add(user)
    await db.flush()
    return user


@pytest_asyncio.fixture
async def reporter(db: AsyncSession) -> User:
    return await _create_user(db, "Abebe Reporter", UserRole.REPORTER)


@pytest_asyncio.fixture
async def other_reporter(db: AsyncSession) -> User:
    return await _create_user(db, "Sara Reporter", UserRole.REPORTER)


@pytest_asyncio.fixture
async def coordinator(db: AsyncSession) -> User:
    return await _create_user(db, "Kebede Coordinator", UserRole.COORDINATOR)


@pytest_asyncio.fixture
async def admin(db: AsyncSession) -> User:
    return await _create_user(db, "Almaz Admin", UserRole.ADMIN)


@pytest_asyncio.fixture
async def electrical_fixer(db: AsyncSession) -> User:
    return await _create_user(db, "Dawit Electrician", UserRole.ELECTRICAL_FIXER)


@pytest_asyncio.fixture
async def mechanical_fixer(db: AsyncSession) -> User:
    return await _create_user(db, "Hana Mechanic", UserRole.MECHANICAL_FIXER)


@pytest_asyncio.fixture
async def block(db: AsyncSession) -> Block:
    b = Block(block_number=57, name="Block 57")
    db.add(b)
    await db.flush()
    return b


def actor(user: User) -> Actor:
    return Actor.from_user(user)


async def create_report(
    db: AsyncSession,
    submitter: User,
    *,
    category: Category = Category.ELECTRICAL,
    block: Block | None = None,
    location_description: str | None = None,
    status: ReportStatus = ReportStatus.SUBMITTED,
    priority: Priority | None = None,
    assigned_to: User | None = None,
    created_at: datetime = T0,
    equipment: str = "Ceiling light fixture",
    problem: str = "The light keeps flickering and then turns off completely",
    **fields: Any,
) -> Report:
    """저장된 신고를 직접 생성합니다 — Insert a report row directly, bypassing the workflow."""
    report = Report(
        ticket_code=f"TEST-{category.value.upper()}-20240101-{next(_ticket_numbers):04d}",
        category=category,
        location_type=LocationType.SPECIFIC if block is not None else LocationType.GENERAL,
        block_id=block.id if block is not None else None,
        location_description=location_description,
        equipment_description=equipment,
        problem_description=problem,
        status=status,
        priority=priority,
        submitted_by=submitter.id,
        assigned_to=assigned_to.id if assigned_to is not None else None,
        created_at=created_at,
        updated_at=created_at,
        **fields,
    )
    db.add(report)
    await db.flush()
    return report


async def advance_to_completed(
    service: WorkflowService,
    db: AsyncSession,
    report: Report,
    coordinator: User,
    fixer: User,
    priority: Priority = Priority.HIGH,
) -> Report:
    """submitted → completed 정상 경로 — Drive a report along the happy path to completed."""
    await service.execute_transition(db, report.id, ReportStatus.UNDER_REVIEW, actor(coordinator))
    await service.execute_transition(
        db, report.id, ReportStatus.APPROVED, actor(coordinator), TransitionPayload(priority=priority)
    )
    await service.execute_transition(
        db, report.id, ReportStatus.ASSIGNED, actor(coordinator), TransitionPayload(assigned_to=fixer.id)
    )
    await service.execute_transition(db, report.id, ReportStatus.IN_PROGRESS, actor(fixer))
    return await service.execute_transition(
        db,
        report.id,
        ReportStatus.COMPLETED,
        actor(fixer),
        TransitionPayload(completion_notes="Replaced the faulty ballast", time_spent_minutes=45),
    )
