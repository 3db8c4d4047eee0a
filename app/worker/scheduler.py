"""컴플라이언스 스케줄러 — 주기 작업 실행기.

Compliance scheduler. Runs independent recurring jobs on an APScheduler
``AsyncIOScheduler`` owned by the application lifespan:

    - sla_scan: 열린 신고의 SLA 위반 검사 (every SLA_SCAN_INTERVAL_MINUTES)
    - notification_sweep: 오래된 알림 삭제 (every NOTIFICATION_SWEEP_INTERVAL_HOURS)

Every job runs once on start, then on its interval. A job never overlaps
itself, and a failing run is logged without unscheduling the job or
touching its siblings.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable

from apscheduler.job import Job
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.services.compliance_service import ComplianceService, compliance_service

logger = logging.getLogger("app.worker")

JobFunc = Callable[[], Awaitable[Any]]


@dataclass(frozen=True)
class ScheduledJob:
    """주기 작업 정의.

    Attributes:
        name: 작업 이름, 레지스트리 키 (Job name, registry key)
        func: 인자 없는 코루틴 함수 (Zero-argument coroutine function)
        interval: 실행 주기 (Interval between runs)
    """

    name: str
    func: JobFunc
    interval: timedelta


class ComplianceScheduler:
    """주기 작업 스케줄러 — start/stop는 대칭이며 멱등.

    Scheduler with a name -> Job registry. ``start`` and ``stop`` are
    symmetric and idempotent; a stopped scheduler may be started again.

    Args:
        jobs: 등록할 작업 목록 (Jobs to schedule)
        timezone_name: 스케줄러 시간대 (Scheduler timezone)
    """

    def __init__(self, jobs: list[ScheduledJob], timezone_name: str | None = None) -> None:
        names = [job.name for job in jobs]
        if len(names) != len(set(names)):
            raise ValueError("Scheduled job names must be unique")
        self._jobs: list[ScheduledJob] = list(jobs)
        self._timezone: str = timezone_name or settings.SCHEDULER_TIMEZONE
        self._scheduler: AsyncIOScheduler | None = None
        self._registry: dict[str, Job] = {}

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    @property
    def active_jobs(self) -> list[str]:
        return list(self._registry)

    def start(self) -> None:
        """모든 작업을 즉시 1회 실행하고 주기 실행을 예약합니다.

        Schedule every job to run now and then on its interval.
        Must be called from a running event loop. No-op when already running.
        """
        if self.is_running:
            return
        scheduler = AsyncIOScheduler(event_loop=asyncio.get_running_loop(), timezone=self._timezone)
        now = datetime.now(timezone.utc)
        for job in self._jobs:
            self._registry[job.name] = scheduler.add_job(
                self._guarded(job),
                trigger=IntervalTrigger(seconds=job.interval.total_seconds(), timezone=self._timezone),
                id=job.name,
                name=job.name,
                next_run_time=now,
                max_instances=1,
                coalesce=True,
            )
        scheduler.start()
        self._scheduler = scheduler
        logger.info("Compliance scheduler started: %s", ", ".join(self.active_jobs))

    def stop(self) -> None:
        """예약된 실행을 모두 취소합니다 — 이미 중지된 경우 아무것도 하지 않음.

        Cancel all pending runs. Stopping a stopped scheduler is a no-op.
        """
        if not self.is_running:
            self._registry.clear()
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        self._registry.clear()
        logger.info("Compliance scheduler stopped")

    def status(self) -> dict[str, Any]:
        """헬스 체크용 상태 — Running flag and next run time per job."""
        jobs: dict[str, str | None] = {}
        for name, job in self._registry.items():
            next_run = job.next_run_time
            jobs[name] = next_run.isoformat() if next_run is not None else None
        return {"running": self.is_running, "jobs": jobs}

    @staticmethod
    def _guarded(job: ScheduledJob) -> JobFunc:
        async def run() -> None:
            try:
                await job.func()
            except Exception:
                logger.exception("Scheduled job %s failed", job.name)

        run.__name__ = f"run_{job.name}"
        return run


def build_compliance_jobs(
    session_factory: async_sessionmaker[AsyncSession],
    service: ComplianceService | None = None,
) -> list[ScheduledJob]:
    """SLA 검사/알림 정리 작업을 구성합니다.

    Compose the two default jobs. Each run opens its own session and commits;
    on failure it rolls back and re-raises so the scheduler logs the run.

    Args:
        session_factory: 세션 팩토리 (Async session factory)
        service: 컴플라이언스 서비스 (Compliance service, defaults to the singleton)

    Returns:
        list[ScheduledJob]: 스케줄러에 넘길 작업 목록 (Jobs for ComplianceScheduler)
    """
    compliance = service or compliance_service

    async def sla_scan() -> None:
        async with session_factory() as db:
            try:
                await compliance.scan_sla_violations(db)
                await db.commit()
            except Exception:
                await db.rollback()
                raise

    async def notification_sweep() -> None:
        async with session_factory() as db:
            try:
                await compliance.purge_notifications(db)
                await db.commit()
            except Exception:
                await db.rollback()
                raise

    return [
        ScheduledJob("sla_scan", sla_scan, timedelta(minutes=settings.SLA_SCAN_INTERVAL_MINUTES)),
        ScheduledJob(
            "notification_sweep",
            notification_sweep,
            timedelta(hours=settings.NOTIFICATION_SWEEP_INTERVAL_HOURS),
        ),
    ]
