"""중복 신고 탐지 서비스 — 제출 시점의 권고용 중복 검사.

Duplicate Detection Service — Advises, at submission time, whether a new
report likely duplicates an existing open one. The check never blocks a
submission: storage failures are logged and produce an empty result.

Flow:
    1. 기간 내, closed/rejected 제외 (Inside the time window, not closed/rejected)
    2. 같은 분류/위치로 좁히기, 선택 (Optional category and location narrowing)
    3. 최신순 N건으로 제한 (Cap at the N most recent)
    4. 장비+문제 설명 결합 텍스트로 유사도 계산 (Score concatenated narrative)
    5. 임계값 이상만 점수 내림차순 반환 (Keep scores >= threshold, best first)
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable, Protocol, Sequence
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.enums import DUPLICATE_EXCLUDED_STATUSES, Category, ReportStatus
from app.models.report import DuplicateLink, Report
from app.repositories.duplicate_link_repository import duplicate_link_repository
from app.repositories.report_repository import report_repository
from app.utils.clock import as_utc, utcnow
from app.utils.similarity import combined_similarity, normalize

logger = logging.getLogger("app.services.duplicates")


class ReportDraft(Protocol):
    """중복 검사 대상 — Shape of a new submission (ReportCreate satisfies it)."""

    category: Category | None
    block_id: UUID | None
    location_description: str | None
    equipment_description: str | None
    problem_description: str | None


@dataclass(frozen=True)
class DuplicateDetectionConfig:
    """중복 탐지 설정.

    Attributes:
        similarity_threshold: 중복 판정 임계값 (Minimum combined score)
        time_window_days: 후보 검색 기간 (Candidate age limit in days)
        max_candidates: 최대 비교 후보 수 (Most-recent candidates scored)
        match_location: 같은 위치만 비교 (Narrow by block or general-area text)
        match_category: 같은 분류만 비교 (Narrow by category)
    """

    similarity_threshold: float = 0.8
    time_window_days: int = 14
    max_candidates: int = 10
    match_location: bool = True
    match_category: bool = True

    @classmethod
    def from_settings(cls) -> "DuplicateDetectionConfig":
        return cls(
            similarity_threshold=settings.DUPLICATE_SIMILARITY_THRESHOLD,
            time_window_days=settings.DUPLICATE_TIME_WINDOW_DAYS,
            max_candidates=settings.DUPLICATE_MAX_CANDIDATES,
            match_location=settings.DUPLICATE_MATCH_LOCATION,
            match_category=settings.DUPLICATE_MATCH_CATEGORY,
        )


@dataclass(frozen=True)
class DuplicateCandidate:
    """중복 후보 1건 — Existing report scored against a new submission."""

    report_id: UUID
    ticket_code: str
    status: ReportStatus
    created_at: datetime
    similarity_score: float
    equipment_similarity: float
    problem_similarity: float


@dataclass
class DuplicateCheckResult:
    """중복 검사 결과 — allow_anyway is always True; the check is advisory."""

    has_duplicates: bool = False
    duplicates: list[DuplicateCandidate] = field(default_factory=list)
    warning_message: str | None = None
    allow_anyway: bool = True
    error: str | None = None


def _narrative(equipment: str | None, problem: str | None) -> str:
    return f"{equipment or ''} {problem or ''}".strip()


class DuplicateDetector:
    """순수 중복 판정기 — No I/O; operates on already-loaded candidates."""

    def __init__(self, config: DuplicateDetectionConfig | None = None) -> None:
        self.config: DuplicateDetectionConfig = config or DuplicateDetectionConfig.from_settings()

    def _same_location(self, draft: ReportDraft, candidate: Report) -> bool:
        if draft.block_id is not None:
            return candidate.block_id == draft.block_id
        area = normalize(draft.location_description)
        if area:
            return normalize(candidate.location_description) == area
        # 위치 정보 없음 — nothing to narrow by
        return True

    def find_duplicates(
        self,
        draft: ReportDraft,
        candidates: Iterable[Report],
        now: datetime | None = None,
    ) -> list[DuplicateCandidate]:
        """신규 신고와 유사한 기존 신고를 찾습니다.

        Find existing reports similar to a new submission.

        Args:
            draft: 신규 신고 데이터 (New submission)
            candidates: 기존 신고 목록, 순서 무관 (Existing reports, any order)
            now: 기준 시각, 기본값 현재 UTC (Reference time)

        Returns:
            list[DuplicateCandidate]: 임계값 이상 후보, 점수 내림차순
                                      (Candidates at or above threshold, best first)
        """
        current = as_utc(now) if now is not None else utcnow()
        cutoff = current - timedelta(days=self.config.time_window_days)

        eligible = [
            c for c in candidates
            if as_utc(c.created_at) >= cutoff and c.status not in DUPLICATE_EXCLUDED_STATUSES
        ]
        if self.config.match_category and draft.category is not None:
            eligible = [c for c in eligible if c.category == draft.category]
        if self.config.match_location:
            eligible = [c for c in eligible if self._same_location(draft, c)]

        eligible.sort(key=lambda c: as_utc(c.created_at), reverse=True)
        eligible = eligible[: self.config.max_candidates]

        draft_text = _narrative(draft.equipment_description, draft.problem_description)
        matches: list[DuplicateCandidate] = []
        for candidate in eligible:
            score = combined_similarity(
                draft_text,
                _narrative(candidate.equipment_description, candidate.problem_description),
            )
            if score < self.config.similarity_threshold:
                continue
            matches.append(
                DuplicateCandidate(
                    report_id=candidate.id,
                    ticket_code=candidate.ticket_code,
                    status=candidate.status,
                    created_at=as_utc(candidate.created_at),
                    similarity_score=score,
                    equipment_similarity=combined_similarity(
                        draft.equipment_description, candidate.equipment_description
                    ),
                    problem_similarity=combined_similarity(
                        draft.problem_description, candidate.problem_description
                    ),
                )
            )
        matches.sort(key=lambda m: m.similarity_score, reverse=True)
        return matches

    @staticmethod
    def generate_warning_message(duplicates: Sequence[DuplicateCandidate]) -> str | None:
        if not duplicates:
            return None
        if len(duplicates) == 1:
            duplicate = duplicates[0]
            return (
                f"A similar report ({duplicate.ticket_code}) was already submitted for this location. "
                f'The existing report is currently "{duplicate.status.value}". '
                "Please check if this is the same issue before submitting."
            )
        return (
            f"{len(duplicates)} similar reports have been found for this location. "
            "Please review the existing reports to avoid duplicates. "
            "You can still submit if this is a different issue."
        )


class DuplicateDetectionService:
    """중복 탐지 서비스 — Loads candidates and records confirmed duplicates."""

    def __init__(self, detector: DuplicateDetector | None = None) -> None:
        self.detector: DuplicateDetector = detector or DuplicateDetector()

    async def check_for_duplicates(
        self,
        db: AsyncSession,
        draft: ReportDraft,
        now: datetime | None = None,
    ) -> DuplicateCheckResult:
        """제출 전 중복 검사를 수행합니다.

        Run the advisory duplicate check for a submission.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            draft: 신규 신고 데이터 (New submission)
            now: 기준 시각 (Reference time)

        Returns:
            DuplicateCheckResult: 검사 결과, 저장소 오류 시 error 포함
                                  (Result; ``error`` set when storage failed)
        """
        config = self.detector.config
        current = as_utc(now) if now is not None else utcnow()
        # 세이브포인트 — 조회 실패가 제출 트랜잭션을 중단시키지 않음
        # A failed lookup rolls back to the savepoint; the submission transaction stays usable
        try:
            async with db.begin_nested():
                candidates = await report_repository.get_duplicate_candidates(
                    db,
                    since=current - timedelta(days=config.time_window_days),
                    excluded_statuses=DUPLICATE_EXCLUDED_STATUSES,
                    category=draft.category if config.match_category else None,
                    block_id=draft.block_id if config.match_location else None,
                )
        except SQLAlchemyError:
            logger.exception("Duplicate candidate lookup failed")
            return DuplicateCheckResult(error="Duplicate detection temporarily unavailable")

        duplicates = self.detector.find_duplicates(draft, candidates, current)
        if duplicates:
            logger.info(
                "Found %d possible duplicate(s), best %s (%.2f)",
                len(duplicates), duplicates[0].ticket_code, duplicates[0].similarity_score,
            )
        return DuplicateCheckResult(
            has_duplicates=bool(duplicates),
            duplicates=duplicates,
            warning_message=self.detector.generate_warning_message(duplicates),
        )

    async def record_duplicate(
        self,
        db: AsyncSession,
        original_report_id: UUID,
        duplicate_report_id: UUID,
        similarity_score: float,
    ) -> DuplicateLink:
        """중복 관계를 기록합니다 — 같은 쌍은 한 번만 저장 (idempotent).

        Record that ``duplicate_report_id`` duplicates ``original_report_id``.
        Recording the same pair again returns the existing link.
        """
        if original_report_id == duplicate_report_id:
            raise ValueError("A report cannot duplicate itself")
        existing = await duplicate_link_repository.get_link(db, original_report_id, duplicate_report_id)
        if existing is not None:
            return existing
        return await duplicate_link_repository.create(
            db,
            {
                "original_report_id": original_report_id,
                "duplicate_report_id": duplicate_report_id,
                "similarity_score": similarity_score,
            },
        )

    async def get_related(self, db: AsyncSession, report_id: UUID) -> Sequence[DuplicateLink]:
        return await duplicate_link_repository.get_for_report(db, report_id)


# 싱글턴 인스턴스 — Singleton instance
duplicate_detection_service: DuplicateDetectionService = DuplicateDetectionService()
