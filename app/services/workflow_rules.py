"""워크플로 규칙 — 상태 전이표와 순수 검증 함수.

Workflow rules — The transition table and pure validation helpers.
Nothing here touches the database; WorkflowService applies these rules to
loaded reports.

Transition table (from -> to : action, roles, required data):
    submitted    -> under_review : review      coordinator/admin
    submitted    -> rejected     : reject      coordinator/admin  rejection_reason
    under_review -> approved     : approve     coordinator/admin  priority
    under_review -> rejected     : reject      coordinator/admin  rejection_reason
    approved     -> assigned     : assign      coordinator/admin  assigned_to
    assigned     -> in_progress  : start_work  assignee only
    in_progress  -> completed    : complete    assignee only      completion_notes, time_spent_minutes
    completed    -> closed       : rate        original submitter (rating 4~5)
    completed    -> under_review : rate        original submitter (rating 2~3)
    completed    -> reopened     : rate        original submitter (rating 0~1 or still broken)
    completed    -> closed       : close       coordinator/admin, only once the report is rated
    closed       -> reopened     : reopen      coordinator/admin
    reopened     -> assigned     : reassign    coordinator/admin  assigned_to
"""

from dataclasses import dataclass

from app.models.enums import ReportStatus, UserRole
from app.utils.exceptions import ValidationFailedError

RATING_MIN: int = 0
RATING_MAX: int = 5
# 이 점수 이하는 코멘트 필수 — Ratings at or below this need a comment
LOW_RATING_MAX: int = 3
COMPLETION_NOTES_MIN_LENGTH: int = 10

_MANAGERS: frozenset[UserRole] = frozenset({UserRole.COORDINATOR, UserRole.ADMIN})
_FIXERS: frozenset[UserRole] = frozenset({UserRole.ELECTRICAL_FIXER, UserRole.MECHANICAL_FIXER})
_REPORTERS: frozenset[UserRole] = frozenset({UserRole.REPORTER})


@dataclass(frozen=True)
class TransitionRule:
    """전이 규칙 1건.

    Attributes:
        action: 이력에 기록되는 동작 이름 (Action name written to history)
        allowed_roles: 수행 가능한 역할 (Roles that may trigger it)
        required_fields: TransitionPayload 필수 항목 (Required payload fields)
        assignee_only: 담당자 본인만 가능 (Actor must be the current assignee)
        via_rating: rate()로만 수행 (Only reachable through rating)
    """

    action: str
    allowed_roles: frozenset[UserRole]
    required_fields: tuple[str, ...] = ()
    assignee_only: bool = False
    via_rating: bool = False


_S = ReportStatus

TRANSITIONS: dict[tuple[ReportStatus, ReportStatus], TransitionRule] = {
    (_S.SUBMITTED, _S.UNDER_REVIEW): TransitionRule("review", _MANAGERS),
    (_S.SUBMITTED, _S.REJECTED): TransitionRule("reject", _MANAGERS, ("rejection_reason",)),
    (_S.UNDER_REVIEW, _S.APPROVED): TransitionRule("approve", _MANAGERS, ("priority",)),
    (_S.UNDER_REVIEW, _S.REJECTED): TransitionRule("reject", _MANAGERS, ("rejection_reason",)),
    (_S.APPROVED, _S.ASSIGNED): TransitionRule("assign", _MANAGERS, ("assigned_to",)),
    (_S.ASSIGNED, _S.IN_PROGRESS): TransitionRule("start_work", _FIXERS, assignee_only=True),
    (_S.IN_PROGRESS, _S.COMPLETED): TransitionRule(
        "complete", _FIXERS, ("completion_notes", "time_spent_minutes"), assignee_only=True
    ),
    (_S.COMPLETED, _S.CLOSED): TransitionRule("rate", _REPORTERS, via_rating=True),
    (_S.COMPLETED, _S.UNDER_REVIEW): TransitionRule("rate", _REPORTERS, via_rating=True),
    (_S.COMPLETED, _S.REOPENED): TransitionRule("rate", _REPORTERS, via_rating=True),
    (_S.CLOSED, _S.REOPENED): TransitionRule("reopen", _MANAGERS),
    (_S.REOPENED, _S.ASSIGNED): TransitionRule("reassign", _MANAGERS, ("assigned_to",)),
}

# 평가가 이미 소진된 재완료 신고의 종료 — Closing a re-completed report whose one rating is spent
RATED_CLOSE: TransitionRule = TransitionRule("close", _MANAGERS)


def get_rule(
    from_status: ReportStatus,
    to_status: ReportStatus,
    rated: bool = False,
) -> TransitionRule | None:
    """전이 규칙 조회 — ``rated`` 신고는 completed -> closed 를 관리자가 수행.

    Look up the rule for a pair. For a report that already carries a rating,
    ``completed -> closed`` is a manager ``close`` instead of a rating step.
    """
    pair = (ReportStatus(from_status), ReportStatus(to_status))
    if rated and pair == (_S.COMPLETED, _S.CLOSED):
        return RATED_CLOSE
    return TRANSITIONS.get(pair)


def allowed_targets(from_status: ReportStatus) -> list[ReportStatus]:
    """현재 상태에서 이동 가능한 상태 — Targets reachable from ``from_status``, table order."""
    current = ReportStatus(from_status)
    return [to for (frm, to) in TRANSITIONS if frm is current]


def required_fields_for(to_status: ReportStatus) -> list[str]:
    """대상 상태 진입에 필요한 데이터 — Payload fields any rule into ``to_status`` needs."""
    target = ReportStatus(to_status)
    fields: list[str] = []
    for (_, to), rule in TRANSITIONS.items():
        if to is target:
            fields.extend(f for f in rule.required_fields if f not in fields)
    return fields


def validate_rating(
    rating: int,
    comment: str | None,
    min_comment_length: int,
    max_comment_length: int,
) -> None:
    """평가 값과 코멘트를 검증합니다.

    Validate a rating and its comment. Ratings 0~3 require a comment of at
    least ``min_comment_length`` characters (surrounding whitespace ignored);
    ratings 4~5 make it optional. Any comment is capped at ``max_comment_length``.

    Raises:
        ValidationFailedError: 범위를 벗어나거나 코멘트 조건 위반
                               (Out-of-range rating or comment rule broken)
    """
    if isinstance(rating, bool) or not isinstance(rating, int) or not RATING_MIN <= rating <= RATING_MAX:
        raise ValidationFailedError(f"Rating must be an integer between {RATING_MIN} and {RATING_MAX}")
    text = (comment or "").strip()
    if len(text) > max_comment_length:
        raise ValidationFailedError(f"Comment must be at most {max_comment_length} characters")
    if rating <= LOW_RATING_MAX and len(text) < min_comment_length:
        raise ValidationFailedError(
            f"A comment of at least {min_comment_length} characters is required for ratings of {LOW_RATING_MAX} or below"
        )


def rating_destination(rating: int, mark_still_broken: bool = False) -> ReportStatus:
    """평가 결과에 따른 다음 상태.

    0~1 or still broken -> reopened, 2~3 -> under_review, 4~5 -> closed.
    """
    if rating <= 1 or mark_still_broken:
        return ReportStatus.REOPENED
    if rating <= LOW_RATING_MAX:
        return ReportStatus.UNDER_REVIEW
    return ReportStatus.CLOSED


def validate_completion(
    completion_notes: str | None,
    time_spent_minutes: int | None,
    min_minutes: int,
    max_minutes: int,
) -> None:
    """완료 보고 검증 — Completion notes length and time-spent bounds.

    Raises:
        ValidationFailedError: 조건 위반 시 (When either value is out of bounds)
    """
    if len((completion_notes or "").strip()) < COMPLETION_NOTES_MIN_LENGTH:
        raise ValidationFailedError(
            f"Completion notes must be at least {COMPLETION_NOTES_MIN_LENGTH} characters"
        )
    if time_spent_minutes is None or not min_minutes <= time_spent_minutes <= max_minutes:
        raise ValidationFailedError(
            f"Time spent must be between {min_minutes} and {max_minutes} minutes"
        )
