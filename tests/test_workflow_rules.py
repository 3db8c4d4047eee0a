"""워크플로 규칙(순수 함수) 테스트.

Workflow rule tests — the transition table, rating validation and rating
destination, independent of the database.
"""

import pytest

from app.models.enums import ReportStatus, UserRole
from app.services.workflow_rules import (
    TRANSITIONS,
    allowed_targets,
    get_rule,
    rating_destination,
    required_fields_for,
    validate_completion,
    validate_rating,
)
from app.utils.exceptions import ValidationFailedError

S = ReportStatus


class TestTransitionTable:
    """전이표 테스트."""

    def test_submitted_is_never_reentered(self):
        assert all(to is not S.SUBMITTED for (_, to) in TRANSITIONS)

    def test_rejected_is_terminal(self):
        assert allowed_targets(S.REJECTED) == []

    def test_closed_only_reopens(self):
        assert allowed_targets(S.CLOSED) == [S.REOPENED]

    def test_completed_moves_only_through_rating(self):
        targets = allowed_targets(S.COMPLETED)
        assert set(targets) == {S.CLOSED, S.UNDER_REVIEW, S.REOPENED}
        assert all(get_rule(S.COMPLETED, t).via_rating for t in targets)

    def test_rated_completed_report_closes_through_managers(self):
        rule = get_rule(S.COMPLETED, S.CLOSED, rated=True)
        assert rule.action == "close"
        assert rule.via_rating is False
        assert UserRole.REPORTER not in rule.allowed_roles
        assert get_rule(S.COMPLETED, S.REOPENED, rated=True).via_rating

    def test_unknown_pair_has_no_rule(self):
        assert get_rule(S.SUBMITTED, S.APPROVED) is None

    def test_fixer_steps_are_assignee_only(self):
        assert get_rule(S.ASSIGNED, S.IN_PROGRESS).assignee_only
        assert get_rule(S.IN_PROGRESS, S.COMPLETED).assignee_only
        assert UserRole.ADMIN not in get_rule(S.ASSIGNED, S.IN_PROGRESS).allowed_roles

    @pytest.mark.parametrize(
        "target, fields",
        [
            (S.APPROVED, ["priority"]),
            (S.REJECTED, ["rejection_reason"]),
            (S.ASSIGNED, ["assigned_to"]),
            (S.COMPLETED, ["completion_notes", "time_spent_minutes"]),
            (S.UNDER_REVIEW, []),
        ],
    )
    def test_required_fields(self, target, fields):
        assert required_fields_for(target) == fields


class TestValidateRating:
    """평가 검증 테스트."""

    @pytest.mark.parametrize("rating", [0, 1, 2, 3])
    def test_low_rating_without_comment_fails(self, rating):
        with pytest.raises(ValidationFailedError):
            validate_rating(rating, None, 20, 500)

    def test_low_rating_with_short_comment_fails(self):
        with pytest.raises(ValidationFailedError):
            validate_rating(2, "too short", 20, 500)

    def test_whitespace_does_not_count_toward_length(self):
        with pytest.raises(ValidationFailedError):
            validate_rating(1, "   short comment          ", 20, 500)

    def test_low_rating_with_long_comment_passes(self):
        validate_rating(3, "The fix lasted only a single day.", 20, 500)

    @pytest.mark.parametrize("rating", [4, 5])
    def test_high_rating_comment_optional(self, rating):
        validate_rating(rating, None, 20, 500)
        validate_rating(rating, "", 20, 500)

    def test_comment_too_long_fails(self):
        with pytest.raises(ValidationFailedError):
            validate_rating(5, "x" * 501, 20, 500)

    @pytest.mark.parametrize("rating", [-1, 6, True])
    def test_out_of_range_fails(self, rating):
        with pytest.raises(ValidationFailedError):
            validate_rating(rating, "a perfectly long enough comment", 20, 500)


class TestRatingDestination:
    """평가 결과 상태 테스트."""

    @pytest.mark.parametrize(
        "rating, still_broken, expected",
        [
            (0, False, S.REOPENED),
            (1, False, S.REOPENED),
            (2, False, S.UNDER_REVIEW),
            (3, False, S.UNDER_REVIEW),
            (4, False, S.CLOSED),
            (5, False, S.CLOSED),
            (4, True, S.REOPENED),
            (5, True, S.REOPENED),
        ],
    )
    def test_destination(self, rating, still_broken, expected):
        assert rating_destination(rating, still_broken) is expected


class TestValidateCompletion:
    """완료 보고 검증 테스트."""

    def test_valid(self):
        validate_completion("Replaced the breaker", 30, 1, 1440)

    @pytest.mark.parametrize("notes", [None, "", "too short"])
    def test_short_notes_fail(self, notes):
        with pytest.raises(ValidationFailedError):
            validate_completion(notes, 30, 1, 1440)

    @pytest.mark.parametrize("minutes", [None, 0, 1441])
    def test_time_out_of_bounds_fails(self, minutes):
        with pytest.raises(ValidationFailedError):
            validate_completion("Replaced the breaker", minutes, 1, 1440)
