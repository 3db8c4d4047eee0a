"""커스텀 HTTP 예외 클래스 모듈.

Custom HTTP exception classes module.
Each workflow error category maps to its own HTTPException subclass so the
API layer can render "not yours" vs "not now" without extra mapping code.
Every class carries a stable machine-readable ``code`` alongside ``detail``.

Usage:
    from app.utils.exceptions import NotFoundError, IllegalTransitionError
    raise NotFoundError("Report not found")
    raise IllegalTransitionError("Transition from closed to approved is not allowed")
"""

from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    """404 Not Found 예외 — 신고/담당자 등 참조 대상이 없을 때 사용.

    404 Not Found exception.
    Raised when a referenced report or assignee does not exist.

    Args:
        detail: 오류 메시지 (Error message, default: "Resource not found")
    """

    code: str = "REPORT_003"

    def __init__(self, detail: str = "Resource not found") -> None:
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class IllegalTransitionError(HTTPException):
    """400 Bad Request 예외 — 허용되지 않은 상태 전이 또는 가드 실패.

    400 Bad Request exception.
    Raised when the requested (from, to) pair is not in the transition table,
    or a data guard failed (e.g. missing priority on approval).

    Args:
        detail: 오류 메시지 (Error message)
    """

    code: str = "REPORT_002"

    def __init__(self, detail: str = "Transition is not allowed") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class AlreadyRatedError(HTTPException):
    """400 Bad Request 예외 — 완료 상태가 아니거나 이미 평가된 신고.

    400 Bad Request exception.
    Raised when a rating is attempted on a report that is not in ``completed``
    or that already carries a rating. The new rating value is irrelevant.
    """

    code: str = "REPORT_004"

    def __init__(
        self, detail: str = "Report already rated / only completed reports can be rated"
    ) -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class ValidationFailedError(HTTPException):
    """422 Unprocessable Entity 예외 — 비즈니스 규칙 검증 실패.

    422 Unprocessable Entity exception.
    Raised when input passes schema validation but breaks a business rule
    (e.g. low rating without a long enough comment).
    """

    code: str = "VALID_001"

    def __init__(self, detail: str = "Validation failed") -> None:
        super().__init__(status_code=422, detail=detail)


class PermissionDeniedError(HTTPException):
    """403 Forbidden 예외 — 역할 또는 소유권 부족.

    403 Forbidden exception.
    ``reason`` is ``"role"`` when the actor's role may never perform the action,
    and ``"ownership"`` when the role is right but the report belongs to someone else.

    Args:
        detail: 오류 메시지 (Error message)
        reason: "role" | "ownership"
    """

    code: str = "AUTH_003"

    ROLE: str = "role"
    OWNERSHIP: str = "ownership"

    def __init__(self, detail: str = "Insufficient permissions", reason: str = ROLE) -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
        self.reason: str = reason


class ConflictError(HTTPException):
    """409 Conflict 예외 — 동시 수정 감지 (재시도 가능).

    409 Conflict exception.
    Raised when the storage layer detects a concurrent write on the same report.
    Callers may retry the whole operation.
    """

    code: str = "REPORT_005"
    retryable: bool = True

    def __init__(self, detail: str = "Report was modified concurrently, please retry") -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)
