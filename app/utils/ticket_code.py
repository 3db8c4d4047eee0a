"""티켓 코드 생성/파싱 유틸리티.

Ticket code helpers. Format: ``<PREFIX>-<CATEGORY>-<YYYYMMDD>-<NNNN>``,
e.g. ``AASTU-ELECTRICAL-20240315-0007``. The sequence restarts at 1 for each
prefix, category and day and is zero-padded to four digits; later sequences
simply grow wider.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.enums import Category
from app.repositories.report_repository import report_repository

SEQUENCE_WIDTH: int = 4

_TICKET_RE = re.compile(r"^(?P<prefix>[A-Z0-9]+)-(?P<category>[A-Z]+)-(?P<day>\d{8})-(?P<sequence>\d{4,})$")


@dataclass(frozen=True)
class TicketCode:
    prefix: str
    category: Category
    day: date
    sequence: int

    def __str__(self) -> str:
        return format_ticket_code(self.category, self.day, self.sequence, self.prefix)


def ticket_prefix(category: Category | str, day: date, prefix: str | None = None) -> str:
    """일자별 코드 접두부 — ``AASTU-ELECTRICAL-20240315-``."""
    return f"{prefix or settings.TICKET_PREFIX}-{Category(category).value.upper()}-{day:%Y%m%d}-"


def format_ticket_code(
    category: Category | str,
    day: date,
    sequence: int,
    prefix: str | None = None,
) -> str:
    if sequence < 1:
        raise ValueError("Ticket sequence starts at 1")
    return f"{ticket_prefix(category, day, prefix)}{sequence:0{SEQUENCE_WIDTH}d}"


def parse_ticket_code(code: str) -> TicketCode:
    """티켓 코드를 구성 요소로 분해합니다.

    Split a ticket code into its parts.

    Raises:
        ValueError: 형식이 맞지 않거나 분류/날짜가 유효하지 않을 때
                    (Malformed code, unknown category or impossible date)
    """
    match = _TICKET_RE.match(code or "")
    if match is None:
        raise ValueError(f"Malformed ticket code: {code!r}")
    return TicketCode(
        prefix=match["prefix"],
        category=Category(match["category"].lower()),
        day=datetime.strptime(match["day"], "%Y%m%d").date(),
        sequence=int(match["sequence"]),
    )


def is_valid_ticket_code(code: str) -> bool:
    try:
        parse_ticket_code(code)
    except ValueError:
        return False
    return True


async def generate_ticket_code(
    db: AsyncSession,
    category: Category | str,
    day: date,
) -> str:
    """해당 일자의 다음 티켓 코드를 발급합니다.

    Issue the next ticket code for a category and day: the highest existing
    sequence plus one. Two concurrent submissions may compute the same code;
    the unique constraint on ``reports.ticket_code`` rejects the second.

    Args:
        db: 비동기 데이터베이스 세션 (Async database session)
        category: 신고 분류 (Report category)
        day: 발급 기준 일자 UTC (Issue date)

    Returns:
        str: 새 티켓 코드 (New ticket code)
    """
    prefix = ticket_prefix(category, day)
    latest = await report_repository.get_max_ticket_code(db, prefix)
    sequence = parse_ticket_code(latest).sequence + 1 if latest else 1
    return format_ticket_code(category, day, sequence)
