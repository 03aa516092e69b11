import logging
import re
from datetime import datetime
from typing import Iterable

from sqlalchemy import select

from app.core.config import get_settings
from app.db.models import Visit

settings = get_settings()
logger = logging.getLogger(__name__)

SEQUENCE_WIDTH = 6
_SUFFIX_PATTERN = re.compile(r"(\d{6})$")


def code_prefix(year: int) -> str:
    return f"{settings.VISIT_CODE_PREFIX}-{year}-"


def format_visit_code(year: int, sequence: int) -> str:
    return f"{code_prefix(year)}{sequence:0{SEQUENCE_WIDTH}d}"


def parse_sequence(code: str) -> int | None:
    match = _SUFFIX_PATTERN.search(code or "")
    if not match:
        return None
    return int(match.group(1))


def latest_visit_code(executor, year: int) -> str | None:
    """Greatest existing code for ``year``.

    ``executor`` may be a Session or a Connection. Lexical order matches numeric
    order because the suffix is zero padded to a fixed width.
    """
    stmt = (
        select(Visit.visit_code)
        .where(Visit.visit_code.like(f"{code_prefix(year)}%"))
        .order_by(Visit.visit_code.desc())
        .limit(1)
    )
    return executor.execute(stmt).scalar()


def next_visit_code(executor, year: int | None = None, reserved: Iterable[str] = ()) -> str:
    """Next code for ``year``, also stepping past ``reserved`` codes not yet written."""
    if year is None:
        year = datetime.now().year

    next_number = 1
    last_code = latest_visit_code(executor, year)
    for code in [last_code, *reserved]:
        if not code or not code.startswith(code_prefix(year)):
            continue
        sequence = parse_sequence(code)
        if sequence is not None:
            next_number = max(next_number, sequence + 1)

    code = format_visit_code(year, next_number)
    logger.debug("visit.code next=%s last=%s", code, last_code)
    return code
