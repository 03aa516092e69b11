import logging
from datetime import date
from typing import Any

from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.services.visit_service import find_visit_record_by_code

settings = get_settings()
logger = logging.getLogger(__name__)

REASON_NOT_FOUND = "not found"
REASON_EXPIRED = "expired"
REASON_CANCELLED = "cancelled"
REASON_NOT_APPROVED = "not approved"


def validate_visit_code(db: Session, code: str, today: date | None = None) -> dict[str, Any]:
    """Judge a gate scan. Read-only; the first failing rule decides the reason.

    Approval is ignored unless GATE_REQUIRE_APPROVAL is set.
    """
    code = (code or "").strip()
    visit = find_visit_record_by_code(db, code) if code else None
    if visit is None:
        logger.info("gate.validate rejected code=%s reason=%s", code, REASON_NOT_FOUND)
        return {"valid": False, "reason": REASON_NOT_FOUND}

    today = today or date.today()
    if date.fromisoformat(visit["date"]) < today:
        reason = REASON_EXPIRED
    elif visit["status"] == "cancelled":
        reason = REASON_CANCELLED
    elif settings.GATE_REQUIRE_APPROVAL and visit["approval"] != "approved":
        reason = REASON_NOT_APPROVED
    else:
        logger.info("gate.validate accepted code=%s visit_id=%s", code, visit["id"])
        return {"valid": True, "visit": visit}

    logger.info("gate.validate rejected code=%s reason=%s visit_id=%s", code, reason, visit["id"])
    return {"valid": False, "reason": reason, "visit": visit}
