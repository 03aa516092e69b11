import logging
import uuid
from typing import Any

from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.exceptions import ExecutiveNotFound, NoExecutivesAvailable, ValidationError
from app.db.models import Executive, User

settings = get_settings()
logger = logging.getLogger(__name__)


def _active_executives_query(db: Session):
    return (
        db.query(Executive, User)
        .join(User, User.id == Executive.user_id)
        .filter(Executive.is_active.is_(True), User.is_active.is_(True))
    )


def canonical_executive_id(value: Any) -> str | None:
    """Lowercase dashed form of a UUID-shaped id, or None for anything else."""
    if not isinstance(value, str):
        return None
    try:
        return str(uuid.UUID(value.strip()))
    except ValueError:
        return None


def is_executive_id(value: Any) -> bool:
    return canonical_executive_id(value) is not None


def list_executives(db: Session) -> list[dict[str, Any]]:
    rows = _active_executives_query(db).order_by(User.full_name.asc()).all()
    return [
        {
            "id": executive.id,
            "name": user.full_name,
            "position": executive.position,
            "email": user.email,
            "department": user.department,
        }
        for executive, user in rows
    ]


def resolve_executive_id(db: Session, executive_id: Any) -> str:
    """Return a usable executive id for a new visit.

    Legacy callers send numeric ids. With the fallback enabled those are replaced by
    the earliest active executive, which silently changes the host, so each swap is
    logged.
    """
    canonical = canonical_executive_id(executive_id)
    if canonical:
        row = _active_executives_query(db).filter(Executive.id == canonical).first()
        if not row:
            raise ExecutiveNotFound(executive_id)
        return canonical

    if not settings.LEGACY_EXECUTIVE_FALLBACK:
        raise ValidationError(f"Malformed executive id: {executive_id!r}")

    row = _active_executives_query(db).order_by(Executive.created_at.asc()).first()
    if not row:
        raise NoExecutivesAvailable()
    substitute = row[0].id
    logger.warning(
        "executive.legacy_id substituted requested=%r executive_id=%s",
        executive_id,
        substitute,
    )
    return substitute
