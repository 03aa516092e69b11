import logging
from contextlib import contextmanager
from datetime import date, datetime, time, timezone
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.exceptions import AppException, IllegalTransition, NoFieldsProvided, PersistenceError, ValidationError, VisitNotFound
from app.db.models import ApprovalStatus, Executive, User, Visit, Visitor, VisitStatus, VisitType
from app.services.executive_service import resolve_executive_id
from app.services.visitor_service import resolve_visitor

settings = get_settings()
logger = logging.getLogger(__name__)

# Only consulted when STRICT_STATUS_TRANSITIONS is on.
VISIT_STATUS_TRANSITIONS: dict[VisitStatus, set[VisitStatus]] = {
    VisitStatus.scheduled: {VisitStatus.checked_in, VisitStatus.cancelled},
    VisitStatus.checked_in: {VisitStatus.checked_out},
    VisitStatus.checked_out: set(),
    VisitStatus.cancelled: set(),
}
APPROVAL_TRANSITIONS: dict[ApprovalStatus, set[ApprovalStatus]] = {
    ApprovalStatus.pending: {ApprovalStatus.approved, ApprovalStatus.rejected},
    ApprovalStatus.approved: {ApprovalStatus.rejected},
    ApprovalStatus.rejected: set(),
}

UPDATABLE_FIELDS = ("approval_status", "approved_at", "visit_status", "rejection_reason")


def _iso(value: date | time | datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def serialize_visit(
    visit: Visit,
    visitor: Visitor | None,
    executive: Executive | None,
    user: User | None,
) -> dict[str, Any]:
    return {
        "id": visit.id,
        "code": visit.visit_code,
        "type": visit.visit_type.value,
        "date": _iso(visit.scheduled_date),
        "time_from": _iso(visit.scheduled_time_from),
        "time_to": _iso(visit.scheduled_time_to),
        "purpose": visit.purpose_of_visit,
        "status": visit.visit_status.value,
        "approval": visit.approval_status.value,
        "approved_at": _iso(visit.approved_at),
        "rejection_reason": visit.rejection_reason,
        "actual_checkin": _iso(visit.actual_checkin_time),
        "actual_checkout": _iso(visit.actual_checkout_time),
        "created_at": _iso(visit.created_at),
        "updated_at": _iso(visit.updated_at),
        "visitor_id": visit.visitor_id,
        "executive_id": visit.executive_id,
        "visitor_name": visitor.full_name if visitor else None,
        "visitor_email": visitor.email if visitor else None,
        "visitor_phone": visitor.phone if visitor else None,
        "visitor_company": visitor.company if visitor else None,
        "executive_name": user.full_name if user else None,
        "executive_email": user.email if user else None,
        "executive_department": user.department if user else None,
        "executive_position": executive.position if executive else None,
    }


def _joined_visits_query(db: Session):
    return (
        db.query(Visit, Visitor, Executive, User)
        .outerjoin(Visitor, Visitor.id == Visit.visitor_id)
        .outerjoin(Executive, Executive.id == Visit.executive_id)
        .outerjoin(User, User.id == Executive.user_id)
    )


def list_visits(db: Session) -> list[dict[str, Any]]:
    rows = (
        _joined_visits_query(db)
        .order_by(Visit.scheduled_date.desc(), Visit.scheduled_time_from.desc())
        .all()
    )
    return [serialize_visit(*row) for row in rows]


def get_visit_record(db: Session, visit_id: str) -> dict[str, Any]:
    row = _joined_visits_query(db).filter(Visit.id == visit_id).first()
    if not row:
        raise VisitNotFound(visit_id)
    return serialize_visit(*row)


def find_visit_record_by_code(db: Session, code: str) -> dict[str, Any] | None:
    row = _joined_visits_query(db).filter(Visit.visit_code == code).first()
    return serialize_visit(*row) if row else None


@contextmanager
def _unit_of_work(db: Session, operation: str, failure_message: str, **context):
    try:
        yield
        db.commit()
    except AppException:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(
            "%s failed %s",
            operation,
            " ".join(f"{key}={value!r}" for key, value in context.items()),
        )
        raise PersistenceError(failure_message) from exc


def _coerce_enum(enum_cls, value: Any, field: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Invalid {field} {value!r}; expected one of: {allowed}") from None


def _coerce_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise ValidationError(f"Invalid scheduled date {value!r}") from None


def _coerce_time(value: Any, field: str) -> time | None:
    if value is None or value == "":
        return None
    if isinstance(value, time):
        return value
    try:
        return time.fromisoformat(str(value))
    except ValueError:
        raise ValidationError(f"Invalid {field} {value!r}") from None


def _coerce_timestamp(value: Any) -> datetime | None:
    if value is None:
        return None
    if not isinstance(value, datetime):
        try:
            value = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            raise ValidationError(f"Invalid timestamp {value!r}") from None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _check_transition(axis: str, table: dict, current, requested, allow_same: bool = True) -> None:
    if not settings.STRICT_STATUS_TRANSITIONS or (allow_same and current == requested):
        return
    if requested not in table.get(current, set()):
        raise IllegalTransition(axis, current.value, requested.value)


def create_visit(
    db: Session,
    visitor: dict[str, Any],
    executive_id: Any,
    scheduled_date: Any,
    time_from: Any = None,
    time_to: Any = None,
    purpose: str | None = None,
    visit_type: Any = VisitType.scheduled,
) -> dict[str, Any]:
    visitor = visitor or {}
    kind = _coerce_enum(VisitType, visit_type, "visit type")
    visit_date = _coerce_date(scheduled_date)
    start = _coerce_time(time_from, "time_from")
    end = _coerce_time(time_to, "time_to")
    if start and end and end < start:
        raise ValidationError("time_to must not be earlier than time_from")

    with _unit_of_work(
        db,
        "visit.create",
        "Failed to create visit",
        phone=visitor.get("phone"),
        executive_id=executive_id,
    ):
        host_id = resolve_executive_id(db, executive_id)
        person = resolve_visitor(
            db,
            name=visitor.get("name"),
            email=visitor.get("email"),
            phone=visitor.get("phone"),
            company=visitor.get("company"),
        )
        # Walk-ins go through approval as well.
        visit = Visit(
            visitor_id=person.id,
            executive_id=host_id,
            visit_type=kind,
            scheduled_date=visit_date,
            scheduled_time_from=start,
            scheduled_time_to=end,
            purpose_of_visit=(purpose or "").strip() or None,
            visit_status=VisitStatus.scheduled,
            approval_status=ApprovalStatus.pending,
        )
        db.add(visit)
        db.flush()

    logger.info(
        "visit.create completed visit_id=%s code=%s type=%s visitor_id=%s",
        visit.id,
        visit.visit_code,
        kind.value,
        person.id,
    )
    return get_visit_record(db, visit.id)


def update_visit(db: Session, visit_id: str, fields: dict[str, Any]) -> dict[str, Any]:
    changes = {key: value for key, value in (fields or {}).items() if key in UPDATABLE_FIELDS}
    if not changes:
        raise NoFieldsProvided()

    with _unit_of_work(db, "visit.update", "Update failed", visit_id=visit_id, fields=sorted(changes)):
        visit = db.query(Visit).filter(Visit.id == visit_id).first()
        if not visit:
            raise VisitNotFound(visit_id)

        if "approval_status" in changes:
            approval = _coerce_enum(ApprovalStatus, changes["approval_status"], "approval status")
            _check_transition("approval status", APPROVAL_TRANSITIONS, visit.approval_status, approval)
            visit.approval_status = approval
        if "approved_at" in changes:
            visit.approved_at = _coerce_timestamp(changes["approved_at"])
        if "visit_status" in changes:
            status = _coerce_enum(VisitStatus, changes["visit_status"], "visit status")
            _check_transition("visit status", VISIT_STATUS_TRANSITIONS, visit.visit_status, status)
            visit.visit_status = status
        if "rejection_reason" in changes:
            visit.rejection_reason = changes["rejection_reason"]
        visit.updated_at = datetime.utcnow()

    logger.info("visit.update completed visit_id=%s fields=%s", visit_id, ",".join(sorted(changes)))
    return get_visit_record(db, visit_id)


def _move_visit(db: Session, visit_id: str, target: VisitStatus, timestamp_field: str, operation: str, failure_message: str):
    with _unit_of_work(db, operation, failure_message, visit_id=visit_id):
        visit = db.query(Visit).filter(Visit.id == visit_id).first()
        if not visit:
            raise VisitNotFound(visit_id)
        _check_transition("visit status", VISIT_STATUS_TRANSITIONS, visit.visit_status, target, allow_same=False)
        now = datetime.utcnow()
        visit.visit_status = target
        setattr(visit, timestamp_field, now)
        visit.updated_at = now

    logger.info("%s completed visit_id=%s", operation, visit_id)
    return get_visit_record(db, visit_id)


def check_in(db: Session, visit_id: str) -> dict[str, Any]:
    return _move_visit(db, visit_id, VisitStatus.checked_in, "actual_checkin_time", "visit.checkin", "Check-in failed")


def check_out(db: Session, visit_id: str) -> dict[str, Any]:
    return _move_visit(db, visit_id, VisitStatus.checked_out, "actual_checkout_time", "visit.checkout", "Check-out failed")
