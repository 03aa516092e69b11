import logging
from datetime import datetime

from sqlalchemy.orm import Session

from app.core.exceptions import VisitorDataInvalid
from app.db.models import Visitor

logger = logging.getLogger(__name__)

REQUIRED_VISITOR_FIELDS = ("name", "phone")


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def normalize_visitor_fields(
    name: str | None,
    email: str | None,
    phone: str | None,
    company: str | None,
) -> dict[str, str | None]:
    fields = {
        "name": _clean(name),
        "email": _clean(email),
        "phone": _clean(phone),
        "company": _clean(company),
    }
    missing = [key for key in REQUIRED_VISITOR_FIELDS if not fields[key]]
    if missing:
        raise VisitorDataInvalid(missing)
    return fields


def resolve_visitor(
    db: Session,
    name: str | None,
    email: str | None,
    phone: str | None,
    company: str | None,
) -> Visitor:
    """Find the visitor by phone number and refresh their details, or register them.

    Phone is the only identity key, so two people sharing a number resolve to the
    same record. The caller owns the transaction; nothing is committed here.
    """
    fields = normalize_visitor_fields(name, email, phone, company)

    visitor = (
        db.query(Visitor)
        .filter(Visitor.phone == fields["phone"])
        .order_by(Visitor.created_at.asc())
        .first()
    )
    if visitor:
        visitor.full_name = fields["name"]
        visitor.email = fields["email"]
        visitor.company = fields["company"]
        visitor.updated_at = datetime.utcnow()
        db.flush()
        logger.info("visitor.resolve found visitor_id=%s", visitor.id)
        return visitor

    visitor = Visitor(
        full_name=fields["name"],
        email=fields["email"],
        phone=fields["phone"],
        company=fields["company"],
    )
    db.add(visitor)
    db.flush()
    logger.info("visitor.resolve created visitor_id=%s", visitor.id)
    return visitor
