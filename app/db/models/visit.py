import uuid
from datetime import date, datetime, time
from enum import Enum

from sqlalchemy import Date, DateTime, Engine, Enum as SqlEnum, ForeignKey, String, Text, Time, event
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


class VisitType(str, Enum):
    scheduled = "scheduled"
    walk_in = "walk-in"


class VisitStatus(str, Enum):
    scheduled = "scheduled"
    checked_in = "checked_in"
    checked_out = "checked_out"
    cancelled = "cancelled"


class ApprovalStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


def _enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


class Visit(Base):
    __tablename__ = "visits"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    visit_code: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    visitor_id: Mapped[str] = mapped_column(String(36), ForeignKey("visitors.id"), nullable=False, index=True)
    executive_id: Mapped[str] = mapped_column(String(36), ForeignKey("executives.id"), nullable=False, index=True)
    visit_type: Mapped[VisitType] = mapped_column(
        SqlEnum(VisitType, name="visit_type", values_callable=_enum_values),
        nullable=False,
        default=VisitType.scheduled,
    )
    scheduled_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    scheduled_time_from: Mapped[time | None] = mapped_column(Time, nullable=True)
    scheduled_time_to: Mapped[time | None] = mapped_column(Time, nullable=True)
    purpose_of_visit: Mapped[str | None] = mapped_column(Text, nullable=True)
    visit_status: Mapped[VisitStatus] = mapped_column(
        SqlEnum(VisitStatus, name="visit_status", values_callable=_enum_values),
        nullable=False,
        default=VisitStatus.scheduled,
    )
    approval_status: Mapped[ApprovalStatus] = mapped_column(
        SqlEnum(ApprovalStatus, name="approval_status", values_callable=_enum_values),
        nullable=False,
        default=ApprovalStatus.pending,
    )
    approved_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    actual_checkin_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    actual_checkout_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    visitor = relationship("Visitor", back_populates="visits")
    executive = relationship("Executive", back_populates="visits")


# Codes handed out on a connection whose INSERTs have not been sent yet. SQLAlchemy runs
# before_insert for every pending Visit of a flush before the first INSERT, so the table
# alone cannot tell two visits flushed together apart.
ISSUED_CODES_KEY = "issued_visit_codes"


@event.listens_for(Visit, "before_insert")
def _assign_visit_code(mapper, connection, target: Visit) -> None:
    # Runs on the inserting connection, so the lookup shares the caller's transaction.
    # The unique index on visit_code rejects whatever a concurrent insert still races into.
    if target.visit_code:
        return
    from app.services.visit_code_service import next_visit_code

    issued = connection.info.setdefault(ISSUED_CODES_KEY, set())
    target.visit_code = next_visit_code(connection, reserved=issued)
    issued.add(target.visit_code)


@event.listens_for(Engine, "commit")
@event.listens_for(Engine, "rollback")
def _forget_issued_codes(connection) -> None:
    connection.info.pop(ISSUED_CODES_KEY, None)
