from datetime import date, datetime, time, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from app.core.exceptions import (
    IllegalTransition,
    NoFieldsProvided,
    PersistenceError,
    ValidationError,
    VisitNotFound,
    VisitorDataInvalid,
)
from app.db.models import Visit, Visitor, VisitStatus
from app.services import visit_code_service
from app.services.visit_service import check_in, check_out, create_visit, get_visit_record, list_visits, update_visit

VISITOR = {"name": "Ada Obi", "email": "ada@example.com", "phone": "+2348011111111", "company": "Acme"}


def _create(db, executive_id, **overrides):
    params = {
        "visitor": dict(VISITOR),
        "executive_id": executive_id,
        "scheduled_date": date.today(),
        "time_from": time(9, 0),
        "time_to": time(10, 30),
        "purpose": "Contract review",
    }
    params.update(overrides)
    return create_visit(db, **params)


@pytest.mark.parametrize("visit_type", ["scheduled", "walk-in"])
def test_create_visit_starts_scheduled_and_pending(db, settings, executive, visit_type):
    visit = _create(db, executive.id, visit_type=visit_type)

    assert visit["type"] == visit_type
    assert visit["status"] == "scheduled"
    assert visit["approval"] == "pending"
    assert visit["code"] == f"GC-{datetime.now().year}-000001"
    assert visit["date"] == date.today().isoformat()
    assert visit["time_from"] == "09:00:00"
    assert visit["visitor_name"] == "Ada Obi"
    assert visit["executive_name"] == "Amina Yusuf"
    assert visit["executive_department"] == "Management"


def test_repeat_visitor_reuses_record(db, settings, executive):
    _create(db, executive.id)
    _create(db, executive.id, visitor={**VISITOR, "name": "Ada O. Obi"})

    assert db.query(Visitor).count() == 1
    assert db.query(Visit).count() == 2
    assert db.query(Visitor).one().full_name == "Ada O. Obi"


def test_create_visit_with_legacy_executive_id(db, settings, executive):
    visit = _create(db, 4)
    assert visit["executive_id"] == executive.id


def test_create_visit_rejects_missing_visitor_fields(db, settings, executive):
    with pytest.raises(VisitorDataInvalid):
        _create(db, executive.id, visitor={"name": "Ada Obi"})
    assert db.query(Visit).count() == 0


def test_create_visit_rejects_unknown_type(db, settings, executive):
    with pytest.raises(ValidationError):
        _create(db, executive.id, visit_type="vip")


def test_create_visit_rejects_inverted_times(db, settings, executive):
    with pytest.raises(ValidationError):
        _create(db, executive.id, time_from=time(11, 0), time_to=time(10, 0))


def test_create_visit_rolls_back_on_store_failure(db, settings, executive, monkeypatch):
    def broken(executor, year=None, reserved=()):
        raise OperationalError("SELECT visit_code", {}, Exception("database is locked"))

    monkeypatch.setattr(visit_code_service, "next_visit_code", broken)

    with pytest.raises(PersistenceError):
        _create(db, executive.id)

    assert db.query(Visitor).count() == 0
    assert db.query(Visit).count() == 0


def test_code_collision_rolls_back_the_whole_visit(db, settings, executive, make_visit, monkeypatch):
    taken_code = make_visit(code="GC-2025-000001", phone="+2348099999999").visit_code
    visitors_before = db.query(Visitor).count()

    def colliding(executor, year=None, reserved=()):
        return taken_code

    monkeypatch.setattr(visit_code_service, "next_visit_code", colliding)

    with pytest.raises(PersistenceError):
        _create(db, executive.id)

    assert db.query(Visitor).count() == visitors_before
    assert db.query(Visitor).filter(Visitor.phone == VISITOR["phone"]).count() == 0
    assert db.query(Visit).count() == 1


def test_list_visits_newest_first(db, settings, executive):
    today = date.today()
    _create(db, executive.id, scheduled_date=today - timedelta(days=1))
    _create(db, executive.id, scheduled_date=today, time_from=time(8, 0), time_to=time(9, 0))
    _create(db, executive.id, scheduled_date=today, time_from=time(14, 0), time_to=time(15, 0))

    visits = list_visits(db)

    assert [(v["date"], v["time_from"]) for v in visits] == [
        (today.isoformat(), "14:00:00"),
        (today.isoformat(), "08:00:00"),
        ((today - timedelta(days=1)).isoformat(), "09:00:00"),
    ]


def test_update_visit_approval(db, settings, make_visit):
    visit = make_visit()
    approved_at = datetime(2025, 5, 1, 9, 30)

    record = update_visit(db, visit.id, {"approval_status": "approved", "approved_at": approved_at})

    assert record["approval"] == "approved"
    assert record["approved_at"] == approved_at.isoformat()
    assert record["status"] == "scheduled"


def test_update_visit_rejection_reason(db, settings, make_visit):
    visit = make_visit()
    record = update_visit(db, visit.id, {"approval_status": "rejected", "rejection_reason": "Host unavailable"})
    assert record["approval"] == "rejected"
    assert record["rejection_reason"] == "Host unavailable"


def test_update_visit_without_fields_leaves_row_untouched(db, settings, make_visit):
    visit = make_visit()
    before = db.get(Visit, visit.id).updated_at

    with pytest.raises(NoFieldsProvided):
        update_visit(db, visit.id, {})
    with pytest.raises(NoFieldsProvided):
        update_visit(db, visit.id, {"visit_code": "GC-1999-000001"})

    db.expire_all()
    assert db.get(Visit, visit.id).updated_at == before


def test_update_unknown_visit(db, settings):
    with pytest.raises(VisitNotFound):
        update_visit(db, "missing", {"visit_status": "cancelled"})


def test_update_rejects_unknown_status_value(db, settings, make_visit):
    visit = make_visit()
    with pytest.raises(ValidationError):
        update_visit(db, visit.id, {"visit_status": "teleported"})


def test_update_is_permissive_by_default(db, settings, make_visit):
    visit = make_visit(status=VisitStatus.checked_out)
    record = update_visit(db, visit.id, {"visit_status": "scheduled", "approval_status": "pending"})
    assert record["status"] == "scheduled"


def test_strict_transitions_reject_illegal_moves(db, settings, make_visit, monkeypatch):
    monkeypatch.setattr(settings, "STRICT_STATUS_TRANSITIONS", True)
    visit = make_visit(status=VisitStatus.checked_out)

    with pytest.raises(IllegalTransition):
        update_visit(db, visit.id, {"visit_status": "scheduled"})
    with pytest.raises(IllegalTransition):
        check_in(db, visit.id)

    assert get_visit_record(db, visit.id)["status"] == "checked_out"


def test_strict_transitions_allow_the_normal_path(db, settings, make_visit, monkeypatch):
    monkeypatch.setattr(settings, "STRICT_STATUS_TRANSITIONS", True)
    visit = make_visit()

    update_visit(db, visit.id, {"approval_status": "approved"})
    check_in(db, visit.id)
    record = check_out(db, visit.id)

    assert record["status"] == "checked_out"
    with pytest.raises(IllegalTransition):
        check_out(db, visit.id)


def test_check_in_sets_status_and_time(db, settings, make_visit):
    visit = make_visit()

    check_in(db, visit.id)
    record = get_visit_record(db, visit.id)

    assert record["status"] == "checked_in"
    assert record["actual_checkin"] is not None
    assert record["actual_checkout"] is None


def test_check_in_unknown_visit(db, settings):
    with pytest.raises(VisitNotFound):
        check_in(db, "missing")


def test_check_out_sets_status_and_time(db, settings, make_visit):
    visit = make_visit(status=VisitStatus.checked_in)
    record = check_out(db, visit.id)
    assert record["status"] == "checked_out"
    assert record["actual_checkout"] is not None


def test_check_out_unknown_visit(db, settings):
    with pytest.raises(VisitNotFound):
        check_out(db, "missing")


def test_check_out_before_check_in_is_allowed_by_default(db, settings, make_visit):
    visit = make_visit()
    record = check_out(db, visit.id)
    assert record["status"] == "checked_out"
    assert record["actual_checkin"] is None
