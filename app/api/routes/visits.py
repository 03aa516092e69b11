import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.schemas.visit import VisitCodeValidate, VisitCreate, VisitUpdate
from app.services.gate_service import REASON_NOT_FOUND, validate_visit_code
from app.services.visit_code_service import next_visit_code
from app.services.visit_service import check_in, check_out, create_visit, get_visit_record, list_visits, update_visit
from app.socket.server import broadcast_visit

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("")
def visits_list(db: Session = Depends(get_db)):
    return {"data": list_visits(db)}


@router.get("/generate-code")
def visits_generate_code(db: Session = Depends(get_db)):
    # Preview only; the stored code is assigned when the row is inserted.
    code = next_visit_code(db)
    logger.info("visit.code preview=%s", code)
    return {"data": {"code": code}}


@router.post("", status_code=status.HTTP_201_CREATED)
async def visits_create(payload: VisitCreate, db: Session = Depends(get_db)):
    visit = create_visit(
        db,
        visitor=payload.visitor.model_dump(),
        executive_id=payload.executive_id,
        scheduled_date=payload.scheduled_date,
        time_from=payload.time_from,
        time_to=payload.time_to,
        purpose=payload.purpose,
        visit_type=payload.visit_type,
    )
    await broadcast_visit(visit)
    return {"data": visit}


@router.post("/validate")
def visits_validate(payload: VisitCodeValidate, db: Session = Depends(get_db)):
    result = validate_visit_code(db, payload.code)
    if result.get("reason") == REASON_NOT_FOUND:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=result)
    return result


@router.get("/{visit_id}")
def visits_get(visit_id: str, db: Session = Depends(get_db)):
    return {"data": get_visit_record(db, visit_id)}


@router.put("/{visit_id}")
async def visits_update(visit_id: str, payload: VisitUpdate, db: Session = Depends(get_db)):
    visit = update_visit(db, visit_id, payload.to_fields())
    await broadcast_visit(visit)
    return {"data": visit}


@router.post("/{visit_id}/checkin")
async def visits_checkin(visit_id: str, db: Session = Depends(get_db)):
    visit = check_in(db, visit_id)
    await broadcast_visit(visit)
    return {"data": visit}


@router.post("/{visit_id}/checkout")
async def visits_checkout(visit_id: str, db: Session = Depends(get_db)):
    visit = check_out(db, visit_id)
    await broadcast_visit(visit)
    return {"data": visit}
