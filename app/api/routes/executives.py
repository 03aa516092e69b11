from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.schemas.visit import ExecutiveOut
from app.services.executive_service import list_executives

router = APIRouter()


@router.get("", response_model=dict[str, list[ExecutiveOut]])
def executives_list(db: Session = Depends(get_db)):
    return {"data": list_executives(db)}
