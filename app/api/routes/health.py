import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.db.session import database_now, get_db

router = APIRouter()
settings = get_settings()
logger = logging.getLogger(__name__)


@router.get("/health")
def health(db: Session = Depends(get_db)):
    try:
        timestamp = database_now(db)
    except SQLAlchemyError:
        logger.exception("health database ping failed")
        return JSONResponse(
            status_code=500,
            content={"status": "error", "database": "disconnected", "environment": settings.ENVIRONMENT},
        )
    return {
        "status": "ok",
        "database": "connected",
        "timestamp": timestamp.isoformat(),
        "environment": settings.ENVIRONMENT,
    }
