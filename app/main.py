import logging
from contextlib import asynccontextmanager

import socketio
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.api.routes import api_router
from app.core.config import get_settings
from app.core.exceptions import register_exception_handlers
from app.core.logging import setup_logging
from app.db.base import Base
from app.db.models import Executive, User
from app.db.session import SessionLocal, dispose_engine, engine
from app.middleware.request_context import RequestContextMiddleware
from app.socket.server import sio

settings = get_settings()
setup_logging(logging.DEBUG if settings.DEBUG else logging.INFO)
logger = logging.getLogger(__name__)

DEV_EXECUTIVES = (
    ("Amina Yusuf", "amina.yusuf@grandcity.example", "Management", "Chief Executive Officer"),
    ("Daniel Okafor", "daniel.okafor@grandcity.example", "Finance", "Finance Director"),
    ("Grace Mensah", "grace.mensah@grandcity.example", "Operations", "Head of Operations"),
)


def _seed_dev_data(db: Session):
    if db.query(Executive).count() > 0:
        return

    try:
        for full_name, email, department, position in DEV_EXECUTIVES:
            user = User(full_name=full_name, email=email, department=department)
            db.add(user)
            db.flush()
            db.add(Executive(user_id=user.id, position=position))
        db.commit()
        logger.info("seeded %d demo executives", len(DEV_EXECUTIVES))
    except IntegrityError:
        # Another worker/process already inserted seed rows.
        db.rollback()


@asynccontextmanager
async def lifespan(_: FastAPI):
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        if settings.ENVIRONMENT.lower() == "development":
            _seed_dev_data(db)
    finally:
        db.close()
    logger.info("%s started environment=%s", settings.APP_NAME, settings.ENVIRONMENT)
    yield
    dispose_engine()
    logger.info("%s stopped", settings.APP_NAME)


fastapi_app = FastAPI(title=settings.APP_NAME, debug=settings.DEBUG, lifespan=lifespan)
fastapi_app.include_router(api_router, prefix=settings.API_PREFIX)
fastapi_app.add_middleware(RequestContextMiddleware)
fastapi_app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_exception_handlers(fastapi_app)

app = socketio.ASGIApp(
    sio,
    other_asgi_app=fastapi_app,
    socketio_path=settings.SOCKET_PATH.lstrip("/"),
)


def serve() -> None:
    uvicorn.run(
        "app.main:app",
        host=settings.BACKEND_HOST,
        port=settings.BACKEND_PORT,
        log_level="debug" if settings.DEBUG else "info",
        workers=1 if settings.DEBUG else 2,
    )
