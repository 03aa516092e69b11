from fastapi import APIRouter

from app.api.routes import executives, health, visits

api_router = APIRouter()
api_router.include_router(health.router, tags=["health"])
api_router.include_router(visits.router, prefix="/visits", tags=["visits"])
api_router.include_router(executives.router, prefix="/executives", tags=["executives"])
