import logging
from typing import Any

import socketio

from app.core.config import get_settings
from app.socket.events import register_socket_events

settings = get_settings()
logger = logging.getLogger(__name__)

sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins="*" if settings.DEBUG else settings.cors_origins,
    logger=False,
    engineio_logger=False,
)

register_socket_events(sio)


async def broadcast_visit(visit: dict[str, Any]) -> None:
    """Push a changed visit to gate dashboards."""
    await sio.emit("visit.updated", {"data": visit}, namespace=settings.GATE_NAMESPACE)
    logger.debug("gate.broadcast visit_id=%s status=%s", visit["id"], visit["status"])
