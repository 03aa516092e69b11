import logging

from app.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


def register_socket_events(sio):
    @sio.event(namespace=settings.GATE_NAMESPACE)
    async def connect(sid, environ, auth=None):
        logger.info("gate.socket connected sid=%s", sid)

    @sio.event(namespace=settings.GATE_NAMESPACE)
    async def disconnect(sid, *args):
        logger.info("gate.socket disconnected sid=%s", sid)
