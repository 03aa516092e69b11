from functools import lru_cache
from pathlib import Path
from typing import List
from urllib.parse import urlparse
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = Path(__file__).resolve().parents[2] / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=str(ENV_FILE), case_sensitive=False)

    APP_NAME: str = "Grand City Guest Pass"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    API_PREFIX: str = "/api"
    BACKEND_HOST: str = "0.0.0.0"
    BACKEND_PORT: int = 3000

    DATABASE_URL: str = "sqlite:///./guestpass.db"

    CORS_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:3000"

    SOCKET_PATH: str = "/socket.io"
    GATE_NAMESPACE: str = "/realtime/gate"

    VISIT_CODE_PREFIX: str = "GC"

    # Old front-ends post numeric executive ids; swap in an active executive instead of failing.
    LEGACY_EXECUTIVE_FALLBACK: bool = True
    STRICT_STATUS_TRANSITIONS: bool = False
    GATE_REQUIRE_APPROVAL: bool = False

    @property
    def cors_origins(self) -> List[str]:
        origins: list[str] = []
        for raw in self.CORS_ORIGINS.split(","):
            value = raw.strip()
            if not value:
                continue
            parsed = urlparse(value)
            if parsed.scheme and parsed.netloc:
                value = f"{parsed.scheme}://{parsed.netloc}"
            origins.append(value.rstrip("/"))
        return origins


@lru_cache
def get_settings() -> Settings:
    return Settings()
