from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
import os


def _split_origins(raw: str) -> tuple[str, ...]:
    return tuple(origin.strip() for origin in raw.split(",") if origin.strip())


@dataclass(frozen=True)
class Settings:
    """Runtime configuration values exposed to FastAPI components."""

    app_name: str = "user-service"
    version: str = "0.1.0"
    http_host: str = os.getenv("HTTP_HOST", "0.0.0.0")
    http_port: int = int(os.getenv("HTTP_PORT", "8000"))
    role_header: str = os.getenv("ROLE_HEADER", "X-Role")
    default_role: str = os.getenv("DEFAULT_ROLE", "USER").upper()
    cors_allow_origins: tuple[str, ...] = field(
        default_factory=lambda: _split_origins(
            os.getenv("CORS_ALLOW_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173")
        )
    )
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the cached Settings instance for the running process."""
    return Settings()
