"""FastAPI application wiring for the user service."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from .api.errors import register_exception_handlers
from .api.routes import router as users_router
from .config import get_settings
from .domain.service import UserDirectory

logger = logging.getLogger(__name__)

settings = get_settings()


def create_app(directory: UserDirectory | None = None) -> FastAPI:
    """Build the application around ``directory`` (a fresh, empty one by default)."""
    app = FastAPI(title=settings.app_name, version=settings.version)
    app.state.user_directory = directory if directory is not None else UserDirectory()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_allow_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=600,
    )
    register_exception_handlers(app)

    @app.get("/healthz", tags=["health"])
    def healthz(request: Request) -> dict[str, Any]:
        """Return a minimal readiness indicator used by orchestration systems."""
        return {"status": "ok", "users": request.app.state.user_directory.count()}

    @app.get("/metrics", include_in_schema=False)
    def metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(users_router)
    return app


app = create_app()


def serve() -> None:
    """Run the service under uvicorn using the configured host and port."""
    import uvicorn

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logger.info("starting %s on %s:%s", settings.app_name, settings.http_host, settings.http_port)
    uvicorn.run(app, host=settings.http_host, port=settings.http_port, log_level=settings.log_level.lower())


if __name__ == "__main__":  # pragma: no cover
    serve()
