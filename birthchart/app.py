import logging
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, configure_logging
from .middleware.logging import LoggingMiddleware
from .routers import charts as charts_router
from .services.ephem import build_provider
from .services.errors import ChartError, EphemerisUnavailable, GeometryDomainError, ValidationError

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = {
    ValidationError: 422,
    GeometryDomainError: 422,
    EphemerisUnavailable: 503,
}
USER_MESSAGES = {
    ValidationError: None,
    GeometryDomainError: "Could not determine the birth chart for that location and time.",
    EphemerisUnavailable: "Planetary positions are temporarily unavailable.",
}


async def chart_error_handler(request: Request, exc: ChartError) -> JSONResponse:
    status = STATUS_BY_ERROR.get(type(exc), 500)
    message = USER_MESSAGES.get(type(exc)) or exc.message
    logger.warning("%s on %s: %s inputs=%s", exc.code, request.url.path, exc.message, exc.inputs)
    return JSONResponse({"error": exc.code, "detail": message}, status_code=status)


def _add_cors(app: FastAPI, settings: Settings) -> None:
    # Configure CORS - localhost for development, production domains for production
    if settings.is_dev:
        app.add_middleware(
            CORSMiddleware,
            allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=["Content-Length", "Content-Type"],
            max_age=86400,
        )
        return

    allowed = []
    if settings.preview_origin:  # e.g., a deploy preview URL
        allowed.append(settings.preview_origin)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Length", "Content-Type"],
        max_age=86400,
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env(dotenv=False)
    configure_logging(settings)

    app = FastAPI(title="birthchart", version="0.1.0")
    app.state.settings = settings
    # built once; the engine only reads from it afterwards
    app.state.provider = build_provider(settings.ephemeris_backend, settings.ephemeris_dir)
    logger.info("ephemeris backend %s (houses: %s)", app.state.provider.name, app.state.provider.house_engine)

    _add_cors(app, settings)
    app.add_middleware(LoggingMiddleware, enabled=settings.logging_enabled)
    app.add_exception_handler(ChartError, chart_error_handler)

    app.include_router(charts_router.router)

    @app.get("/__health")
    def health():
        return {"ok": True, "ephemeris": app.state.provider.name}

    return app


app = create_app()
