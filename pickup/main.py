import logging

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from pickup.api.router import router
from pickup.core.config import Settings, get_settings
from pickup.db.session import get_db
from pickup.services.errors import EngineError
from pickup.services.scheduler import start_scheduler

logger = logging.getLogger(__name__)


def _cors_options(settings: Settings) -> dict:
    origins = [origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()]
    return {
        "allow_origins": origins,
        "allow_origin_regex": (settings.CORS_ORIGIN_REGEX or "").strip() or None,
        "allow_credentials": True,
        "allow_methods": ["GET", "POST", "DELETE"],
        "allow_headers": ["Authorization", "Content-Type"],
    }


def _engine_error(request: Request, exc: EngineError) -> JSONResponse:
    logger.info("rejected %s %s -> %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


def _database_down(request: Request, exc: OperationalError) -> JSONResponse:
    logger.warning("database unreachable on %s: %s", request.url.path, exc.orig)
    return JSONResponse(status_code=503, content={"detail": "db_unavailable"})


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    application = FastAPI(title="Pickup Draft", version="1.0")
    application.add_middleware(CORSMiddleware, **_cors_options(settings))
    application.add_exception_handler(EngineError, _engine_error)
    application.add_exception_handler(OperationalError, _database_down)
    application.include_router(router)

    @application.on_event("startup")
    async def _start_background_jobs() -> None:
        application.state.scheduler_task = start_scheduler()

    @application.on_event("shutdown")
    async def _stop_background_jobs() -> None:
        task = getattr(application.state, "scheduler_task", None)
        if task is not None:
            task.cancel()

    @application.get("/health")
    def health() -> dict:
        return {"ok": True, "env": settings.APP_ENV, "scheduler": settings.SCHEDULER_ENABLED}

    @application.get("/health/db")
    def health_db(db: Session = Depends(get_db)) -> dict:
        db.execute(text("SELECT 1"))
        return {"ok": True, "db": "up"}

    return application


app = create_app()
