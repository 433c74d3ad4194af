import os
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings, settings as default_settings
from .db import Database
from .errors import PmTrackerError
from .logging import setup_logging, RequestIdMiddleware
from .auth.router import router as auth_router
from .routes.pm_machines import router as pm_machines_router
from .routes.machine_notes import router as machine_notes_router

logger = structlog.get_logger(__name__)


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(PmTrackerError)
    async def _pm_error(request: Request, exc: PmTrackerError):
        if exc.status_code >= 500:
            logger.error("request_failed", path=request.url.path, error=exc.message)
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        errors = [
            {"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")}
            for e in exc.errors()
        ]
        return JSONResponse(status_code=400, content={"message": "Invalid data", "errors": jsonable_encoder(errors)})

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(SQLAlchemyError)
    async def _store_error(request: Request, exc: SQLAlchemyError):
        logger.error("store_error", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=500, content={"message": "Unexpected storage error"})


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    setup_logging()
    settings = settings or default_settings
    app = FastAPI(title=settings.app_name)
    app.state.settings = settings
    app.state.database = database or Database.from_settings(settings)

    # Middlewares
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    _register_exception_handlers(app)

    # Routers
    app.include_router(auth_router)
    app.include_router(pm_machines_router)
    app.include_router(machine_notes_router)

    @app.get("/health", tags=["health"])
    def health():
        return {"status": "ok"}

    # Metrics
    if settings.enable_metrics:
        Instrumentator().instrument(app).expose(app)

    @app.on_event("startup")
    def _startup():
        db_url = settings.database_url
        # Ensure local SQLite directory exists
        if db_url.startswith("sqlite:///./"):
            os.makedirs(os.path.dirname(db_url[len("sqlite:///"):]) or ".", exist_ok=True)
        if settings.auto_create_db:
            app.state.database.create_all()
            logger.info("startup_tables_ready", database=db_url.split("@")[-1])

    @app.on_event("shutdown")
    def _shutdown():
        app.state.database.dispose()

    return app


app = create_app()
