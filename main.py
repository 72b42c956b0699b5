from __future__ import annotations

import asyncio
import logging
from logging.config import dictConfig
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.v1.router import api_router
from core.config import settings
from core.exceptions import (
    AppointmentNotFound,
    BookingError,
    SlotTaken,
    StoreUnavailable,
    Unauthorized,
)
from db.database import close_database, get_motor_client
from repositories.appointments import AppointmentRepository
from services.feed import AppointmentFeed


def configure_logging() -> None:
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "json": {
                    "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
                    "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s",
                }
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "json",
                    "level": "INFO",
                }
            },
            "root": {"handlers": ["console"], "level": "INFO"},
        }
    )


configure_logging()
logger = logging.getLogger(__name__)


ERROR_STATUS = {
    SlotTaken: 409,
    Unauthorized: 403,
    AppointmentNotFound: 404,
    StoreUnavailable: 503,
}


def status_for(exc: BookingError) -> int:
    for error_type, code in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return code
    # Remaining rejections are input problems
    return 422


async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    code = status_for(exc)
    log = logger.error if exc.retryable else logger.info
    log(
        "request.rejected",
        extra={"path": str(request.url.path), "code": exc.code, "status": code, **exc.context},
    )
    return JSONResponse(status_code=code, content=exc.to_dict())


def create_app() -> FastAPI:
    app = FastAPI(title="Studio Agenda Backend", version="0.1.0")

    origins_env = settings.allowed_origins.strip()
    allow_all_origins = origins_env in {"*", '"*"'}
    if allow_all_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=False,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    else:
        allowed_origins = [o.strip() for o in origins_env.split(",") if o.strip()]
        app.add_middleware(
            CORSMiddleware,
            allow_origins=allowed_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_exception_handler(BookingError, booking_error_handler)
    app.include_router(api_router, prefix="/api/v1")

    # One feed per application; the client connects lazily
    repository = AppointmentRepository(get_motor_client()[settings.database_name])
    app.state.feed = AppointmentFeed(repository)

    @app.on_event("startup")
    async def _prepare_store():
        try:
            await repository.ensure_indexes()
        except StoreUnavailable:
            logger.warning("store.indexes_not_ensured")
        if settings.enable_change_stream:
            app.state._watch_task = asyncio.create_task(app.state.feed.watch())

    @app.on_event("shutdown")
    async def _release_store():
        task = getattr(app.state, "_watch_task", None)
        if task:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        await close_database()

    @app.get("/")
    async def root_health() -> dict[str, str]:
        return {"status": "ok"}

    logger.info("Application initialized")
    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
