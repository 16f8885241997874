"""FastAPI gateway: HTTP/JSON transcoding of BookingService."""

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from loguru import logger
from starlette.responses import JSONResponse

from src.booking.api.http.app_data import ApplicationDependencies, build_dependencies
from src.booking.api.http.routers.health import router as health_router
from src.booking.api.http.routers.service.book import router as book_router
from src.booking.api.utils.app_startup import configure_logging
from src.booking.core.errors import BookingError, Status
from src.booking.runtime.context import get_config

configure_logging()


def error_body(code: Status, message: str) -> dict:
    """Error payload in the gateway's status convention."""
    return {"code": int(code), "message": message, "details": []}


@asynccontextmanager
async def lifespan(app: FastAPI):
    await startup(app)
    try:
        yield
    finally:
        await shutdown(app)


app = FastAPI(
    title="BookingService gateway",
    lifespan=lifespan,
    docs_url=None if get_config().app.environment == "production" else "/docs",
    redoc_url=None if get_config().app.environment == "production" else "/redoc",
)

__all__ = ["app", "startup", "shutdown"]


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    logger.bind(status_code=exc.http_status, error_type=type(exc).__name__).warning(
        "request.failed: {}", exc.message
    )
    return JSONResponse(status_code=exc.http_status, content=error_body(exc.status, exc.message))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Unparsable bodies and bad path ids stop here, before any handler runs
    message = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
    )
    logger.bind(status_code=400, error_type=type(exc).__name__).warning(
        "request.invalid: {}", message
    )
    return JSONResponse(status_code=400, content=error_body(Status.INVALID_ARGUMENT, message))


@app.middleware("http")
async def log_requests(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    base_ctx = {
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
        "client_ip": request.client.host if request.client else "unknown",
    }

    start = time.perf_counter()
    with logger.contextualize(**base_ctx):
        try:
            logger.info("request.start")
            response = await call_next(request)
            duration_ms = (time.perf_counter() - start) * 1000
            logger.bind(
                status_code=response.status_code,
                duration_ms=round(duration_ms, 1),
            ).info("request.end")
            response.headers.setdefault("X-Request-ID", request_id)
            return response
        except Exception as exc:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.bind(
                status_code=500,
                duration_ms=round(duration_ms, 1),
                error_type=type(exc).__name__,
            ).exception("request.error")
            return JSONResponse(
                status_code=500,
                content=error_body(Status.UNKNOWN, "Internal Server Error"),
                headers={"X-Request-ID": request_id},
            )


app.include_router(health_router)
app.include_router(book_router, prefix="/books", tags=["books"])


async def startup(app: FastAPI) -> None:
    # The combined server installs shared dependencies before uvicorn starts
    if getattr(app.state, "app_dependencies", None) is None:
        app.state.app_dependencies = build_dependencies()
    logger.info("Gateway starting in {} environment", get_config().app.environment)


async def shutdown(app: FastAPI) -> None:
    logger.info("Gateway shutting down")
    deps: ApplicationDependencies | None = getattr(app.state, "app_dependencies", None)
    if deps is not None:
        deps.database_service.dispose()
