import logging
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from roster.config import get_settings
from roster.db import init_db
from roster.errors import AppError
from roster.routers import (
    buildings,
    health,
    notifications,
    reference,
    requests,
    scheduling,
    shifts,
    stats,
    tasks,
    users,
)
from roster.schemas import ErrorCode

settings = get_settings()
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger("roster")


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.dev_mode:
        await init_db()
        logger.info("Database tables initialized in dev mode.")
    yield


app = FastAPI(title="Inspector Roster", version="1.0.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(buildings.router)
app.include_router(shifts.router)
app.include_router(scheduling.router)
app.include_router(requests.router)
app.include_router(users.router)
app.include_router(reference.router)
app.include_router(tasks.router)
app.include_router(notifications.router)
app.include_router(stats.router)
app.include_router(health.router)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    request_id = str(uuid.uuid4())
    correlation_id = request.headers.get("x-correlation-id", str(uuid.uuid4()))
    request.state.request_id = request_id
    request.state.correlation_id = correlation_id
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
    response.headers["x-request-id"] = request_id
    response.headers["x-correlation-id"] = correlation_id
    logger.info(
        "request_complete",
        extra={
            "request_id": request_id,
            "correlation_id": correlation_id,
            "path": request.url.path,
            "method": request.method,
            "status_code": response.status_code,
            "elapsed_ms": elapsed_ms,
        },
    )
    return response


def _error_body(request: Request, code: ErrorCode, user_message: str, developer_message: str) -> dict:
    return {
        "errorCode": code.value,
        "userMessage": user_message,
        "developerMessage": developer_message,
        "correlationId": getattr(request.state, "correlation_id", str(uuid.uuid4())),
    }


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, exc.error_code, exc.user_message, exc.developer_message),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    messages = []
    for err in exc.errors():
        where = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        msg = err.get("msg", "invalid value")
        messages.append(f"{where}: {msg}" if where else msg)
    joined = "; ".join(messages) or "Invalid request."
    return JSONResponse(
        status_code=400,
        content=_error_body(request, ErrorCode.validation_error, joined, joined),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(
        "unhandled_error",
        extra={"path": request.url.path, "method": request.method},
    )
    return JSONResponse(
        status_code=500,
        content=_error_body(
            request,
            ErrorCode.internal_error,
            "Something went wrong. Please try again.",
            f"{type(exc).__name__}: {exc}",
        ),
    )
