from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from invigilation.api.routes import (
    allocations,
    conflicts,
    duties,
    events,
    health,
    policy,
)
from invigilation.core.config import get_settings
from invigilation.core.exceptions import AppError
from invigilation.core.logging import configure_logging
from invigilation.core.middleware import RequestContextMiddleware, RequestSizeLimitMiddleware
from invigilation.db.bootstrap import ensure_schema

settings = get_settings()
configure_logging(settings.log_level)


@asynccontextmanager
async def lifespan(_: FastAPI):
    ensure_schema()
    yield


async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message, "details": exc.details},
    )


app = FastAPI(title=settings.project_name, lifespan=lifespan)
app.add_exception_handler(AppError, app_error_handler)

app.add_middleware(RequestSizeLimitMiddleware, max_bytes=settings.max_request_size_bytes)
app.add_middleware(RequestContextMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix=settings.api_prefix, tags=["health"])
app.include_router(allocations.router, prefix=settings.api_prefix, tags=["allocations"])
app.include_router(duties.router, prefix=settings.api_prefix, tags=["duties"])
app.include_router(conflicts.router, prefix=f"{settings.api_prefix}/conflicts", tags=["conflicts"])
app.include_router(policy.router, prefix=settings.api_prefix, tags=["settings"])
app.include_router(events.router, prefix=settings.api_prefix, tags=["events"])
