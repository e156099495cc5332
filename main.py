import logging

import uvicorn
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from supabase import create_client

from notes_api.core.config import settings
from notes_api.core.database import AsyncSessionLocal, engine
from notes_api.core.exceptions import BadRequestError, NotesAPIError
from notes_api.core.logging_config import setup_logging
from notes_api.core.redis_client import close_redis, init_redis
from notes_api.api.api import api_router
from notes_api.schemas.common import VersionResponse
from notes_api.services.blob_store import BlobStore
from notes_api.services.identity import IdentityVerifier
from notes_api.services.push import PushSender
from notes_api.services.reminders import ReminderScheduler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    # Note: Database tables are managed by Alembic migrations
    setup_logging(settings.LOG_LEVEL)
    redis_client = await init_redis(settings.REDIS_URL)
    supabase = create_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)

    app.state.identity_verifier = IdentityVerifier(
        supabase, cache=redis_client, cache_ttl=settings.AUTH_CACHE_SECONDS
    )
    app.state.blob_store = BlobStore(supabase, settings.SUPABASE_BUCKET)

    reminders = ReminderScheduler(
        AsyncSessionLocal,
        PushSender(settings.VAPID_PRIVATE_KEY, settings.VAPID_EMAIL, ttl=settings.PUSH_TTL_SECONDS),
        interval_seconds=settings.REMINDER_INTERVAL_SECONDS,
        window_seconds=settings.REMINDER_WINDOW_SECONDS,
    )
    if settings.REMINDERS_ENABLED:
        reminders.start()
    app.state.reminders = reminders

    logger.info(f"Notes API {settings.VERSION} started")
    yield
    # Shutdown
    reminders.shutdown()
    await close_redis(redis_client)
    await engine.dispose()


app = FastAPI(
    title="Notes API",
    description="Personal notes with attachments and push reminders",
    version=settings.VERSION,
    lifespan=lifespan
)

# Only the listed frontends may make cross-origin calls
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(NotesAPIError)
async def notes_api_error_handler(request: Request, exc: NotesAPIError):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.debug(f"Rejected payload on {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=BadRequestError.status_code,
        content={"message": BadRequestError.default_message},
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"message": NotesAPIError.default_message})


# Include API router
app.include_router(api_router, prefix="/api")


@app.get("/api/version-check", response_model=VersionResponse)
async def version_check():
    return {
        "version": settings.VERSION,
        "message": "Backend desplegado y conectado correctamente.",
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.PORT,
        reload=settings.DEBUG,
        proxy_headers=True,
        forwarded_allow_ips="*"
    )
