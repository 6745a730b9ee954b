"""
Messenger Gateway API
FastAPI application wiring auth, messaging, token refresh, email and media
routes to Supabase and Resend.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from supabase import Client
import uvicorn

from gateway.config import Settings, get_settings
from gateway.db import close_db, connect_db, create_supabase_client
from gateway.dependencies import get_db, get_media_store
from gateway.errors import (
    DatabaseConnectError,
    GatewayError,
    gateway_error_handler,
    unhandled_error_handler,
    validation_error_handler,
)
from gateway.routers import auth, files, mail, messages, refresh_token
from gateway.services.identity import IdentityService
from gateway.services.ledger import UploadLedger
from gateway.services.mailer import MailTransport
from gateway.services.storage import MediaStore

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def attach_services(app: FastAPI, settings: Settings, db: Client) -> None:
    """Build the process-wide adapters around a connected database client."""
    app.state.db = db
    app.state.media_store = MediaStore(db, settings.storage_bucket, public_url=settings.supabase_public_url)
    app.state.ledger = UploadLedger(db)
    app.state.mailer = MailTransport.from_settings(settings)
    app.state.identity = IdentityService(
        client_factory=lambda: create_supabase_client(settings, use_service_key=False),
        admin_client=db,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Connect to the database before serving and release clients on shutdown.

    A failed connection is logged and re-raised; uvicorn then aborts startup
    and exits instead of serving a broken instance.
    """
    settings: Settings = app.state.settings

    try:
        db = connect_db(settings)
    except DatabaseConnectError as exc:
        logger.error(f"Unable to connect to database: {exc}")
        raise

    attach_services(app, settings, db)
    logger.info(f"Server is running on port: {settings.port}")

    try:
        yield
    finally:
        app.state.mailer.close()
        close_db(db)
        logger.info("Server shut down")


health_router = APIRouter()


@health_router.get("/health")
async def health():
    return {"status": "ok"}


@health_router.get("/health/db")
def health_db(db: Client = Depends(get_db)):
    """Run a one-row query against the upload ledger. Returns 503 on failure."""
    try:
        db.table("uploads").select("id").limit(1).execute()
        return {"status": "ok", "database": "reachable"}
    except Exception as exc:
        logger.error(f"Database health check failed: {exc}")
        raise HTTPException(
            status_code=503,
            detail=f"Database connection failed: {str(exc)}",
        )


@health_router.get("/health/storage")
def health_storage(store: MediaStore = Depends(get_media_store)):
    """Verify the media bucket exists. Returns 503 if storage is unreachable or the bucket is missing."""
    try:
        exists = store.bucket_exists()
    except Exception as exc:
        logger.error(f"Storage health check failed: {exc}")
        raise HTTPException(
            status_code=503,
            detail=f"Storage check failed: {str(exc)}",
        )

    if not exists:
        raise HTTPException(
            status_code=503,
            detail=f"Storage bucket '{store.bucket}' not found",
        )

    return {"status": "ok", "storage": "reachable", "bucket": store.bucket}


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Messenger Gateway",
        description="Auth, messaging, email and media gateway",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # Browsers reject credentialed requests against a wildcard origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(GatewayError, gateway_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app.include_router(messages.router, prefix="/api/message", tags=["messages"])
    app.include_router(refresh_token.router, prefix="/api/refresh-token", tags=["auth"])
    app.include_router(mail.router, tags=["email"])
    app.include_router(files.router, tags=["files"])
    app.include_router(health_router, tags=["health"])

    # Mounted last: the root mount would otherwise shadow every route above
    if os.path.isdir(settings.static_dir):
        app.mount("/", StaticFiles(directory=settings.static_dir, html=True), name="static")
    else:
        logger.info(f"Static directory {settings.static_dir!r} not found; static assets disabled")

    return app


app = create_app()


def run() -> None:
    settings: Settings = app.state.settings
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
