"""
FastAPI application factory.
create_app() is the single entry point for building the app.

The token codec is built before the app object exists, so a bad JWT_SECRET
raises ConfigError at import/startup time rather than on the first login.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx
import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo.asynchronous.mongo_client import AsyncMongoClient

from config import AppSettings
from errors import register_error_handlers
from infrastructure.email.zeptomail import ZeptoMailProvider
from repositories.account_repository import AccountRepository
from routes.health_routes import router as health_router
from services.auth_service import AccountService
from services.notifications import NotificationDispatcher
from services.token_service import TokenCodec
from shared.datetime_utils import utcnow
from shared.logging import get_logger, setup_logging

log = get_logger(__name__)


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    """Create and return a fully configured FastAPI application."""
    if settings is None:
        settings = AppSettings()

    setup_logging(settings.logging)

    # Initialise Sentry before anything else so it captures startup errors
    if settings.sentry.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry.sentry_dsn,
            send_default_pii=settings.sentry.sentry_send_pii,
            traces_sample_rate=settings.sentry.sentry_traces_sample_rate,
        )

    clock = utcnow
    codec = TokenCodec(settings.jwt, clock=clock)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # ── Startup ──────────────────────────────────────────────────────────
        mongo_client: AsyncMongoClient = AsyncMongoClient(
            settings.db.mongodb_uri, tz_aware=True
        )
        app.state.mongo_client = mongo_client
        app.state.db = mongo_client[settings.db.db_name]
        app.state.settings = settings

        repository = AccountRepository.from_database(app.state.db)
        await repository.ensure_indexes()

        http_client = httpx.AsyncClient()
        provider = ZeptoMailProvider(
            settings.email,
            http_client,
            api_url=settings.api_url,
            frontend_url=settings.frontend_url,
            app_name=settings.app_name,
        )
        notifier = NotificationDispatcher(
            provider, maxsize=settings.email.notification_queue_size
        )
        notifier.start()
        app.state.notifier = notifier

        app.state.account_service = AccountService.from_settings(
            settings.security,
            store=repository,
            codec=codec,
            notifier=notifier,
            clock=clock,
        )
        log.info("app_started", env=settings.env, db_name=settings.db.db_name)

        yield

        # ── Shutdown ─────────────────────────────────────────────────────────
        await notifier.stop()
        await http_client.aclose()
        await mongo_client.close()
        log.info("app_stopped")

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        docs_url=settings.docs_url,
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.token_codec = codec

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(health_router)

    return app
