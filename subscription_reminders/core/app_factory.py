from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .clock import Clock, utc_now
from .config import Settings
from .container import build_container, build_email_service
from .logging import configure_logging
from ..domain.ports.notifications import ReminderNotifier
from ..infrastructure.persistence.sqlite import SQLitePersistence
from ..presentation.api.routers import reminders as reminders_router
from ..presentation.api.routers import subscriptions as subscriptions_router

logger = logging.getLogger(__name__)


def create_application(
    settings: Optional[Settings] = None,
    *,
    notifier: Optional[ReminderNotifier] = None,
    clock: Clock = utc_now,
) -> FastAPI:
    settings = settings or Settings()

    app = FastAPI(
        title="Subscription Reminders",
        lifespan=_create_lifespan(settings, notifier, clock),
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(reminders_router.router)
    app.include_router(subscriptions_router.router)

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        return {"ok": True}

    return app


def _create_lifespan(
    settings: Settings,
    notifier: Optional[ReminderNotifier],
    clock: Clock,
):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging()
        persistence = SQLitePersistence(settings.database_path)
        email_notifier = notifier or build_email_service(settings)
        container = build_container(settings, persistence, email_notifier, clock=clock)
        app.state.container = container  # type: ignore[attr-defined]
        logger.info(
            "Reminder service ready (lead_days=%s, token_expiry_days=%s, database=%s)",
            settings.reminder_lead_days,
            settings.reminder_token_expiry_days,
            settings.database_path,
        )
        try:
            yield
        finally:
            persistence.close()

    return lifespan
