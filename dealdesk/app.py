"""FastAPI application for DealDesk CRM."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import settings
from .logging_config import configure_logging
from .schemas.webhook import WebhookResponse
from .security.webhooks import WebhookRejected

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    # Auto-create tables for SQLite (local dev); PostgreSQL uses Alembic migrations
    if "sqlite" in settings.database_url:
        from .database import engine
        from .models import Base
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    logger.info("DealDesk started (owner policy: %s)", settings.owner_policy)
    yield


app = FastAPI(title=settings.app_title, lifespan=lifespan)


@app.exception_handler(WebhookRejected)
async def webhook_rejected_handler(request: Request, exc: WebhookRejected):
    body = WebhookResponse(status="error", message=exc.message).body()
    return JSONResponse(body, status_code=exc.status_code)


# Import and register routers
from .routers import health, webhooks  # noqa: E402

app.include_router(webhooks.router)
app.include_router(health.router)
