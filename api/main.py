"""
PromoLink API - Main entry point
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from api.middleware.logging import RequestLoggingMiddleware
from api.routes.affiliate_links import router as affiliate_links_router
from api.routes.health import router as health_router
from api.routes.redirect import router as redirect_router
from api.routes.stats import router as stats_router
from api.routes.webhooks import router as webhooks_router
from lib.db import Database, PostgresStore
from lib.errors import WebhookError
from lib.memory_store import InMemoryStore
from lib.redis_client import redis_client
from lib.repositories import MarketplaceStore, StorageError
from lib.settings import Settings, settings
from lib.webhook_security import SHOP_DOMAIN_HEADER, SIGNATURE_HEADER, TOPIC_HEADER

logger = logging.getLogger(__name__)


def build_store(config: Settings) -> MarketplaceStore:
    """PostgreSQL store when DATABASE_URL is set, otherwise in-memory"""
    if config.database_url:
        return PostgresStore(Database(str(config.database_url)))
    logger.warning("DATABASE_URL not set - using in-memory store, data will not persist")
    return InMemoryStore()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage app lifecycle - connect/disconnect resources"""
    logger.info("Starting PromoLink API...")

    if not settings.shopify_webhook_secret:
        logger.error("SHOPIFY_WEBHOOK_SECRET not configured - all webhooks will be rejected")

    store = build_store(settings)
    await store.connect()
    app.state.store = store
    logger.info(f"Marketplace store ready ({type(store).__name__})")

    await redis_client.connect(settings.redis_url)
    app.state.settings = settings

    logger.info(f"Environment: {settings.environment}")
    yield

    await store.disconnect()
    await redis_client.disconnect()
    logger.info("Disconnected from store and cache")


app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    lifespan=lifespan
)

# Shopify and the dashboard call from anywhere; no cookies are involved
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["POST", "GET", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Authorization",
        SIGNATURE_HEADER,
        TOPIC_HEADER,
        SHOP_DOMAIN_HEADER,
    ],
)

app.add_middleware(RequestLoggingMiddleware)


@app.exception_handler(WebhookError)
async def webhook_error_handler(request: Request, exc: WebhookError):
    return PlainTextResponse(str(exc), status_code=exc.status_code)


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    # Non-2xx makes Shopify redeliver; sales dedupe on (order, topic)
    logger.error(f"Store failure on {request.url.path}: {exc}")
    return PlainTextResponse("Internal server error", status_code=500)


app.include_router(health_router)
app.include_router(webhooks_router)
app.include_router(redirect_router)
app.include_router(affiliate_links_router)
app.include_router(stats_router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug
    )
