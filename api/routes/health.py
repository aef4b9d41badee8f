"""
Health check and metrics endpoints
"""
import time

from fastapi import APIRouter, Depends, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from api.dependencies import get_store
from lib.logging import logger
from lib.redis_client import redis_client
from lib.repositories import MarketplaceStore

router = APIRouter(tags=["ops"])


@router.get("/healthz")
async def health_check(
    request: Request,
    response: Response,
    store: MarketplaceStore = Depends(get_store),
):
    """
    Health check endpoint
    Returns: {"ok": true} with 200 if the store is reachable
    """
    started_at = time.time()
    # Same id the middleware puts in the X-Request-ID header
    request_id = logger.log_request(
        "GET", "/healthz", getattr(request.state, "request_id", None)
    )

    store_healthy = await store.health_check()

    if store_healthy:
        status_code = 200
        result = {"ok": True, "store": "connected"}
    else:
        status_code = 503
        result = {"ok": False, "store": "disconnected"}

    result["cache"] = "connected" if await redis_client.ping() else "unavailable"

    latency = logger.log_response(request_id, status_code, started_at, "health-check")
    result["latency_ms"] = latency
    result["request_id"] = request_id

    response.status_code = status_code
    return result


@router.get("/metrics", response_class=Response)
async def metrics():
    """Prometheus metrics endpoint"""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
