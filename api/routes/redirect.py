"""
Affiliate click tracking redirect with Redis caching
"""
import asyncio
import logging
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse, RedirectResponse

from api.dependencies import get_store
from lib.prometheus_metrics import (
    redirect_cache_hits_total,
    redirect_cache_misses_total,
    redirects_total,
)
from lib.redis_client import redis_client
from lib.repositories import MarketplaceStore, StorageError
from lib.settings import Settings, get_settings

router = APIRouter(tags=["redirect"])
logger = logging.getLogger(__name__)

CACHE_PREFIX = "affiliate:"

TRACKING_PARAMS = {
    "utm_source": "affiliate",
    "utm_medium": "referral",
    "utm_campaign": "affiliate_program",
}


def build_tracking_url(product_url: str, code: str) -> str:
    """
    Append the referral code and UTM parameters to a product URL.

    attributes[affiliate_code] becomes a Shopify cart attribute, which
    reaches the order webhook as a note attribute.
    """
    parts = urlsplit(product_url)
    params = {"ref": code, **TRACKING_PARAMS, "attributes[affiliate_code]": code}
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k not in params]
    query.extend(params.items())
    return urlunsplit(parts._replace(query=urlencode(query)))


@router.get("/affiliate-redirect")
async def affiliate_redirect(
    code: Optional[str] = Query(None),
    store: MarketplaceStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    """Count a click on an affiliate link and 302 to the product page"""
    if not code:
        redirects_total.labels(status="missing_code").inc()
        return PlainTextResponse("Missing affiliate code", status_code=400)

    cache_key = f"{CACHE_PREFIX}{code}"
    cached = await redis_client.get(cache_key)

    if isinstance(cached, dict) and cached.get("product_url"):
        redirect_cache_hits_total.inc()
        product_url = cached["product_url"]
    else:
        redirect_cache_misses_total.inc()
        link = await store.get_link(code)
        if link is None:
            redirects_total.labels(status="not_found").inc()
            return PlainTextResponse("Affiliate link not found", status_code=404)

        product_url = link.product_url
        await redis_client.set(
            cache_key,
            {"product_url": product_url},
            ttl=settings.redirect_cache_ttl
        )

    # Don't fail the redirect if click recording fails
    try:
        await asyncio.wait_for(store.increment_clicks(code), settings.store_timeout_seconds)
    except (StorageError, asyncio.TimeoutError) as e:
        logger.warning(f"Failed to record click for {code}: {e}")

    redirect_url = build_tracking_url(product_url, code)
    logger.info(f"Redirecting affiliate code {code} to {redirect_url}")
    redirects_total.labels(status="success").inc()

    return RedirectResponse(url=redirect_url, status_code=302)
