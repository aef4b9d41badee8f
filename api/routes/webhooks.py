"""Shopify webhook receiver"""
import logging
import time
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import PlainTextResponse

from api.dependencies import get_store
from lib.errors import WebhookError
from lib.models import WebhookEnvelope
from lib.prometheus_metrics import webhook_duration_seconds, webhooks_received_total
from lib.repositories import MarketplaceStore, StorageError
from lib.settings import Settings, get_settings
from lib.webhook_processor import WebhookProcessor
from lib.webhook_topics import WebhookTopic

router = APIRouter(prefix="/webhooks", tags=["webhooks"])
logger = logging.getLogger(__name__)


@router.post("/shopify", response_class=PlainTextResponse)
async def handle_shopify_webhook(
    request: Request,
    store: MarketplaceStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
    x_shopify_hmac_sha256: Optional[str] = Header(None),
    x_shopify_topic: Optional[str] = Header(None),
    x_shopify_shop_domain: Optional[str] = Header(None),
):
    """
    Handle a Shopify webhook.

    Returns 200 "OK" for processed and ignored topics alike so Shopify
    stops redelivering; failures map to 401/400/500 in api.main.
    """
    start_time = time.time()
    topic = WebhookTopic.parse(x_shopify_topic)
    topic_label = topic.value if topic else "other"

    envelope = WebhookEnvelope(
        raw_body=await request.body(),
        signature_header=x_shopify_hmac_sha256,
        topic=x_shopify_topic,
        shop_domain=x_shopify_shop_domain,
    )

    try:
        writes = await WebhookProcessor(store, settings).handle(envelope)
    except WebhookError:
        webhooks_received_total.labels(topic=topic_label, outcome="rejected").inc()
        raise
    except StorageError:
        webhooks_received_total.labels(topic=topic_label, outcome="error").inc()
        raise
    except Exception:
        logger.exception(f"Error processing webhook {x_shopify_topic} from {x_shopify_shop_domain}")
        webhooks_received_total.labels(topic=topic_label, outcome="error").inc()
        return PlainTextResponse("Internal server error", status_code=500)
    finally:
        webhook_duration_seconds.labels(topic=topic_label).observe(time.time() - start_time)

    outcome = "processed" if topic else "ignored"
    webhooks_received_total.labels(topic=topic_label, outcome=outcome).inc()
    logger.debug(f"Webhook {topic_label} produced {len(writes)} write(s)")

    return PlainTextResponse("OK", status_code=200)
