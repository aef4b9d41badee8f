"""Shopify webhook processing: verify, parse, plan, apply"""
import asyncio
import json
import logging
from typing import Any, Awaitable, List, Type, TypeVar

from pydantic import BaseModel, ValidationError

from lib.attribution import extract_affiliate_code
from lib.errors import MalformedPayloadError
from lib.models import (
    PlannedWrite,
    ShopifyOrder,
    ShopifyProduct,
    StageOrder,
    StageSale,
    SyncProduct,
    WebhookEnvelope,
)
from lib.prometheus_metrics import (
    commission_amount_dollars,
    platform_fees_total_dollars,
    sales_recorded_total,
    store_failures_total,
)
from lib.repositories import MarketplaceStore, StorageError
from lib.settings import Settings
from lib.webhook_security import WebhookValidator
from lib.webhook_topics import (
    WebhookTopic,
    plan_order_writes,
    plan_product_writes,
    plan_sale_writes,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


class WebhookProcessor:
    """
    Processes one Shopify webhook against the marketplace store.

    Construction fails with ConfigurationError when no shared secret is
    set, so an unconfigured deployment can never accept a webhook.
    """

    def __init__(self, store: MarketplaceStore, settings: Settings):
        self.store = store
        self.default_rate = settings.default_commission_rate
        self.timeout = settings.store_timeout_seconds
        self.validator = WebhookValidator(settings.shopify_webhook_secret)

    async def handle(self, envelope: WebhookEnvelope) -> List[PlannedWrite]:
        """Verify the signature, then process. Nothing is parsed before verification."""
        self.validator.verify(envelope)
        return await self.process(envelope)

    async def process(self, envelope: WebhookEnvelope) -> List[PlannedWrite]:
        """Dispatch a verified envelope by topic and apply its writes"""
        topic = WebhookTopic.parse(envelope.topic)
        if topic is None:
            logger.info(f"Unhandled webhook topic: {envelope.topic}")
            return []

        logger.info(f"Received webhook: {topic.value} from {envelope.shop_domain}")
        payload = self._load_json(envelope)
        shop_domain = envelope.shop_domain

        if topic.is_order:
            order = self._parse(ShopifyOrder, payload, envelope)
            writes = plan_order_writes(order, shop_domain)
        elif topic is WebhookTopic.ORDERS_PAID:
            order = self._parse(ShopifyOrder, payload, envelope)
            attribution = extract_affiliate_code(order)
            link = None
            if attribution.is_attributed:
                link = await self._bounded(
                    "get_link", self.store.get_link(attribution.affiliate_code)
                )
            writes = plan_sale_writes(order, attribution, shop_domain, link, self.default_rate)
        else:
            product = self._parse(ShopifyProduct, payload, envelope)
            writes = plan_product_writes(product, shop_domain)

        for write in writes:
            await self.apply(write)
        return writes

    async def apply(self, write: PlannedWrite) -> str:
        """Perform one planned write, returning the stored record id"""
        if isinstance(write, StageSale):
            sale = write.record
            sale_id = await self._bounded("create_sale", self.store.create(sale))
            sales_recorded_total.inc()
            commission_amount_dollars.observe(float(sale.commission_amount))
            platform_fees_total_dollars.inc(float(sale.platform_fee))
            logger.info(
                f"Sale {sale_id} for order {sale.shopify_order_id}: "
                f"commission={sale.commission_amount} creator={sale.creator_earnings} "
                f"store_owner={sale.store_owner_earnings}"
            )
            return sale_id

        if isinstance(write, StageOrder):
            order_id = await self._bounded("upsert_order", self.store.upsert_order(write.record))
            logger.info(f"Staged order {write.record.shopify_order_id} as {order_id}")
            return order_id

        if isinstance(write, SyncProduct):
            product_id = await self._bounded(
                "upsert_product", self.store.upsert_product(write.record)
            )
            logger.info(f"Synced product {write.record.shopify_product_id} as {product_id}")
            return product_id

        raise TypeError(f"Unknown write: {write!r}")

    async def _bounded(self, operation: str, call: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(call, self.timeout)
        except asyncio.TimeoutError as e:
            store_failures_total.labels(operation=operation).inc()
            raise StorageError(f"{operation} timed out after {self.timeout}s") from e
        except StorageError:
            store_failures_total.labels(operation=operation).inc()
            raise

    @staticmethod
    def _load_json(envelope: WebhookEnvelope) -> Any:
        try:
            payload = json.loads(envelope.raw_body)
        except ValueError as e:
            logger.warning(
                f"Webhook body is not JSON topic={envelope.topic} shop={envelope.shop_domain}"
            )
            raise MalformedPayloadError("Webhook body is not valid JSON") from e

        if not isinstance(payload, dict):
            raise MalformedPayloadError("Webhook body must be a JSON object")
        return payload

    @staticmethod
    def _parse(model: Type[M], payload: dict, envelope: WebhookEnvelope) -> M:
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            fields = ", ".join(
                ".".join(str(part) for part in error["loc"]) or "body" for error in e.errors()
            )
            logger.warning(
                f"Invalid {envelope.topic} payload from {envelope.shop_domain}: {fields}"
            )
            raise MalformedPayloadError(f"Invalid {envelope.topic} payload: {fields}") from e
