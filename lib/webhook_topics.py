"""
Webhook topics and the writes each one produces.

Planners are pure: they turn a parsed payload into a list of intended
store writes and never touch the store themselves.
"""
import logging
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from lib.attribution import extract_affiliate_code
from lib.commission import compute_split
from lib.models import (
    AffiliateAttribution,
    AffiliateLink,
    OrderRecord,
    PlannedWrite,
    ProductRecord,
    SaleRecord,
    ShopifyOrder,
    ShopifyProduct,
    StageOrder,
    StageSale,
    SyncProduct,
    utcnow,
)

logger = logging.getLogger(__name__)


class WebhookTopic(str, Enum):
    ORDERS_CREATE = "orders/create"
    ORDERS_UPDATED = "orders/updated"
    ORDERS_PAID = "orders/paid"
    PRODUCTS_CREATE = "products/create"
    PRODUCTS_UPDATE = "products/update"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["WebhookTopic"]:
        """Topic for a header value, None when unrecognized"""
        try:
            return cls(value)
        except ValueError:
            return None

    @property
    def is_order(self) -> bool:
        return self in (WebhookTopic.ORDERS_CREATE, WebhookTopic.ORDERS_UPDATED)

    @property
    def is_product(self) -> bool:
        return self in (WebhookTopic.PRODUCTS_CREATE, WebhookTopic.PRODUCTS_UPDATE)


def plan_order_writes(order: ShopifyOrder, shop_domain: Optional[str]) -> List[PlannedWrite]:
    """orders/create and orders/updated: stage attributed orders"""
    attribution = extract_affiliate_code(order)
    if not attribution.is_attributed:
        return []

    logger.info(f"Found affiliate code {attribution.affiliate_code} for order {order.id}")
    paid = order.financial_status == "paid"
    return [StageOrder(record=OrderRecord(
        shopify_order_id=str(order.id),
        shop_domain=shop_domain,
        affiliate_code=attribution.affiliate_code,
        total_price=order.total_price,
        order_status=order.financial_status,
        processed_at=utcnow() if paid else None,
    ))]


def plan_sale_writes(
    order: ShopifyOrder,
    attribution: AffiliateAttribution,
    shop_domain: Optional[str],
    link: Optional[AffiliateLink],
    default_rate: Decimal,
) -> List[PlannedWrite]:
    """
    orders/paid: split the sale and stage a sale record.

    The rate comes from the affiliate link's product; when the code
    matches no link the configured default rate applies.
    """
    if not attribution.is_attributed:
        return []

    if link is None:
        logger.warning(
            f"No affiliate link for code {attribution.affiliate_code}; "
            f"using default rate {default_rate}%"
        )
        rate = default_rate
    else:
        rate = link.commission_rate

    split = compute_split(order.total_price, rate)
    return [StageSale(record=SaleRecord(
        shopify_order_id=str(order.id),
        topic=WebhookTopic.ORDERS_PAID.value,
        shop_domain=shop_domain,
        affiliate_code=attribution.affiliate_code,
        affiliate_link_id=link.id if link else None,
        product_id=link.product_id if link else None,
        creator_id=link.creator_id if link else None,
        **split.model_dump(),
    ))]


def plan_product_writes(product: ShopifyProduct, shop_domain: Optional[str]) -> List[PlannedWrite]:
    """products/create and products/update: mirror the product into the catalog"""
    product_url = None
    if shop_domain and product.handle:
        product_url = f"https://{shop_domain}/products/{product.handle}"

    price = next((v.price for v in product.variants if v.price is not None), None)

    return [SyncProduct(record=ProductRecord(
        shopify_product_id=str(product.id),
        shop_domain=shop_domain,
        title=product.title,
        description=product.body_html,
        price=price,
        product_url=product_url,
        image_url=product.image.src if product.image else None,
        is_active=product.status in (None, "active"),
    ))]
