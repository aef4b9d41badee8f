"""Pydantic models for Shopify payloads, attribution and marketplace records"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Inbound webhook
# ============================================================================

class WebhookEnvelope(BaseModel):
    """One inbound webhook request, exactly as received"""
    model_config = ConfigDict(frozen=True)

    raw_body: bytes
    signature_header: Optional[str] = None
    topic: Optional[str] = None
    shop_domain: Optional[str] = None


class NoteAttribute(BaseModel):
    """Cart attribute carried through checkout into the order"""
    name: str
    value: Any = None


class ShopifyOrder(BaseModel):
    """Subset of the Shopify order payload used for attribution"""
    model_config = ConfigDict(extra="ignore")

    id: Union[int, str]
    # NUMERIC(12, 2) in the store
    total_price: Decimal = Field(ge=0, max_digits=12, decimal_places=2)
    financial_status: Optional[str] = None
    note_attributes: List[NoteAttribute] = Field(default_factory=list)
    landing_site: Optional[str] = None

    @field_validator("note_attributes", mode="before")
    @classmethod
    def _null_attributes(cls, value):
        return [] if value is None else value


class ProductVariant(BaseModel):
    model_config = ConfigDict(extra="ignore")

    price: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)


class ProductImage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    src: Optional[str] = None


class ShopifyProduct(BaseModel):
    """Subset of the Shopify product payload mirrored into the catalog"""
    model_config = ConfigDict(extra="ignore")

    id: Union[int, str]
    title: Optional[str] = None
    body_html: Optional[str] = None
    handle: Optional[str] = None
    status: Optional[str] = None
    variants: List[ProductVariant] = Field(default_factory=list)
    image: Optional[ProductImage] = None

    @field_validator("variants", mode="before")
    @classmethod
    def _null_variants(cls, value):
        return [] if value is None else value


# ============================================================================
# Derived values
# ============================================================================

class AffiliateAttribution(BaseModel):
    """Affiliate code found on an order, if any"""
    affiliate_code: Optional[str] = None

    @property
    def is_attributed(self) -> bool:
        return bool(self.affiliate_code)


class CommissionSplit(BaseModel):
    """Three-way split of a sale between creator, store owner and platform"""
    model_config = ConfigDict(frozen=True)

    sale_amount: Decimal
    commission_rate: Decimal
    commission_amount: Decimal
    platform_fee: Decimal
    creator_earnings: Decimal
    store_owner_earnings: Decimal


# ============================================================================
# Store records
# ============================================================================

class AffiliateLink(BaseModel):
    """Creator's link to a product, addressed by its affiliate code"""
    id: str
    code: str
    product_url: str
    product_id: Optional[str] = None
    creator_id: Optional[str] = None
    commission_rate: Decimal = Field(ge=0, le=100, max_digits=5, decimal_places=2)
    clicks: int = 0


class OrderRecord(BaseModel):
    shopify_order_id: str
    shop_domain: Optional[str] = None
    affiliate_code: str
    total_price: Decimal
    order_status: Optional[str] = None
    processed_at: Optional[datetime] = None


class SaleRecord(BaseModel):
    shopify_order_id: str
    topic: str
    shop_domain: Optional[str] = None
    affiliate_code: str
    affiliate_link_id: Optional[str] = None
    product_id: Optional[str] = None
    creator_id: Optional[str] = None
    sale_amount: Decimal
    commission_rate: Decimal
    commission_amount: Decimal
    platform_fee: Decimal
    creator_earnings: Decimal
    store_owner_earnings: Decimal
    sale_date: datetime = Field(default_factory=utcnow)
    status: str = "confirmed"


class ProductRecord(BaseModel):
    shopify_product_id: str
    shop_domain: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    product_url: Optional[str] = None
    image_url: Optional[str] = None
    is_active: bool = True


class SalesSummary(BaseModel):
    """Earnings totals over the sales of one creator or one shop"""
    sale_count: int = 0
    total_sales: Decimal = Decimal("0.00")
    total_commission: Decimal = Decimal("0.00")
    creator_earnings: Decimal = Decimal("0.00")
    store_owner_earnings: Decimal = Decimal("0.00")
    platform_fees: Decimal = Decimal("0.00")

    @field_validator(
        "total_sales", "total_commission", "creator_earnings",
        "store_owner_earnings", "platform_fees",
    )
    @classmethod
    def _to_cents(cls, value: Decimal) -> Decimal:
        # SUM() over an empty set comes back as a bare 0
        return value.quantize(Decimal("0.01"))

    @classmethod
    def of(cls, sales: List[SaleRecord]) -> "SalesSummary":
        return cls(
            sale_count=len(sales),
            total_sales=sum((s.sale_amount for s in sales), Decimal("0")),
            total_commission=sum((s.commission_amount for s in sales), Decimal("0")),
            creator_earnings=sum((s.creator_earnings for s in sales), Decimal("0")),
            store_owner_earnings=sum((s.store_owner_earnings for s in sales), Decimal("0")),
            platform_fees=sum((s.platform_fee for s in sales), Decimal("0")),
        )


# ============================================================================
# Planned writes (one variant per store operation)
# ============================================================================

class StageOrder(BaseModel):
    kind: Literal["stage_order"] = "stage_order"
    record: OrderRecord


class StageSale(BaseModel):
    kind: Literal["stage_sale"] = "stage_sale"
    record: SaleRecord


class SyncProduct(BaseModel):
    kind: Literal["sync_product"] = "sync_product"
    record: ProductRecord


PlannedWrite = Union[StageOrder, StageSale, SyncProduct]
