"""In-process marketplace store for development and tests"""
import logging
import uuid
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from lib.affiliate_codes import generate_affiliate_code
from lib.models import AffiliateLink, OrderRecord, ProductRecord, SaleRecord, SalesSummary
from lib.repositories import MAX_CODE_ATTEMPTS, MarketplaceStore, StorageError, sales_owner

logger = logging.getLogger(__name__)


class InMemoryStore(MarketplaceStore):
    """Dict-backed store; contents vanish with the process"""

    def __init__(self):
        self.links: Dict[str, AffiliateLink] = {}
        self.orders: Dict[Tuple[Optional[str], str], Tuple[str, OrderRecord]] = {}
        self.sales: Dict[Tuple[str, str], Tuple[str, SaleRecord]] = {}
        self.products: Dict[Tuple[Optional[str], str], Tuple[str, ProductRecord]] = {}

    def add_link(self, link: AffiliateLink) -> AffiliateLink:
        self.links[link.code] = link
        return link

    async def create(self, sale: SaleRecord) -> str:
        key = (sale.shopify_order_id, sale.topic)
        existing = self.sales.get(key)
        if existing:
            logger.info(f"Duplicate sale for order {sale.shopify_order_id} ignored")
            return existing[0]

        sale_id = f"sale_{uuid.uuid4().hex}"
        self.sales[key] = (sale_id, sale)
        return sale_id

    async def upsert_order(self, order: OrderRecord) -> str:
        key = (order.shop_domain, order.shopify_order_id)
        order_id = self.orders[key][0] if key in self.orders else f"order_{uuid.uuid4().hex}"
        self.orders[key] = (order_id, order)
        return order_id

    async def upsert_product(self, product: ProductRecord) -> str:
        key = (product.shop_domain, product.shopify_product_id)
        product_id = self.products[key][0] if key in self.products else f"product_{uuid.uuid4().hex}"
        self.products[key] = (product_id, product)
        return product_id

    async def get_link(self, code: str) -> Optional[AffiliateLink]:
        return self.links.get(code)

    async def increment_clicks(self, code: str) -> int:
        link = self.links.get(code)
        if link is None:
            return 0
        link.clicks += 1
        return link.clicks

    async def create_link(
        self,
        product_id: str,
        creator_id: str,
        product_url: str,
        commission_rate: Decimal,
    ) -> AffiliateLink:
        for _ in range(MAX_CODE_ATTEMPTS):
            code = generate_affiliate_code(creator_id, product_id)
            if code not in self.links:
                return self.add_link(AffiliateLink(
                    id=f"link_{uuid.uuid4().hex}",
                    code=code,
                    product_url=product_url,
                    product_id=product_id,
                    creator_id=creator_id,
                    commission_rate=commission_rate,
                ))
        raise StorageError(f"No unused affiliate code after {MAX_CODE_ATTEMPTS} attempts")

    async def list_links(self, creator_id: str) -> List[AffiliateLink]:
        return [link for link in reversed(self.links.values()) if link.creator_id == creator_id]

    async def sales_summary(
        self,
        creator_id: Optional[str] = None,
        shop_domain: Optional[str] = None,
    ) -> SalesSummary:
        return SalesSummary.of(self._sales_of(creator_id, shop_domain))

    async def recent_sales(
        self,
        creator_id: Optional[str] = None,
        shop_domain: Optional[str] = None,
        limit: int = 50,
    ) -> List[SaleRecord]:
        sales = sorted(self._sales_of(creator_id, shop_domain), key=lambda s: s.sale_date, reverse=True)
        return sales[:limit]

    def _sales_of(self, creator_id: Optional[str], shop_domain: Optional[str]) -> List[SaleRecord]:
        column, value = sales_owner(creator_id, shop_domain)
        return [sale for _, sale in self.sales.values() if getattr(sale, column) == value]
