"""
Persistence ports for the marketplace store.

Implementations raise StorageError for any failure reaching or writing
to the backing store.
"""
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import List, Optional, Tuple

from lib.models import AffiliateLink, OrderRecord, ProductRecord, SaleRecord, SalesSummary

# Attempts at a fresh random code before create_link gives up
MAX_CODE_ATTEMPTS = 5


class StorageError(Exception):
    """Backing store unreachable or rejected a write"""


class SaleRepository(ABC):

    @abstractmethod
    async def create(self, sale: SaleRecord) -> str:
        """
        Persist a sale and return its id.

        Sales are unique per (shopify_order_id, topic): replaying one
        returns the existing id and writes nothing.
        """

    @abstractmethod
    async def sales_summary(
        self,
        creator_id: Optional[str] = None,
        shop_domain: Optional[str] = None,
    ) -> SalesSummary:
        """Totals over the sales of one creator or one shop; pass exactly one"""

    @abstractmethod
    async def recent_sales(
        self,
        creator_id: Optional[str] = None,
        shop_domain: Optional[str] = None,
        limit: int = 50,
    ) -> List[SaleRecord]:
        """Newest sales first for one creator or one shop; pass exactly one"""


class OrderRepository(ABC):

    @abstractmethod
    async def upsert_order(self, order: OrderRecord) -> str:
        """Insert or replace the order for (shop_domain, shopify_order_id)"""


class ProductRepository(ABC):

    @abstractmethod
    async def upsert_product(self, product: ProductRecord) -> str:
        """Insert or replace the product for (shop_domain, shopify_product_id)"""


class AffiliateLinkRepository(ABC):

    @abstractmethod
    async def get_link(self, code: str) -> Optional[AffiliateLink]:
        """Link for an affiliate code, None if unknown"""

    @abstractmethod
    async def increment_clicks(self, code: str) -> int:
        """Bump the click counter and return the new count"""

    @abstractmethod
    async def create_link(
        self,
        product_id: str,
        creator_id: str,
        product_url: str,
        commission_rate: Decimal,
    ) -> AffiliateLink:
        """
        Create a link under a freshly generated unique code.

        Raises StorageError if no unused code turns up within
        MAX_CODE_ATTEMPTS tries.
        """

    @abstractmethod
    async def list_links(self, creator_id: str) -> List[AffiliateLink]:
        """A creator's links, newest first"""


class MarketplaceStore(SaleRepository, OrderRepository, ProductRepository, AffiliateLinkRepository):
    """All ports backed by one store"""

    async def connect(self):
        pass

    async def disconnect(self):
        pass

    async def health_check(self) -> bool:
        return True


def sales_owner(creator_id: Optional[str], shop_domain: Optional[str]) -> Tuple[str, str]:
    """Column and value for a creator or shop sales query"""
    if (creator_id is None) == (shop_domain is None):
        raise ValueError("Pass exactly one of creator_id or shop_domain")
    return ("creator_id", creator_id) if creator_id is not None else ("shop_domain", shop_domain)
