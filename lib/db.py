"""
Database module - PostgreSQL connection pooling and the asyncpg store
"""
import logging
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import List, Optional

import asyncpg

from lib.affiliate_codes import generate_affiliate_code
from lib.models import AffiliateLink, OrderRecord, ProductRecord, SaleRecord, SalesSummary
from lib.repositories import MAX_CODE_ATTEMPTS, MarketplaceStore, StorageError, sales_owner

logger = logging.getLogger(__name__)


class Database:
    """Database connection pool manager"""

    def __init__(self, dsn: str):
        self.dsn = dsn
        self.pool: Optional[asyncpg.Pool] = None

    async def connect(self):
        """Create connection pool"""
        self.pool = await asyncpg.create_pool(
            self.dsn,
            min_size=2,
            max_size=10,
            command_timeout=30
        )

    async def disconnect(self):
        """Close connection pool"""
        if self.pool:
            await self.pool.close()
            self.pool = None

    @asynccontextmanager
    async def acquire(self):
        """Acquire a connection inside a transaction, mapping failures to StorageError"""
        if self.pool is None:
            raise StorageError("Database pool not connected")
        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    yield conn
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            raise StorageError(str(e)) from e

    async def health_check(self) -> bool:
        """Test database connectivity"""
        try:
            async with self.acquire() as conn:
                result = await conn.fetchval("SELECT 1")
                return result == 1
        except StorageError:
            return False


class PostgresStore(MarketplaceStore):
    """Marketplace store on the tables from sql/migrations"""

    def __init__(self, database: Database):
        self.db = database

    async def connect(self):
        await self.db.connect()

    async def disconnect(self):
        await self.db.disconnect()

    async def health_check(self) -> bool:
        return await self.db.health_check()

    async def create(self, sale: SaleRecord) -> str:
        async with self.db.acquire() as conn:
            sale_id = await conn.fetchval("""
                INSERT INTO sales (
                    shopify_order_id, topic, shop_domain, affiliate_code,
                    affiliate_link_id, product_id, creator_id,
                    sale_amount, commission_rate, commission_amount, platform_fee,
                    creator_earnings, store_owner_earnings, sale_date, status
                ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, $15)
                ON CONFLICT (shopify_order_id, topic) DO NOTHING
                RETURNING id
            """,
                sale.shopify_order_id, sale.topic, sale.shop_domain or "",
                sale.affiliate_code, sale.affiliate_link_id, sale.product_id,
                sale.creator_id, sale.sale_amount, sale.commission_rate,
                sale.commission_amount, sale.platform_fee, sale.creator_earnings,
                sale.store_owner_earnings, sale.sale_date, sale.status
            )

            if sale_id is None:
                logger.info(f"Duplicate sale for order {sale.shopify_order_id} ignored")
                sale_id = await conn.fetchval("""
                    SELECT id FROM sales
                    WHERE shopify_order_id = $1 AND topic = $2
                """, sale.shopify_order_id, sale.topic)

            return str(sale_id)

    async def upsert_order(self, order: OrderRecord) -> str:
        async with self.db.acquire() as conn:
            order_id = await conn.fetchval("""
                INSERT INTO orders (
                    shopify_order_id, shop_domain, affiliate_code,
                    total_price, order_status, processed_at
                ) VALUES ($1, $2, $3, $4, $5, $6)
                ON CONFLICT (shop_domain, shopify_order_id) DO UPDATE SET
                    affiliate_code = EXCLUDED.affiliate_code,
                    total_price = EXCLUDED.total_price,
                    order_status = EXCLUDED.order_status,
                    processed_at = COALESCE(orders.processed_at, EXCLUDED.processed_at),
                    updated_at = NOW()
                RETURNING id
            """,
                order.shopify_order_id, order.shop_domain or "", order.affiliate_code,
                order.total_price, order.order_status, order.processed_at
            )
            return str(order_id)

    async def upsert_product(self, product: ProductRecord) -> str:
        async with self.db.acquire() as conn:
            product_id = await conn.fetchval("""
                INSERT INTO products (
                    shopify_product_id, shop_domain, title, description,
                    price, product_url, image_url, is_active
                ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
                ON CONFLICT (shop_domain, shopify_product_id) DO UPDATE SET
                    title = EXCLUDED.title,
                    description = EXCLUDED.description,
                    price = COALESCE(EXCLUDED.price, products.price),
                    product_url = COALESCE(EXCLUDED.product_url, products.product_url),
                    image_url = EXCLUDED.image_url,
                    is_active = EXCLUDED.is_active,
                    updated_at = NOW()
                RETURNING id
            """,
                product.shopify_product_id, product.shop_domain or "", product.title,
                product.description, product.price, product.product_url,
                product.image_url, product.is_active
            )
            return str(product_id)

    async def get_link(self, code: str) -> Optional[AffiliateLink]:
        async with self.db.acquire() as conn:
            row = await conn.fetchrow("""
                SELECT al.id, al.code, al.product_url, al.product_id,
                       al.creator_id, al.commission_rate, al.clicks
                FROM affiliate_links al
                WHERE al.code = $1 AND al.is_active = true
                LIMIT 1
            """, code)

        if not row:
            return None
        return AffiliateLink(**{**dict(row), "id": str(row["id"])})

    async def increment_clicks(self, code: str) -> int:
        async with self.db.acquire() as conn:
            clicks = await conn.fetchval("""
                UPDATE affiliate_links
                SET clicks = clicks + 1
                WHERE code = $1
                RETURNING clicks
            """, code)
            return clicks or 0

    async def create_link(
        self,
        product_id: str,
        creator_id: str,
        product_url: str,
        commission_rate: Decimal,
    ) -> AffiliateLink:
        async with self.db.acquire() as conn:
            for _ in range(MAX_CODE_ATTEMPTS):
                code = generate_affiliate_code(creator_id, product_id)
                link_id = await conn.fetchval("""
                    INSERT INTO affiliate_links (
                        code, product_id, creator_id, product_url, commission_rate
                    ) VALUES ($1, $2, $3, $4, $5)
                    ON CONFLICT (code) DO NOTHING
                    RETURNING id
                """, code, product_id, creator_id, product_url, commission_rate)

                if link_id is not None:
                    return AffiliateLink(
                        id=str(link_id),
                        code=code,
                        product_url=product_url,
                        product_id=product_id,
                        creator_id=creator_id,
                        commission_rate=commission_rate,
                    )

        raise StorageError(f"No unused affiliate code after {MAX_CODE_ATTEMPTS} attempts")

    async def list_links(self, creator_id: str) -> List[AffiliateLink]:
        async with self.db.acquire() as conn:
            rows = await conn.fetch("""
                SELECT id, code, product_url, product_id,
                       creator_id, commission_rate, clicks
                FROM affiliate_links
                WHERE creator_id = $1 AND is_active = true
                ORDER BY created_at DESC
            """, creator_id)

        return [AffiliateLink(**{**dict(row), "id": str(row["id"])}) for row in rows]

    async def sales_summary(
        self,
        creator_id: Optional[str] = None,
        shop_domain: Optional[str] = None,
    ) -> SalesSummary:
        # column is one of two fixed names, never caller input
        column, value = sales_owner(creator_id, shop_domain)
        async with self.db.acquire() as conn:
            row = await conn.fetchrow(f"""
                SELECT
                    COUNT(*) AS sale_count,
                    COALESCE(SUM(sale_amount), 0) AS total_sales,
                    COALESCE(SUM(commission_amount), 0) AS total_commission,
                    COALESCE(SUM(creator_earnings), 0) AS creator_earnings,
                    COALESCE(SUM(store_owner_earnings), 0) AS store_owner_earnings,
                    COALESCE(SUM(platform_fee), 0) AS platform_fees
                FROM sales
                WHERE {column} = $1
            """, value)

        return SalesSummary(**dict(row))

    async def recent_sales(
        self,
        creator_id: Optional[str] = None,
        shop_domain: Optional[str] = None,
        limit: int = 50,
    ) -> List[SaleRecord]:
        column, value = sales_owner(creator_id, shop_domain)
        async with self.db.acquire() as conn:
            rows = await conn.fetch(f"""
                SELECT shopify_order_id, topic, shop_domain, affiliate_code,
                       affiliate_link_id, product_id, creator_id,
                       sale_amount, commission_rate, commission_amount, platform_fee,
                       creator_earnings, store_owner_earnings, sale_date, status
                FROM sales
                WHERE {column} = $1
                ORDER BY sale_date DESC
                LIMIT $2
            """, value, limit)

        return [SaleRecord(**dict(row)) for row in rows]
