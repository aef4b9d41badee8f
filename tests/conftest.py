"""Shared fixtures: in-memory store, signed Shopify requests, API client"""
import base64
import hashlib
import hmac
import json
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_store
from api.main import app
from lib.memory_store import InMemoryStore
from lib.models import AffiliateLink
from lib.settings import Settings, get_settings

WEBHOOK_SECRET = "shpss_test_secret"
SHOP_DOMAIN = "demo-store.myshopify.com"


def shopify_signature(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
    """Signature exactly as Shopify computes it"""
    return base64.b64encode(hmac.new(secret.encode(), body, hashlib.sha256).digest()).decode()


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        shopify_webhook_secret=WEBHOOK_SECRET,
        database_url=None,
        store_timeout_seconds=0.5,
    )


@pytest.fixture
def store():
    store = InMemoryStore()
    store.add_link(AffiliateLink(
        id="link_1",
        code="CREATOR10",
        product_url=f"https://{SHOP_DOMAIN}/products/sample-product",
        product_id="prod_1",
        creator_id="creator_123",
        commission_rate=Decimal("15"),
    ))
    return store


@pytest.fixture
def order_payload():
    """Paid Shopify order carrying an affiliate code"""
    return {
        "id": 820982911946154508,
        "total_price": "100.00",
        "financial_status": "paid",
        "note_attributes": [{"name": "affiliate_code", "value": "CREATOR10"}],
        "landing_site": "/products/sample-product?ref=OTHER",
        "currency": "USD",
    }


@pytest.fixture
def webhook_request():
    """Build (body, headers) for a signed webhook"""
    def build(payload, topic="orders/paid", secret=WEBHOOK_SECRET, shop=SHOP_DOMAIN):
        body = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
        headers = {
            "Content-Type": "application/json",
            "X-Shopify-Hmac-Sha256": shopify_signature(body, secret),
            "X-Shopify-Topic": topic,
            "X-Shopify-Shop-Domain": shop,
        }
        return body, headers
    return build


@pytest.fixture
def client(store, settings):
    """Test client wired to the in-memory store"""
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_settings] = lambda: settings
    yield TestClient(app)
    app.dependency_overrides.clear()
