"""POST /webhooks/shopify end to end"""
from decimal import Decimal

from prometheus_client import REGISTRY

from api.dependencies import get_store
from api.main import app
from lib.memory_store import InMemoryStore
from lib.repositories import StorageError

URL = "/webhooks/shopify"


class UnreachableStore(InMemoryStore):
    async def create(self, sale):
        raise StorageError("connection refused")


def test_paid_order_returns_ok_and_records_sale(client, store, webhook_request, order_payload):
    body, headers = webhook_request(order_payload)
    response = client.post(URL, content=body, headers=headers)

    assert response.status_code == 200
    assert response.text == "OK"
    assert len(store.sales) == 1
    _, sale = next(iter(store.sales.values()))
    assert sale.creator_earnings == Decimal("14.50")
    assert sale.store_owner_earnings == Decimal("84.50")


def test_replay_does_not_duplicate_sale(client, store, webhook_request, order_payload):
    body, headers = webhook_request(order_payload)

    assert client.post(URL, content=body, headers=headers).status_code == 200
    assert client.post(URL, content=body, headers=headers).status_code == 200
    assert len(store.sales) == 1


def test_invalid_signature_is_401(client, store, webhook_request, order_payload):
    body, headers = webhook_request(order_payload, secret="wrong_secret")
    response = client.post(URL, content=body, headers=headers)

    assert response.status_code == 401
    assert response.text == "Unauthorized"
    assert store.sales == {}


def test_missing_signature_is_401(client, webhook_request, order_payload):
    body, headers = webhook_request(order_payload)
    del headers["X-Shopify-Hmac-Sha256"]
    assert client.post(URL, content=body, headers=headers).status_code == 401


def test_body_altered_after_signing_is_401(client, store, webhook_request, order_payload):
    body, headers = webhook_request(order_payload)
    tampered = body.replace(b'"100.00"', b'"1.00"')
    assert client.post(URL, content=tampered, headers=headers).status_code == 401
    assert store.sales == {}


def test_unconfigured_secret_is_500(client, settings, webhook_request, order_payload):
    settings.shopify_webhook_secret = None
    body, headers = webhook_request(order_payload)
    response = client.post(URL, content=body, headers=headers)

    assert response.status_code == 500
    assert response.text == "Webhook secret not configured"


def test_invalid_json_is_400(client, webhook_request):
    body, headers = webhook_request(b"{truncated")
    response = client.post(URL, content=body, headers=headers)

    assert response.status_code == 400
    assert "JSON" in response.text


def test_missing_order_id_is_400(client, webhook_request):
    body, headers = webhook_request({"total_price": "10.00"})
    response = client.post(URL, content=body, headers=headers)

    assert response.status_code == 400
    assert "id" in response.text
    assert "shpss_" not in response.text


def test_oversized_total_is_400_not_500(client, store, webhook_request, order_payload):
    for total in ("1e30", "10000000000.00"):
        body, headers = webhook_request({**order_payload, "total_price": total})
        response = client.post(URL, content=body, headers=headers)

        assert response.status_code == 400
        assert "total_price" in response.text
    assert store.sales == {}


def test_unknown_topic_is_ok_without_side_effects(client, store, webhook_request, order_payload):
    body, headers = webhook_request(order_payload, topic="carts/update")
    response = client.post(URL, content=body, headers=headers)

    assert response.status_code == 200
    assert response.text == "OK"
    assert store.sales == {} and store.orders == {}


def test_order_create_stages_order(client, store, webhook_request, order_payload):
    body, headers = webhook_request(order_payload, topic="orders/create")
    assert client.post(URL, content=body, headers=headers).status_code == 200
    assert len(store.orders) == 1
    assert store.sales == {}


def test_product_update_syncs_product(client, store, webhook_request):
    body, headers = webhook_request({"id": 10, "title": "Headphones"}, topic="products/update")
    assert client.post(URL, content=body, headers=headers).status_code == 200
    assert len(store.products) == 1


def test_store_failure_is_500_so_shopify_retries(client, webhook_request, order_payload):
    app.dependency_overrides[get_store] = lambda: UnreachableStore()
    body, headers = webhook_request(order_payload)
    response = client.post(URL, content=body, headers=headers)

    assert response.status_code == 500
    assert response.text == "Internal server error"


def test_get_not_allowed(client):
    assert client.get(URL).status_code == 405


def test_cors_preflight(client):
    response = client.options(URL, headers={
        "Origin": "https://admin.shopify.com",
        "Access-Control-Request-Method": "POST",
        "Access-Control-Request-Headers": "X-Shopify-Hmac-Sha256, X-Shopify-Topic",
    })

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"
    assert "POST" in response.headers["access-control-allow-methods"]
    assert "x-shopify-hmac-sha256" in response.headers["access-control-allow-headers"].lower()


def sample(name, **labels):
    return REGISTRY.get_sample_value(name, labels) or 0.0


def test_rejected_webhook_is_timed(client, webhook_request, order_payload):
    before = sample("webhook_duration_seconds_count", topic="orders/paid")
    body, headers = webhook_request(order_payload, secret="wrong_secret")

    assert client.post(URL, content=body, headers=headers).status_code == 401
    assert sample("webhook_duration_seconds_count", topic="orders/paid") == before + 1


def test_signature_outcomes_counted(client, webhook_request, order_payload):
    failures = sample("webhook_signature_verifications_total", result="failure")
    successes = sample("webhook_signature_verifications_total", result="success")

    body, headers = webhook_request(order_payload, secret="wrong_secret")
    client.post(URL, content=body, headers=headers)
    body, headers = webhook_request(order_payload)
    client.post(URL, content=body, headers=headers)

    assert sample("webhook_signature_verifications_total", result="failure") == failures + 1
    assert sample("webhook_signature_verifications_total", result="success") == successes + 1
