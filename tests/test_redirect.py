"""GET /affiliate-redirect click tracking"""
from urllib.parse import parse_qs, urlsplit

from api.dependencies import get_store
from api.main import app
from api.routes.redirect import build_tracking_url
from lib.repositories import StorageError

from conftest import SHOP_DOMAIN


def test_redirect_to_product_with_tracking_params(client, store):
    response = client.get("/affiliate-redirect", params={"code": "CREATOR10"}, follow_redirects=False)

    assert response.status_code == 302
    location = urlsplit(response.headers["location"])
    assert f"{location.scheme}://{location.netloc}{location.path}" == \
        f"https://{SHOP_DOMAIN}/products/sample-product"

    params = parse_qs(location.query)
    assert params["ref"] == ["CREATOR10"]
    assert params["utm_source"] == ["affiliate"]
    assert params["utm_medium"] == ["referral"]
    assert params["utm_campaign"] == ["affiliate_program"]
    assert params["attributes[affiliate_code]"] == ["CREATOR10"]


def test_redirect_counts_clicks(client, store):
    for _ in range(3):
        client.get("/affiliate-redirect", params={"code": "CREATOR10"}, follow_redirects=False)
    assert store.links["CREATOR10"].clicks == 3


def test_missing_code_is_400(client):
    response = client.get("/affiliate-redirect", follow_redirects=False)
    assert response.status_code == 400
    assert response.text == "Missing affiliate code"


def test_unknown_code_is_404(client):
    response = client.get("/affiliate-redirect", params={"code": "NOPE"}, follow_redirects=False)
    assert response.status_code == 404


def test_click_failure_still_redirects(client, store):
    async def broken_increment(code):
        raise StorageError("read-only replica")

    store.increment_clicks = broken_increment
    response = client.get("/affiliate-redirect", params={"code": "CREATOR10"}, follow_redirects=False)
    assert response.status_code == 302


def test_lookup_failure_is_500(client, store):
    async def broken_lookup(code):
        raise StorageError("connection refused")

    store.get_link = broken_lookup
    response = client.get("/affiliate-redirect", params={"code": "CREATOR10"}, follow_redirects=False)
    assert response.status_code == 500


def test_store_missing_is_500():
    from fastapi.testclient import TestClient

    app.dependency_overrides.pop(get_store, None)
    response = TestClient(app).get("/affiliate-redirect", params={"code": "X"}, follow_redirects=False)
    assert response.status_code == 500


def test_tracking_url_keeps_existing_query_and_replaces_ref():
    url = build_tracking_url("https://shop.example/products/mug?variant=7&ref=OLD", "NEW")
    params = parse_qs(urlsplit(url).query)

    assert params["variant"] == ["7"]
    assert params["ref"] == ["NEW"]
