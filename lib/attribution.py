"""Affiliate code extraction from Shopify orders"""
from typing import Optional
from urllib.parse import parse_qs, urlsplit

from lib.models import AffiliateAttribution, ShopifyOrder

# Cart attribute names set by the affiliate redirect
NOTE_ATTRIBUTE_NAMES = ("affiliate_code", "ref")

# Landing-site query parameters, in priority order
LANDING_SITE_PARAMS = ("ref", "affiliate")


def code_from_note_attributes(order: ShopifyOrder) -> Optional[str]:
    """First attribute named affiliate_code or ref, in list order"""
    for attribute in order.note_attributes:
        if attribute.name in NOTE_ATTRIBUTE_NAMES:
            return str(attribute.value) if attribute.value not in (None, "") else None
    return None


def code_from_landing_site(landing_site: Optional[str]) -> Optional[str]:
    """Read ?ref= (or ?affiliate=) from the order's landing URL"""
    if not landing_site:
        return None

    # parse_qs drops blank values, so ref= falls through to affiliate
    params = parse_qs(urlsplit(landing_site).query)
    for name in LANDING_SITE_PARAMS:
        values = params.get(name)
        if values:
            return values[0]
    return None


def extract_affiliate_code(order: ShopifyOrder) -> AffiliateAttribution:
    """
    Find the referring creator's code on an order.

    Note attributes take precedence over the landing site; an order with
    neither yields an empty attribution.
    """
    code = code_from_note_attributes(order) or code_from_landing_site(order.landing_site)
    return AffiliateAttribution(affiliate_code=code)
