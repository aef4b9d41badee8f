"""Affiliate link creation and listing for creators"""
import logging
from decimal import Decimal
from typing import List, Optional
from urllib.parse import urlencode, urlsplit

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field, field_validator

from api.dependencies import get_store
from lib.models import AffiliateLink
from lib.repositories import MarketplaceStore
from lib.settings import Settings, get_settings

router = APIRouter(prefix="/affiliate-links", tags=["links"])
logger = logging.getLogger(__name__)


class CreateLinkRequest(BaseModel):
    """Request to create an affiliate link for a product"""
    product_id: str = Field(min_length=1)
    creator_id: str = Field(min_length=1)
    product_url: str
    # Falls back to DEFAULT_COMMISSION_RATE
    commission_rate: Optional[Decimal] = Field(None, ge=0, le=100, max_digits=5, decimal_places=2)

    @field_validator("product_url")
    @classmethod
    def _absolute_url(cls, value: str) -> str:
        parts = urlsplit(value)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ValueError("product_url must be an absolute http(s) URL")
        return value


class LinkResponse(BaseModel):
    """Created or listed link, with the URL the creator shares"""
    id: str
    code: str
    affiliate_url: str
    product_url: str
    product_id: Optional[str] = None
    creator_id: Optional[str] = None
    commission_rate: Decimal
    clicks: int


def affiliate_url(base_url: str, code: str) -> str:
    return f"{base_url.rstrip('/')}/affiliate-redirect?{urlencode({'code': code})}"


def to_response(link: AffiliateLink, settings: Settings) -> LinkResponse:
    return LinkResponse(
        affiliate_url=affiliate_url(settings.public_base_url, link.code),
        **link.model_dump(),
    )


@router.post("", response_model=LinkResponse, status_code=201)
async def create_affiliate_link(
    request: CreateLinkRequest,
    store: MarketplaceStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    """Create a link under a fresh unique code"""
    rate = request.commission_rate
    if rate is None:
        rate = settings.default_commission_rate

    link = await store.create_link(
        product_id=request.product_id,
        creator_id=request.creator_id,
        product_url=request.product_url,
        commission_rate=rate,
    )
    logger.info(
        f"Created affiliate link {link.code} for creator {link.creator_id} "
        f"product {link.product_id} at {link.commission_rate}%"
    )
    return to_response(link, settings)


@router.get("", response_model=List[LinkResponse])
async def list_affiliate_links(
    creator_id: str = Query(..., min_length=1),
    store: MarketplaceStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    """A creator's links, newest first"""
    links = await store.list_links(creator_id)
    return [to_response(link, settings) for link in links]
