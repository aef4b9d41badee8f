"""Earnings statistics for creators and store owners"""
from typing import List

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from api.dependencies import get_store
from lib.models import SaleRecord, SalesSummary
from lib.repositories import MarketplaceStore

router = APIRouter(prefix="/stats", tags=["stats"])


class EarningsStats(BaseModel):
    """Totals plus the newest sales behind them"""
    summary: SalesSummary
    recent_sales: List[SaleRecord]


@router.get("/creators/{creator_id}", response_model=EarningsStats)
async def get_creator_stats(
    creator_id: str,
    limit: int = Query(50, ge=1, le=500),
    store: MarketplaceStore = Depends(get_store),
):
    """Earnings across every sale attributed to a creator"""
    return EarningsStats(
        summary=await store.sales_summary(creator_id=creator_id),
        recent_sales=await store.recent_sales(creator_id=creator_id, limit=limit),
    )


@router.get("/shops/{shop_domain}", response_model=EarningsStats)
async def get_shop_stats(
    shop_domain: str,
    limit: int = Query(50, ge=1, le=500),
    store: MarketplaceStore = Depends(get_store),
):
    """Earnings across every affiliate sale in a store"""
    return EarningsStats(
        summary=await store.sales_summary(shop_domain=shop_domain),
        recent_sales=await store.recent_sales(shop_domain=shop_domain, limit=limit),
    )
