"""Shared FastAPI dependencies"""
from fastapi import Request

from lib.repositories import MarketplaceStore, StorageError


def get_store(request: Request) -> MarketplaceStore:
    """Store created by the app lifespan"""
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise StorageError("Marketplace store not initialised")
    return store
