"""Shared FastAPI dependencies used across routers."""

from functools import lru_cache
from typing import Iterator

from fastapi import Depends

from top250.config import Settings, load_settings
from top250.services.catalog import CatalogClient
from top250.services.films import CatalogFeed, RankedStore
from top250.services.managers import ManagerRegistry
from top250.storage import CollectionStore, build_store


@lru_cache(maxsize=1)
def _load_settings() -> Settings:
    return load_settings()


@lru_cache(maxsize=1)
def _build_store() -> CollectionStore:
    return build_store(_load_settings())


def get_settings() -> Settings:
    return _load_settings()


def get_store() -> CollectionStore:
    return _build_store()


def get_ranked_store(store: CollectionStore = Depends(get_store)) -> RankedStore:
    return RankedStore(store)


def get_manager_registry(
    store: CollectionStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> ManagerRegistry:
    return ManagerRegistry(store, settings.auth)


def get_catalog_feed(settings: Settings = Depends(get_settings)) -> Iterator[CatalogFeed]:
    client = CatalogClient(settings)
    try:
        yield client
    finally:
        client.close()
