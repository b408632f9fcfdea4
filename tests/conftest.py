"""Shared fixtures: in-memory storage, a loaded cart store, catalog fakes."""

from typing import Callable

import httpx
import pytest

from food_explorer.cart.store import CartStore
from food_explorer.db.memory import MemoryStorage
from food_explorer.services.catalog import CatalogClient


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def store(storage: MemoryStorage) -> CartStore:
    s = CartStore(storage)
    s.load()
    return s


@pytest.fixture
def catalog_factory() -> Callable[[Callable[[httpx.Request], httpx.Response]], CatalogClient]:
    def factory(handler: Callable[[httpx.Request], httpx.Response], page_size: int = 2) -> CatalogClient:
        return CatalogClient(
            base_url="https://off.test",
            page_size=page_size,
            timeout_seconds=1.0,
            transport=httpx.MockTransport(handler),
        )

    return factory
