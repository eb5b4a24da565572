"""
Pytest configuration and shared fixtures.

This file adds the project root to the Python path so that tests can import
from the api, domain, repositories and services packages.
"""

import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

# Add the project root to the Python path
# so tests can import domain, repositories, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from api.dependencies import ServiceContainer, build_container, get_container  # noqa: E402
from api.main import app  # noqa: E402
from domain.auction import Auction  # noqa: E402
from domain.catalog import Product, User  # noqa: E402
from repositories.memory import InMemoryAuctionRepository, InMemoryCatalogRepository  # noqa: E402

NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


class FixedClock:
    """A clock that only moves when a test moves it."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def auction_repo() -> InMemoryAuctionRepository:
    return InMemoryAuctionRepository()


@pytest.fixture
def catalog() -> InMemoryCatalogRepository:
    return InMemoryCatalogRepository()


@pytest.fixture
def container(
    auction_repo: InMemoryAuctionRepository,
    catalog: InMemoryCatalogRepository,
    clock: FixedClock,
) -> ServiceContainer:
    return build_container(auction_repo, catalog, clock=clock)


@pytest.fixture
def product(catalog: InMemoryCatalogRepository) -> Product:
    return catalog.create_product(
        name="Raw Premium Grade A Shea Butter - 5kg",
        description="Fresh harvest from women-owned cooperative in Bolgatanga",
        price=Decimal("350.00"),
        images=["https://example.com/shea.jpg"],
    )


@pytest.fixture
def bidders(catalog: InMemoryCatalogRepository) -> list[User]:
    return [
        catalog.create_user(username="customer1", name="Abena Mensah"),
        catalog.create_user(username="customer2", name="Kwame Boateng"),
    ]


@pytest.fixture
def auction(container: ServiceContainer, product: Product, clock: FixedClock) -> Auction:
    """An active auction starting at 200.00 that ends one hour from now."""

    return container.auction_service.create_auction(
        product_id=product.product_id,
        start_price=Decimal("200.00"),
        start_time=clock.now - timedelta(days=1),
        end_time=clock.now + timedelta(hours=1),
    )


@pytest.fixture
def client(container: ServiceContainer) -> Iterator[TestClient]:
    """A FastAPI test client wired to the per-test in-memory container."""

    app.dependency_overrides[get_container] = lambda: container
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
