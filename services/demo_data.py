"""
Demo catalog for local development.

Seeds bidders, three auction products and their auctions, timed relative to
`now` so the auctions are live when seeded.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List

from domain.auction import Auction
from domain.catalog import User
from repositories.base import CatalogRepository
from services.auction_service import AuctionService


@dataclass(frozen=True, slots=True)
class DemoAuctionSpec:
    product_name: str
    description: str
    list_price: Decimal
    image: str
    start_price: Decimal
    started_ago: timedelta
    ends_in: timedelta


DEMO_AUCTIONS: List[DemoAuctionSpec] = [
    DemoAuctionSpec(
        product_name="Limited Edition Shea Gift Set",
        description="Handcrafted gift box with premium products from Tamale Traditions",
        list_price=Decimal("120.00"),
        image="https://images.unsplash.com/photo-1594093235950-bcd473259910?w=800",
        start_price=Decimal("80.00"),
        started_ago=timedelta(days=2),
        ends_in=timedelta(hours=2),
    ),
    DemoAuctionSpec(
        product_name="Raw Premium Grade A Shea Butter - 5kg",
        description="Fresh harvest from women-owned cooperative in Bolgatanga",
        list_price=Decimal("350.00"),
        image="https://images.unsplash.com/photo-1583512603866-910c2f3c3b21?w=800",
        start_price=Decimal("200.00"),
        started_ago=timedelta(days=3),
        ends_in=timedelta(hours=8),
    ),
    DemoAuctionSpec(
        product_name="Vintage Handmade Shea Soap Collection",
        description="Artisanal soap set using century-old recipes from Kumasi",
        list_price=Decimal("85.00"),
        image="https://images.unsplash.com/photo-1575505586569-646b2ca898fc?w=800",
        start_price=Decimal("50.00"),
        started_ago=timedelta(days=1),
        ends_in=timedelta(minutes=50),
    ),
]


@dataclass(frozen=True, slots=True)
class SeedResult:
    users: List[User]
    auctions: List[Auction]


def seed_demo_data(
    catalog: CatalogRepository,
    auction_service: AuctionService,
    now: datetime,
) -> SeedResult:
    """Create demo bidders, products and auctions. Not idempotent: each call adds a new set."""

    users = [
        catalog.create_user(username="customer1", name="Abena Mensah", email="abena@example.com"),
        catalog.create_user(username="customer2", name="Kwame Boateng", email="kwame@example.com"),
    ]

    auctions: List[Auction] = []
    for spec in DEMO_AUCTIONS:
        product = catalog.create_product(
            name=spec.product_name,
            description=spec.description,
            price=spec.list_price,
            images=[spec.image],
        )
        auctions.append(
            auction_service.create_auction(
                product_id=product.product_id,
                start_price=spec.start_price,
                start_time=now - spec.started_ago,
                end_time=now + spec.ends_in,
            )
        )

    return SeedResult(users=users, auctions=auctions)


__all__ = ["DEMO_AUCTIONS", "SeedResult", "seed_demo_data"]
