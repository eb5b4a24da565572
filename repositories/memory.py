"""
In-memory repositories.

Process-local maps keyed by incrementing integer ids, guarded by a re-entrant
lock. Every read returns an immutable domain snapshot, so callers never observe
a half-applied update.
"""

from __future__ import annotations

import threading
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence

from domain.auction import Auction, AuctionStatus
from domain.bid import Bid, presentation_order
from domain.catalog import Product, User
from domain.errors import StaleAuctionError
from domain.money import to_money
from repositories.base import check_auction_changes


class InMemoryAuctionRepository:
    """AuctionRepository backed by dicts."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._auctions: Dict[int, Auction] = {}
        self._bids: Dict[int, Bid] = {}
        self._next_auction_id = 1
        self._next_bid_id = 1

    def get_auction(self, auction_id: int) -> Optional[Auction]:
        with self._lock:
            return self._auctions.get(auction_id)

    def create_auction(
        self,
        product_id: int,
        start_price: Decimal,
        start_time: datetime,
        end_time: datetime,
    ) -> Auction:
        with self._lock:
            auction = Auction.open(
                auction_id=self._next_auction_id,
                product_id=product_id,
                start_price=start_price,
                start_time=start_time,
                end_time=end_time,
            )
            self._auctions[auction.auction_id] = auction
            self._next_auction_id += 1
            return auction

    def list_auctions(self, status: Optional[AuctionStatus] = None) -> List[Auction]:
        with self._lock:
            auctions = list(self._auctions.values())
        if status is not None:
            auctions = [a for a in auctions if a.status == status]
        return sorted(auctions, key=lambda a: a.auction_id)

    def update_auction(
        self,
        auction_id: int,
        changes: Mapping[str, Any],
        *,
        expected: Optional[Mapping[str, Any]] = None,
    ) -> Optional[Auction]:
        check_auction_changes(changes)

        with self._lock:
            auction = self._auctions.get(auction_id)
            if auction is None:
                return None

            if expected:
                for field_name, value in expected.items():
                    if getattr(auction, field_name) != value:
                        raise StaleAuctionError(
                            f"Auction {auction_id} changed: {field_name} is no longer {value!r}"
                        )

            values = dict(changes)
            if "current_price" in values:
                values["current_price"] = to_money(values["current_price"])
            if "status" in values:
                values["status"] = AuctionStatus(values["status"])

            # Building a new frozen instance re-runs the entity invariants.
            updated = Auction(
                auction_id=auction.auction_id,
                product_id=auction.product_id,
                start_price=auction.start_price,
                current_price=values.get("current_price", auction.current_price),
                start_time=auction.start_time,
                end_time=auction.end_time,
                status=values.get("status", auction.status),
                bid_count=values.get("bid_count", auction.bid_count),
                winner_id=values.get("winner_id", auction.winner_id),
            )
            self._auctions[auction_id] = updated
            return updated

    def create_bid(
        self,
        auction_id: int,
        user_id: int,
        amount: Decimal,
        created_at: datetime,
    ) -> Bid:
        with self._lock:
            bid = Bid(
                bid_id=self._next_bid_id,
                auction_id=auction_id,
                user_id=user_id,
                amount=to_money(amount),
                created_at=created_at,
            )
            self._bids[bid.bid_id] = bid
            self._next_bid_id += 1
            return bid

    def list_bids(self, auction_id: int) -> List[Bid]:
        with self._lock:
            bids = [b for b in self._bids.values() if b.auction_id == auction_id]
        return presentation_order(bids)


class InMemoryCatalogRepository:
    """CatalogRepository backed by dicts."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._products: Dict[int, Product] = {}
        self._users: Dict[int, User] = {}
        self._next_product_id = 1
        self._next_user_id = 1

    def get_product(self, product_id: int) -> Optional[Product]:
        with self._lock:
            return self._products.get(product_id)

    def get_user(self, user_id: int) -> Optional[User]:
        with self._lock:
            return self._users.get(user_id)

    def create_product(
        self,
        name: str,
        description: str,
        price: Decimal,
        images: Sequence[str] = (),
    ) -> Product:
        with self._lock:
            product = Product(
                product_id=self._next_product_id,
                name=name,
                description=description,
                price=to_money(price),
                images=tuple(images),
            )
            self._products[product.product_id] = product
            self._next_product_id += 1
            return product

    def create_user(
        self,
        username: str,
        name: str,
        email: Optional[str] = None,
        role: str = "buyer",
    ) -> User:
        with self._lock:
            user = User(
                user_id=self._next_user_id,
                username=username,
                name=name,
                email=email,
                role=role,
            )
            self._users[user.user_id] = user
            self._next_user_id += 1
            return user


__all__ = [
    "InMemoryAuctionRepository",
    "InMemoryCatalogRepository",
]
