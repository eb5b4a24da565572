"""
Repository interfaces (persistence capabilities).

Services receive these objects explicitly; no module-level store is shared.
Implementations:
- repositories.memory: lock-protected in-process maps (tests, demos)
- repositories.auction_repository / repositories.catalog_repository: Supabase
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, List, Mapping, Optional, Protocol, Sequence

from domain.auction import Auction, AuctionStatus
from domain.bid import Bid
from domain.catalog import Product, User

# Auction fields a repository update may touch. Everything else is fixed at creation.
UPDATABLE_AUCTION_FIELDS = frozenset({"current_price", "bid_count", "status", "winner_id"})


def check_auction_changes(changes: Mapping[str, Any]) -> None:
    """Reject updates to fields outside UPDATABLE_AUCTION_FIELDS."""

    unknown = set(changes) - UPDATABLE_AUCTION_FIELDS
    if unknown:
        raise ValueError(f"Auction fields are not updatable: {sorted(unknown)}")


class AuctionRepository(Protocol):
    """Persistence for auctions and their bid ledger."""

    def get_auction(self, auction_id: int) -> Optional[Auction]:
        ...

    def create_auction(
        self,
        product_id: int,
        start_price: Decimal,
        start_time: datetime,
        end_time: datetime,
    ) -> Auction:
        ...

    def list_auctions(self, status: Optional[AuctionStatus] = None) -> List[Auction]:
        ...

    def update_auction(
        self,
        auction_id: int,
        changes: Mapping[str, Any],
        *,
        expected: Optional[Mapping[str, Any]] = None,
    ) -> Optional[Auction]:
        """
        Merge `changes` into the auction as one write.

        When `expected` is given, the write only applies if every listed field
        still holds the expected value; otherwise StaleAuctionError is raised.
        Returns None if the auction does not exist.
        """
        ...

    def create_bid(
        self,
        auction_id: int,
        user_id: int,
        amount: Decimal,
        created_at: datetime,
    ) -> Bid:
        ...

    def list_bids(self, auction_id: int) -> List[Bid]:
        """All bids for the auction, amount descending, earliest first on ties."""
        ...


class CatalogRepository(Protocol):
    """Products and users the auction engine references. Writes exist for seeding only."""

    def get_product(self, product_id: int) -> Optional[Product]:
        ...

    def get_user(self, user_id: int) -> Optional[User]:
        ...

    def create_product(
        self,
        name: str,
        description: str,
        price: Decimal,
        images: Sequence[str] = (),
    ) -> Product:
        ...

    def create_user(
        self,
        username: str,
        name: str,
        email: Optional[str] = None,
        role: str = "buyer",
    ) -> User:
        ...


__all__ = [
    "AuctionRepository",
    "CatalogRepository",
    "UPDATABLE_AUCTION_FIELDS",
    "check_auction_changes",
]
