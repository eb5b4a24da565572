"""
Domain: Auction entity.

Rules implemented here:
- An auction is created active, priced at its start price, with no bids and no winner.
- current_price >= start_price always; it equals the highest accepted bid, or the
  start price when nothing has been accepted yet.
- Status is never flipped by a timer. An active auction whose end_time has passed
  is "expired-pending" until an administrative transition ends it.
- Auctions are never deleted.

This module contains only pure domain entities: no I/O, no database, no frameworks.
All timestamps must be passed explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from .money import to_money
from .time import require_utc_timestamp


class AuctionStatus(str, Enum):
    ACTIVE = "active"
    ENDED = "ended"
    CANCELLED = "cancelled"


# Computed state only; never stored.
EXPIRED_PENDING = "expired-pending"


@dataclass(frozen=True, slots=True)
class Auction:
    """
    Immutable snapshot of an auction.

    Mutations (accepted bids, status transitions) return new instances; the
    repository decides which snapshot is current.
    """

    auction_id: int
    product_id: int
    start_price: Decimal
    current_price: Decimal
    start_time: datetime
    end_time: datetime
    status: AuctionStatus = AuctionStatus.ACTIVE
    bid_count: int = 0
    winner_id: Optional[int] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("start_time", self.start_time)
        require_utc_timestamp("end_time", self.end_time)

        if self.start_price <= 0:
            raise ValueError("start_price must be > 0")
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        if self.current_price < self.start_price:
            raise ValueError("current_price must be >= start_price")
        if self.bid_count < 0:
            raise ValueError("bid_count must be >= 0")

    @staticmethod
    def open(
        *,
        auction_id: int,
        product_id: int,
        start_price: Decimal,
        start_time: datetime,
        end_time: datetime,
    ) -> "Auction":
        """Build a freshly created auction: active, unbid, priced at start_price."""

        price = to_money(start_price)
        return Auction(
            auction_id=auction_id,
            product_id=product_id,
            start_price=price,
            current_price=price,
            start_time=start_time,
            end_time=end_time,
        )

    @property
    def is_active(self) -> bool:
        return self.status == AuctionStatus.ACTIVE

    def has_ended(self, as_of: datetime) -> bool:
        """True once end_time is no longer in the future."""

        require_utc_timestamp("as_of", as_of)
        return self.end_time <= as_of

    def is_open_for_bids(self, as_of: datetime) -> bool:
        return self.is_active and not self.has_ended(as_of)

    def effective_status(self, as_of: datetime) -> str:
        """Stored status, or "expired-pending" for an active auction past its end_time."""

        if self.is_active and self.has_ended(as_of):
            return EXPIRED_PENDING
        return self.status.value

    def with_bid(self, amount: Decimal) -> "Auction":
        """Return the auction after accepting a bid of `amount`."""

        if amount <= self.current_price:
            raise ValueError("bid amount must exceed current_price")
        return replace(self, current_price=amount, bid_count=self.bid_count + 1)

    def closed(self, status: AuctionStatus, winner_id: Optional[int] = None) -> "Auction":
        """Return the auction moved out of the active state."""

        if status == AuctionStatus.ACTIVE:
            raise ValueError("closing status must be ended or cancelled")
        if not self.is_active:
            raise ValueError(f"auction is already {self.status.value}")
        if status == AuctionStatus.CANCELLED:
            winner_id = None
        return replace(self, status=status, winner_id=winner_id)
