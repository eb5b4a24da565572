"""
Domain: Bid entity.

Rules implemented here:
- A Bid is created exactly once per accepted submission and is never edited or deleted.
- A Bid stores only the bidder's user_id; display names are joined at read time.
- Presentation order is amount descending, earliest created_at first on ties.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional

from .catalog import UserSummary
from .time import require_utc_timestamp


@dataclass(frozen=True, slots=True)
class Bid:
    """Immutable record of an accepted bid."""

    bid_id: int
    auction_id: int
    user_id: int
    amount: Decimal
    created_at: datetime

    def __post_init__(self) -> None:
        require_utc_timestamp("created_at", self.created_at)
        if self.amount <= 0:
            raise ValueError("amount must be > 0")


@dataclass(frozen=True, slots=True)
class BidView:
    """A Bid joined with the bidder's {id, name} projection (None if the user is gone)."""

    bid: Bid
    bidder: Optional[UserSummary]


def presentation_order(bids: Iterable[Bid]) -> List[Bid]:
    """Highest amount first; ties go to the earliest bid."""

    return sorted(bids, key=lambda b: (-b.amount, b.created_at, b.bid_id))
