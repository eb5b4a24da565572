"""
Bidding service for placing bids on auctions.

Handles:
- Bid validation in a fixed order (existence, status, expiry, amount)
- Serialized acceptance per auction (in-process lock + repository compare-and-swap)
- The bid ledger read in presentation order

Check order determines which error a caller sees:
1. Auction missing              -> AuctionNotFoundError
2. Status is not active         -> AuctionInactiveError
3. end_time has passed          -> AuctionExpiredError
4. amount <= current_price      -> BidTooLowError (carries current_price)
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import DefaultDict, Iterator, List

from domain.auction import Auction
from domain.bid import Bid, BidView
from domain.errors import (
    AuctionExpiredError,
    AuctionInactiveError,
    AuctionNotFoundError,
    BidConflictError,
    BidTooLowError,
    StaleAuctionError,
)
from domain.money import to_money
from domain.time import Clock, utc_now
from repositories.base import AuctionRepository, CatalogRepository

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5


class AuctionLocks:
    """One mutex per auction id, created on first use. Callers check the auction exists first."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: DefaultDict[int, threading.Lock] = defaultdict(threading.Lock)

    def __contains__(self, auction_id: int) -> bool:
        with self._guard:
            return auction_id in self._locks

    @contextmanager
    def hold(self, auction_id: int) -> Iterator[None]:
        with self._guard:
            lock = self._locks[auction_id]
        with lock:
            yield


def validate_bid(auction: Auction, amount: Decimal, now: datetime) -> None:
    """Run checks 2-4 against an auction snapshot. Raises the first failing check."""

    if not auction.is_active:
        raise AuctionInactiveError()
    if auction.has_ended(now):
        raise AuctionExpiredError()
    if amount <= auction.current_price:
        raise BidTooLowError(auction.current_price)


class BiddingService:
    """Accepts bids and exposes the bid ledger."""

    def __init__(
        self,
        auctions: AuctionRepository,
        catalog: CatalogRepository,
        clock: Clock = utc_now,
        locks: AuctionLocks | None = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._auctions = auctions
        self._catalog = catalog
        self._clock = clock
        self._locks = locks if locks is not None else AuctionLocks()
        self._max_attempts = max_attempts

    def place_bid(self, auction_id: int, user_id: int, amount: Decimal) -> BidView:
        """
        Place a bid and return it joined with the bidder's {id, name}.

        Within this process, bids on one auction run one at a time. Across
        processes the conditional update on (current_price, bid_count) rejects a
        writer whose snapshot went stale; that writer re-reads and re-validates.

        Raises:
            AuctionNotFoundError, AuctionInactiveError, AuctionExpiredError,
            BidTooLowError, BidConflictError
        """

        amount = to_money(amount)

        # Auctions are never deleted, so only ids that exist ever get a lock.
        if self._auctions.get_auction(auction_id) is None:
            raise AuctionNotFoundError(auction_id)

        with self._locks.hold(auction_id):
            for attempt in range(1, self._max_attempts + 1):
                auction = self._auctions.get_auction(auction_id)
                if auction is None:
                    raise AuctionNotFoundError(auction_id)

                now = self._clock()
                try:
                    validate_bid(auction, amount, now)
                except (AuctionInactiveError, AuctionExpiredError, BidTooLowError) as e:
                    logger.info(
                        "Bid rejected",
                        extra={
                            "auction_id": auction_id,
                            "user_id": user_id,
                            "amount": str(amount),
                            "current_price": str(auction.current_price),
                            "reason": type(e).__name__,
                        },
                    )
                    raise

                accepted = auction.with_bid(amount)
                try:
                    updated = self._auctions.update_auction(
                        auction_id,
                        {"current_price": accepted.current_price, "bid_count": accepted.bid_count},
                        expected={
                            "status": auction.status,
                            "current_price": auction.current_price,
                            "bid_count": auction.bid_count,
                        },
                    )
                except StaleAuctionError:
                    logger.warning(
                        "Auction changed before bid was written, retrying",
                        extra={"auction_id": auction_id, "attempt": attempt},
                    )
                    continue

                if updated is None:
                    raise AuctionNotFoundError(auction_id)

                try:
                    bid = self._auctions.create_bid(
                        auction_id=auction_id,
                        user_id=user_id,
                        amount=amount,
                        created_at=now,
                    )
                except Exception:
                    self._restore(auction, updated)
                    raise
                break
            else:
                raise BidConflictError()

        logger.info(
            "Bid accepted",
            extra={
                "auction_id": auction_id,
                "bid_id": bid.bid_id,
                "user_id": user_id,
                "amount": str(amount),
                "bid_count": updated.bid_count,
            },
        )
        return self._with_bidder(bid)

    def list_bids(self, auction_id: int) -> List[Bid]:
        """Bids for an auction, highest amount first, earliest first on ties."""

        if self._auctions.get_auction(auction_id) is None:
            raise AuctionNotFoundError(auction_id)
        return self._auctions.list_bids(auction_id)

    def _restore(self, snapshot: Auction, written: Auction) -> None:
        """
        Undo a price/count update whose bid row could not be written.

        Conditional on the values just written, so a later writer is never
        overwritten. The caller re-raises the original failure.
        """

        logger.error(
            "Failed to record bid, restoring auction price",
            extra={
                "auction_id": snapshot.auction_id,
                "current_price": str(snapshot.current_price),
                "bid_count": snapshot.bid_count,
            },
        )
        try:
            self._auctions.update_auction(
                snapshot.auction_id,
                {"current_price": snapshot.current_price, "bid_count": snapshot.bid_count},
                expected={"current_price": written.current_price, "bid_count": written.bid_count},
            )
        except (StaleAuctionError, RuntimeError):
            logger.exception(
                "Could not restore auction after failed bid write",
                extra={"auction_id": snapshot.auction_id},
            )

    def _with_bidder(self, bid: Bid) -> BidView:
        user = self._catalog.get_user(bid.user_id)
        return BidView(bid=bid, bidder=user.summary() if user is not None else None)


__all__ = [
    "AuctionLocks",
    "BiddingService",
    "DEFAULT_MAX_ATTEMPTS",
    "validate_bid",
]
