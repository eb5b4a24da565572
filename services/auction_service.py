"""
Auction service (auction lifecycle).

Handles:
- Creating auctions (active, priced at the start price, no bids, no winner)
- Active-auction queries, evaluated against the wall clock on every call
- Administrative transitions out of the active state (end / cancel)
- One-shot reconciliation of auctions whose end_time has passed

Price and bid-count fields are never written here; only the bidding service
changes them.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from domain.auction import Auction, AuctionStatus
from domain.errors import (
    AuctionInactiveError,
    AuctionNotFoundError,
    BidConflictError,
    StaleAuctionError,
)
from domain.money import to_money
from domain.time import Clock, require_utc_timestamp, utc_now
from repositories.base import AuctionRepository
from services.bidding_service import AuctionLocks

logger = logging.getLogger(__name__)

_CLOSE_ATTEMPTS = 3


class AuctionService:
    """Creates auctions, answers lifecycle queries and applies status transitions."""

    def __init__(
        self,
        auctions: AuctionRepository,
        clock: Clock = utc_now,
        locks: AuctionLocks | None = None,
    ) -> None:
        self._auctions = auctions
        self._clock = clock
        self._locks = locks if locks is not None else AuctionLocks()

    def create_auction(
        self,
        product_id: int,
        start_price: Decimal,
        start_time: datetime,
        end_time: datetime,
    ) -> Auction:
        """
        Create and persist a new auction.

        The caller is responsible for checking that `product_id` exists.

        Raises:
            ValueError: If start_price <= 0, end_time <= start_time, or timestamps are not UTC
        """

        require_utc_timestamp("start_time", start_time)
        require_utc_timestamp("end_time", end_time)

        price = to_money(start_price)
        if price <= 0:
            raise ValueError("start_price must be > 0")
        if end_time <= start_time:
            raise ValueError("end_time must be after start_time")

        auction = self._auctions.create_auction(
            product_id=product_id,
            start_price=price,
            start_time=start_time,
            end_time=end_time,
        )
        logger.info(
            "Auction created",
            extra={
                "auction_id": auction.auction_id,
                "product_id": product_id,
                "start_price": str(price),
                "end_time": end_time.isoformat(),
            },
        )
        return auction

    def get_auction(self, auction_id: int) -> Auction:
        """Fetch an auction or raise AuctionNotFoundError."""

        auction = self._auctions.get_auction(auction_id)
        if auction is None:
            raise AuctionNotFoundError(auction_id)
        return auction

    def get_active_auctions(self) -> List[Auction]:
        """
        Auctions with status active whose end_time is still in the future.

        Computed fresh on each call. Soonest-ending first.
        """

        now = self._clock()
        active = [
            auction
            for auction in self._auctions.list_auctions(AuctionStatus.ACTIVE)
            if auction.is_open_for_bids(now)
        ]
        return sorted(active, key=lambda a: (a.end_time, a.auction_id))

    def list_auctions(self, status: Optional[AuctionStatus] = None) -> List[Auction]:
        """All auctions (optionally one stored status), ordered by id."""

        return self._auctions.list_auctions(status)

    def end_auction(self, auction_id: int) -> Auction:
        """End an active auction and record the highest bidder as the winner."""

        return self._close(auction_id, AuctionStatus.ENDED)

    def cancel_auction(self, auction_id: int) -> Auction:
        """Cancel an active auction. No winner is recorded."""

        return self._close(auction_id, AuctionStatus.CANCELLED)

    def end_expired_auctions(self) -> List[Auction]:
        """
        End every active auction whose end_time has passed.

        This is a manual sweep: nothing schedules it. Auctions that a concurrent
        caller already closed, or that have a bid mid-write, are skipped.
        """

        now = self._clock()
        ended: List[Auction] = []

        for auction in self._auctions.list_auctions(AuctionStatus.ACTIVE):
            if not auction.has_ended(now):
                continue
            try:
                ended.append(self.end_auction(auction.auction_id))
            except (AuctionInactiveError, AuctionNotFoundError):
                logger.info(
                    "Skipping auction closed concurrently",
                    extra={"auction_id": auction.auction_id},
                )
            except BidConflictError:
                logger.warning(
                    "Skipping auction with a bid in progress; the next sweep ends it",
                    extra={"auction_id": auction.auction_id},
                )

        logger.info("Expired auctions reconciled", extra={"ended_count": len(ended)})
        return ended

    def _close(self, auction_id: int, status: AuctionStatus) -> Auction:
        # Existence first so unknown ids never get a lock.
        self.get_auction(auction_id)

        with self._locks.hold(auction_id):
            for _ in range(_CLOSE_ATTEMPTS):
                auction = self.get_auction(auction_id)
                if not auction.is_active:
                    raise AuctionInactiveError()

                # bid_count moves before the bid row is written; a mismatch means a bid is mid-flight.
                bids = self._auctions.list_bids(auction_id)
                if len(bids) != auction.bid_count:
                    logger.warning(
                        "Bid ledger behind auction while closing, retrying",
                        extra={"auction_id": auction_id, "bid_count": auction.bid_count, "bids": len(bids)},
                    )
                    continue

                winner_id: Optional[int] = None
                if status == AuctionStatus.ENDED and bids:
                    winner_id = bids[0].user_id

                closed = auction.closed(status, winner_id)
                try:
                    updated = self._auctions.update_auction(
                        auction_id,
                        {"status": closed.status, "winner_id": closed.winner_id},
                        expected={"status": AuctionStatus.ACTIVE, "bid_count": auction.bid_count},
                    )
                except StaleAuctionError:
                    logger.warning("Auction changed while closing, retrying", extra={"auction_id": auction_id})
                    continue
                break
            else:
                raise BidConflictError("The auction kept changing while closing, please retry")

        if updated is None:
            raise AuctionNotFoundError(auction_id)

        logger.info(
            "Auction closed",
            extra={
                "auction_id": auction_id,
                "status": status.value,
                "winner_id": winner_id,
                "final_price": str(updated.current_price),
            },
        )
        return updated


__all__ = ["AuctionService"]
