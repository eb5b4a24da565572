"""
Tests for `services/bidding_service.py`.

Covers rules:
- Checks run in order: not found, inactive, expired, too low.
- A bid must be strictly higher than the current price; rejections change nothing.
- After N accepted bids the current price is the highest amount and bid_count == N.
- Accepted bids come back with the bidder's {id, name}.
- A stale compare-and-swap re-validates against the fresh auction; endless losses raise BidConflictError.
- A failed bid write puts the auction price and count back.
- Only existing auctions get a lock.
"""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest

from domain.auction import AuctionStatus
from domain.errors import (
    AuctionExpiredError,
    AuctionInactiveError,
    AuctionNotFoundError,
    BidConflictError,
    BidTooLowError,
    StaleAuctionError,
)
from repositories.memory import InMemoryAuctionRepository
from services.bidding_service import AuctionLocks, BiddingService


def test_accepted_bid_updates_price_and_count(container, auction, bidders, clock) -> None:
    """Scenario: start 200.00, bid 220.00 by user 1 is accepted."""

    view = container.bidding_service.place_bid(auction.auction_id, bidders[0].user_id, Decimal("220.00"))

    assert view.bid.amount == Decimal("220.00")
    assert view.bid.auction_id == auction.auction_id
    assert view.bid.user_id == bidders[0].user_id
    assert view.bid.created_at == clock.now
    assert view.bidder is not None
    assert (view.bidder.user_id, view.bidder.name) == (bidders[0].user_id, "Abena Mensah")

    stored = container.auctions.get_auction(auction.auction_id)
    assert stored.current_price == Decimal("220.00")
    assert stored.bid_count == 1


def test_lower_follow_up_bid_reports_current_price(container, auction, bidders) -> None:
    """Scenario: after 220.00, a bid of 210.00 is rejected with the current price."""

    container.bidding_service.place_bid(auction.auction_id, bidders[0].user_id, Decimal("220.00"))

    with pytest.raises(BidTooLowError) as excinfo:
        container.bidding_service.place_bid(auction.auction_id, bidders[1].user_id, Decimal("210.00"))

    assert excinfo.value.current_price == Decimal("220.00")


@pytest.mark.parametrize("amount", ["100.00", "99.00"])
def test_non_increasing_bid_is_rejected_without_side_effects(container, product, bidders, clock, amount) -> None:
    auction = container.auction_service.create_auction(
        product_id=product.product_id,
        start_price=Decimal("100.00"),
        start_time=clock.now - timedelta(hours=1),
        end_time=clock.now + timedelta(hours=1),
    )

    with pytest.raises(BidTooLowError) as excinfo:
        container.bidding_service.place_bid(auction.auction_id, bidders[0].user_id, Decimal(amount))

    assert excinfo.value.current_price == Decimal("100.00")
    stored = container.auctions.get_auction(auction.auction_id)
    assert stored.current_price == Decimal("100.00")
    assert stored.bid_count == 0
    assert container.auctions.list_bids(auction.auction_id) == []


def test_monotonic_price_over_many_bids(container, auction, bidders) -> None:
    amounts = [Decimal("201.00"), Decimal("250.50"), Decimal("251.00"), Decimal("400.00")]
    previous = auction.current_price

    for i, amount in enumerate(amounts):
        before = container.auctions.get_auction(auction.auction_id).current_price
        assert before == previous
        container.bidding_service.place_bid(auction.auction_id, bidders[i % 2].user_id, amount)
        previous = amount

    stored = container.auctions.get_auction(auction.auction_id)
    assert stored.current_price == max(amounts)
    assert stored.bid_count == len(amounts)


def test_unknown_auction_is_not_found(container, bidders) -> None:
    with pytest.raises(AuctionNotFoundError):
        container.bidding_service.place_bid(999, bidders[0].user_id, Decimal("10"))


def test_expired_auction_rejects_any_amount(container, auction, bidders, clock) -> None:
    """end_time passed while status still reads active: AuctionExpiredError, even for a high bid."""

    clock.advance(hours=2)

    with pytest.raises(AuctionExpiredError):
        container.bidding_service.place_bid(auction.auction_id, bidders[0].user_id, Decimal("1000000"))

    stored = container.auctions.get_auction(auction.auction_id)
    assert stored.status == AuctionStatus.ACTIVE
    assert stored.bid_count == 0


def test_bid_at_exact_end_time_is_expired(container, auction, bidders, clock) -> None:
    clock.now = auction.end_time

    with pytest.raises(AuctionExpiredError):
        container.bidding_service.place_bid(auction.auction_id, bidders[0].user_id, Decimal("300"))


def test_inactive_check_runs_before_expiry_and_amount(container, auction, bidders, clock) -> None:
    """A cancelled auction past its end time with a too-low bid reports inactive."""

    container.auction_service.cancel_auction(auction.auction_id)
    clock.advance(days=1)

    with pytest.raises(AuctionInactiveError):
        container.bidding_service.place_bid(auction.auction_id, bidders[0].user_id, Decimal("1"))


def test_expiry_check_runs_before_amount(container, auction, bidders, clock) -> None:
    clock.advance(hours=2)

    with pytest.raises(AuctionExpiredError):
        container.bidding_service.place_bid(auction.auction_id, bidders[0].user_id, Decimal("1"))


def test_ended_auction_rejects_bids(container, auction, bidders) -> None:
    container.auction_service.end_auction(auction.auction_id)

    with pytest.raises(AuctionInactiveError):
        container.bidding_service.place_bid(auction.auction_id, bidders[0].user_id, Decimal("500"))


def test_bid_from_unknown_user_has_no_bidder_projection(container, auction) -> None:
    view = container.bidding_service.place_bid(auction.auction_id, 777, Decimal("205"))

    assert view.bid.user_id == 777
    assert view.bidder is None


def test_list_bids_is_highest_first(container, auction, bidders, clock) -> None:
    for amount in ["250", "280", "320"]:
        container.bidding_service.place_bid(auction.auction_id, bidders[0].user_id, Decimal(amount))
        clock.advance(minutes=1)

    bids = container.bidding_service.list_bids(auction.auction_id)

    assert [b.amount for b in bids] == [Decimal("320.00"), Decimal("280.00"), Decimal("250.00")]


def test_list_bids_for_unknown_auction(container) -> None:
    with pytest.raises(AuctionNotFoundError):
        container.bidding_service.list_bids(404)


class _CompetingWriterRepository(InMemoryAuctionRepository):
    """Lands another bid right before our first conditional write, like a second process would."""

    def __init__(self, competing_amount: Decimal) -> None:
        super().__init__()
        self.competing_amount = competing_amount
        self.conditional_writes = 0

    def update_auction(self, auction_id, changes, *, expected=None):
        if expected is not None:
            self.conditional_writes += 1
            if self.conditional_writes == 1:
                current = self.get_auction(auction_id)
                super().update_auction(
                    auction_id,
                    {"current_price": self.competing_amount, "bid_count": current.bid_count + 1},
                )
        return super().update_auction(auction_id, changes, expected=expected)


def _seed(repo: InMemoryAuctionRepository, clock) -> int:
    auction = repo.create_auction(
        product_id=1,
        start_price=Decimal("100"),
        start_time=clock.now - timedelta(hours=1),
        end_time=clock.now + timedelta(hours=1),
    )
    return auction.auction_id


def test_lost_race_revalidates_and_rejects_when_outbid(catalog, clock) -> None:
    repo = _CompetingWriterRepository(competing_amount=Decimal("160"))
    auction_id = _seed(repo, clock)
    service = BiddingService(repo, catalog, clock=clock)

    with pytest.raises(BidTooLowError) as excinfo:
        service.place_bid(auction_id, 1, Decimal("150"))

    assert excinfo.value.current_price == Decimal("160.00")
    stored = repo.get_auction(auction_id)
    assert stored.current_price == Decimal("160.00")
    assert stored.bid_count == 1


def test_lost_race_revalidates_and_accepts_higher_bid(catalog, clock) -> None:
    repo = _CompetingWriterRepository(competing_amount=Decimal("150"))
    auction_id = _seed(repo, clock)
    service = BiddingService(repo, catalog, clock=clock)

    view = service.place_bid(auction_id, 1, Decimal("160"))

    assert view.bid.amount == Decimal("160.00")
    stored = repo.get_auction(auction_id)
    assert stored.current_price == Decimal("160.00")
    assert stored.bid_count == 2
    assert repo.conditional_writes == 2


class _AlwaysStaleRepository(InMemoryAuctionRepository):
    def update_auction(self, auction_id, changes, *, expected=None):
        if expected is not None:
            raise StaleAuctionError("always stale")
        return super().update_auction(auction_id, changes, expected=expected)


def test_endless_contention_raises_conflict_and_records_nothing(catalog, clock) -> None:
    repo = _AlwaysStaleRepository()
    auction_id = _seed(repo, clock)
    service = BiddingService(repo, catalog, clock=clock, max_attempts=3)

    with pytest.raises(BidConflictError):
        service.place_bid(auction_id, 1, Decimal("150"))

    assert repo.list_bids(auction_id) == []
    assert repo.get_auction(auction_id).bid_count == 0


def test_max_attempts_must_be_positive(auction_repo, catalog) -> None:
    with pytest.raises(ValueError):
        BiddingService(auction_repo, catalog, max_attempts=0)


class _FailingBidWriteRepository(InMemoryAuctionRepository):
    """Bid inserts fail (as a storage outage would) until `fail` is cleared."""

    def __init__(self) -> None:
        super().__init__()
        self.fail = True

    def create_bid(self, auction_id, user_id, amount, created_at):
        if self.fail:
            raise RuntimeError("Failed to create bid: connection reset")
        return super().create_bid(auction_id, user_id, amount, created_at)


def test_failed_bid_write_restores_auction(catalog, clock) -> None:
    repo = _FailingBidWriteRepository()
    auction_id = _seed(repo, clock)
    service = BiddingService(repo, catalog, clock=clock)

    with pytest.raises(RuntimeError):
        service.place_bid(auction_id, 1, Decimal("150"))

    stored = repo.get_auction(auction_id)
    assert stored.current_price == Decimal("100.00")
    assert stored.bid_count == 0
    assert stored.bid_count == len(repo.list_bids(auction_id))

    repo.fail = False
    view = service.place_bid(auction_id, 1, Decimal("150"))

    assert view.bid.amount == Decimal("150.00")
    stored = repo.get_auction(auction_id)
    assert (stored.current_price, stored.bid_count) == (Decimal("150.00"), 1)


def test_unknown_auction_gets_no_lock(auction_repo, catalog, clock) -> None:
    locks = AuctionLocks()
    auction_id = _seed(auction_repo, clock)
    service = BiddingService(auction_repo, catalog, clock=clock, locks=locks)

    with pytest.raises(AuctionNotFoundError):
        service.place_bid(999, 1, Decimal("150"))
    assert 999 not in locks

    service.place_bid(auction_id, 1, Decimal("150"))
    assert auction_id in locks
