"""
Concurrency tests for bid acceptance.

Covers:
- Two near-simultaneous bids of 150 and 160 against a current price of 100 always
  leave the price at 160; the count is 2 or 1 depending on which landed first.
- Many threads bidding at once never lose an accepted bid and never break the
  one-accepted-bid-per-increment relationship between price and count.
"""

from __future__ import annotations

import threading
from datetime import timedelta
from decimal import Decimal
from typing import List

from domain.errors import BidTooLowError
from repositories.memory import InMemoryAuctionRepository, InMemoryCatalogRepository
from services.bidding_service import BiddingService


def _run_together(*targets) -> None:
    barrier = threading.Barrier(len(targets))

    def wrap(target):
        def run() -> None:
            barrier.wait()
            target()

        return run

    threads = [threading.Thread(target=wrap(t)) for t in targets]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)


def _fresh_auction(clock):
    repo = InMemoryAuctionRepository()
    auction = repo.create_auction(
        product_id=1,
        start_price=Decimal("100"),
        start_time=clock.now - timedelta(hours=1),
        end_time=clock.now + timedelta(hours=1),
    )
    return repo, auction.auction_id


def test_racing_bids_settle_on_highest_amount(clock) -> None:
    for _ in range(25):
        repo, auction_id = _fresh_auction(clock)
        service = BiddingService(repo, InMemoryCatalogRepository(), clock=clock)
        outcomes: List[str] = []
        outcomes_lock = threading.Lock()

        def bid(amount: str, user_id: int) -> None:
            try:
                service.place_bid(auction_id, user_id, Decimal(amount))
                result = f"accepted:{amount}"
            except BidTooLowError:
                result = f"rejected:{amount}"
            with outcomes_lock:
                outcomes.append(result)

        _run_together(lambda: bid("150", 1), lambda: bid("160", 2))

        stored = repo.get_auction(auction_id)
        assert stored.current_price == Decimal("160.00")
        assert "accepted:160" in outcomes
        if "accepted:150" in outcomes:
            assert stored.bid_count == 2
        else:
            assert "rejected:150" in outcomes
            assert stored.bid_count == 1
        assert len(repo.list_bids(auction_id)) == stored.bid_count


def test_many_concurrent_bidders_keep_count_and_price_consistent(clock) -> None:
    repo, auction_id = _fresh_auction(clock)
    service = BiddingService(repo, InMemoryCatalogRepository(), clock=clock)
    accepted: List[Decimal] = []
    accepted_lock = threading.Lock()

    def bidder(amount: Decimal, user_id: int):
        def run() -> None:
            try:
                view = service.place_bid(auction_id, user_id, amount)
            except BidTooLowError:
                return
            with accepted_lock:
                accepted.append(view.bid.amount)

        return run

    amounts = [Decimal(100 + step * 5) for step in range(1, 21)]
    _run_together(*(bidder(amount, i) for i, amount in enumerate(amounts, start=1)))

    stored = repo.get_auction(auction_id)
    bids = repo.list_bids(auction_id)

    assert stored.current_price == max(amounts)
    assert stored.bid_count == len(accepted) == len(bids)
    assert sorted(accepted) == sorted(b.amount for b in bids)
    # Serialized acceptance means every accepted bid beat all earlier accepted bids.
    by_creation = sorted(bids, key=lambda b: b.bid_id)
    assert all(a.amount < b.amount for a, b in zip(by_creation, by_creation[1:]))
