"""
Tests for `domain/bid.py` and `domain/money.py`.

Covers rules:
- Bid.created_at must be UTC and the amount positive.
- Presentation order is amount descending, earliest created_at first on ties.
- Money amounts are quantized to cents.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from domain.bid import Bid, presentation_order
from domain.money import to_money

T0 = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def _bid(bid_id: int, amount: str, minutes: int = 0) -> Bid:
    return Bid(
        bid_id=bid_id,
        auction_id=1,
        user_id=1,
        amount=Decimal(amount),
        created_at=T0 + timedelta(minutes=minutes),
    )


def test_bid_requires_utc_created_at() -> None:
    with pytest.raises(ValueError):
        Bid(bid_id=1, auction_id=1, user_id=1, amount=Decimal("5"), created_at=datetime(2025, 6, 1))


def test_bid_amount_must_be_positive() -> None:
    with pytest.raises(ValueError):
        _bid(1, "0")


def test_presentation_order_is_highest_amount_first() -> None:
    """Bids of 50, 80, 120 placed in that order are listed 120, 80, 50."""

    bids = [_bid(1, "50", 0), _bid(2, "80", 1), _bid(3, "120", 2)]

    ordered = presentation_order(bids)

    assert [b.amount for b in ordered] == [Decimal("120"), Decimal("80"), Decimal("50")]


def test_presentation_order_breaks_ties_by_earliest_created_at() -> None:
    later = _bid(1, "75", minutes=5)
    earlier = _bid(2, "75", minutes=1)

    ordered = presentation_order([later, _bid(3, "90", 9), earlier])

    assert [b.bid_id for b in ordered] == [3, 2, 1]


@pytest.mark.parametrize(
    "value, expected",
    [
        (Decimal("220"), Decimal("220.00")),
        (220.1, Decimal("220.10")),
        ("19.995", Decimal("20.00")),
        (5, Decimal("5.00")),
    ],
)
def test_to_money_quantizes_to_cents(value, expected) -> None:
    assert to_money(value) == expected
    assert str(to_money(value)) == str(expected)


def test_to_money_rejects_non_finite_values() -> None:
    with pytest.raises(ValueError):
        to_money(Decimal("NaN"))
