"""
Auction repository (Supabase persistence).

This module provides *only* persistence operations for the Auction and Bid
domain entities. It does not enforce bidding rules (ordering of checks, strict
price increase); it only inserts, fetches and conditionally updates rows.

Concurrent writers are kept apart with a compare-and-swap: an update that
passes `expected` values adds them as equality filters, and an empty result
means another writer got there first.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, List, Mapping, Optional

from postgrest.exceptions import APIError
from supabase import Client  # type: ignore[import-not-found]

from domain.auction import Auction, AuctionStatus
from domain.bid import Bid, presentation_order
from domain.errors import StaleAuctionError
from domain.money import to_money
from domain.time import require_utc_timestamp
from repositories.base import check_auction_changes

# Supabase table names. Keep these aligned with your database schema.
_AUCTIONS_TABLE: str = "auctions"
_BIDS_TABLE: str = "bids"


def _to_iso_utc(dt: datetime, *, name: str) -> str:
    """Serialize a UTC datetime to ISO-8601 (timezone-aware, offset 0)."""

    require_utc_timestamp(name, dt)
    return dt.astimezone(timezone.utc).isoformat()


def _parse_utc_datetime(value: Any) -> datetime:
    """
    Parse a Supabase timestamp into a timezone-aware UTC datetime.

    Supabase commonly returns ISO-8601 strings, sometimes with a trailing 'Z'.
    """

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise TypeError(f"Unsupported timestamp type: {type(value)!r}")

    if dt.tzinfo is None or dt.utcoffset() is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _row_to_auction(row: Mapping[str, Any]) -> Auction:
    """Convert a Supabase row into an Auction."""

    winner_id = row.get("winner_id")
    return Auction(
        auction_id=int(row["id"]),
        product_id=int(row["product_id"]),
        start_price=to_money(str(row["start_price"])),
        current_price=to_money(str(row["current_price"])),
        start_time=_parse_utc_datetime(row["start_time"]),
        end_time=_parse_utc_datetime(row["end_time"]),
        status=AuctionStatus(str(row.get("status", "active"))),
        bid_count=int(row.get("bid_count") or 0),
        winner_id=int(winner_id) if winner_id is not None else None,
    )


def _row_to_bid(row: Mapping[str, Any]) -> Bid:
    """Convert a Supabase row into a Bid."""

    return Bid(
        bid_id=int(row["id"]),
        auction_id=int(row["auction_id"]),
        user_id=int(row["user_id"]),
        amount=to_money(str(row["amount"])),
        created_at=_parse_utc_datetime(row["created_at"]),
    )


def _to_column(field_name: str, value: Any) -> Any:
    """Serialize a domain field value for a Supabase payload or filter."""

    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, AuctionStatus):
        return value.value
    return value


def execute_query(query: Any, action: str) -> List[Mapping[str, Any]]:
    """Run a PostgREST query and return its rows, raising RuntimeError on failure."""

    try:
        response = query.execute()
    except APIError as e:
        raise RuntimeError(f"Failed to {action}: {e}") from e

    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to {action}: {error}")

    return getattr(response, "data", None) or []


class SupabaseAuctionRepository:
    """AuctionRepository backed by the `auctions` and `bids` tables."""

    def __init__(self, client: Client) -> None:
        self._client = client

    def get_auction(self, auction_id: int) -> Optional[Auction]:
        rows = execute_query(
            self._client.table(_AUCTIONS_TABLE).select("*").eq("id", auction_id).limit(1),
            "get auction",
        )
        if not rows:
            return None
        return _row_to_auction(rows[0])

    def create_auction(
        self,
        product_id: int,
        start_price: Decimal,
        start_time: datetime,
        end_time: datetime,
    ) -> Auction:
        price = to_money(start_price)
        if price <= 0:
            raise ValueError("start_price must be > 0")
        if end_time <= start_time:
            raise ValueError("end_time must be after start_time")

        payload: dict[str, Any] = {
            "product_id": product_id,
            "start_price": str(price),
            "current_price": str(price),
            "start_time": _to_iso_utc(start_time, name="start_time"),
            "end_time": _to_iso_utc(end_time, name="end_time"),
            "status": AuctionStatus.ACTIVE.value,
            "bid_count": 0,
            "winner_id": None,
        }

        rows = execute_query(self._client.table(_AUCTIONS_TABLE).insert(payload), "create auction")
        if not rows:
            raise RuntimeError("Failed to create auction: no row returned")
        return _row_to_auction(rows[0])

    def list_auctions(self, status: Optional[AuctionStatus] = None) -> List[Auction]:
        query = self._client.table(_AUCTIONS_TABLE).select("*")
        if status is not None:
            query = query.eq("status", status.value)
        rows = execute_query(query.order("id"), "list auctions")
        return [_row_to_auction(row) for row in rows]

    def update_auction(
        self,
        auction_id: int,
        changes: Mapping[str, Any],
        *,
        expected: Optional[Mapping[str, Any]] = None,
    ) -> Optional[Auction]:
        check_auction_changes(changes)

        payload = {name: _to_column(name, value) for name, value in changes.items()}
        query = self._client.table(_AUCTIONS_TABLE).update(payload).eq("id", auction_id)

        # Compare-and-swap: only update if the row still holds the values we validated against.
        for name, value in (expected or {}).items():
            query = query.eq(name, _to_column(name, value))

        rows = execute_query(query, "update auction")
        if rows:
            return _row_to_auction(rows[0])

        # Nothing matched: either the auction is gone or a filter no longer holds.
        if self.get_auction(auction_id) is None:
            return None
        if expected:
            raise StaleAuctionError(f"Auction {auction_id} changed during update")
        raise RuntimeError(f"Failed to update auction: no row returned for {auction_id}")

    def create_bid(
        self,
        auction_id: int,
        user_id: int,
        amount: Decimal,
        created_at: datetime,
    ) -> Bid:
        payload: dict[str, Any] = {
            "auction_id": auction_id,
            "user_id": user_id,
            "amount": str(to_money(amount)),
            "created_at": _to_iso_utc(created_at, name="created_at"),
        }

        rows = execute_query(self._client.table(_BIDS_TABLE).insert(payload), "create bid")
        if not rows:
            raise RuntimeError("Failed to create bid: no row returned")
        return _row_to_bid(rows[0])

    def list_bids(self, auction_id: int) -> List[Bid]:
        rows = execute_query(
            self._client.table(_BIDS_TABLE).select("*").eq("auction_id", auction_id),
            "list bids",
        )
        # Sorted here rather than with .order() so ties follow the same rule as memory.
        return presentation_order(_row_to_bid(row) for row in rows)


__all__ = ["SupabaseAuctionRepository", "execute_query"]
