#!/usr/bin/env python3
"""
Expired Auction Reconciliation Script

Ends every auction that is still marked active although its end time has
passed, recording the highest bidder as the winner. Bidding already rejects
such auctions; this script makes the stored status catch up.

Usage:
    python close_expired_auctions.py
    python close_expired_auctions.py --as-of "2025-12-27T00:00:00Z"
    python close_expired_auctions.py --dry-run

Schedule via cron (every 5 minutes):
    */5 * * * * cd /app && python scripts/close_expired_auctions.py
"""

from __future__ import annotations

import argparse
import sys
from datetime import datetime, timezone
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from api.config import Settings
from api.dependencies import container_from_settings
from domain.auction import AuctionStatus
from services.auction_service import AuctionService


def parse_as_of(value: str | None) -> datetime:
    """Parse --as-of (naive values are UTC), defaulting to now."""

    if not value:
        return datetime.now(timezone.utc)
    as_of = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if as_of.tzinfo is None:
        return as_of.replace(tzinfo=timezone.utc)
    return as_of.astimezone(timezone.utc)


def main() -> int:
    parser = argparse.ArgumentParser(
        description="End active auctions whose end time has passed"
    )
    parser.add_argument(
        "--as-of",
        help="Treat this ISO-8601 timestamp as the current time (default: now)"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List the auctions that would be ended without changing them"
    )

    args = parser.parse_args()

    try:
        settings = Settings.from_env()
        if settings.store_backend == "memory":
            print("WARNING: AUCTION_STORE_BACKEND is 'memory'; this process has its own empty store.")

        container = container_from_settings(settings)
        as_of = parse_as_of(args.as_of)
        service = AuctionService(container.auctions, clock=lambda: as_of, locks=container.locks)

        print(f"Reconciling auctions as of: {as_of.isoformat()}")
        print()

        if args.dry_run:
            expired = [
                auction
                for auction in service.list_auctions(AuctionStatus.ACTIVE)
                if auction.has_ended(as_of)
            ]
            for auction in expired:
                print(f"  would end auction {auction.auction_id} "
                      f"(ended {auction.end_time.isoformat()}, {auction.bid_count} bids)")
            print()
            print(f"[DRY RUN] {len(expired)} auction(s) would be ended")
            return 0

        ended = service.end_expired_auctions()
        for auction in ended:
            winner = auction.winner_id if auction.winner_id is not None else "none"
            print(f"  ended auction {auction.auction_id}: "
                  f"final price {auction.current_price}, winner {winner}")

        print()
        print(f"[SUCCESS] {len(ended)} auction(s) ended")
        return 0

    except KeyboardInterrupt:
        print("\n\nReconciliation interrupted by user")
        return 130

    except Exception as e:
        print(f"\nFATAL ERROR: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
