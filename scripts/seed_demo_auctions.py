#!/usr/bin/env python3
"""
Seed demo auctions for testing and demos.

Creates two bidders, three products and one live auction per product in the
configured backend (normally Supabase). Each run adds a new set.

Usage:
    python seed_demo_auctions.py
"""

from __future__ import annotations

import sys
from pathlib import Path

# Add parent directory to path so we can import from services
sys.path.insert(0, str(Path(__file__).parent.parent))

from api.config import Settings
from api.dependencies import container_from_settings
from domain.time import utc_now
from services.demo_data import seed_demo_data


def main() -> int:
    settings = Settings.from_env()
    if settings.store_backend == "memory":
        print("[ERROR] AUCTION_STORE_BACKEND is 'memory'; seeded data would vanish with this process.")
        print("  Set AUCTION_STORE_BACKEND=supabase, or SEED_DEMO_DATA=true for the API server.")
        return 1

    container = container_from_settings(settings)
    result = seed_demo_data(container.catalog, container.auction_service, utc_now())

    print("[SUCCESS] Demo data created")
    for user in result.users:
        print(f"  User {user.user_id}: {user.name} ({user.username})")
    for auction in result.auctions:
        print(f"  Auction {auction.auction_id}: product {auction.product_id}, "
              f"starts at {auction.start_price}, ends {auction.end_time.isoformat()}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
