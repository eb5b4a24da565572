"""
API configuration.

Settings come from environment variables, optionally loaded from a `.env`
file at the project root.

- AUCTION_STORE_BACKEND: "memory" (default) or "supabase"
- BID_MAX_ATTEMPTS: compare-and-swap rounds before a bid fails with a conflict (default 5)
- SEED_DEMO_DATA: "true" to start the memory backend with the demo auctions
- CORS_ALLOW_ORIGINS: comma-separated origins (default "*")
- LOG_LEVEL: root log level (default "INFO")

SUPABASE_URL / SUPABASE_KEY are read by repositories.client when the supabase
backend is selected.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List

from dotenv import load_dotenv

from services.bidding_service import DEFAULT_MAX_ATTEMPTS

env_path = Path(__file__).parent.parent / ".env"

BACKENDS = ("memory", "supabase")

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True, slots=True)
class Settings:
    store_backend: str = "memory"
    bid_max_attempts: int = DEFAULT_MAX_ATTEMPTS
    seed_demo_data: bool = False
    cors_allow_origins: tuple[str, ...] = ("*",)
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.store_backend not in BACKENDS:
            raise RuntimeError(
                f"Invalid AUCTION_STORE_BACKEND: {self.store_backend!r}. "
                f"Expected one of: {', '.join(BACKENDS)}."
            )
        if self.bid_max_attempts < 1:
            raise RuntimeError("BID_MAX_ATTEMPTS must be >= 1")

    @staticmethod
    def from_env() -> "Settings":
        """Build settings from the process environment (after loading .env)."""

        load_dotenv(dotenv_path=env_path)

        raw_attempts = os.getenv("BID_MAX_ATTEMPTS", str(DEFAULT_MAX_ATTEMPTS))
        try:
            bid_max_attempts = int(raw_attempts)
        except ValueError:
            raise RuntimeError(f"BID_MAX_ATTEMPTS must be an integer, got {raw_attempts!r}") from None

        return Settings(
            store_backend=os.getenv("AUCTION_STORE_BACKEND", "memory").strip().lower(),
            bid_max_attempts=bid_max_attempts,
            seed_demo_data=os.getenv("SEED_DEMO_DATA", "").strip().lower() in _TRUE_VALUES,
            cors_allow_origins=tuple(_split_csv(os.getenv("CORS_ALLOW_ORIGINS", "*"))),
            log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
        )


def _split_csv(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


__all__ = ["Settings"]
