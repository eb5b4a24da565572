"""
Service wiring for the API.

Repositories and services are built once per process and handed to endpoints
through FastAPI dependencies. Tests replace `get_container` via
`app.dependency_overrides`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache

from fastapi import Depends

from api.config import Settings
from domain.time import Clock, utc_now
from repositories.base import AuctionRepository, CatalogRepository
from repositories.memory import InMemoryAuctionRepository, InMemoryCatalogRepository
from services.auction_query_service import AuctionQueryService
from services.auction_service import AuctionService
from services.bidding_service import DEFAULT_MAX_ATTEMPTS, AuctionLocks, BiddingService
from services.demo_data import seed_demo_data

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ServiceContainer:
    clock: Clock
    auctions: AuctionRepository
    catalog: CatalogRepository
    locks: AuctionLocks
    auction_service: AuctionService
    bidding_service: BiddingService
    query_service: AuctionQueryService


def build_container(
    auctions: AuctionRepository,
    catalog: CatalogRepository,
    clock: Clock = utc_now,
    bid_max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> ServiceContainer:
    """Wire services around the given repositories. Bidding and closing share one lock per auction."""

    locks = AuctionLocks()
    auction_service = AuctionService(auctions, clock=clock, locks=locks)
    return ServiceContainer(
        clock=clock,
        auctions=auctions,
        catalog=catalog,
        locks=locks,
        auction_service=auction_service,
        bidding_service=BiddingService(
            auctions, catalog, clock=clock, locks=locks, max_attempts=bid_max_attempts
        ),
        query_service=AuctionQueryService(auctions, catalog, auction_service),
    )


def container_from_settings(settings: Settings) -> ServiceContainer:
    """Build the container for the configured storage backend."""

    if settings.store_backend == "supabase":
        from repositories.auction_repository import SupabaseAuctionRepository
        from repositories.catalog_repository import SupabaseCatalogRepository
        from repositories.client import get_supabase_client

        client = get_supabase_client()
        container = build_container(
            SupabaseAuctionRepository(client),
            SupabaseCatalogRepository(client),
            bid_max_attempts=settings.bid_max_attempts,
        )
    else:
        container = build_container(
            InMemoryAuctionRepository(),
            InMemoryCatalogRepository(),
            bid_max_attempts=settings.bid_max_attempts,
        )
        if settings.seed_demo_data:
            result = seed_demo_data(container.catalog, container.auction_service, utc_now())
            logger.info("Seeded demo auctions", extra={"auction_count": len(result.auctions)})

    logger.info("Auction services ready", extra={"backend": settings.store_backend})
    return container


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()


@lru_cache(maxsize=1)
def get_container() -> ServiceContainer:
    return container_from_settings(get_settings())


def get_auction_service(container: ServiceContainer = Depends(get_container)) -> AuctionService:
    return container.auction_service


def get_bidding_service(container: ServiceContainer = Depends(get_container)) -> BiddingService:
    return container.bidding_service


def get_query_service(container: ServiceContainer = Depends(get_container)) -> AuctionQueryService:
    return container.query_service


def get_catalog(container: ServiceContainer = Depends(get_container)) -> CatalogRepository:
    return container.catalog


def get_clock(container: ServiceContainer = Depends(get_container)) -> Clock:
    return container.clock
