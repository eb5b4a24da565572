"""
Auction query service (read composition).

Joins auctions with their product and bid history for presentation. Pure
reads: nothing here writes to a repository.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from domain.auction import Auction, AuctionStatus
from domain.bid import BidView
from domain.catalog import Product, UserSummary
from domain.errors import AuctionNotFoundError, ProductNotFoundError
from repositories.base import AuctionRepository, CatalogRepository
from services.auction_service import AuctionService

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AuctionSummary:
    """An auction with its product, as shown in auction listings."""

    auction: Auction
    product: Product

    @property
    def bid_count(self) -> int:
        return self.auction.bid_count


@dataclass(frozen=True, slots=True)
class AuctionDetail:
    """
    An auction with its product and full bid history.

    bids are ordered highest amount first; each carries the bidder's {id, name}.
    """

    auction: Auction
    product: Product
    bids: List[BidView]


class AuctionQueryService:
    """Assembles auction read models."""

    def __init__(
        self,
        auctions: AuctionRepository,
        catalog: CatalogRepository,
        auction_service: AuctionService,
    ) -> None:
        self._auctions = auctions
        self._catalog = catalog
        self._auction_service = auction_service

    def get_auction_detail(self, auction_id: int) -> AuctionDetail:
        """
        Fetch an auction with its product and bids.

        A missing product fails the whole request rather than returning partial data.

        Raises:
            AuctionNotFoundError: If the auction does not exist
            ProductNotFoundError: If the auction's product cannot be resolved
        """

        auction = self._auctions.get_auction(auction_id)
        if auction is None:
            raise AuctionNotFoundError(auction_id)

        product = self._catalog.get_product(auction.product_id)
        if product is None:
            logger.warning(
                "Auction references a missing product",
                extra={"auction_id": auction_id, "product_id": auction.product_id},
            )
            raise ProductNotFoundError(auction.product_id)

        bids = self._auctions.list_bids(auction_id)

        # One lookup per distinct bidder.
        bidders: Dict[int, Optional[UserSummary]] = {}
        for bid in bids:
            if bid.user_id not in bidders:
                user = self._catalog.get_user(bid.user_id)
                bidders[bid.user_id] = user.summary() if user is not None else None

        return AuctionDetail(
            auction=auction,
            product=product,
            bids=[BidView(bid=bid, bidder=bidders[bid.user_id]) for bid in bids],
        )

    def list_active_auctions(self) -> List[AuctionSummary]:
        """Active, unexpired auctions with their products, soonest-ending first."""

        return self._summarize(self._auction_service.get_active_auctions())

    def list_auction_summaries(self, status: Optional[AuctionStatus] = None) -> List[AuctionSummary]:
        """Every auction (optionally one stored status) with its product."""

        return self._summarize(self._auction_service.list_auctions(status))

    def _summarize(self, auctions: List[Auction]) -> List[AuctionSummary]:
        summaries: List[AuctionSummary] = []
        products: Dict[int, Optional[Product]] = {}

        for auction in auctions:
            if auction.product_id not in products:
                products[auction.product_id] = self._catalog.get_product(auction.product_id)
            product = products[auction.product_id]

            if product is None:
                logger.warning(
                    "Skipping auction with missing product",
                    extra={"auction_id": auction.auction_id, "product_id": auction.product_id},
                )
                continue

            summaries.append(AuctionSummary(auction=auction, product=product))

        return summaries


__all__ = [
    "AuctionDetail",
    "AuctionQueryService",
    "AuctionSummary",
]
