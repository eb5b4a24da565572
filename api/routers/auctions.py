"""
Auctions API Endpoints.

Endpoints for browsing live auctions, reading an auction's bid history, and
placing bids.
"""

import logging
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from api.dependencies import (
    get_auction_service,
    get_bidding_service,
    get_catalog,
    get_clock,
    get_query_service,
)
from api.models import (
    AuctionDetailResponse,
    AuctionResponse,
    AuctionSummaryResponse,
    BidderResponse,
    BidResponse,
    BidTooLowResponse,
    CreateAuctionRequest,
    ErrorResponse,
    PlaceBidRequest,
    ProductResponse,
    ValidationErrorResponse,
)
from domain.auction import Auction
from domain.bid import BidView
from domain.catalog import Product
from domain.errors import AuctionError, ProductNotFoundError
from domain.time import Clock
from repositories.base import CatalogRepository
from services.auction_query_service import AuctionQueryService, AuctionSummary
from services.auction_service import AuctionService
from services.bidding_service import BiddingService

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# Response builders
# ============================================================================

def auction_fields(auction: Auction, as_of: datetime) -> dict:
    return {
        "id": auction.auction_id,
        "product_id": auction.product_id,
        "start_price": auction.start_price,
        "current_price": auction.current_price,
        "start_time": auction.start_time,
        "end_time": auction.end_time,
        "status": auction.status.value,
        "bid_count": auction.bid_count,
        "winner_id": auction.winner_id,
        "has_ended": auction.has_ended(as_of),
    }


def product_response(product: Product) -> ProductResponse:
    return ProductResponse(
        id=product.product_id,
        name=product.name,
        description=product.description,
        price=product.price,
        images=list(product.images),
    )


def bid_response(view: BidView) -> BidResponse:
    bid = view.bid
    return BidResponse(
        id=bid.bid_id,
        auction_id=bid.auction_id,
        user_id=bid.user_id,
        amount=bid.amount,
        created_at=bid.created_at,
        user=BidderResponse(id=view.bidder.user_id, name=view.bidder.name) if view.bidder else None,
    )


def summary_response(summary: AuctionSummary, as_of: datetime) -> AuctionSummaryResponse:
    return AuctionSummaryResponse(
        **auction_fields(summary.auction, as_of),
        product=product_response(summary.product),
    )


# ============================================================================
# Endpoints
# ============================================================================

@router.get(
    "/auctions",
    response_model=List[AuctionSummaryResponse],
    summary="List Live Auctions",
    description="Auctions that are active and have not reached their end time, soonest-ending first.",
    responses={500: {"model": ErrorResponse}},
)
def list_active_auctions(
    query: AuctionQueryService = Depends(get_query_service),
    clock: Clock = Depends(get_clock),
):
    """
    List live auctions with their products and bid counts.

    "Live" is evaluated on every request by comparing each auction's end time
    to the current time.
    """
    try:
        summaries = query.list_active_auctions()
        now = clock()
        return [summary_response(summary, now) for summary in summaries]

    except HTTPException:
        raise
    except Exception:
        logger.exception("Failed to fetch auctions")
        raise HTTPException(
            status_code=500,
            detail="Failed to fetch auctions"
        )


@router.post(
    "/auctions",
    response_model=AuctionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Auction",
    description="Open an auction for an existing product.",
    responses={404: {"model": ErrorResponse}, 400: {"model": ValidationErrorResponse}},
)
def create_auction(
    request: CreateAuctionRequest,
    auctions: AuctionService = Depends(get_auction_service),
    catalog: CatalogRepository = Depends(get_catalog),
    clock: Clock = Depends(get_clock),
):
    """
    Create an auction.

    The auction starts active, priced at `startPrice`, with no bids.

    **Example request:**
    ```json
    {
      "productId": 17,
      "startPrice": "200.00",
      "startTime": "2025-01-01T12:00:00Z",
      "endTime": "2025-01-04T20:00:00Z"
    }
    ```
    """
    try:
        if catalog.get_product(request.product_id) is None:
            raise ProductNotFoundError(request.product_id)

        auction = auctions.create_auction(
            product_id=request.product_id,
            start_price=request.start_price,
            start_time=request.start_time,
            end_time=request.end_time,
        )
        return AuctionResponse(**auction_fields(auction, clock()))

    except (HTTPException, AuctionError):
        raise
    except ValueError as e:
        raise HTTPException(
            status_code=400,
            detail=str(e)
        )
    except Exception:
        logger.exception("Failed to create auction")
        raise HTTPException(
            status_code=500,
            detail="Failed to create auction"
        )


@router.get(
    "/auctions/{auction_id}",
    response_model=AuctionDetailResponse,
    summary="Get Auction Details",
    description="Auction with its product and full bid history, highest bid first.",
    responses={404: {"model": ErrorResponse}},
)
def get_auction(
    auction_id: int,
    query: AuctionQueryService = Depends(get_query_service),
    clock: Clock = Depends(get_clock),
):
    """
    Get one auction with its product and bids.

    Each bid carries the bidder as `{id, name}`.
    """
    try:
        detail = query.get_auction_detail(auction_id)
        return AuctionDetailResponse(
            **auction_fields(detail.auction, clock()),
            product=product_response(detail.product),
            bids=[bid_response(view) for view in detail.bids],
        )

    except (HTTPException, AuctionError):
        raise
    except Exception:
        logger.exception("Failed to fetch auction details", extra={"auction_id": auction_id})
        raise HTTPException(
            status_code=500,
            detail="Failed to fetch auction details"
        )


@router.post(
    "/auctions/{auction_id}/bids",
    response_model=BidResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Place Bid",
    description="Place a bid that must exceed the auction's current price.",
    responses={
        400: {"model": BidTooLowResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
def place_bid(
    auction_id: int,
    request: PlaceBidRequest,
    bidding: BiddingService = Depends(get_bidding_service),
):
    """
    Place a bid on an auction.

    **Checks, in order:**
    1. Auction exists (404)
    2. Auction status is active (400 "This auction is no longer active")
    3. Auction end time has not passed (400 "This auction has ended")
    4. Amount is strictly above the current price (400, includes `currentPrice`)

    **Example request:**
    ```json
    {"userId": 1, "amount": "220.00"}
    ```

    **Rejection when the amount is too low:**
    ```json
    {"message": "Bid amount must be higher than the current price", "currentPrice": "220.00"}
    ```
    """
    try:
        view = bidding.place_bid(auction_id, request.user_id, request.amount)
        return bid_response(view)

    except (HTTPException, AuctionError):
        raise
    except Exception:
        logger.exception("Failed to place bid", extra={"auction_id": auction_id})
        raise HTTPException(
            status_code=500,
            detail="Failed to place bid"
        )
