"""
Admin Auction API Endpoints.

Endpoints for the admin dashboard: listing every auction and moving auctions
out of the active state.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import get_auction_service, get_clock, get_query_service
from api.models import AuctionResponse, AuctionSummaryResponse, ErrorResponse, ReconcileResponse
from api.routers.auctions import auction_fields, summary_response
from domain.auction import AuctionStatus
from domain.errors import AuctionError
from domain.time import Clock
from services.auction_query_service import AuctionQueryService
from services.auction_service import AuctionService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/admin/auctions",
    response_model=List[AuctionSummaryResponse],
    summary="List All Auctions",
    description="Every auction with its product, optionally filtered by stored status.",
    responses={400: {"model": ErrorResponse}},
)
def list_all_auctions(
    status: Optional[str] = Query(None, description="Filter by status ('active', 'ended' or 'cancelled')"),
    query: AuctionQueryService = Depends(get_query_service),
    clock: Clock = Depends(get_clock),
):
    """
    List all auctions for the admin dashboard.

    The `status` filter matches the stored status. Use `hasEnded` to spot
    active auctions whose end time has already passed.

    **Example usage:**
    - All auctions: `GET /api/admin/auctions`
    - Only ended: `GET /api/admin/auctions?status=ended`
    """
    try:
        status_filter = None
        if status:
            try:
                status_filter = AuctionStatus(status)
            except ValueError:
                raise HTTPException(
                    status_code=400,
                    detail=f"Invalid status. Must be 'active', 'ended' or 'cancelled', got '{status}'"
                )

        summaries = query.list_auction_summaries(status_filter)
        now = clock()
        return [summary_response(summary, now) for summary in summaries]

    except HTTPException:
        raise
    except Exception:
        logger.exception("Failed to list auctions")
        raise HTTPException(
            status_code=500,
            detail="Failed to fetch auctions"
        )


@router.post(
    "/admin/auctions/reconcile",
    response_model=ReconcileResponse,
    summary="End Expired Auctions",
    description="End every active auction whose end time has passed and record the winners.",
)
def reconcile_expired_auctions(auctions: AuctionService = Depends(get_auction_service)):
    """
    Run the expiry sweep once.

    Nothing runs this on a timer; call it from a cron job or the
    `scripts/close_expired_auctions.py` script.
    """
    try:
        ended = auctions.end_expired_auctions()
        return ReconcileResponse(ended_auction_ids=[auction.auction_id for auction in ended])

    except Exception:
        logger.exception("Failed to reconcile expired auctions")
        raise HTTPException(
            status_code=500,
            detail="Failed to end expired auctions"
        )


@router.post(
    "/admin/auctions/{auction_id}/end",
    response_model=AuctionResponse,
    summary="End Auction",
    description="End an active auction. The highest bidder becomes the winner.",
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def end_auction(
    auction_id: int,
    auctions: AuctionService = Depends(get_auction_service),
    clock: Clock = Depends(get_clock),
):
    try:
        auction = auctions.end_auction(auction_id)
        return AuctionResponse(**auction_fields(auction, clock()))

    except (HTTPException, AuctionError):
        raise
    except Exception:
        logger.exception("Failed to end auction", extra={"auction_id": auction_id})
        raise HTTPException(
            status_code=500,
            detail="Failed to end auction"
        )


@router.post(
    "/admin/auctions/{auction_id}/cancel",
    response_model=AuctionResponse,
    summary="Cancel Auction",
    description="Cancel an active auction. No winner is recorded.",
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def cancel_auction(
    auction_id: int,
    auctions: AuctionService = Depends(get_auction_service),
    clock: Clock = Depends(get_clock),
):
    try:
        auction = auctions.cancel_auction(auction_id)
        return AuctionResponse(**auction_fields(auction, clock()))

    except (HTTPException, AuctionError):
        raise
    except Exception:
        logger.exception("Failed to cancel auction", extra={"auction_id": auction_id})
        raise HTTPException(
            status_code=500,
            detail="Failed to cancel auction"
        )
