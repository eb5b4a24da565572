"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
Field names are snake_case in Python and camelCase on the wire.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base model: camelCase aliases, populated by either name."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps on the wire are taken to be UTC.
    if value.tzinfo is None or value.utcoffset() is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# ============================================================================
# Catalog Models
# ============================================================================

class ProductResponse(ApiModel):
    """Product shown alongside an auction."""
    id: int
    name: str
    description: str
    price: Decimal
    images: List[str]


class BidderResponse(ApiModel):
    """Public projection of the user who placed a bid."""
    id: int
    name: str


# ============================================================================
# Auction Models
# ============================================================================

class AuctionResponse(ApiModel):
    """Auction fields as stored, plus the computed hasEnded flag."""
    id: int
    product_id: int
    start_price: Decimal
    current_price: Decimal
    start_time: datetime
    end_time: datetime
    status: str  # "active", "ended" or "cancelled"
    bid_count: int
    winner_id: Optional[int] = None
    has_ended: bool

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": 2,
                "productId": 17,
                "startPrice": "200.00",
                "currentPrice": "220.00",
                "startTime": "2025-01-01T12:00:00Z",
                "endTime": "2025-01-04T20:00:00Z",
                "status": "active",
                "bidCount": 1,
                "winnerId": None,
                "hasEnded": False
            }
        }
    )


class AuctionSummaryResponse(AuctionResponse):
    """Auction listing entry with its product."""
    product: ProductResponse


class BidResponse(ApiModel):
    """Accepted bid with the bidder's {id, name} (null if the user no longer exists)."""
    id: int
    auction_id: int
    user_id: int
    amount: Decimal
    created_at: datetime
    user: Optional[BidderResponse] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": 7,
                "auctionId": 2,
                "userId": 1,
                "amount": "220.00",
                "createdAt": "2025-01-02T09:30:00Z",
                "user": {"id": 1, "name": "Abena Mensah"}
            }
        }
    )


class AuctionDetailResponse(AuctionResponse):
    """Auction with its product and bids, highest bid first."""
    product: ProductResponse
    bids: List[BidResponse]


class PlaceBidRequest(ApiModel):
    """Request to place a bid on an auction."""
    user_id: int = Field(..., gt=0, description="User placing the bid")
    amount: Decimal = Field(
        ...,
        gt=0,
        max_digits=12,
        decimal_places=2,
        description="Bid amount; must exceed the auction's current price"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "userId": 1,
                "amount": "220.00"
            }
        }
    )


class CreateAuctionRequest(ApiModel):
    """Request to open an auction for an existing product."""
    product_id: int = Field(..., gt=0)
    start_price: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    start_time: datetime
    end_time: datetime

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "productId": 17,
                "startPrice": "200.00",
                "startTime": "2025-01-01T12:00:00Z",
                "endTime": "2025-01-04T20:00:00Z"
            }
        }
    )

    @field_validator("start_time", "end_time")
    @classmethod
    def _normalize_timestamp(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @model_validator(mode="after")
    def _check_window(self) -> "CreateAuctionRequest":
        if self.end_time <= self.start_time:
            raise ValueError("endTime must be after startTime")
        return self


class ReconcileResponse(ApiModel):
    """Result of ending every expired auction."""
    ended_auction_ids: List[int]


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(ApiModel):
    """Standard error response."""
    message: str

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "message": "This auction has ended"
            }
        }
    )


class BidTooLowResponse(ErrorResponse):
    """Bid rejection that tells the caller the price to beat."""
    current_price: Decimal

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "message": "Bid amount must be higher than the current price",
                "currentPrice": "220.00"
            }
        }
    )


class ValidationErrorResponse(ErrorResponse):
    """Malformed request body, with pydantic's field-level errors."""
    errors: List[dict]
