"""
Domain: Auction error taxonomy.

Every rejection the auction engine can produce is one of these exceptions.
The HTTP layer maps them to status codes; nothing below the API swallows them.
"""

from __future__ import annotations

from decimal import Decimal


class AuctionError(Exception):
    """Base class for auction domain errors."""

    message: str = "Auction request failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        if message is not None:
            self.message = message


class AuctionNotFoundError(AuctionError):
    """Raised when the referenced auction does not exist."""

    message = "Auction not found"

    def __init__(self, auction_id: int) -> None:
        super().__init__()
        self.auction_id = auction_id


class ProductNotFoundError(AuctionError):
    """Raised when an auction's product cannot be resolved."""

    message = "Product not found"

    def __init__(self, product_id: int) -> None:
        super().__init__()
        self.product_id = product_id


class AuctionInactiveError(AuctionError):
    """Raised when the auction status is not active (ended or cancelled)."""

    message = "This auction is no longer active"


class AuctionExpiredError(AuctionError):
    """Raised when end_time has passed but the status still reads active."""

    message = "This auction has ended"


class BidTooLowError(AuctionError):
    """Raised when a bid does not exceed the current price. Carries that price for retries."""

    message = "Bid amount must be higher than the current price"

    def __init__(self, current_price: Decimal) -> None:
        super().__init__()
        self.current_price = current_price


class BidConflictError(AuctionError):
    """Raised when a bid keeps losing the compare-and-swap race to other writers."""

    message = "The auction was updated by another bid, please retry"


class StaleAuctionError(Exception):
    """
    Raised by repositories when a conditional auction update finds the row changed.

    Not an AuctionError: the bidding service consumes it and retries.
    """
    pass
