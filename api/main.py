"""
Marketplace Auctions API - Main Application.

FastAPI application with CORS enabled for frontend communication. Every error
response has the shape {"message": ...}, with extra fields where the client
needs them (currentPrice for low bids, errors for invalid input).
"""

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api import __version__
from api.dependencies import get_settings
from api.models import BidTooLowResponse, ErrorResponse
from domain.errors import (
    AuctionError,
    AuctionNotFoundError,
    BidConflictError,
    BidTooLowError,
    ProductNotFoundError,
)

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)

# Create FastAPI application
app = FastAPI(
    title="Marketplace Auctions API",
    description="REST API for live marketplace auctions and bidding",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_allow_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Error handlers
# ============================================================================

# Anything not listed is a client error on an existing auction (400).
_ERROR_STATUS_CODES = (
    (AuctionNotFoundError, 404),
    (ProductNotFoundError, 404),
    (BidConflictError, 409),
)


def status_code_for(exc: AuctionError) -> int:
    for error_type, status_code in _ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return 400


@app.exception_handler(AuctionError)
async def handle_auction_error(request: Request, exc: AuctionError) -> JSONResponse:
    if isinstance(exc, BidTooLowError):
        body = BidTooLowResponse(message=exc.message, current_price=exc.current_price)
    else:
        body = ErrorResponse(message=exc.message)

    return JSONResponse(
        status_code=status_code_for(exc),
        content=body.model_dump(mode="json", by_alias=True),
    )


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"message": "Invalid input data", "errors": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(StarletteHTTPException)
async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


# ============================================================================
# Service endpoints
# ============================================================================

@app.get("/health", tags=["Health"])
def health_check():
    """
    Health check endpoint.

    Returns the API status, version and storage backend.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "service": "marketplace-auctions-api",
        "backend": settings.store_backend,
    }


@app.get("/", tags=["Root"])
def root():
    """
    Root endpoint with API information.
    """
    return {
        "message": "Marketplace Auctions API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


# Import and include routers
from api.routers import admin, auctions

app.include_router(auctions.router, prefix="/api", tags=["Auctions"])
app.include_router(admin.router, prefix="/api", tags=["Admin"])
