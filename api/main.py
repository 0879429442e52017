"""
Creator Voucher Issuance API - Main Application.

FastAPI application receiving payment gateway webhooks and issuing creator
voucher codes.
"""

import logging

from fastapi import FastAPI

from api import __version__

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Create FastAPI application
app = FastAPI(
    title="Creator Voucher Issuance API",
    description="Payment webhook endpoint issuing unique creator voucher codes",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)


@app.get("/health", tags=["Health"])
def health_check():
    """
    Health check endpoint.

    Returns the API status and version.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "service": "creator-voucher-issuance-api"
    }


@app.get("/", tags=["Root"])
def root():
    """
    Root endpoint with API information.
    """
    return {
        "message": "Creator Voucher Issuance API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


# Import and include routers
from api.routers import webhooks

app.include_router(webhooks.router, prefix="/api/v1", tags=["Webhooks"])
