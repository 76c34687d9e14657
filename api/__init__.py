"""REST API module for the surplus food marketplace.

This module provides HTTP endpoints for:
- Provider login and SMS phone sign-up
- Publishing and browsing perishable listings
- Purchasing listings and reading orders
- Merchant profiles and search
- Reviews, favorites and notifications
- Health and readiness probes
"""

import logging
from contextlib import asynccontextmanager
from typing import Dict, Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import settings_conf
from database import init_db, close as db_close
from auth import (
    IdentityResolver, TokenIssuer, CodeVerifier, MemoryCodeCache, LogCodeSender
)
from listings import ListingManager
from orders import OrderManager
from merchants import MerchantManager
from social import ReviewManager, FavoriteManager, NotificationManager

logger = logging.getLogger(__name__)

def configure_services(app: FastAPI, pool, settings: Dict[str, Any]) -> None:
    """Build every manager around one pool and attach them to app.state."""
    app.state.pool = pool
    app.state.settings = settings

    identity_resolver = IdentityResolver(pool)
    notification_manager = NotificationManager(
        pool,
        list_limit=settings['notification_list_limit']
    )

    app.state.identity_resolver = identity_resolver
    app.state.token_issuer = TokenIssuer(
        settings['jwt_secret'],
        expiry_hours=settings['token_expiry_hours']
    )
    app.state.code_verifier = CodeVerifier(
        MemoryCodeCache(),
        LogCodeSender(),
        identity_resolver,
        ttl_seconds=settings['sms_code_ttl_seconds'],
        min_phone_length=settings['sms_min_phone_length']
    )
    app.state.listing_manager = ListingManager(pool)
    app.state.order_manager = OrderManager(
        pool,
        notifier=notification_manager,
        lock_timeout_ms=settings['purchase_lock_timeout_ms']
    )
    app.state.merchant_manager = MerchantManager(
        pool,
        search_limit=settings['merchant_search_limit']
    )
    app.state.review_manager = ReviewManager(pool)
    app.state.favorite_manager = FavoriteManager(pool)
    app.state.notification_manager = notification_manager

# Lifecycle management
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events."""
    # Startup
    logger.info("Initializing API...")
    pool = await init_db(settings=settings_conf)
    configure_services(app, pool, settings_conf)
    logger.info("API ready")

    yield

    # Shutdown
    logger.info("Shutting down API...")
    await db_close()

# Create FastAPI app
app = FastAPI(
    title="Food Rescue Marketplace API",
    description="REST API for buying and selling surplus food before it expires",
    version="1.0.0",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render every HTTP error as {"error": ...}."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None)
    )

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed requests are 400s, not 422s."""
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
    return JSONResponse(
        status_code=400,
        content={"error": "; ".join(messages) or "Invalid request"}
    )

# Import and include all routers
from .auth import router as auth_router
from .listings import router as listings_router
from .orders import router as orders_router
from .merchants import router as merchants_router
from .reviews import router as reviews_router
from .favorites import router as favorites_router
from .notifications import router as notifications_router
from .system import router as system_router

# Include all routers
app.include_router(auth_router)
app.include_router(listings_router)
app.include_router(orders_router)
app.include_router(merchants_router)
app.include_router(reviews_router)
app.include_router(favorites_router)
app.include_router(notifications_router)
app.include_router(system_router)
