"""FastAPI dependency getters.

The lifespan builds every manager once and attaches it to app.state; routes
resolve them through these getters with Depends(). Tests swap them out with
app.dependency_overrides.
"""
from fastapi import Request

from auth import IdentityResolver, TokenIssuer, CodeVerifier
from listings import ListingManager
from orders import OrderManager
from merchants import MerchantManager
from social import ReviewManager, FavoriteManager, NotificationManager

def get_pool(request: Request):
    return request.app.state.pool

def get_identity_resolver(request: Request) -> IdentityResolver:
    return request.app.state.identity_resolver

def get_token_issuer(request: Request) -> TokenIssuer:
    return request.app.state.token_issuer

def get_code_verifier(request: Request) -> CodeVerifier:
    return request.app.state.code_verifier

def get_listing_manager(request: Request) -> ListingManager:
    return request.app.state.listing_manager

def get_order_manager(request: Request) -> OrderManager:
    return request.app.state.order_manager

def get_merchant_manager(request: Request) -> MerchantManager:
    return request.app.state.merchant_manager

def get_review_manager(request: Request) -> ReviewManager:
    return request.app.state.review_manager

def get_favorite_manager(request: Request) -> FavoriteManager:
    return request.app.state.favorite_manager

def get_notification_manager(request: Request) -> NotificationManager:
    return request.app.state.notification_manager
