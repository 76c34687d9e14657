"""Listing API endpoints."""

from typing import Optional, List, Dict, Any

from fastapi import APIRouter, HTTPException, status, Depends, Query
from pydantic import BaseModel, Field

from listings import (
    ListingManager, ListingError, ListingNotFoundError, InvalidListingError
)
from ..deps import get_listing_manager

router = APIRouter(tags=["Listings"])

class CreateListingRequest(BaseModel):
    """Request model for publishing a listing."""
    merchant_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    original_price: float = Field(..., ge=0)
    current_price: float = Field(..., ge=0)
    expiry_minutes: int = Field(..., ge=0)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    image_url: Optional[str] = None

@router.post("/products")
async def create_product(
    request: CreateListingRequest,
    manager: ListingManager = Depends(get_listing_manager)
):
    """Publish a listing that expires expiry_minutes from now."""
    try:
        listing_id = await manager.create_listing(
            request.merchant_id,
            request.name,
            request.original_price,
            request.current_price,
            request.expiry_minutes,
            request.latitude,
            request.longitude,
            image_url=request.image_url
        )
    except InvalidListingError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ListingError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create product"
        )
    return {"message": "Product listing created", "id": listing_id}

@router.get("/products", response_model=List[Dict[str, Any]])
async def get_products(
    lat: Optional[float] = Query(None, ge=-90, le=90, description="Caller latitude"),
    lng: Optional[float] = Query(None, ge=-180, le=180, description="Caller longitude"),
    radius_km: Optional[float] = Query(None, ge=0, description="Only listings within this distance"),
    limit: Optional[int] = Query(None, ge=1, le=500),
    manager: ListingManager = Depends(get_listing_manager)
):
    """List purchasable listings, soonest expiry first or nearest first with a radius."""
    try:
        return await manager.get_available_listings(
            latitude=lat,
            longitude=lng,
            radius_km=radius_km,
            limit=limit
        )
    except InvalidListingError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ListingError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

@router.get("/products/{listing_id}")
async def get_product(
    listing_id: int,
    manager: ListingManager = Depends(get_listing_manager)
):
    """Get a single listing."""
    try:
        return await manager.get_listing(listing_id)
    except ListingNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    except ListingError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

@router.post("/seed")
async def seed_data(manager: ListingManager = Depends(get_listing_manager)):
    """Insert demo listings."""
    try:
        await manager.seed_demo_listings()
    except ListingError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    return {"status": "Seeded"}
