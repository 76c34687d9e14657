"""Merchant profile API endpoints."""

from typing import Optional, List, Dict, Any

from fastapi import APIRouter, HTTPException, status, Depends, Query
from pydantic import BaseModel, Field

from merchants import (
    MerchantManager, MerchantError, InvalidProfileError,
    MerchantNotFoundError, UnknownUserError
)
from ..deps import get_merchant_manager

router = APIRouter(tags=["Merchants"])

class MerchantSetupRequest(BaseModel):
    """Request model for creating or updating a merchant profile."""
    user_id: str = Field(..., min_length=1)
    shop_name: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    latitude: float = 0.0
    longitude: float = 0.0
    phone: Optional[str] = None
    email: Optional[str] = None
    business_hours_open: Optional[str] = None
    business_hours_close: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None

@router.post("/merchant/setup")
async def setup_merchant(
    request: MerchantSetupRequest,
    manager: MerchantManager = Depends(get_merchant_manager)
):
    """Create or update a merchant profile and mark the user as merchant."""
    try:
        await manager.upsert_profile(
            request.user_id,
            request.shop_name,
            request.address,
            latitude=request.latitude,
            longitude=request.longitude,
            phone=request.phone,
            email=request.email,
            business_hours_open=request.business_hours_open,
            business_hours_close=request.business_hours_close,
            category=request.category,
            description=request.description
        )
    except InvalidProfileError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except UnknownUserError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except MerchantError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update merchant profile"
        )
    return {"message": "Merchant profile updated"}

@router.get("/merchants/search", response_model=List[Dict[str, Any]])
async def search_merchants(
    q: Optional[str] = Query(None, description="Text matched against shop name and address"),
    category: Optional[str] = Query(None),
    manager: MerchantManager = Depends(get_merchant_manager)
):
    """Search merchants."""
    try:
        return await manager.search(q=q, category=category)
    except MerchantError:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Search failed")

@router.get("/merchant/{merchant_id}")
async def get_merchant(
    merchant_id: str,
    manager: MerchantManager = Depends(get_merchant_manager)
):
    """Get a merchant's profile, rating summary and available product count."""
    try:
        return await manager.get_details(merchant_id)
    except MerchantNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Merchant not found")
    except MerchantError:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Database error")
