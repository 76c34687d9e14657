"""Favorite merchant API endpoints."""

from typing import List, Dict, Any

from fastapi import APIRouter, HTTPException, status, Depends, Query
from pydantic import BaseModel, Field

from social import FavoriteManager, SocialError, SocialValidationError
from ..deps import get_favorite_manager

router = APIRouter(prefix="/favorites", tags=["Favorites"])

class ToggleFavoriteRequest(BaseModel):
    """Request model for toggling a favorite."""
    user_id: str = Field(..., min_length=1)
    merchant_id: str = Field(..., min_length=1)

@router.post("/toggle")
async def toggle_favorite(
    request: ToggleFavoriteRequest,
    manager: FavoriteManager = Depends(get_favorite_manager)
):
    """Add the merchant to the user's favorites, or remove it if present."""
    try:
        is_favorite = await manager.toggle(request.user_id, request.merchant_id)
    except SocialValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except SocialError:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Database error")

    return {
        "message": "Added to favorites" if is_favorite else "Removed from favorites",
        "is_favorite": is_favorite
    }

# Registered before /{user_id} so "check" is not taken as a user id
@router.get("/check")
async def check_favorite(
    user_id: str = Query(..., min_length=1),
    merchant_id: str = Query(..., min_length=1),
    manager: FavoriteManager = Depends(get_favorite_manager)
):
    """Check whether a merchant is one of the user's favorites."""
    try:
        return {"is_favorite": await manager.is_favorite(user_id, merchant_id)}
    except SocialError:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Database error")

@router.get("/{user_id}", response_model=List[Dict[str, Any]])
async def get_user_favorites(
    user_id: str,
    manager: FavoriteManager = Depends(get_favorite_manager)
):
    """List the user's favorite merchants."""
    try:
        return await manager.list_by_user(user_id)
    except SocialError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch favorites"
        )
