"""Review API endpoints."""

from typing import Optional

from fastapi import APIRouter, HTTPException, status, Depends
from pydantic import BaseModel, Field

from social import ReviewManager, SocialError, SocialValidationError
from ..deps import get_review_manager

router = APIRouter(prefix="/reviews", tags=["Reviews"])

class CreateReviewRequest(BaseModel):
    """Request model for reviewing a merchant."""
    order_id: Optional[int] = None
    user_id: str = Field(..., min_length=1)
    merchant_id: str = Field(..., min_length=1)
    rating: int
    comment: Optional[str] = None

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_review(
    request: CreateReviewRequest,
    manager: ReviewManager = Depends(get_review_manager)
):
    """Review a merchant with a 1 to 5 rating."""
    try:
        review_id = await manager.create_review(
            request.order_id,
            request.user_id,
            request.merchant_id,
            request.rating,
            request.comment
        )
    except SocialValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except SocialError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create review"
        )
    return {"message": "Review created", "id": review_id}

@router.get("/merchant/{merchant_id}")
async def get_merchant_reviews(
    merchant_id: str,
    manager: ReviewManager = Depends(get_review_manager)
):
    """Get a merchant's reviews and average rating."""
    try:
        return await manager.get_merchant_reviews(merchant_id)
    except SocialError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch reviews"
        )
