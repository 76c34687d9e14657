"""Purchase and order API endpoints."""

from typing import Optional, List, Dict, Any

from fastapi import APIRouter, HTTPException, status, Depends
from pydantic import BaseModel

from orders import (
    OrderManager,
    OrderError,
    InvalidOrderError,
    ListingNotFoundError,
    ListingUnavailableError,
    PurchaseTimeoutError,
    OrderNotFoundError
)
from ..deps import get_order_manager

router = APIRouter(tags=["Orders"])

class PurchaseRequest(BaseModel):
    """Request model for buying a listing."""
    consumer_id: Optional[str] = None

class PurchaseResponse(BaseModel):
    """Response model for a completed purchase."""
    message: str
    order_id: int

@router.post("/purchase/{listing_id}", response_model=PurchaseResponse)
async def purchase_product(
    listing_id: int,
    request: Optional[PurchaseRequest] = None,
    manager: OrderManager = Depends(get_order_manager)
):
    """Buy a listing. At most one buyer ever succeeds per listing."""
    consumer_id = request.consumer_id if request else None
    try:
        return await manager.purchase(listing_id, consumer_id)
    except InvalidOrderError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ListingNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ListingUnavailableError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except PurchaseTimeoutError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
            headers={"Retry-After": "1"}
        )
    except OrderError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database error"
        )

@router.get("/orders/{order_id}")
async def get_order(
    order_id: int,
    manager: OrderManager = Depends(get_order_manager)
):
    """Get an order."""
    try:
        return await manager.get_order(order_id)
    except OrderNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except OrderError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

@router.get("/orders/consumer/{consumer_id}", response_model=List[Dict[str, Any]])
async def get_consumer_orders(
    consumer_id: str,
    manager: OrderManager = Depends(get_order_manager)
):
    """List a consumer's orders, newest first."""
    try:
        return await manager.list_orders_by_consumer(consumer_id)
    except OrderError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
