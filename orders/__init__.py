"""Orders module for purchasing perishable listings.

This module handles the purchase transaction: a listing moves from
AVAILABLE to SOLD at most once, never after it expires, and exactly one
order is recorded for it. Concurrent buyers are serialized on a row lock
taken with SELECT ... FOR UPDATE; the lock wait is bounded so a stuck
holder turns into a retryable error instead of a hung request.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Any, Callable

from asyncpg.pool import Pool
from asyncpg.exceptions import (
    LockNotAvailableError, QueryCanceledError, UniqueViolationError
)

logger = logging.getLogger(__name__)

PURCHASE_SUCCESS_MESSAGE = "Purchase successful! Enjoy your food."
DEFAULT_LOCK_TIMEOUT_MS = 5000

class OrderError(Exception):
    """Base class for order-related errors."""
    pass

class InvalidOrderError(OrderError):
    """Raised when purchase input is missing or malformed."""
    pass

class ListingNotFoundError(OrderError):
    """Raised when the requested listing does not exist."""
    pass

class ListingUnavailableError(OrderError):
    """Raised when the listing can no longer be bought."""
    pass

class ListingSoldError(ListingUnavailableError):
    """Raised when the listing was already sold."""
    pass

class ListingExpiredError(ListingUnavailableError):
    """Raised when the listing's expiry has passed."""
    pass

class PurchaseTimeoutError(OrderError):
    """Raised when the listing lock could not be acquired in time."""
    pass

class OrderNotFoundError(OrderError):
    """Raised when an order does not exist."""
    pass

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

def order_to_dict(order) -> Dict[str, Any]:
    return {
        'id': order['id'],
        'product_id': order['product_id'],
        'consumer_id': order['consumer_id'],
        'status': order['status'],
        'created_at': order['created_at'].isoformat() if order['created_at'] else None
    }

class OrderManager:
    """Manages purchases and the order ledger."""

    def __init__(
        self,
        pool: Pool,
        notifier=None,
        lock_timeout_ms: int = DEFAULT_LOCK_TIMEOUT_MS,
        clock: Optional[Callable[[], datetime]] = None
    ) -> None:
        """Initialize order manager.

        Args:
            pool: Database connection pool
            notifier: Optional NotificationManager told about completed purchases
            lock_timeout_ms: Longest wait for another buyer's lock on a listing
            clock: Optional time source returning an aware datetime
        """
        self.pool = pool
        self.notifier = notifier
        self.lock_timeout_ms = lock_timeout_ms
        self._now = clock or _utcnow

    async def purchase(self, listing_id: int, consumer_id: str) -> Dict[str, Any]:
        """Buy a listing.

        Args:
            listing_id: The listing to buy
            consumer_id: The buying user

        Returns:
            Dict containing:
                - message: Confirmation message
                - order_id: Id of the new order

        Raises:
            InvalidOrderError: If consumer_id is missing
            ListingNotFoundError: If the listing doesn't exist
            ListingExpiredError: If the listing has expired
            ListingSoldError: If the listing was already sold
            PurchaseTimeoutError: If the listing lock wait timed out
            OrderError: If the database fails
        """
        if not consumer_id:
            raise InvalidOrderError("Consumer ID required")

        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    await conn.execute(
                        "SELECT set_config('lock_timeout', $1, true)",
                        f"{self.lock_timeout_ms}ms"
                    )

                    # Row lock is held until the transaction ends
                    product = await conn.fetchrow(
                        '''
                        SELECT status, expiry_date, merchant_id, name
                        FROM products
                        WHERE id = $1
                        FOR UPDATE
                        ''',
                        listing_id
                    )

                    if not product:
                        raise ListingNotFoundError("Product not found")
                    if self._now() > product['expiry_date']:
                        raise ListingExpiredError("Product expired")
                    if product['status'] == 'SOLD':
                        raise ListingSoldError("Product already sold")

                    await conn.execute(
                        "UPDATE products SET status = 'SOLD' WHERE id = $1",
                        listing_id
                    )

                    order_id = await conn.fetchval(
                        '''
                        INSERT INTO orders (product_id, consumer_id)
                        VALUES ($1, $2)
                        RETURNING id
                        ''',
                        listing_id,
                        consumer_id
                    )

        except OrderError as e:
            logger.info(f"Purchase of listing {listing_id} by {consumer_id} rejected: {e}")
            raise
        except UniqueViolationError:
            # One order per product
            raise ListingSoldError("Product already sold")
        except (LockNotAvailableError, QueryCanceledError, asyncio.TimeoutError) as e:
            logger.warning(f"Purchase of listing {listing_id} timed out waiting for lock: {e}")
            raise PurchaseTimeoutError("Product is busy, please retry")
        except Exception as e:
            logger.error(f"Error purchasing listing {listing_id}: {e}")
            raise OrderError(f"Purchase failed: {str(e)}")

        logger.info(f"Listing {listing_id} sold to {consumer_id}, order {order_id}")

        await self._notify_purchase(product['merchant_id'], consumer_id, product['name'], order_id)

        return {
            'message': PURCHASE_SUCCESS_MESSAGE,
            'order_id': order_id
        }

    async def _notify_purchase(
        self,
        merchant_id: str,
        consumer_id: str,
        product_name: str,
        order_id: int
    ) -> None:
        """Tell both parties about a committed purchase; failures are only logged."""
        if self.notifier is None:
            return

        messages = [
            (merchant_id, "Item sold", f"{product_name} was purchased (order #{order_id})"),
            (consumer_id, "Order confirmed", f"You bought {product_name} (order #{order_id})")
        ]
        for user_id, title, body in messages:
            if not user_id:
                continue
            try:
                await self.notifier.create(user_id, title, body, type='order')
            except Exception as e:
                logger.warning(f"Could not notify {user_id} about order {order_id}: {e}")

    async def get_order(self, order_id: int) -> Dict[str, Any]:
        """Get order details.

        Raises:
            OrderNotFoundError: If the order doesn't exist
        """
        try:
            async with self.pool.acquire() as conn:
                order = await conn.fetchrow(
                    '''
                    SELECT id, product_id, consumer_id, status, created_at
                    FROM orders
                    WHERE id = $1
                    ''',
                    order_id
                )
        except Exception as e:
            logger.error(f"Error getting order {order_id}: {e}")
            raise OrderError(f"Failed to get order: {str(e)}")

        if not order:
            raise OrderNotFoundError(f"Order {order_id} not found")
        return order_to_dict(order)

    async def list_orders_by_consumer(self, consumer_id: str) -> List[Dict[str, Any]]:
        """List a consumer's orders, newest first."""
        try:
            async with self.pool.acquire() as conn:
                orders = await conn.fetch(
                    '''
                    SELECT id, product_id, consumer_id, status, created_at
                    FROM orders
                    WHERE consumer_id = $1
                    ORDER BY created_at DESC, id DESC
                    ''',
                    consumer_id
                )
        except Exception as e:
            logger.error(f"Error listing orders for {consumer_id}: {e}")
            raise OrderError(f"Failed to list orders: {str(e)}")

        return [order_to_dict(order) for order in orders]

# Export public interface
__all__ = [
    'OrderManager',
    'OrderError',
    'InvalidOrderError',
    'ListingNotFoundError',
    'ListingUnavailableError',
    'ListingSoldError',
    'ListingExpiredError',
    'PurchaseTimeoutError',
    'OrderNotFoundError',
    'PURCHASE_SUCCESS_MESSAGE',
    'DEFAULT_LOCK_TIMEOUT_MS'
]
