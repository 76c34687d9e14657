"""Merchant profiles.

A merchant profile belongs to exactly one user. Setting it up also flags
the user as a merchant, so both writes share one transaction.
"""

import logging
from typing import Dict, List, Optional, Any

from asyncpg.exceptions import ForeignKeyViolationError

logger = logging.getLogger(__name__)

PROFILE_FIELDS = [
    'shop_name',
    'address',
    'latitude',
    'longitude',
    'phone',
    'email',
    'business_hours_open',
    'business_hours_close',
    'category',
    'description'
]

class MerchantError(Exception):
    """Base exception for merchant operations."""
    pass

class InvalidProfileError(MerchantError):
    """Raised when profile fields are missing."""
    pass

class MerchantNotFoundError(MerchantError):
    """Raised when a merchant profile does not exist."""
    pass

class UnknownUserError(MerchantError):
    """Raised when a profile is set up for a user that does not exist."""
    pass

def _text(value: Optional[str]) -> str:
    return value or ''

class MerchantManager:
    """Manages merchant profiles and their public details."""

    def __init__(self, pool, search_limit: int = 20):
        """Initialize merchant manager.

        Args:
            pool: Database connection pool
            search_limit: Maximum results returned by search
        """
        self.pool = pool
        self.search_limit = search_limit

    async def upsert_profile(
        self,
        user_id: str,
        shop_name: str,
        address: str,
        latitude: float = 0.0,
        longitude: float = 0.0,
        phone: Optional[str] = None,
        email: Optional[str] = None,
        business_hours_open: Optional[str] = None,
        business_hours_close: Optional[str] = None,
        category: Optional[str] = None,
        description: Optional[str] = None
    ) -> None:
        """Create or replace a merchant profile and flag the user as merchant.

        Raises:
            InvalidProfileError: If user_id, shop_name or address is missing
            UnknownUserError: If the user doesn't exist
            MerchantError: If storage fails
        """
        if not user_id or not shop_name or not address:
            raise InvalidProfileError("user_id, shop_name and address are required")

        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    await conn.execute(
                        '''
                        INSERT INTO merchants (
                            user_id, shop_name, address, latitude, longitude, phone, email,
                            business_hours_open, business_hours_close, category, description
                        ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
                        ON CONFLICT (user_id) DO UPDATE SET
                            shop_name = EXCLUDED.shop_name,
                            address = EXCLUDED.address,
                            latitude = EXCLUDED.latitude,
                            longitude = EXCLUDED.longitude,
                            phone = EXCLUDED.phone,
                            email = EXCLUDED.email,
                            business_hours_open = EXCLUDED.business_hours_open,
                            business_hours_close = EXCLUDED.business_hours_close,
                            category = EXCLUDED.category,
                            description = EXCLUDED.description
                        ''',
                        user_id,
                        shop_name,
                        address,
                        latitude,
                        longitude,
                        phone,
                        email,
                        business_hours_open,
                        business_hours_close,
                        category,
                        description
                    )
                    await conn.execute(
                        'UPDATE users SET is_merchant = TRUE WHERE id = $1',
                        user_id
                    )
        except ForeignKeyViolationError:
            raise UnknownUserError(f"User {user_id} not found")
        except Exception as e:
            logger.error(f"Error updating merchant profile for {user_id}: {e}")
            raise MerchantError(f"Failed to update merchant profile: {str(e)}")

        logger.info(f"Merchant profile saved for {user_id}")

    async def get_details(self, merchant_id: str) -> Dict[str, Any]:
        """Get a merchant's profile with rating and stock summary.

        Returns:
            Dict containing:
                - merchant: Profile fields
                - average_rating: Mean review rating, 0 when none
                - total_reviews: Number of reviews
                - product_count: Listings currently AVAILABLE

        Raises:
            MerchantNotFoundError: If the merchant doesn't exist
        """
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    '''
                    SELECT user_id, shop_name, address, latitude, longitude, phone, email,
                           business_hours_open, business_hours_close, category, description
                    FROM merchants
                    WHERE user_id = $1
                    ''',
                    merchant_id
                )
                if not row:
                    raise MerchantNotFoundError("Merchant not found")

                stats = await conn.fetchrow(
                    '''
                    SELECT COALESCE(AVG(rating), 0) AS average_rating, COUNT(*) AS total_reviews
                    FROM reviews
                    WHERE merchant_id = $1
                    ''',
                    merchant_id
                )
                product_count = await conn.fetchval(
                    "SELECT COUNT(*) FROM products WHERE merchant_id = $1 AND status = 'AVAILABLE'",
                    merchant_id
                )
        except MerchantError:
            raise
        except Exception as e:
            logger.error(f"Error getting merchant {merchant_id}: {e}")
            raise MerchantError(f"Failed to get merchant: {str(e)}")

        merchant = {'user_id': row['user_id']}
        for field in PROFILE_FIELDS:
            if field in ('latitude', 'longitude'):
                merchant[field] = row[field] or 0.0
            else:
                merchant[field] = _text(row[field])

        return {
            'merchant': merchant,
            'average_rating': round(float(stats['average_rating']), 2),
            'total_reviews': stats['total_reviews'],
            'product_count': product_count
        }

    async def search(
        self,
        q: Optional[str] = None,
        category: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Search merchants by name or address text and by category."""
        query = '''
            SELECT user_id, shop_name, address, category
            FROM merchants
            WHERE 1=1
        '''
        params = []
        param_idx = 1

        if q:
            query += f" AND (shop_name ILIKE ${param_idx} OR address ILIKE ${param_idx})"
            params.append(f"%{q}%")
            param_idx += 1

        if category:
            query += f" AND category = ${param_idx}"
            params.append(category)
            param_idx += 1

        query += f" ORDER BY shop_name LIMIT ${param_idx}"
        params.append(self.search_limit)

        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(query, *params)
        except Exception as e:
            logger.error(f"Error searching merchants: {e}")
            raise MerchantError(f"Search failed: {str(e)}")

        return [{
            'user_id': r['user_id'],
            'shop_name': _text(r['shop_name']),
            'address': _text(r['address']),
            'category': _text(r['category'])
        } for r in rows]

# Export public interface
__all__ = [
    'MerchantManager',
    'MerchantError',
    'InvalidProfileError',
    'MerchantNotFoundError',
    'UnknownUserError',
    'PROFILE_FIELDS'
]
