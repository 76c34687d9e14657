"""Favorite merchants per user."""

import logging
from typing import Dict, Any, List

from asyncpg.exceptions import ForeignKeyViolationError

from .errors import SocialError, SocialValidationError

logger = logging.getLogger(__name__)

class FavoriteManager:
    """Toggles and lists (user, merchant) favorite pairs."""

    def __init__(self, pool):
        self.pool = pool

    async def toggle(self, user_id: str, merchant_id: str) -> bool:
        """Flip whether the merchant is one of the user's favorites.

        Returns:
            True if the merchant is now a favorite

        Raises:
            SocialValidationError: If ids are missing or unknown
            SocialError: If storage fails
        """
        if not user_id or not merchant_id:
            raise SocialValidationError("user_id and merchant_id are required")

        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    removed = await conn.fetchval(
                        '''
                        DELETE FROM favorites
                        WHERE user_id = $1 AND merchant_id = $2
                        RETURNING id
                        ''',
                        user_id,
                        merchant_id
                    )
                    if removed is not None:
                        return False

                    await conn.execute(
                        '''
                        INSERT INTO favorites (user_id, merchant_id)
                        VALUES ($1, $2)
                        ON CONFLICT (user_id, merchant_id) DO NOTHING
                        ''',
                        user_id,
                        merchant_id
                    )
                    return True
        except ForeignKeyViolationError:
            raise SocialValidationError("Unknown user or merchant")
        except Exception as e:
            logger.error(f"Error toggling favorite {user_id}->{merchant_id}: {e}")
            raise SocialError(f"Failed to toggle favorite: {str(e)}")

    async def list_by_user(self, user_id: str) -> List[Dict[str, Any]]:
        """List a user's favorite merchants with a shop summary, newest first."""
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    '''
                    SELECT f.id, f.merchant_id, f.created_at,
                           m.shop_name, m.address, m.category
                    FROM favorites f
                    JOIN merchants m ON m.user_id = f.merchant_id
                    WHERE f.user_id = $1
                    ORDER BY f.created_at DESC, f.id DESC
                    ''',
                    user_id
                )
        except Exception as e:
            logger.error(f"Error listing favorites for {user_id}: {e}")
            raise SocialError(f"Failed to list favorites: {str(e)}")

        return [{
            'id': r['id'],
            'merchant_id': r['merchant_id'],
            'shop_name': r['shop_name'],
            'address': r['address'],
            'category': r['category'],
            'created_at': r['created_at'].isoformat() if r['created_at'] else None
        } for r in rows]

    async def is_favorite(self, user_id: str, merchant_id: str) -> bool:
        """Check whether the merchant is one of the user's favorites."""
        try:
            async with self.pool.acquire() as conn:
                return await conn.fetchval(
                    '''
                    SELECT EXISTS(
                        SELECT 1 FROM favorites
                        WHERE user_id = $1 AND merchant_id = $2
                    )
                    ''',
                    user_id,
                    merchant_id
                )
        except Exception as e:
            logger.error(f"Error checking favorite {user_id}->{merchant_id}: {e}")
            raise SocialError(f"Failed to check favorite: {str(e)}")
