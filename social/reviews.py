"""Merchant reviews."""

import logging
from typing import Dict, Any, Optional

from asyncpg.exceptions import ForeignKeyViolationError

from .errors import SocialError, SocialValidationError

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5

class ReviewManager:
    """Records reviews and aggregates them per merchant."""

    def __init__(self, pool):
        self.pool = pool

    async def create_review(
        self,
        order_id: Optional[int],
        user_id: str,
        merchant_id: str,
        rating: int,
        comment: Optional[str] = None
    ) -> int:
        """Create a review.

        Returns:
            The new review id

        Raises:
            SocialValidationError: If the rating is out of range or a
                referenced order, user or merchant does not exist
            SocialError: If storage fails
        """
        if rating is None or not MIN_RATING <= rating <= MAX_RATING:
            raise SocialValidationError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")
        if not user_id or not merchant_id:
            raise SocialValidationError("user_id and merchant_id are required")

        try:
            async with self.pool.acquire() as conn:
                review_id = await conn.fetchval(
                    '''
                    INSERT INTO reviews (order_id, user_id, merchant_id, rating, comment)
                    VALUES ($1, $2, $3, $4, $5)
                    RETURNING id
                    ''',
                    order_id,
                    user_id,
                    merchant_id,
                    rating,
                    comment
                )
        except ForeignKeyViolationError:
            raise SocialValidationError("Review references an unknown record")
        except Exception as e:
            logger.error(f"Error creating review for {merchant_id}: {e}")
            raise SocialError(f"Failed to create review: {str(e)}")

        logger.info(f"Review {review_id} ({rating}/5) for merchant {merchant_id}")
        return review_id

    async def get_merchant_reviews(self, merchant_id: str) -> Dict[str, Any]:
        """Get a merchant's reviews, newest first, with the average rating.

        Returns:
            Dict containing:
                - reviews: List of reviews
                - average_rating: Mean rating, 0 when there are none
                - total_reviews: Number of reviews
        """
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    '''
                    SELECT id, order_id, user_id, merchant_id, rating, comment, created_at
                    FROM reviews
                    WHERE merchant_id = $1
                    ORDER BY created_at DESC, id DESC
                    ''',
                    merchant_id
                )
        except Exception as e:
            logger.error(f"Error getting reviews for {merchant_id}: {e}")
            raise SocialError(f"Failed to get reviews: {str(e)}")

        reviews = [{
            'id': r['id'],
            'order_id': r['order_id'],
            'user_id': r['user_id'],
            'merchant_id': r['merchant_id'],
            'rating': r['rating'],
            'comment': r['comment'],
            'created_at': r['created_at'].isoformat() if r['created_at'] else None
        } for r in rows]

        average = sum(r['rating'] for r in reviews) / len(reviews) if reviews else 0

        return {
            'reviews': reviews,
            'average_rating': round(average, 2),
            'total_reviews': len(reviews)
        }
