"""Listings module for surplus food products.

This module provides functionality for:
- Publishing perishable listings with an expiry window
- Reading single listings and the currently purchasable set
- Nearby search by great-circle distance
- Seeding demo data
"""

import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Any, Callable

from .get_listing import get_listing, listing_to_dict
from .search import search_available
from .geo import haversine_km

logger = logging.getLogger(__name__)

STATUS_AVAILABLE = 'AVAILABLE'
STATUS_SOLD = 'SOLD'

# Demo listings: (merchant_id, name, original, current, hours to expiry, lat, lng)
DEMO_LISTINGS = [
    ('m1', 'Sushi Box', 200, 100, 2, 25.0335, 121.5650),
    ('m1', 'Bread', 50, 25, 5, 25.0340, 121.5660),
    ('m2', 'Milk', 90, 45, 10, 25.0320, 121.5640)
]

class ListingError(Exception):
    """Base exception for listing operations."""
    pass

class ListingNotFoundError(ListingError):
    """Raised when a listing is not found."""
    pass

class InvalidListingError(ListingError):
    """Raised when listing fields are invalid."""
    pass

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

class ListingManager:
    """Manager class for handling listing operations."""

    def __init__(self, pool, clock: Optional[Callable[[], datetime]] = None):
        """Initialize the listing manager.

        Args:
            pool: Database connection pool
            clock: Optional time source returning an aware datetime
        """
        self.pool = pool
        self._now = clock or _utcnow

    async def create_listing(
        self,
        merchant_id: str,
        name: str,
        original_price: float,
        current_price: float,
        expiry_minutes: int,
        latitude: float,
        longitude: float,
        image_url: Optional[str] = None
    ) -> int:
        """Create a new listing.

        The listing starts AVAILABLE and listed, and expires
        expiry_minutes from now. An expiry of 0 creates a listing that
        can never be bought.

        Returns:
            The new listing id

        Raises:
            InvalidListingError: If fields are invalid
            ListingError: If creation fails
        """
        if not merchant_id or not name:
            raise InvalidListingError("merchant_id and name are required")
        if original_price < 0 or current_price < 0:
            raise InvalidListingError("Prices must not be negative")
        if expiry_minutes < 0:
            raise InvalidListingError("expiry_minutes must not be negative")

        expiry_date = self._now() + timedelta(minutes=expiry_minutes)

        try:
            async with self.pool.acquire() as conn:
                listing_id = await conn.fetchval(
                    '''
                    INSERT INTO products (
                        merchant_id, name, original_price, current_price,
                        expiry_date, latitude, longitude, is_listed, status, image_url
                    ) VALUES ($1, $2, $3, $4, $5, $6, $7, true, 'AVAILABLE', $8)
                    RETURNING id
                    ''',
                    merchant_id,
                    name,
                    Decimal(str(original_price)),
                    Decimal(str(current_price)),
                    expiry_date,
                    latitude,
                    longitude,
                    image_url
                )
        except Exception as e:
            logger.error(f"Error creating listing: {e}")
            raise ListingError(f"Failed to create product: {str(e)}")

        logger.info(f"Created listing {listing_id} for merchant {merchant_id}, expires {expiry_date.isoformat()}")
        return listing_id

    async def get_listing(self, listing_id: int) -> Dict[str, Any]:
        """Get a listing by ID.

        Raises:
            ListingNotFoundError: If listing doesn't exist
        """
        try:
            return await get_listing(listing_id, self.pool)
        except LookupError:
            raise ListingNotFoundError(f"Listing {listing_id} not found")
        except Exception as e:
            logger.error(f"Error getting listing {listing_id}: {e}")
            raise ListingError(f"Failed to get listing: {str(e)}")

    async def get_available_listings(
        self,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        radius_km: Optional[float] = None,
        limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Get listings that are AVAILABLE and not yet expired.

        Raises:
            InvalidListingError: If a radius is given without coordinates
            ListingError: If the query fails
        """
        if radius_km is not None and (latitude is None or longitude is None):
            raise InvalidListingError("radius_km requires lat and lng")
        if radius_km is not None and radius_km < 0:
            raise InvalidListingError("radius_km must not be negative")

        try:
            return await search_available(
                self.pool,
                self._now(),
                latitude=latitude,
                longitude=longitude,
                radius_km=radius_km,
                limit=limit
            )
        except Exception as e:
            logger.error(f"Error listing available products: {e}")
            raise ListingError(f"Failed to list products: {str(e)}")

    async def seed_demo_listings(self) -> int:
        """Insert the demo listings.

        Returns:
            Number of listings inserted
        """
        now = self._now()
        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    await conn.executemany(
                        '''
                        INSERT INTO products (
                            merchant_id, name, original_price, current_price,
                            expiry_date, latitude, longitude, is_listed, status
                        ) VALUES ($1, $2, $3, $4, $5, $6, $7, true, 'AVAILABLE')
                        ''',
                        [
                            (merchant_id, name, Decimal(original), Decimal(current), now + timedelta(hours=hours), lat, lng)
                            for merchant_id, name, original, current, hours, lat, lng in DEMO_LISTINGS
                        ]
                    )
        except Exception as e:
            logger.error(f"Error seeding demo listings: {e}")
            raise ListingError(f"Failed to seed: {str(e)}")

        logger.info(f"Seeded {len(DEMO_LISTINGS)} demo listings")
        return len(DEMO_LISTINGS)

# Export public interface
__all__ = [
    'ListingManager',
    'ListingError',
    'ListingNotFoundError',
    'InvalidListingError',
    'STATUS_AVAILABLE',
    'STATUS_SOLD',
    'DEMO_LISTINGS',
    'haversine_km',
    'listing_to_dict'
]
