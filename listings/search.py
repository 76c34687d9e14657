"""Search purchasable listings, optionally around a point."""
from datetime import datetime
from typing import Optional, List, Dict, Any
import logging

from .geo import haversine_km
from .get_listing import listing_to_dict

logger = logging.getLogger(__name__)

async def search_available(
    pool,
    now: datetime,
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
    radius_km: Optional[float] = None,
    limit: Optional[int] = None
) -> List[Dict[str, Any]]:
    """List listings that can still be bought.

    A listing is purchasable while its status is AVAILABLE and its expiry
    lies in the future. Results are ordered soonest-expiring first.

    Args:
        pool: Database connection pool
        now: Current time, from the clock purchases check expiry against
        latitude: Optional caller latitude
        longitude: Optional caller longitude
        radius_km: Optional search radius; needs latitude and longitude
        limit: Optional maximum number of results

    Returns:
        List of listing dicts. With coordinates each carries distance_km;
        with a radius, farther listings are dropped and the rest are
        ordered by distance.
    """
    query = '''
        SELECT id, merchant_id, name, original_price, current_price,
               expiry_date, latitude, longitude, is_listed, status, image_url
        FROM products
        WHERE status = 'AVAILABLE' AND expiry_date > $1
        ORDER BY expiry_date ASC
    '''

    async with pool.acquire() as conn:
        rows = await conn.fetch(query, now)

    listings = [listing_to_dict(row) for row in rows]

    if latitude is not None and longitude is not None:
        for listing in listings:
            listing['distance_km'] = round(
                haversine_km(latitude, longitude, listing['latitude'], listing['longitude']),
                3
            )
        if radius_km is not None:
            listings = [l for l in listings if l['distance_km'] <= radius_km]
            listings.sort(key=lambda l: l['distance_km'])

    if limit is not None:
        listings = listings[:limit]

    logger.debug(f"Found {len(listings)} available listings")
    return listings
