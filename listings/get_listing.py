from typing import Dict, Any

def listing_to_dict(listing) -> Dict[str, Any]:
    """Convert a products row into a JSON-ready dict."""
    return {
        'id': listing['id'],
        'merchant_id': listing['merchant_id'],
        'name': listing['name'],
        'original_price': float(listing['original_price']),
        'current_price': float(listing['current_price']),
        'expiry_date': listing['expiry_date'].isoformat() if listing['expiry_date'] else None,
        'latitude': listing['latitude'],
        'longitude': listing['longitude'],
        'is_listed': listing['is_listed'],
        'status': listing['status'],
        'image_url': listing['image_url']
    }

async def get_listing(listing_id: int, pool) -> Dict[str, Any]:
    """Get a listing by ID.

    Args:
        listing_id: The listing id
        pool: Database connection pool

    Returns:
        Dict containing listing details

    Raises:
        LookupError: If listing doesn't exist
    """
    async with pool.acquire() as conn:
        listing = await conn.fetchrow(
            '''
            SELECT id, merchant_id, name, original_price, current_price,
                   expiry_date, latitude, longitude, is_listed, status, image_url
            FROM products
            WHERE id = $1
            ''',
            listing_id
        )

        if not listing:
            raise LookupError(f"Listing {listing_id} not found")

        return listing_to_dict(listing)
