"""Tests for the listings module."""

from datetime import timedelta
from decimal import Decimal

import pytest

from listings import (
    ListingManager,
    ListingError,
    ListingNotFoundError,
    InvalidListingError,
    DEMO_LISTINGS,
    haversine_km
)

def listing_row(now, listing_id=1, latitude=25.0335, longitude=121.5650, expires_in=timedelta(hours=2)):
    return {
        'id': listing_id,
        'merchant_id': 'm1',
        'name': f'Item {listing_id}',
        'original_price': Decimal('200.00'),
        'current_price': Decimal('100.00'),
        'expiry_date': now + expires_in,
        'latitude': latitude,
        'longitude': longitude,
        'is_listed': True,
        'status': 'AVAILABLE',
        'image_url': None
    }

@pytest.fixture
def listing_manager(fake_pool, fixed_now):
    """Create and return a ListingManager instance."""
    return ListingManager(fake_pool, clock=fixed_now)

def test_haversine_known_distance():
    """Taipei 101 to Taipei Main Station is about five kilometres."""
    distance = haversine_km(25.0330, 121.5654, 25.0478, 121.5170)
    assert 4 < distance < 7

def test_haversine_same_point():
    """A point is zero kilometres from itself."""
    assert haversine_km(25.0, 121.5, 25.0, 121.5) == pytest.approx(0.0)

@pytest.mark.asyncio
async def test_create_listing(listing_manager, fake_conn, fixed_now):
    """Test creating a new listing."""
    fake_conn.fetchval.return_value = 12

    listing_id = await listing_manager.create_listing(
        'm1', 'Sushi Box', 200, 100, 60, 25.0335, 121.5650, image_url='http://img'
    )

    assert listing_id == 12
    args = fake_conn.fetchval.call_args.args
    assert "'AVAILABLE'" in args[0]
    assert args[1:5] == ('m1', 'Sushi Box', Decimal('200'), Decimal('100'))
    assert args[5] == fixed_now() + timedelta(minutes=60)
    assert args[8] == 'http://img'

@pytest.mark.asyncio
async def test_create_listing_zero_expiry(listing_manager, fake_conn, fixed_now):
    """A zero-minute listing expires at creation time."""
    fake_conn.fetchval.return_value = 1

    await listing_manager.create_listing('m1', 'Bread', 50, 25, 0, 25.0, 121.0)

    assert fake_conn.fetchval.call_args.args[5] == fixed_now()

@pytest.mark.asyncio
@pytest.mark.parametrize('kwargs', [
    {'merchant_id': ''},
    {'name': ''},
    {'original_price': -1},
    {'current_price': -0.5},
    {'expiry_minutes': -10}
])
async def test_create_listing_validation(listing_manager, fake_pool, kwargs):
    """Invalid fields are rejected before storage access."""
    fields = {
        'merchant_id': 'm1',
        'name': 'Milk',
        'original_price': 90,
        'current_price': 45,
        'expiry_minutes': 30,
        'latitude': 25.0,
        'longitude': 121.0
    }
    fields.update(kwargs)

    with pytest.raises(InvalidListingError):
        await listing_manager.create_listing(**fields)
    assert fake_pool.acquired == 0

@pytest.mark.asyncio
async def test_create_listing_storage_failure(listing_manager, fake_conn):
    """Database failures surface as ListingError."""
    fake_conn.fetchval.side_effect = OSError('connection lost')

    with pytest.raises(ListingError):
        await listing_manager.create_listing('m1', 'Milk', 90, 45, 30, 25.0, 121.0)

@pytest.mark.asyncio
async def test_get_listing(listing_manager, fake_conn, fixed_now):
    """Test getting a listing by ID."""
    fake_conn.fetchrow.return_value = listing_row(fixed_now(), listing_id=4)

    listing = await listing_manager.get_listing(4)

    assert listing['id'] == 4
    assert listing['original_price'] == 200.0
    assert listing['current_price'] == 100.0
    assert listing['expiry_date'] == (fixed_now() + timedelta(hours=2)).isoformat()

@pytest.mark.asyncio
async def test_get_nonexistent_listing(listing_manager, fake_conn):
    """Test getting a listing that doesn't exist."""
    fake_conn.fetchrow.return_value = None

    with pytest.raises(ListingNotFoundError):
        await listing_manager.get_listing(999)

@pytest.mark.asyncio
async def test_available_listings_query(listing_manager, fake_conn, fixed_now):
    """Only available, unexpired listings are selected, soonest expiry first."""
    fake_conn.fetch.return_value = [
        listing_row(fixed_now(), 1, expires_in=timedelta(hours=1)),
        listing_row(fixed_now(), 2, expires_in=timedelta(hours=3))
    ]

    listings = await listing_manager.get_available_listings()

    query = fake_conn.fetch.call_args.args[0]
    assert "status = 'AVAILABLE'" in query
    assert 'expiry_date > $1' in query
    assert fake_conn.fetch.call_args.args[1] == fixed_now()
    assert 'ORDER BY expiry_date ASC' in query
    assert [l['id'] for l in listings] == [1, 2]
    assert 'distance_km' not in listings[0]

@pytest.mark.asyncio
async def test_available_listings_use_manager_clock(fake_pool, fake_conn, fixed_now):
    """Availability is judged by the same clock that stamps expiries."""
    later = fixed_now() + timedelta(minutes=30)
    manager = ListingManager(fake_pool, clock=lambda: later)

    await manager.get_available_listings()

    assert fake_conn.fetch.call_args.args[1] == later

@pytest.mark.asyncio
async def test_available_listings_with_distance(listing_manager, fake_conn, fixed_now):
    """With coordinates, listings carry their distance."""
    fake_conn.fetch.return_value = [listing_row(fixed_now(), 1, latitude=25.0478, longitude=121.5170)]

    listings = await listing_manager.get_available_listings(latitude=25.0330, longitude=121.5654)

    assert 4 < listings[0]['distance_km'] < 7

@pytest.mark.asyncio
async def test_available_listings_within_radius(listing_manager, fake_conn, fixed_now):
    """A radius drops far listings and orders the rest nearest first."""
    fake_conn.fetch.return_value = [
        listing_row(fixed_now(), 1, latitude=25.0478, longitude=121.5170),  # ~5 km
        listing_row(fixed_now(), 2, latitude=25.0331, longitude=121.5655),  # a few metres
        listing_row(fixed_now(), 3, latitude=24.1477, longitude=120.6736)   # Taichung
    ]

    listings = await listing_manager.get_available_listings(
        latitude=25.0330, longitude=121.5654, radius_km=10
    )

    assert [l['id'] for l in listings] == [2, 1]

@pytest.mark.asyncio
async def test_available_listings_limit(listing_manager, fake_conn, fixed_now):
    """A limit caps the number of results."""
    fake_conn.fetch.return_value = [listing_row(fixed_now(), i) for i in range(1, 6)]

    listings = await listing_manager.get_available_listings(limit=2)

    assert [l['id'] for l in listings] == [1, 2]

@pytest.mark.asyncio
async def test_radius_requires_coordinates(listing_manager, fake_pool):
    """A radius without coordinates is rejected."""
    with pytest.raises(InvalidListingError):
        await listing_manager.get_available_listings(radius_km=5)
    assert fake_pool.acquired == 0

@pytest.mark.asyncio
async def test_seed_demo_listings(listing_manager, fake_conn, fixed_now):
    """Seeding inserts the three demo listings in one transaction."""
    count = await listing_manager.seed_demo_listings()

    assert count == len(DEMO_LISTINGS) == 3
    rows = fake_conn.executemany.call_args.args[1]
    assert [r[1] for r in rows] == ['Sushi Box', 'Bread', 'Milk']
    assert rows[0][4] == fixed_now() + timedelta(hours=2)
    assert fake_conn.commits == 1
