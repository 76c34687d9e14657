"""Tests for merchant profiles."""

import pytest
from asyncpg.exceptions import ForeignKeyViolationError

from merchants import (
    MerchantManager,
    MerchantError,
    InvalidProfileError,
    MerchantNotFoundError,
    UnknownUserError
)

@pytest.fixture
def manager(fake_pool):
    return MerchantManager(fake_pool, search_limit=20)

@pytest.mark.asyncio
async def test_upsert_profile_flags_merchant(manager, fake_conn):
    """Saving a profile also marks the user as merchant, atomically."""
    await manager.upsert_profile('user_1', 'Corner Bakery', '1 Main St', category='bakery')

    statements = [c.args[0] for c in fake_conn.execute.call_args_list]
    assert 'ON CONFLICT (user_id) DO UPDATE' in statements[0]
    assert 'SET is_merchant = TRUE' in statements[1]
    assert fake_conn.execute.call_args_list[1].args[1] == 'user_1'
    assert fake_conn.commits == 1

@pytest.mark.asyncio
async def test_upsert_profile_requires_fields(manager, fake_pool):
    """Shop name and address are required."""
    with pytest.raises(InvalidProfileError):
        await manager.upsert_profile('user_1', '', '1 Main St')
    assert fake_pool.acquired == 0

@pytest.mark.asyncio
async def test_upsert_profile_unknown_user(manager, fake_conn):
    """A profile for a missing user is rejected and rolled back."""
    fake_conn.execute.side_effect = ForeignKeyViolationError('violates foreign key')

    with pytest.raises(UnknownUserError):
        await manager.upsert_profile('ghost', 'Shop', 'Somewhere')
    assert fake_conn.rollbacks == 1

@pytest.mark.asyncio
async def test_get_details(manager, fake_conn):
    """Details combine the profile, rating summary and stock count."""
    fake_conn.fetchrow.side_effect = [
        {
            'user_id': 'm1',
            'shop_name': 'Corner Bakery',
            'address': '1 Main St',
            'latitude': 25.03,
            'longitude': None,
            'phone': None,
            'email': 'shop@example.com',
            'business_hours_open': '08:00',
            'business_hours_close': '20:00',
            'category': 'bakery',
            'description': None
        },
        {'average_rating': 4.5, 'total_reviews': 2}
    ]
    fake_conn.fetchval.return_value = 3

    details = await manager.get_details('m1')

    assert details['merchant']['shop_name'] == 'Corner Bakery'
    assert details['merchant']['phone'] == ''
    assert details['merchant']['longitude'] == 0.0
    assert details['average_rating'] == 4.5
    assert details['total_reviews'] == 2
    assert details['product_count'] == 3

@pytest.mark.asyncio
async def test_get_details_missing(manager, fake_conn):
    """A missing merchant is not found."""
    fake_conn.fetchrow.return_value = None

    with pytest.raises(MerchantNotFoundError):
        await manager.get_details('nobody')

@pytest.mark.asyncio
async def test_search_filters(manager, fake_conn):
    """Text and category filters become parameters and the limit applies."""
    fake_conn.fetch.return_value = [
        {'user_id': 'm1', 'shop_name': 'Corner Bakery', 'address': None, 'category': 'bakery'}
    ]

    results = await manager.search(q='bake', category='bakery')

    args = fake_conn.fetch.call_args.args
    assert 'ILIKE $1' in args[0]
    assert 'category = $2' in args[0]
    assert 'LIMIT $3' in args[0]
    assert args[1:] == ('%bake%', 'bakery', 20)
    assert results == [{'user_id': 'm1', 'shop_name': 'Corner Bakery', 'address': '', 'category': 'bakery'}]

@pytest.mark.asyncio
async def test_search_without_filters(manager, fake_conn):
    """Without filters only the limit is bound."""
    await manager.search()

    assert fake_conn.fetch.call_args.args[1:] == (20,)

@pytest.mark.asyncio
async def test_search_failure(manager, fake_conn):
    """Database failures surface as MerchantError."""
    fake_conn.fetch.side_effect = OSError('connection reset')

    with pytest.raises(MerchantError):
        await manager.search(q='x')
