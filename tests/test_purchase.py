"""Tests for the purchase transaction."""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from asyncpg.exceptions import (
    LockNotAvailableError, QueryCanceledError, UniqueViolationError
)

from orders import (
    OrderManager,
    OrderError,
    InvalidOrderError,
    ListingNotFoundError,
    ListingSoldError,
    ListingExpiredError,
    PurchaseTimeoutError,
    OrderNotFoundError,
    PURCHASE_SUCCESS_MESSAGE
)

def product_row(now, status='AVAILABLE', expires_in=timedelta(hours=1)):
    return {
        'status': status,
        'expiry_date': now + expires_in,
        'merchant_id': 'm1',
        'name': 'Sushi Box'
    }

@pytest.fixture
def manager(fake_pool, fixed_now):
    return OrderManager(fake_pool, clock=fixed_now)

@pytest.mark.asyncio
async def test_purchase_success(manager, fake_conn, fixed_now):
    """An available, unexpired listing is sold and an order is recorded."""
    fake_conn.fetchrow.return_value = product_row(fixed_now())
    fake_conn.fetchval.return_value = 41

    result = await manager.purchase(7, 'user_abc')

    assert result == {'message': PURCHASE_SUCCESS_MESSAGE, 'order_id': 41}
    assert fake_conn.commits == 1
    assert fake_conn.rollbacks == 0

    lock_query = fake_conn.fetchrow.call_args.args[0]
    assert 'FOR UPDATE' in lock_query
    assert fake_conn.fetchrow.call_args.args[1] == 7

    statements = [c.args[0] for c in fake_conn.execute.call_args_list]
    assert 'lock_timeout' in statements[0]
    assert "SET status = 'SOLD'" in statements[1]
    assert fake_conn.fetchval.call_args.args[1:] == (7, 'user_abc')

@pytest.mark.asyncio
async def test_purchase_sets_lock_timeout(fake_pool, fake_conn, fixed_now):
    """The configured lock wait bound is applied to the transaction."""
    fake_conn.fetchrow.return_value = product_row(fixed_now())
    fake_conn.fetchval.return_value = 1
    manager = OrderManager(fake_pool, lock_timeout_ms=1234, clock=fixed_now)

    await manager.purchase(1, 'user_abc')

    first = fake_conn.execute.call_args_list[0]
    assert first.args[1] == '1234ms'

@pytest.mark.asyncio
async def test_purchase_missing_listing(manager, fake_conn):
    """A missing listing is reported and nothing is written."""
    fake_conn.fetchrow.return_value = None

    with pytest.raises(ListingNotFoundError, match="Product not found"):
        await manager.purchase(999, 'user_abc')

    assert fake_conn.rollbacks == 1
    assert fake_conn.fetchval.await_count == 0

@pytest.mark.asyncio
async def test_purchase_sold_listing(manager, fake_conn, fixed_now):
    """A listing that was already sold cannot be bought again."""
    fake_conn.fetchrow.return_value = product_row(fixed_now(), status='SOLD')

    with pytest.raises(ListingSoldError, match="Product already sold"):
        await manager.purchase(1, 'user_abc')

    assert fake_conn.rollbacks == 1
    assert fake_conn.commits == 0
    assert fake_conn.fetchval.await_count == 0

@pytest.mark.asyncio
async def test_purchase_expired_listing(manager, fake_conn, fixed_now):
    """A listing past its expiry cannot be bought."""
    fake_conn.fetchrow.return_value = product_row(fixed_now(), expires_in=timedelta(seconds=-1))

    with pytest.raises(ListingExpiredError, match="Product expired"):
        await manager.purchase(1, 'user_abc')

    assert fake_conn.rollbacks == 1
    # Only the lock timeout was set; no status flip
    assert fake_conn.execute.await_count == 1

@pytest.mark.asyncio
async def test_purchase_expired_and_sold_reports_expired(manager, fake_conn, fixed_now):
    """Expiry is reported even when the listing is also sold."""
    fake_conn.fetchrow.return_value = product_row(
        fixed_now(), status='SOLD', expires_in=timedelta(minutes=-5)
    )

    with pytest.raises(ListingExpiredError):
        await manager.purchase(1, 'user_abc')

@pytest.mark.asyncio
async def test_purchase_zero_minute_listing_is_expired(fake_pool, fake_conn, fixed_now):
    """A listing created with expiry_minutes=0 is expired by the time anyone buys it."""
    created_at = fixed_now()
    fake_conn.fetchrow.return_value = product_row(created_at, expires_in=timedelta(0))
    later = lambda: created_at + timedelta(milliseconds=1)
    manager = OrderManager(fake_pool, clock=later)

    with pytest.raises(ListingExpiredError):
        await manager.purchase(1, 'user_abc')

@pytest.mark.asyncio
async def test_purchase_requires_consumer(manager, fake_pool):
    """A purchase without a consumer id is rejected before touching storage."""
    with pytest.raises(InvalidOrderError, match="Consumer ID required"):
        await manager.purchase(1, '')

    assert fake_pool.acquired == 0

@pytest.mark.asyncio
@pytest.mark.parametrize('error', [
    LockNotAvailableError('could not obtain lock'),
    QueryCanceledError('canceling statement due to lock timeout'),
    asyncio.TimeoutError()
])
async def test_purchase_lock_timeout(manager, fake_conn, error):
    """Waiting too long on the row lock surfaces as a retryable timeout."""
    fake_conn.fetchrow.side_effect = error

    with pytest.raises(PurchaseTimeoutError):
        await manager.purchase(1, 'user_abc')

    assert fake_conn.rollbacks == 1

@pytest.mark.asyncio
async def test_purchase_duplicate_order_reports_sold(manager, fake_conn, fixed_now):
    """The one-order-per-listing constraint also reads as sold."""
    fake_conn.fetchrow.return_value = product_row(fixed_now())
    fake_conn.fetchval.side_effect = UniqueViolationError('duplicate key')

    with pytest.raises(ListingSoldError):
        await manager.purchase(1, 'user_abc')

    assert fake_conn.rollbacks == 1

@pytest.mark.asyncio
async def test_purchase_database_failure(manager, fake_conn, fixed_now):
    """A failing write rolls everything back and raises OrderError."""
    fake_conn.fetchrow.return_value = product_row(fixed_now())
    fake_conn.execute.side_effect = [None, RuntimeError('disk full')]

    with pytest.raises(OrderError) as exc_info:
        await manager.purchase(1, 'user_abc')

    assert type(exc_info.value) is OrderError
    assert fake_conn.rollbacks == 1
    assert fake_conn.commits == 0

@pytest.mark.asyncio
async def test_purchase_notifies_both_parties(fake_pool, fake_conn, fixed_now):
    """After commit the merchant and the buyer each get a notification."""
    fake_conn.fetchrow.return_value = product_row(fixed_now())
    fake_conn.fetchval.return_value = 5
    notifier = AsyncMock()
    manager = OrderManager(fake_pool, notifier=notifier, clock=fixed_now)

    await manager.purchase(1, 'user_abc')

    recipients = [c.args[0] for c in notifier.create.call_args_list]
    titles = [c.args[1] for c in notifier.create.call_args_list]
    assert recipients == ['m1', 'user_abc']
    assert titles == ['Item sold', 'Order confirmed']

@pytest.mark.asyncio
async def test_purchase_survives_notification_failure(fake_pool, fake_conn, fixed_now):
    """A failed notification never undoes a committed purchase."""
    fake_conn.fetchrow.return_value = product_row(fixed_now())
    fake_conn.fetchval.return_value = 5
    notifier = AsyncMock()
    notifier.create.side_effect = RuntimeError('inbox down')
    manager = OrderManager(fake_pool, notifier=notifier, clock=fixed_now)

    result = await manager.purchase(1, 'user_abc')

    assert result['order_id'] == 5
    assert fake_conn.commits == 1
    assert notifier.create.await_count == 2

@pytest.mark.asyncio
async def test_concurrent_purchases_have_one_winner(locking_pool, product_store, fixed_now):
    """Of many simultaneous buyers exactly one succeeds; the rest see it sold."""
    product_store.add_product(1, expiry_date=fixed_now() + timedelta(hours=1))
    manager = OrderManager(locking_pool, clock=fixed_now)

    results = await asyncio.gather(
        *(manager.purchase(1, f'user_{i}') for i in range(10)),
        return_exceptions=True
    )

    winners = [r for r in results if isinstance(r, dict)]
    losers = [r for r in results if isinstance(r, Exception)]
    assert len(winners) == 1
    assert len(losers) == 9
    assert all(isinstance(e, ListingSoldError) for e in losers)
    assert product_store.products[1]['status'] == 'SOLD'
    assert len(product_store.orders) == 1
    assert product_store.orders[0]['id'] == winners[0]['order_id']

@pytest.mark.asyncio
async def test_concurrent_purchases_on_different_listings(locking_pool, product_store, fixed_now):
    """Buyers of different listings do not block each other's success."""
    for product_id in (1, 2, 3):
        product_store.add_product(product_id, expiry_date=fixed_now() + timedelta(hours=1))
    manager = OrderManager(locking_pool, clock=fixed_now)

    results = await asyncio.gather(
        *(manager.purchase(product_id, f'user_{product_id}') for product_id in (1, 2, 3))
    )

    assert len({r['order_id'] for r in results}) == 3
    assert all(p['status'] == 'SOLD' for p in product_store.products.values())

@pytest.mark.asyncio
async def test_get_order(manager, fake_conn, fixed_now):
    """Orders are returned with ISO timestamps."""
    fake_conn.fetchrow.return_value = {
        'id': 3,
        'product_id': 7,
        'consumer_id': 'user_abc',
        'status': 'confirmed',
        'created_at': fixed_now()
    }

    order = await manager.get_order(3)

    assert order['product_id'] == 7
    assert order['status'] == 'confirmed'
    assert order['created_at'] == fixed_now().isoformat()

@pytest.mark.asyncio
async def test_get_order_missing(manager, fake_conn):
    """A missing order raises OrderNotFoundError."""
    fake_conn.fetchrow.return_value = None

    with pytest.raises(OrderNotFoundError):
        await manager.get_order(3)

@pytest.mark.asyncio
async def test_list_orders_by_consumer(manager, fake_conn, fixed_now):
    """A consumer's orders are listed."""
    fake_conn.fetch.return_value = [
        {'id': 2, 'product_id': 8, 'consumer_id': 'user_abc', 'status': 'confirmed', 'created_at': fixed_now()},
        {'id': 1, 'product_id': 7, 'consumer_id': 'user_abc', 'status': 'confirmed', 'created_at': fixed_now()}
    ]

    orders = await manager.list_orders_by_consumer('user_abc')

    assert [o['id'] for o in orders] == [2, 1]
    assert fake_conn.fetch.call_args.args[1] == 'user_abc'
