"""Shared fixtures: asyncpg-shaped doubles for pools, connections and transactions."""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

class FakeTransaction:
    """Records whether the block committed or rolled back."""

    def __init__(self, conn):
        self.conn = conn

    async def __aenter__(self):
        self.conn.transactions += 1
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if exc_type is None:
            self.conn.commits += 1
        else:
            self.conn.rollbacks += 1
        return False

class FakeConnection:
    """Connection whose query methods are AsyncMocks the test scripts."""

    def __init__(self):
        self.fetchrow = AsyncMock(return_value=None)
        self.fetchval = AsyncMock(return_value=None)
        self.fetch = AsyncMock(return_value=[])
        self.execute = AsyncMock(return_value="OK")
        self.executemany = AsyncMock(return_value=None)
        self.transactions = 0
        self.commits = 0
        self.rollbacks = 0

    def transaction(self):
        return FakeTransaction(self)

class FakePool:
    """Pool that hands out one shared FakeConnection."""

    def __init__(self, conn=None):
        self.conn = conn or FakeConnection()
        self.acquired = 0

    @asynccontextmanager
    async def acquire(self):
        self.acquired += 1
        yield self.conn

class ProductStore:
    """In-memory products and orders tables with row locks.

    A row locked with SELECT ... FOR UPDATE stays locked until the owning
    transaction ends; writes are staged and applied only on commit.
    """

    def __init__(self):
        self.products = {}
        self.orders = []
        self.locks = {}
        self._next_order_id = 1

    def add_product(self, product_id, status='AVAILABLE', expiry_date=None,
                    merchant_id='m1', name='Sushi Box'):
        self.products[product_id] = {
            'status': status,
            'expiry_date': expiry_date or NOW + timedelta(hours=1),
            'merchant_id': merchant_id,
            'name': name
        }

    def next_order_id(self):
        order_id = self._next_order_id
        self._next_order_id += 1
        return order_id

class LockingTransaction:
    def __init__(self, conn):
        self.conn = conn

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if exc_type is None:
            self.conn.apply_pending()
        self.conn.pending.clear()
        for lock in self.conn.held:
            lock.release()
        self.conn.held.clear()
        return False

class LockingConnection:
    """Understands just the statements the purchase path issues."""

    def __init__(self, store):
        self.store = store
        self.held = []
        self.pending = []

    def transaction(self):
        return LockingTransaction(self)

    async def execute(self, query, *args):
        if 'set_config' in query:
            return 'SELECT 1'
        if query.strip().startswith('UPDATE products'):
            self.pending.append(('sold', args[0]))
            return 'UPDATE 1'
        raise AssertionError(f"Unexpected statement: {query}")

    async def fetchrow(self, query, *args):
        assert 'FOR UPDATE' in query
        lock = self.store.locks.setdefault(args[0], asyncio.Lock())
        await lock.acquire()
        self.held.append(lock)
        # Give competing buyers a chance to queue on the lock
        await asyncio.sleep(0)
        row = self.store.products.get(args[0])
        return dict(row) if row else None

    async def fetchval(self, query, *args):
        assert 'INSERT INTO orders' in query
        order_id = self.store.next_order_id()
        self.pending.append(('order', (order_id,) + args))
        return order_id

    def apply_pending(self):
        for kind, payload in self.pending:
            if kind == 'sold':
                self.store.products[payload]['status'] = 'SOLD'
            else:
                order_id, product_id, consumer_id = payload
                self.store.orders.append({
                    'id': order_id,
                    'product_id': product_id,
                    'consumer_id': consumer_id
                })

class LockingPool:
    """Pool that opens a fresh LockingConnection per acquire."""

    def __init__(self, store):
        self.store = store

    @asynccontextmanager
    async def acquire(self):
        yield LockingConnection(self.store)

@pytest.fixture
def fake_conn():
    return FakeConnection()

@pytest.fixture
def fake_pool(fake_conn):
    return FakePool(fake_conn)

@pytest.fixture
def product_store():
    return ProductStore()

@pytest.fixture
def locking_pool(product_store):
    return LockingPool(product_store)

@pytest.fixture
def fixed_now():
    """Clock frozen at NOW."""
    return lambda: NOW
