"""Database module for managing connections to PostgreSQL.

This module handles:
- Database connection pool initialization
- Schema management
- Connection lifecycle and readiness checks

The pool is handed explicitly to every manager that needs storage; the module
level pool only exists so the application lifespan can create and close it.
"""

import logging
import ssl
from typing import Optional, Dict, Any
import backoff
import asyncpg
from urllib.parse import urlparse, parse_qs, urlencode, urlunparse

from .exceptions import DatabaseError, DatabaseSchemaError, DatabaseNotInitializedError
from .lib.schema_manager import SchemaManager

logger = logging.getLogger(__name__)

_pool: Optional[asyncpg.Pool] = None

# sslmode values that require an encrypted connection
_SSL_REQUIRED_MODES = {'require', 'verify-ca', 'verify-full'}

def _get_ssl_context() -> ssl.SSLContext:
    """Create SSL context for managed database connections."""
    ssl_context = ssl.create_default_context()
    ssl_context.verify_mode = ssl.CERT_REQUIRED
    ssl_context.check_hostname = True
    return ssl_context

def _get_connection_kwargs(db_url: str) -> Dict[str, Any]:
    """Get connection kwargs from database URL.

    Args:
        db_url: Database connection URL

    Returns:
        Dict of connection parameters plus the cleaned DSN under 'dsn'
    """
    parsed = urlparse(db_url)
    params = parse_qs(parsed.query)

    kwargs: Dict[str, Any] = {}
    sslmode = params.pop('sslmode', [None])[0]
    if sslmode in _SSL_REQUIRED_MODES:
        kwargs['ssl'] = _get_ssl_context()
    elif sslmode == 'disable':
        kwargs['ssl'] = False

    # asyncpg does not understand libpq's sslmode, so strip it from the DSN
    query = urlencode({key: values[0] for key, values in params.items()})
    kwargs['dsn'] = urlunparse(parsed._replace(query=query))
    return kwargs

@backoff.on_exception(
    backoff.expo,
    (asyncpg.exceptions.PostgresConnectionError, asyncpg.exceptions.CannotConnectNowError, OSError),
    max_tries=5
)
async def create_pool(
    db_url: str,
    min_size: int = 2,
    max_size: int = 10,
    command_timeout: float = 60.0
) -> asyncpg.Pool:
    """Create a connection pool, retrying while the server comes up.

    Args:
        db_url: Database connection URL
        min_size: Minimum idle connections
        max_size: Maximum connections
        command_timeout: Per-statement timeout in seconds

    Returns:
        The connection pool
    """
    conn_kwargs = _get_connection_kwargs(db_url)
    dsn = conn_kwargs.pop('dsn')
    return await asyncpg.create_pool(
        dsn,
        min_size=min_size,
        max_size=max_size,
        max_inactive_connection_lifetime=300.0,  # 5 minutes
        command_timeout=command_timeout,
        **conn_kwargs
    )

async def init_db(
    db_url: Optional[str] = None,
    force_recreate: bool = False,
    settings: Optional[Dict[str, Any]] = None
) -> asyncpg.Pool:
    """Initialize the database connection pool and schema.

    Args:
        db_url: Optional database URL. If not provided, will use settings.
        force_recreate: If True, drop and recreate all tables
        settings: Optional settings dict (defaults to config.settings_conf)

    Returns:
        The initialized connection pool

    Raises:
        ValueError: If database URL is not provided
        DatabaseError: If initialization fails
    """
    global _pool

    if settings is None:
        # Import here to avoid circular imports
        from config import settings_conf
        settings = settings_conf

    url = db_url or settings.get('db_url')
    if not url:
        raise ValueError("Database URL not provided")

    try:
        _pool = await create_pool(
            url,
            min_size=settings.get('db_pool_min_size', 2),
            max_size=settings.get('db_pool_max_size', 10),
            command_timeout=float(settings.get('db_command_timeout', 60))
        )

        schema_manager = SchemaManager(_pool)
        if force_recreate:
            logger.info("Force recreate requested. Dropping all tables...")
            await schema_manager.reset()
        await schema_manager.initialize()

    except DatabaseSchemaError:
        await close()
        raise
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        await close()
        raise DatabaseError(f"Database initialization failed: {e}")

    logger.info("Database initialized")
    return _pool

def get_pool() -> asyncpg.Pool:
    """Get the database connection pool.

    Returns:
        The connection pool

    Raises:
        DatabaseNotInitializedError: If init_db() hasn't run
    """
    if not _pool:
        raise DatabaseNotInitializedError("Database pool has not been initialized")
    return _pool

async def ping(pool) -> None:
    """Run a trivial query to prove the database is reachable.

    Raises:
        DatabaseError: If the query fails
    """
    try:
        async with pool.acquire() as conn:
            await conn.fetchval('SELECT 1')
    except Exception as e:
        raise DatabaseError(str(e))

async def close() -> None:
    """Close the database connection pool."""
    global _pool

    if _pool:
        await _pool.close()
        _pool = None

# Export public interface
__all__ = [
    'init_db',
    'create_pool',
    'get_pool',
    'ping',
    'close',
    'DatabaseError',
    'DatabaseSchemaError',
    'DatabaseNotInitializedError'
]
