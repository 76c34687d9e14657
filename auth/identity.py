"""Identity resolution for provider logins and verified phone numbers.

Maps an external credential (provider + provider id, or a phone number) to a
stable internal user id, creating the user on first sight. Concurrent first
logins for the same credential race on the (auth_provider, auth_id) unique
constraint; the loser reads back the winner's row instead of creating a
duplicate.
"""

import logging
import uuid
from typing import Dict, Any, Optional

from asyncpg.exceptions import UniqueViolationError

from .errors import AuthError, ValidationError

logger = logging.getLogger(__name__)

PHONE_PROVIDER = 'phone'

def new_user_id() -> str:
    """Generate a fresh opaque user id."""
    return f"user_{uuid.uuid4().hex}"

class IdentityResolver:
    """Finds or creates users keyed by external credentials."""

    def __init__(self, pool):
        """Initialize identity resolver.

        Args:
            pool: Database connection pool
        """
        self.pool = pool

    async def resolve(
        self,
        auth_provider: str,
        auth_id: str,
        email: Optional[str] = None,
        wallet_address: Optional[str] = None
    ) -> Dict[str, Any]:
        """Resolve a provider login to an internal identity.

        Args:
            auth_provider: Login provider ("google", "line", "crypto", ...)
            auth_id: The provider's user id or wallet address
            email: Optional email stored on first login
            wallet_address: Optional wallet address stored on first login

        Returns:
            Dict containing:
                - user_id: Stable internal user id
                - is_merchant: Current merchant flag
                - created: True if the user was created by this call

        Raises:
            ValidationError: If provider or id is missing
            AuthError: If storage fails
        """
        if not auth_provider or not auth_id:
            raise ValidationError("auth_provider and auth_id are required")

        return await self._find_or_create(
            auth_provider,
            auth_id,
            email=email,
            wallet_address=wallet_address
        )

    async def resolve_phone(self, phone: str) -> Dict[str, Any]:
        """Resolve a verified phone number to an internal identity."""
        if not phone:
            raise ValidationError("phone is required")

        # Keyed by (provider, auth_id) like every other login, not by users.phone:
        # a phone stored on a provider account never logs into that account
        return await self._find_or_create(PHONE_PROVIDER, phone, phone=phone)

    async def _find_or_create(
        self,
        auth_provider: str,
        auth_id: str,
        email: Optional[str] = None,
        wallet_address: Optional[str] = None,
        phone: Optional[str] = None
    ) -> Dict[str, Any]:
        try:
            async with self.pool.acquire() as conn:
                row = await self._fetch_user(conn, auth_provider, auth_id)
                if row:
                    return {'user_id': row['id'], 'is_merchant': row['is_merchant'], 'created': False}

                user_id = new_user_id()
                try:
                    await conn.execute(
                        '''
                        INSERT INTO users (
                            id, email, auth_provider, auth_id,
                            wallet_address, phone, phone_verified
                        ) VALUES ($1, $2, $3, $4, $5, $6, $7)
                        ''',
                        user_id,
                        email,
                        auth_provider,
                        auth_id,
                        wallet_address,
                        phone,
                        phone is not None
                    )
                except UniqueViolationError:
                    # Lost a race with a concurrent first login
                    row = await self._fetch_user(conn, auth_provider, auth_id)
                    if not row:
                        raise AuthError(f"User for {auth_provider} vanished after conflict")
                    logger.info(f"Concurrent login for {auth_provider} resolved to {row['id']}")
                    return {'user_id': row['id'], 'is_merchant': row['is_merchant'], 'created': False}

                logger.info(f"New user created: {user_id} ({auth_provider})")
                return {'user_id': user_id, 'is_merchant': False, 'created': True}

        except AuthError:
            raise
        except Exception as e:
            logger.error(f"Error resolving identity for {auth_provider}: {e}")
            raise AuthError(f"Failed to resolve user: {str(e)}")

    async def _fetch_user(self, conn, auth_provider: str, auth_id: str):
        return await conn.fetchrow(
            '''
            SELECT id, is_merchant
            FROM users
            WHERE auth_provider = $1 AND auth_id = $2
            ''',
            auth_provider,
            auth_id
        )
