"""Authentication module for provider logins and SMS one-time codes.

This module provides:
1. Identity resolution from external credentials to internal user ids
2. One-time code issuance and verification for phone sign-up
3. Signed session tokens and a dependency for protecting routes
"""

import logging
from typing import Dict, Any

from fastapi import Request, HTTPException, status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from .errors import (
    AuthError,
    ValidationError,
    InvalidTokenError,
    TokenExpiredError,
    CodeVerificationError,
    CodeNotRequestedError,
    CodeExpiredError,
    InvalidCodeError
)
from .identity import IdentityResolver, PHONE_PROVIDER, new_user_id
from .tokens import TokenIssuer
from .codes import (
    CodeCache, MemoryCodeCache, CodeSender, LogCodeSender, CodeVerifier
)

logger = logging.getLogger(__name__)

# FastAPI security scheme
auth_scheme = HTTPBearer(
    auto_error=True,  # Return 401 automatically if token is missing
    description="JWT Bearer token required"
)

async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(auth_scheme)
) -> Dict[str, Any]:
    """FastAPI dependency for getting the authenticated user.

    Args:
        request: The FastAPI request (token issuer is read from app state)
        credentials: Bearer token credentials

    Returns:
        The token claims (user_id, is_merchant, exp)

    Raises:
        HTTPException: If authentication fails
    """
    issuer: TokenIssuer = request.app.state.token_issuer
    try:
        return issuer.verify(credentials.credentials)
    except TokenExpiredError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session has expired"
        )
    except AuthError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e)
        )

# Export public interface
__all__ = [
    'IdentityResolver',
    'TokenIssuer',
    'CodeVerifier',
    'CodeCache',
    'MemoryCodeCache',
    'CodeSender',
    'LogCodeSender',
    'get_current_user',
    'new_user_id',
    'PHONE_PROVIDER',
    'AuthError',
    'ValidationError',
    'InvalidTokenError',
    'TokenExpiredError',
    'CodeVerificationError',
    'CodeNotRequestedError',
    'CodeExpiredError',
    'InvalidCodeError'
]
