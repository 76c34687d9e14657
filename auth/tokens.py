"""Session token issuance and verification (HS256 JWT)."""

import time
from typing import Dict, Any, Callable, Optional

from jose import jwt, JWTError, ExpiredSignatureError

from .errors import InvalidTokenError, TokenExpiredError

JWT_ALGORITHM = "HS256"

class TokenIssuer:
    """Signs and verifies session tokens for resolved identities."""

    def __init__(
        self,
        secret: str,
        expiry_hours: int = 72,
        clock: Optional[Callable[[], float]] = None
    ):
        self.secret = secret
        self.expiry_seconds = expiry_hours * 3600
        self._clock = clock or time.time

    def issue(self, identity: Dict[str, Any]) -> str:
        """Issue a token carrying the user id and merchant flag."""
        return jwt.encode(
            {
                'user_id': identity['user_id'],
                'is_merchant': identity['is_merchant'],
                'exp': int(self._clock()) + self.expiry_seconds
            },
            self.secret,
            algorithm=JWT_ALGORITHM
        )

    def verify(self, token: str) -> Dict[str, Any]:
        """Decode a token.

        Returns:
            The token claims

        Raises:
            TokenExpiredError: If the token has expired
            InvalidTokenError: If the token is malformed or the signature is wrong
        """
        try:
            claims = jwt.decode(token, self.secret, algorithms=[JWT_ALGORITHM])
        except ExpiredSignatureError:
            raise TokenExpiredError("Session has expired")
        except JWTError as e:
            raise InvalidTokenError(f"Invalid token: {str(e)}")

        if 'user_id' not in claims:
            raise InvalidTokenError("Invalid token: missing user_id")
        return claims
