"""Authentication error types."""

class AuthError(Exception):
    """Base exception for authentication errors."""
    pass

class ValidationError(AuthError):
    """Raised when a login or verification request is malformed."""
    pass

class InvalidTokenError(AuthError):
    """Raised when a session token cannot be verified."""
    pass

class TokenExpiredError(InvalidTokenError):
    """Raised when a session token has expired."""
    pass

class CodeVerificationError(AuthError):
    """Base class for one-time code verification failures."""
    pass

class CodeNotRequestedError(CodeVerificationError):
    """Raised when no code is pending for a phone number."""
    pass

class CodeExpiredError(CodeVerificationError):
    """Raised when the pending code has expired."""
    pass

class InvalidCodeError(CodeVerificationError):
    """Raised when the submitted code does not match."""
    pass
