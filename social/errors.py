"""Social feature error types."""

class SocialError(Exception):
    """Base exception for reviews, favorites and notifications."""
    pass

class SocialValidationError(SocialError):
    """Raised when input is out of range or references unknown records."""
    pass

class NotificationNotFoundError(SocialError):
    """Raised when a notification does not exist."""
    pass
