"""Social features: merchant reviews, favorites and notifications."""

from .errors import SocialError, SocialValidationError, NotificationNotFoundError
from .reviews import ReviewManager, MIN_RATING, MAX_RATING
from .favorites import FavoriteManager
from .notifications import NotificationManager

__all__ = [
    'ReviewManager',
    'FavoriteManager',
    'NotificationManager',
    'SocialError',
    'SocialValidationError',
    'NotificationNotFoundError',
    'MIN_RATING',
    'MAX_RATING'
]
