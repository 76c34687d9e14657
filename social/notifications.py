"""Per-user notification inbox."""

import logging
from typing import Dict, Any, Optional

from asyncpg.exceptions import ForeignKeyViolationError

from .errors import SocialError, SocialValidationError, NotificationNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_TYPE = 'general'

def notification_to_dict(row) -> Dict[str, Any]:
    return {
        'id': row['id'],
        'user_id': row['user_id'],
        'title': row['title'],
        'body': row['body'],
        'type': row['type'],
        'is_read': row['is_read'],
        'created_at': row['created_at'].isoformat() if row['created_at'] else None
    }

class NotificationManager:
    """Creates, lists and marks notifications."""

    def __init__(self, pool, list_limit: int = 50):
        self.pool = pool
        self.list_limit = list_limit

    async def create(
        self,
        user_id: str,
        title: str,
        body: Optional[str] = None,
        type: str = DEFAULT_TYPE
    ) -> int:
        """Create a notification.

        Returns:
            The new notification id

        Raises:
            SocialValidationError: If fields are missing or the user is unknown
            SocialError: If storage fails
        """
        if not user_id or not title:
            raise SocialValidationError("user_id and title are required")

        try:
            async with self.pool.acquire() as conn:
                notification_id = await conn.fetchval(
                    '''
                    INSERT INTO notifications (user_id, title, body, type)
                    VALUES ($1, $2, $3, $4)
                    RETURNING id
                    ''',
                    user_id,
                    title,
                    body,
                    type or DEFAULT_TYPE
                )
        except ForeignKeyViolationError:
            raise SocialValidationError(f"Unknown user {user_id}")
        except Exception as e:
            logger.error(f"Error creating notification for {user_id}: {e}")
            raise SocialError(f"Failed to create notification: {str(e)}")

        return notification_id

    async def list_by_user(self, user_id: str, limit: Optional[int] = None) -> Dict[str, Any]:
        """List a user's notifications, newest first.

        Returns:
            Dict containing:
                - notifications: Up to limit notifications
                - unread_count: Unread notifications across the whole inbox
        """
        limit = limit or self.list_limit
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    '''
                    SELECT id, user_id, title, body, type, is_read, created_at
                    FROM notifications
                    WHERE user_id = $1
                    ORDER BY created_at DESC, id DESC
                    LIMIT $2
                    ''',
                    user_id,
                    limit
                )
                unread_count = await conn.fetchval(
                    'SELECT COUNT(*) FROM notifications WHERE user_id = $1 AND NOT is_read',
                    user_id
                )
        except Exception as e:
            logger.error(f"Error listing notifications for {user_id}: {e}")
            raise SocialError(f"Failed to list notifications: {str(e)}")

        return {
            'notifications': [notification_to_dict(row) for row in rows],
            'unread_count': unread_count or 0
        }

    async def mark_read(self, notification_id: int) -> None:
        """Mark a notification as read.

        Raises:
            NotificationNotFoundError: If the notification doesn't exist
        """
        try:
            async with self.pool.acquire() as conn:
                updated = await conn.fetchval(
                    'UPDATE notifications SET is_read = true WHERE id = $1 RETURNING id',
                    notification_id
                )
        except Exception as e:
            logger.error(f"Error marking notification {notification_id} read: {e}")
            raise SocialError(f"Failed to update notification: {str(e)}")

        if updated is None:
            raise NotificationNotFoundError(f"Notification {notification_id} not found")
