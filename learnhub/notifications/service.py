# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Notification service layer.

Business logic for:
- Creating notifications for learning milestones
- Listing user notifications with pagination
- Marking notifications as read
- Tracking unread counts
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

import orjson
import structlog
from redis.exceptions import RedisError

from learnhub.core.errors import ValidationError
from learnhub.core.redis import notification_channel
from learnhub.notifications.models import (
    Notification,
    NotificationType,
    create_notification,
)
from learnhub.notifications.schemas import (
    NotificationListResponse,
    NotificationResponse,
    decode_cursor,
    encode_cursor,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session
    from redis.asyncio import Redis

logger = structlog.get_logger(__name__)

UNREAD_CACHE_TTL_SECONDS = 300
MARK_READ_SCAN_LIMIT = 1000


class InvalidCursorError(ValidationError):
    def __init__(self, message: str = "Invalid pagination cursor"):
        super().__init__(message, "invalid_cursor")


class NotificationService:
    """Service for notification management."""

    def __init__(self, session: "Session", keyspace: str, redis: "Redis | None" = None):
        """Initialize with Cassandra session and optional Redis."""
        self.session = session
        self.keyspace = keyspace
        self.redis = redis
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        self._insert_notification = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.notifications
            (user_id, notification_id, type, title, message, reference_id,
             reference_type, reference_url, course_id, is_read, read_at,
             created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._get_notifications = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.notifications
            WHERE user_id = ?
            LIMIT ?
        """)

        # Clustering order is created_at DESC, so "older than cursor" is <
        self._get_notifications_cursor = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.notifications
            WHERE user_id = ? AND created_at < ?
            LIMIT ?
        """)

        self._mark_read = self.session.prepare(f"""
            UPDATE {self.keyspace}.notifications
            SET is_read = true, read_at = ?
            WHERE user_id = ? AND created_at = ? AND notification_id = ?
        """)

        self._incr_unread = self.session.prepare(f"""
            UPDATE {self.keyspace}.notification_unread_counts
            SET count = count + 1
            WHERE user_id = ?
        """)

        self._decr_unread = self.session.prepare(f"""
            UPDATE {self.keyspace}.notification_unread_counts
            SET count = count - ?
            WHERE user_id = ?
        """)

        self._get_unread_count = self.session.prepare(f"""
            SELECT count FROM {self.keyspace}.notification_unread_counts
            WHERE user_id = ?
        """)

    # ==========================================================================
    # Notification Creation
    # ==========================================================================

    async def create_notification(self, notification: Notification) -> Notification:
        """Persist a notification and push it to the user's channel."""
        await self.session.aexecute(
            self._insert_notification,
            [
                notification.user_id,
                notification.notification_id,
                notification.type.value,
                notification.title,
                notification.message,
                notification.reference_id,
                notification.reference_type,
                notification.reference_url,
                notification.course_id,
                notification.is_read,
                notification.read_at,
                notification.created_at,
            ],
        )

        await self.session.aexecute(self._incr_unread, [notification.user_id])

        await self._invalidate_cache(notification.user_id)
        await self._publish_notification(notification)

        logger.info(
            "notification_created",
            notification_id=str(notification.notification_id),
            notification_type=notification.type.value,
            recipient_id=str(notification.user_id),
        )
        return notification

    async def _publish_notification(self, notification: Notification) -> None:
        """Publish notification to Redis Pub/Sub for real-time delivery."""
        if not self.redis:
            return

        message = {"type": "notification", "data": notification.to_dict()}
        try:
            await self.redis.publish(
                notification_channel(notification.user_id), orjson.dumps(message)
            )
        except RedisError as e:
            # Stored notification is the source of truth
            logger.warning(
                "notification_publish_failed",
                notification_id=str(notification.notification_id),
                error=str(e),
            )

    async def notify_system(
        self,
        user_id: UUID,
        title: str,
        message: str,
    ) -> Notification:
        """Create a system notification."""
        notification = create_notification(
            user_id=user_id,
            notification_type=NotificationType.SYSTEM,
            title=title,
            message=message,
        )
        return await self.create_notification(notification)

    # ==========================================================================
    # Notification Reading
    # ==========================================================================

    async def get_notifications(
        self,
        user_id: UUID,
        limit: int = 20,
        cursor: str | None = None,
        unread_only: bool = False,
    ) -> NotificationListResponse:
        """Get notifications for a user with pagination."""
        if cursor:
            try:
                created_at, _ = decode_cursor(cursor)
            except ValueError as e:
                raise InvalidCursorError() from e
            rows = await self.session.aexecute(
                self._get_notifications_cursor,
                [user_id, created_at, limit + 1],
            )
        else:
            rows = await self.session.aexecute(
                self._get_notifications,
                [user_id, limit + 1],
            )

        notifications = [
            Notification.from_row(row)
            for row in rows
            if not (unread_only and row.is_read)
        ]

        has_more = len(notifications) > limit
        if has_more:
            notifications = notifications[:limit]

        next_cursor = None
        if has_more and notifications:
            last = notifications[-1]
            next_cursor = encode_cursor(last.created_at, last.notification_id)

        return NotificationListResponse(
            items=[NotificationResponse.from_notification(n) for n in notifications],
            unread_count=await self.get_unread_count(user_id),
            has_more=has_more,
            next_cursor=next_cursor,
        )

    async def get_unread_count(self, user_id: UUID) -> int:
        """Get unread notification count for user."""
        cache_key = f"notifications:unread:{user_id}"
        if self.redis:
            cached = await self.redis.get(cache_key)
            if cached:
                return int(cached)

        result = await self.session.aexecute(self._get_unread_count, [user_id])
        row = result.one()
        count = max(row.count, 0) if row and row.count else 0

        if self.redis:
            await self.redis.setex(cache_key, UNREAD_CACHE_TTL_SECONDS, str(count))

        return count

    # ==========================================================================
    # Mark as Read
    # ==========================================================================

    async def mark_as_read(
        self,
        user_id: UUID,
        notification_ids: list[UUID],
    ) -> int:
        """Mark specific notifications as read.

        Returns count of notifications marked as read.
        """
        wanted = set(notification_ids)
        return await self._mark_matching(
            user_id, lambda row: row.notification_id in wanted
        )

    async def mark_all_as_read(self, user_id: UUID) -> int:
        """Mark all notifications as read for user.

        Returns count of notifications marked as read.
        """
        return await self._mark_matching(user_id, lambda row: True)

    async def _mark_matching(self, user_id: UUID, predicate) -> int:
        now = datetime.now(UTC)
        marked = 0

        # Rows are keyed by created_at, so the recent window is scanned
        rows = await self.session.aexecute(
            self._get_notifications, [user_id, MARK_READ_SCAN_LIMIT]
        )
        for row in rows:
            if row.is_read or not predicate(row):
                continue
            await self.session.aexecute(
                self._mark_read,
                [now, user_id, row.created_at, row.notification_id],
            )
            marked += 1

        if marked > 0:
            await self.session.aexecute(self._decr_unread, [marked, user_id])
            await self._invalidate_cache(user_id)
            logger.info("notifications_marked_read", count=marked)

        return marked

    # ==========================================================================
    # Cache Management
    # ==========================================================================

    async def _invalidate_cache(self, user_id: UUID) -> None:
        """Invalidate notification cache for user."""
        if not self.redis:
            return

        await self.redis.delete(f"notifications:unread:{user_id}")
