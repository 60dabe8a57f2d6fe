"""
In-app notification service.

Notifications are written by other services inside their own unit of work
(``add_notification`` takes the caller's session and never commits), so a
notification exists if and only if the change that caused it was committed.
"""

import logging
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from booking.errors import NotFoundError
from booking.serializers import notification_to_dict
from database.connection import get_async_session
from database.models import Notification, NotificationType

logger = logging.getLogger(__name__)


def add_notification(
    session: AsyncSession,
    user_id: int,
    notification_type: NotificationType,
    title: str,
    message: str,
    entity_type: str | None = None,
    entity_id: int | None = None,
) -> Notification:
    """Stage a notification on the caller's session."""
    notification = Notification(
        user_id=user_id,
        type=notification_type,
        title=title,
        message=message,
        entity_type=entity_type,
        entity_id=entity_id,
        is_read=False,
    )
    session.add(notification)
    logger.debug(
        f"Notification staged: type={notification_type.value}, user={user_id}, "
        f"entity={entity_type}:{entity_id}"
    )
    return notification


async def list_notifications(
    user_id: int,
    unread_only: bool = False,
    limit: int = 50,
) -> list[dict[str, Any]]:
    async with get_async_session() as session:
        query = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            query = query.where(Notification.is_read.is_(False))
        query = query.order_by(Notification.created_at.desc()).limit(limit)

        result = await session.execute(query)
        return [notification_to_dict(n) for n in result.scalars().all()]


async def count_unread_notifications(user_id: int) -> int:
    async with get_async_session() as session:
        result = await session.execute(
            select(func.count(Notification.id)).where(
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
        )
        return result.scalar_one()


async def mark_notification_read(user_id: int, notification_id: int) -> dict[str, Any]:
    """
    Mark one notification as read.

    Raises:
        NotFoundError: Notification missing or owned by someone else
    """
    async with get_async_session() as session:
        notification = await session.get(Notification, notification_id)
        if notification is None or notification.user_id != user_id:
            raise NotFoundError("Notification", notification_id)

        notification.is_read = True
        await session.commit()
        return notification_to_dict(notification)


async def mark_all_notifications_read(user_id: int) -> int:
    """Returns the number of notifications updated."""
    async with get_async_session() as session:
        result = await session.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True)
        )
        await session.commit()
        return result.rowcount or 0
