"""
Direct messaging between connected users.

Conversations are not stored as entities; a conversation is the set of
messages between two users. Previews are computed from the message rows.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import and_, func, or_, select, update

from booking.errors import AuthorizationError, BookingValidationError
from booking.serializers import message_to_dict, user_public
from booking.services.connection_service import are_connected
from booking.services.user_service import get_user
from booking.validators import validate_message_content
from database.connection import get_async_session
from database.models import Connection, ConnectionStatus, Message, User

logger = logging.getLogger(__name__)


@dataclass
class ConversationPreview:
    counterpart_id: int
    last_message: Message | None
    unread_count: int

    @property
    def last_activity(self) -> datetime | None:
        return self.last_message.created_at if self.last_message else None


def build_previews(
    messages: list[Message],
    user_id: int,
    connected_ids: list[int] | None = None,
) -> list[ConversationPreview]:
    """
    One preview per counterpart, most recent conversation first.

    Counterparts in ``connected_ids`` without any message are appended at the
    end with no last message.
    """
    latest: dict[int, Message] = {}
    unread: dict[int, int] = {}

    for message in messages:
        counterpart = message.receiver_id if message.sender_id == user_id else message.sender_id
        current = latest.get(counterpart)
        if current is None or message.created_at > current.created_at:
            latest[counterpart] = message
        if message.receiver_id == user_id and not message.is_read:
            unread[counterpart] = unread.get(counterpart, 0) + 1

    previews = [
        ConversationPreview(counterpart, message, unread.get(counterpart, 0))
        for counterpart, message in latest.items()
    ]
    previews.sort(key=lambda p: p.last_message.created_at, reverse=True)

    seen = set(latest)
    for counterpart in connected_ids or []:
        if counterpart not in seen:
            previews.append(ConversationPreview(counterpart, None, 0))
            seen.add(counterpart)

    return previews


async def send_message(sender: User, receiver_id: int, content: str) -> dict[str, Any]:
    """
    Raises:
        BookingValidationError: Messaging yourself or invalid content
        NotFoundError: Receiver does not exist
        AuthorizationError: No accepted connection between the users
    """
    if receiver_id == sender.id:
        raise BookingValidationError("Cannot send a message to yourself")
    content = validate_message_content(content)

    async with get_async_session() as session:
        await get_user(session, receiver_id)
        if not await are_connected(session, sender.id, receiver_id):
            raise AuthorizationError("You can only message users you are connected with")

        message = Message(
            sender_id=sender.id,
            receiver_id=receiver_id,
            content=content,
            is_read=False,
        )
        session.add(message)
        await session.commit()

        logger.debug(f"Message {message.id} sent {sender.id} -> {receiver_id}")
        return message_to_dict(message)


async def get_conversation(user: User, other_user_id: int) -> list[dict[str, Any]]:
    """
    All messages between the two users, oldest first.

    Messages addressed to ``user`` are marked read in the same transaction.
    """
    async with get_async_session() as session:
        await get_user(session, other_user_id)

        result = await session.execute(
            select(Message)
            .where(
                or_(
                    and_(Message.sender_id == user.id, Message.receiver_id == other_user_id),
                    and_(Message.sender_id == other_user_id, Message.receiver_id == user.id),
                )
            )
            .order_by(Message.created_at.asc(), Message.id.asc())
        )
        messages = list(result.scalars().all())

        unread_ids = [m.id for m in messages if m.receiver_id == user.id and not m.is_read]
        if unread_ids:
            await session.execute(
                update(Message).where(Message.id.in_(unread_ids)).values(is_read=True)
            )
            await session.commit()
            for message in messages:
                if message.id in unread_ids:
                    message.is_read = True

        return [message_to_dict(m) for m in messages]


async def list_conversations(user: User) -> list[dict[str, Any]]:
    """Conversation previews for the user, including connected users with no messages yet."""
    async with get_async_session() as session:
        result = await session.execute(
            select(Message).where(
                or_(Message.sender_id == user.id, Message.receiver_id == user.id)
            )
        )
        messages = list(result.scalars().all())

        result = await session.execute(
            select(Connection).where(
                Connection.status == ConnectionStatus.ACCEPTED,
                or_(Connection.client_id == user.id, Connection.professional_id == user.id),
            )
        )
        connected_ids = [
            c.professional_id if c.client_id == user.id else c.client_id
            for c in result.scalars().all()
        ]

        previews = build_previews(messages, user.id, connected_ids)
        counterpart_ids = [p.counterpart_id for p in previews]
        users: dict[int, User] = {}
        if counterpart_ids:
            result = await session.execute(select(User).where(User.id.in_(counterpart_ids)))
            users = {u.id: u for u in result.scalars().all()}

    return [
        {
            "user": user_public(users[p.counterpart_id]) if p.counterpart_id in users else None,
            "user_id": p.counterpart_id,
            "last_message": message_to_dict(p.last_message) if p.last_message else None,
            "unread_count": p.unread_count,
        }
        for p in previews
    ]


async def count_unread_messages(user_id: int) -> int:
    async with get_async_session() as session:
        result = await session.execute(
            select(func.count(Message.id)).where(
                Message.receiver_id == user_id,
                Message.is_read.is_(False),
            )
        )
        return result.scalar_one()
