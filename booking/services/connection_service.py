"""
Connection manager - client <-> professional relationships.

A client requests a connection, the professional accepts or rejects it.
An accepted connection is what allows the pair to book appointments,
exchange messages and share horse records.

Rules:
- Only clients create connections, only towards professionals
- At most one row per pair; a pending or accepted one blocks new requests,
  a rejected one is reopened as pending
- Only the professional responds, only while pending (stamps response_date)
- Either party may delete
"""

import logging
from typing import Any, assert_never

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from booking.errors import AuthorizationError, BookingValidationError, NotFoundError
from booking.roles import ClientRole, ProfessionalRole, party_for, require_client, role_for
from booking.serializers import connection_to_dict
from booking.services.notification_service import add_notification
from booking.services.user_service import get_user
from booking.utils.dates import now_utc
from database.connection import get_async_session
from database.models import Connection, ConnectionStatus, NotificationType, User

logger = logging.getLogger(__name__)

OPEN_STATUSES = (ConnectionStatus.PENDING, ConnectionStatus.ACCEPTED)


# =============================================================================
# Session-level helpers (used by other services)
# =============================================================================


async def get_connection_between(
    session: AsyncSession,
    client_id: int,
    professional_id: int,
) -> Connection | None:
    result = await session.execute(
        select(Connection).where(
            Connection.client_id == client_id,
            Connection.professional_id == professional_id,
        )
    )
    return result.scalar_one_or_none()


async def require_accepted_connection(
    session: AsyncSession,
    client_id: int,
    professional_id: int,
) -> Connection:
    """
    Raises:
        AuthorizationError: If the pair has no accepted connection
    """
    connection = await get_connection_between(session, client_id, professional_id)
    if connection is None or connection.status != ConnectionStatus.ACCEPTED:
        raise AuthorizationError(
            "An accepted connection between client and professional is required"
        )
    return connection


async def are_connected(session: AsyncSession, user_a: int, user_b: int) -> bool:
    """True when the two users share an accepted connection, in either role."""
    result = await session.execute(
        select(Connection.id).where(
            Connection.status == ConnectionStatus.ACCEPTED,
            or_(
                and_(Connection.client_id == user_a, Connection.professional_id == user_b),
                and_(Connection.client_id == user_b, Connection.professional_id == user_a),
            ),
        )
    )
    return result.first() is not None


async def _load_connection_for_party(
    session: AsyncSession,
    connection_id: int,
    user_id: int,
    for_update: bool = False,
) -> Connection:
    connection = await session.get(Connection, connection_id, with_for_update=for_update)
    if connection is None:
        raise NotFoundError("Connection", connection_id)
    try:
        party_for(connection, user_id)
    except AuthorizationError:
        # Other users' connections are not visible
        raise NotFoundError("Connection", connection_id) from None
    return connection


# =============================================================================
# Operations
# =============================================================================


async def create_connection(actor: User, professional_id: int) -> dict[str, Any]:
    """
    Client requests a connection with a professional.

    Raises:
        AuthorizationError: Actor is not a client
        NotFoundError: Professional does not exist
        BookingValidationError: Target is not a professional, or a pending/
            accepted connection already exists
    """
    require_client(role_for(actor), "request connections")
    if professional_id == actor.id:
        raise BookingValidationError("Cannot connect with yourself")

    async with get_async_session() as session:
        professional = await get_user(session, professional_id)
        if not professional.is_professional:
            raise BookingValidationError("User is not a professional")

        connection = await get_connection_between(session, actor.id, professional_id)
        if connection is not None and connection.status in OPEN_STATUSES:
            raise BookingValidationError("Connection already exists")

        if connection is None:
            connection = Connection(
                client_id=actor.id,
                professional_id=professional_id,
                status=ConnectionStatus.PENDING,
                request_date=now_utc(),
            )
            session.add(connection)
        else:
            connection.status = ConnectionStatus.PENDING
            connection.request_date = now_utc()
            connection.response_date = None

        await session.flush()
        add_notification(
            session,
            user_id=professional_id,
            notification_type=NotificationType.CONNECTION_REQUESTED,
            title="Nueva solicitud de conexión",
            message=f"{actor.full_name} quiere conectar contigo",
            entity_type="connection",
            entity_id=connection.id,
        )
        await session.commit()

        logger.info(
            f"Connection requested: client={actor.id} -> professional={professional_id}",
            extra={"connection_id": connection.id, "user_id": actor.id},
        )
        return connection_to_dict(connection, counterpart=professional)


async def respond_to_connection(
    actor: User,
    connection_id: int,
    status: ConnectionStatus | str,
) -> dict[str, Any]:
    """
    Professional accepts or rejects a pending request.

    Raises:
        NotFoundError: Connection missing or actor not part of it
        AuthorizationError: Actor is the client of the connection
        BookingValidationError: Status not accepted/rejected, or not pending
    """
    try:
        new_status = ConnectionStatus(status)
    except ValueError as e:
        raise BookingValidationError(f"Invalid connection status: {status}") from e
    if new_status not in (ConnectionStatus.ACCEPTED, ConnectionStatus.REJECTED):
        raise BookingValidationError("Status must be accepted or rejected")

    async with get_async_session() as session:
        connection = await _load_connection_for_party(
            session, connection_id, actor.id, for_update=True
        )
        if connection.professional_id != actor.id:
            raise AuthorizationError("Only the professional can respond to a connection request")
        if connection.status != ConnectionStatus.PENDING:
            raise BookingValidationError(
                f"Connection is already {connection.status.value}"
            )

        connection.status = new_status
        connection.response_date = now_utc()

        verb = "aceptado" if new_status == ConnectionStatus.ACCEPTED else "rechazado"
        add_notification(
            session,
            user_id=connection.client_id,
            notification_type=NotificationType.CONNECTION_RESPONDED,
            title="Respuesta a tu solicitud de conexión",
            message=f"{actor.full_name} ha {verb} tu solicitud",
            entity_type="connection",
            entity_id=connection.id,
        )
        await session.commit()

        logger.info(
            f"Connection {connection.id} {new_status.value} by professional {actor.id}",
            extra={"connection_id": connection.id, "user_id": actor.id},
        )
        return connection_to_dict(connection)


async def list_connections(
    actor: User,
    status: ConnectionStatus | str | None = None,
) -> list[dict[str, Any]]:
    """Connections of the actor with the counterpart's public profile, newest first."""
    role = role_for(actor)
    match role:
        case ClientRole():
            own_column, counterpart_column = Connection.client_id, Connection.professional_id
        case ProfessionalRole():
            own_column, counterpart_column = Connection.professional_id, Connection.client_id
        case _:
            assert_never(role)

    async with get_async_session() as session:
        query = (
            select(Connection, User)
            .join(User, User.id == counterpart_column)
            .where(own_column == actor.id)
        )
        if status:
            try:
                query = query.where(Connection.status == ConnectionStatus(status))
            except ValueError as e:
                raise BookingValidationError(f"Invalid connection status: {status}") from e
        query = query.order_by(Connection.request_date.desc())

        result = await session.execute(query)
        return [
            connection_to_dict(connection, counterpart=counterpart)
            for connection, counterpart in result.all()
        ]


async def delete_connection(actor: User, connection_id: int) -> None:
    """
    Either party severs the connection.

    Raises:
        NotFoundError: Connection missing or actor not part of it
    """
    async with get_async_session() as session:
        connection = await _load_connection_for_party(session, connection_id, actor.id)
        await session.delete(connection)
        await session.commit()

    logger.info(
        f"Connection {connection_id} deleted by user {actor.id}",
        extra={"connection_id": connection_id, "user_id": actor.id},
    )
