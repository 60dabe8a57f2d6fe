"""Client <-> professional connection endpoints."""

from typing import Any

from fastapi import APIRouter, Query, Response, status
from pydantic import BaseModel

from api.routes.auth import CurrentUser
from booking.services import connection_service
from database.models import ConnectionStatus

router = APIRouter(prefix="/api/connections", tags=["connections"])


class CreateConnectionRequest(BaseModel):
    professional_id: int


class RespondConnectionRequest(BaseModel):
    status: ConnectionStatus


@router.get("")
async def list_connections(
    current_user: CurrentUser,
    status_filter: ConnectionStatus | None = Query(None, alias="status"),
) -> list[dict[str, Any]]:
    return await connection_service.list_connections(current_user, status_filter)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_connection(
    request: CreateConnectionRequest,
    current_user: CurrentUser,
) -> dict[str, Any]:
    return await connection_service.create_connection(current_user, request.professional_id)


@router.put("/{connection_id}")
async def respond_to_connection(
    connection_id: int,
    request: RespondConnectionRequest,
    current_user: CurrentUser,
) -> dict[str, Any]:
    return await connection_service.respond_to_connection(
        current_user, connection_id, request.status
    )


@router.delete("/{connection_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_connection(connection_id: int, current_user: CurrentUser) -> Response:
    await connection_service.delete_connection(current_user, connection_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
