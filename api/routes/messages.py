"""Direct messaging endpoints."""

from typing import Any

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from api.routes.auth import CurrentUser
from booking.services import message_service

router = APIRouter(prefix="/api/messages", tags=["messages"])


class SendMessageRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)


@router.get("")
async def list_conversations(current_user: CurrentUser) -> list[dict[str, Any]]:
    return await message_service.list_conversations(current_user)


@router.get("/unread-count")
async def unread_count(current_user: CurrentUser) -> dict[str, int]:
    return {"count": await message_service.count_unread_messages(current_user.id)}


@router.get("/{user_id}")
async def get_conversation(user_id: int, current_user: CurrentUser) -> list[dict[str, Any]]:
    return await message_service.get_conversation(current_user, user_id)


@router.post("/{user_id}", status_code=status.HTTP_201_CREATED)
async def send_message(
    user_id: int,
    request: SendMessageRequest,
    current_user: CurrentUser,
) -> dict[str, Any]:
    return await message_service.send_message(current_user, user_id, request.content)
