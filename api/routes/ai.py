"""AI assistant endpoints."""

from typing import Any, Literal

from fastapi import APIRouter
from pydantic import BaseModel, Field

from api.dependencies import SubscribedUser
from api.routes.auth import CurrentUser
from booking.services.ai_assistant_service import ask_assistant

router = APIRouter(prefix="/api/ai", tags=["ai"])


class HistoryEntry(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1)
    history: list[HistoryEntry] = Field(default_factory=list)


@router.post("/chat")
async def chat(request: ChatRequest, current_user: CurrentUser) -> dict[str, Any]:
    return await ask_assistant(
        current_user, request.message, [entry.model_dump() for entry in request.history]
    )


@router.post("/assistant")
async def professional_assistant(request: ChatRequest, current_user: SubscribedUser) -> dict[str, Any]:
    """Same assistant, gated behind an active professional subscription."""
    return await ask_assistant(
        current_user, request.message, [entry.model_dump() for entry in request.history]
    )
