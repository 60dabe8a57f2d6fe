"""User directory and profile endpoints."""

from typing import Any

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from api.routes.auth import CurrentUser
from booking.services import user_service
from database.models import UserType

router = APIRouter(prefix="/api/users", tags=["users"])


class UpdateProfileRequest(BaseModel):
    full_name: str | None = Field(None, min_length=1, max_length=150)
    phone: str | None = None
    location: str | None = None
    bio: str | None = None
    profile_image_url: str | None = None


@router.get("/professionals")
async def list_professionals(
    current_user: CurrentUser,
    user_type: UserType | None = None,
    search: str | None = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> list[dict[str, Any]]:
    return await user_service.list_professionals(
        user_type=user_type, search=search, limit=limit, offset=offset
    )


@router.put("/me")
async def update_my_profile(
    request: UpdateProfileRequest,
    current_user: CurrentUser,
) -> dict[str, Any]:
    return await user_service.update_profile(
        current_user.id, request.model_dump(exclude_unset=True)
    )


@router.get("/{user_id}")
async def get_profile(user_id: int, current_user: CurrentUser) -> dict[str, Any]:
    return await user_service.get_public_profile(user_id)
