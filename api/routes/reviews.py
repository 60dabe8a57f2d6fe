"""Review endpoints."""

from typing import Any

from fastapi import APIRouter, Response, status
from pydantic import BaseModel, Field

from api.routes.auth import CurrentUser
from booking.services import review_service

router = APIRouter(prefix="/api/reviews", tags=["reviews"])


class CreateReviewRequest(BaseModel):
    professional_id: int
    rating: int = Field(..., ge=1, le=5)
    comment: str | None = Field(None, max_length=2000)
    appointment_id: int | None = None


class UpdateReviewRequest(BaseModel):
    rating: int | None = Field(None, ge=1, le=5)
    comment: str | None = Field(None, max_length=2000)


@router.get("")
async def list_my_reviews(current_user: CurrentUser) -> list[dict[str, Any]]:
    return await review_service.list_client_reviews(current_user.id)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_review(request: CreateReviewRequest, current_user: CurrentUser) -> dict[str, Any]:
    return await review_service.create_review(
        current_user,
        professional_id=request.professional_id,
        rating=request.rating,
        comment=request.comment,
        appointment_id=request.appointment_id,
    )


@router.get("/professional/{professional_id}")
async def list_professional_reviews(professional_id: int) -> dict[str, Any]:
    """Public: no session required."""
    return await review_service.list_professional_reviews(professional_id)


@router.get("/can-review/{appointment_id}")
async def can_review(appointment_id: int, current_user: CurrentUser) -> dict[str, Any]:
    return await review_service.can_review(current_user, appointment_id)


@router.put("/{review_id}")
async def update_review(
    review_id: int,
    request: UpdateReviewRequest,
    current_user: CurrentUser,
) -> dict[str, Any]:
    return await review_service.update_review(
        current_user, review_id, rating=request.rating, comment=request.comment
    )


@router.delete("/{review_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_review(review_id: int, current_user: CurrentUser) -> Response:
    await review_service.delete_review(current_user, review_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
