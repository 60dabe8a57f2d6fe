"""Subscription plan and discount code endpoints."""

from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel, Field

from api.routes.auth import CurrentUser
from booking.services import discount_service, subscription_service
from database.models import SubscriptionType

router = APIRouter(prefix="/api/subscription", tags=["subscription"])


class CreateSessionRequest(BaseModel):
    plan: SubscriptionType
    return_url: str | None = None
    discount_code: str | None = Field(None, max_length=50)


class UpdatePlanRequest(BaseModel):
    plan: SubscriptionType


class ValidateDiscountRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    plan: SubscriptionType | None = None
    amount: int | None = Field(None, ge=0, description="Cents; derived from plan when omitted")


@router.post("/create-session")
async def create_session(request: CreateSessionRequest, current_user: CurrentUser) -> dict[str, Any]:
    return await subscription_service.create_checkout_session(
        current_user,
        request.plan,
        return_url=request.return_url,
        discount_code=request.discount_code,
    )


@router.post("/update")
async def update_plan(request: UpdatePlanRequest, current_user: CurrentUser) -> dict[str, Any]:
    return await subscription_service.downgrade_to_basic(current_user, request.plan)


@router.post("/cancel")
async def cancel(current_user: CurrentUser) -> dict[str, Any]:
    return await subscription_service.cancel_subscription(current_user)


@router.post("/validate-discount")
async def validate_discount(request: ValidateDiscountRequest, current_user: CurrentUser) -> dict[str, Any]:
    if request.amount is not None:
        amount = request.amount
    else:
        amount = subscription_service.plan_price(
            current_user.is_professional, request.plan or SubscriptionType.PREMIUM
        )
    return await discount_service.validate_discount(current_user, request.code, amount)
