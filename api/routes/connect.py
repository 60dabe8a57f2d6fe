"""Stripe Connect onboarding endpoints for professionals."""

from typing import Any

from fastapi import APIRouter

from api.routes.auth import CurrentUser
from booking.services import connect_service

router = APIRouter(prefix="/api/connect", tags=["connect"])


@router.post("/create-account")
async def create_account(current_user: CurrentUser) -> dict[str, Any]:
    return await connect_service.create_account(current_user)


@router.post("/account-link")
async def account_link(current_user: CurrentUser) -> dict[str, Any]:
    return await connect_service.create_onboarding_link(current_user)


@router.get("/account-status")
async def account_status(current_user: CurrentUser) -> dict[str, Any]:
    return await connect_service.get_account_status(current_user)


@router.get("/check-requirement")
async def check_requirement(current_user: CurrentUser) -> dict[str, Any]:
    return connect_service.check_requirement(current_user)
