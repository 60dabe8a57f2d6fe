"""Professional dashboard statistics."""

from typing import Any

from fastapi import APIRouter

from api.dependencies import SubscribedUser
from booking.services.statistics_service import get_professional_statistics

router = APIRouter(prefix="/api/statistics", tags=["statistics"])


@router.get("/professional")
async def professional_statistics(current_user: SubscribedUser) -> dict[str, Any]:
    return await get_professional_statistics(current_user)
