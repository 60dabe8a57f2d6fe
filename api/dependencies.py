"""Shared route dependencies."""

from typing import Annotated

from fastapi import Depends

from api.routes.auth import get_current_user
from booking.errors import AuthorizationError
from booking.services.subscription_service import has_active_subscription
from booking.utils.dates import now_utc
from database.models import User


async def require_active_subscription(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """
    Gate professional premium features (AI assistant, statistics).

    Clients always pass; professionals need an unexpired subscription.
    """
    if not has_active_subscription(current_user, now_utc()):
        raise AuthorizationError("An active subscription is required for this feature")
    return current_user


SubscribedUser = Annotated[User, Depends(require_active_subscription)]
