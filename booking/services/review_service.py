"""
Review service - client ratings of professionals.

A client may leave one review per professional, and only after a completed
appointment with them. The unique constraint on (client_id, professional_id)
backs the service check.
"""

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from booking.errors import AuthorizationError, BookingValidationError, NotFoundError
from booking.roles import require_client, role_for
from booking.serializers import review_to_dict
from booking.services.notification_service import add_notification
from booking.services.user_service import get_user
from booking.validators import validate_rating
from database.connection import get_async_session
from database.models import Appointment, AppointmentStatus, NotificationType, Review, User

logger = logging.getLogger(__name__)


def average_rating(ratings: list[int]) -> float | None:
    """Arithmetic mean rounded to two decimals; None when there are no ratings."""
    if not ratings:
        return None
    return round(sum(ratings) / len(ratings), 2)


async def _has_completed_appointment(
    session: AsyncSession,
    client_id: int,
    professional_id: int,
) -> bool:
    result = await session.execute(
        select(Appointment.id)
        .where(
            Appointment.client_id == client_id,
            Appointment.professional_id == professional_id,
            Appointment.status == AppointmentStatus.COMPLETED,
        )
        .limit(1)
    )
    return result.first() is not None


async def _existing_review(
    session: AsyncSession,
    client_id: int,
    professional_id: int,
) -> Review | None:
    result = await session.execute(
        select(Review).where(
            Review.client_id == client_id,
            Review.professional_id == professional_id,
        )
    )
    return result.scalar_one_or_none()


async def create_review(
    actor: User,
    professional_id: int,
    rating: int,
    comment: str | None = None,
    appointment_id: int | None = None,
) -> dict[str, Any]:
    """
    Raises:
        AuthorizationError: Actor is not a client
        NotFoundError: Professional or referenced appointment missing
        BookingValidationError: Bad rating, no completed appointment, or
            the client already reviewed this professional
    """
    require_client(role_for(actor), "write reviews")
    rating = validate_rating(rating)

    async with get_async_session() as session:
        professional = await get_user(session, professional_id)
        if not professional.is_professional:
            raise BookingValidationError("Only professionals can be reviewed")

        if appointment_id is not None:
            appointment = await session.get(Appointment, appointment_id)
            if (
                appointment is None
                or appointment.client_id != actor.id
                or appointment.professional_id != professional_id
            ):
                raise NotFoundError("Appointment", appointment_id)
            if appointment.status != AppointmentStatus.COMPLETED:
                raise BookingValidationError("Only completed appointments can be reviewed")
        elif not await _has_completed_appointment(session, actor.id, professional_id):
            raise BookingValidationError(
                "You need a completed appointment with this professional to review them"
            )

        if await _existing_review(session, actor.id, professional_id) is not None:
            raise BookingValidationError("You have already reviewed this professional")

        review = Review(
            client_id=actor.id,
            professional_id=professional_id,
            appointment_id=appointment_id,
            rating=rating,
            comment=comment,
        )
        session.add(review)
        try:
            await session.flush()
        except IntegrityError as e:
            # Concurrent review by the same client
            raise BookingValidationError("You have already reviewed this professional") from e

        add_notification(
            session,
            user_id=professional_id,
            notification_type=NotificationType.REVIEW_RECEIVED,
            title="Nueva valoración",
            message=f"{actor.full_name} te ha valorado con {rating} estrellas",
            entity_type="review",
            entity_id=review.id,
        )
        await session.commit()

        logger.info(
            f"Review {review.id} created: client={actor.id}, professional={professional_id}, rating={rating}",
            extra={"user_id": actor.id},
        )
        return review_to_dict(review, author=actor)


async def _load_own_review(session: AsyncSession, review_id: int, user_id: int) -> Review:
    review = await session.get(Review, review_id)
    if review is None:
        raise NotFoundError("Review", review_id)
    if review.client_id != user_id:
        raise AuthorizationError("Only the author can modify this review")
    return review


async def update_review(
    actor: User,
    review_id: int,
    rating: int | None = None,
    comment: str | None = None,
) -> dict[str, Any]:
    async with get_async_session() as session:
        review = await _load_own_review(session, review_id, actor.id)
        if rating is not None:
            review.rating = validate_rating(rating)
        if comment is not None:
            review.comment = comment
        await session.commit()
        return review_to_dict(review, author=actor)


async def delete_review(actor: User, review_id: int) -> None:
    async with get_async_session() as session:
        review = await _load_own_review(session, review_id, actor.id)
        await session.delete(review)
        await session.commit()
    logger.info(f"Review {review_id} deleted by user {actor.id}", extra={"user_id": actor.id})


async def list_professional_reviews(professional_id: int) -> dict[str, Any]:
    """Public reviews of a professional, newest first, with the average rating."""
    async with get_async_session() as session:
        await get_user(session, professional_id)
        result = await session.execute(
            select(Review, User)
            .join(User, User.id == Review.client_id)
            .where(Review.professional_id == professional_id)
            .order_by(Review.created_at.desc())
        )
        rows = result.all()

    return {
        "reviews": [review_to_dict(review, author=author) for review, author in rows],
        "average_rating": average_rating([review.rating for review, _ in rows]),
        "total": len(rows),
    }


async def list_client_reviews(client_id: int) -> list[dict[str, Any]]:
    async with get_async_session() as session:
        result = await session.execute(
            select(Review)
            .where(Review.client_id == client_id)
            .order_by(Review.created_at.desc())
        )
        return [review_to_dict(r) for r in result.scalars().all()]


async def can_review(actor: User, appointment_id: int) -> dict[str, Any]:
    """
    Whether the actor may review the professional of an appointment.

    Returns:
        {"can_review": bool, "reason": str | None, "professional_id": int}
    """
    async with get_async_session() as session:
        appointment = await session.get(Appointment, appointment_id)
        if appointment is None or appointment.client_id != actor.id:
            raise NotFoundError("Appointment", appointment_id)

        reason = None
        if appointment.status != AppointmentStatus.COMPLETED:
            reason = "appointment_not_completed"
        elif await _existing_review(session, actor.id, appointment.professional_id) is not None:
            reason = "already_reviewed"

        return {
            "can_review": reason is None,
            "reason": reason,
            "professional_id": appointment.professional_id,
        }
