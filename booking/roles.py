"""
Closed role variant for authorization checks.

A user is either a ClientRole or a ProfessionalRole carrying its specialty.
Authorization code dispatches with ``match`` and finishes with
``assert_never`` so a new variant is a type error at every check that does
not handle it.
"""

from dataclasses import dataclass
from typing import Protocol, TypeAlias, assert_never

from booking.errors import AuthorizationError
from database.models import CreatedBy, UserType


@dataclass(frozen=True)
class ClientRole:
    """Horse owner."""


@dataclass(frozen=True)
class ProfessionalRole:
    """Equestrian professional with a specialty (vet, farrier, ...)."""

    specialty: UserType


Role: TypeAlias = ClientRole | ProfessionalRole


class _HasUserType(Protocol):
    user_type: UserType


class _HasParties(Protocol):
    client_id: int
    professional_id: int


def role_for(user: _HasUserType) -> Role:
    """Build the role variant from a user's stored type."""
    user_type = UserType(user.user_type)
    if user_type is UserType.CLIENT:
        return ClientRole()
    return ProfessionalRole(specialty=user_type)


def is_professional(role: Role) -> bool:
    match role:
        case ClientRole():
            return False
        case ProfessionalRole():
            return True
        case _:
            assert_never(role)


def created_by_for(role: Role) -> CreatedBy:
    """Provenance value stored on appointments created by this role."""
    match role:
        case ClientRole():
            return CreatedBy.CLIENT
        case ProfessionalRole():
            return CreatedBy.PROFESSIONAL
        case _:
            assert_never(role)


def require_client(role: Role, action: str) -> None:
    match role:
        case ClientRole():
            return
        case ProfessionalRole():
            raise AuthorizationError(f"Only clients can {action}")
        case _:
            assert_never(role)


def require_professional(role: Role, action: str) -> UserType:
    """Return the specialty, or raise if the role is not a professional."""
    match role:
        case ProfessionalRole(specialty=specialty):
            return specialty
        case ClientRole():
            raise AuthorizationError(f"Only professionals can {action}")
        case _:
            assert_never(role)


def party_for(record: _HasParties, user_id: int) -> CreatedBy:
    """
    Which side of a two-party record (appointment, connection) the user is on.

    Raises:
        AuthorizationError: If the user is neither the client nor the professional
    """
    if user_id == record.client_id:
        return CreatedBy.CLIENT
    if user_id == record.professional_id:
        return CreatedBy.PROFESSIONAL
    raise AuthorizationError("You are not a participant of this record")
