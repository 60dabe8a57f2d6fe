"""Unit tests for the role variant and the label table."""

import pytest

from booking.errors import AuthorizationError
from booking.labels import LABELS, label_for
from booking.roles import (
    ClientRole,
    ProfessionalRole,
    created_by_for,
    is_professional,
    party_for,
    require_client,
    require_professional,
    role_for,
)
from database.models import (
    AppointmentStatus,
    ConnectionStatus,
    CreatedBy,
    PaymentStatus,
    ServiceType,
    UserType,
)


class TestRoles:
    def test_client_role(self, client_user):
        role = role_for(client_user)
        assert role == ClientRole()
        assert not is_professional(role)
        assert created_by_for(role) == CreatedBy.CLIENT

    @pytest.mark.parametrize("user_type", [t for t in UserType if t is not UserType.CLIENT])
    def test_every_specialty_is_professional(self, make_user, user_type):
        role = role_for(make_user(5, user_type))
        assert role == ProfessionalRole(specialty=user_type)
        assert is_professional(role)
        assert created_by_for(role) == CreatedBy.PROFESSIONAL

    def test_require_client(self, client_user, professional_user):
        require_client(role_for(client_user), "review")
        with pytest.raises(AuthorizationError) as exc_info:
            require_client(role_for(professional_user), "review")
        assert exc_info.value.message == "Only clients can review"

    def test_require_professional_returns_specialty(self, client_user, professional_user):
        assert require_professional(role_for(professional_user), "add records") == UserType.VET
        with pytest.raises(AuthorizationError):
            require_professional(role_for(client_user), "add records")

    def test_party_for(self, make_appointment):
        appointment = make_appointment()
        assert party_for(appointment, 1) == CreatedBy.CLIENT
        assert party_for(appointment, 2) == CreatedBy.PROFESSIONAL
        with pytest.raises(AuthorizationError):
            party_for(appointment, 3)


class TestLabels:
    @pytest.mark.parametrize("enum_cls", list(LABELS))
    def test_every_member_has_a_label(self, enum_cls):
        assert set(LABELS[enum_cls]) == set(enum_cls)

    def test_same_value_different_enums(self):
        """'pending' means different things for appointments, payments and connections."""
        assert label_for(AppointmentStatus.PENDING) == "Pendiente"
        assert label_for(PaymentStatus.PENDING) == "Pago pendiente"
        assert label_for(ConnectionStatus.PENDING) == "Pendiente"

    def test_service_label(self):
        assert label_for(ServiceType.FARRIER) == "Herraje"

    def test_none(self):
        assert label_for(None) is None
