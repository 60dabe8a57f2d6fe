"""
Integration tests for the HTTP layer.

Services are patched at the route modules, so these tests cover routing,
authentication, request validation and the error body mapping without a
database.
"""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError

from api.main import app
from api.routes.auth import create_access_token, get_current_user
from booking.errors import (
    AuthorizationError,
    BookingValidationError,
    InvalidTransitionError,
    NotFoundError,
    PaymentProviderError,
)
from database.models import UserType


@pytest.fixture
def as_user():
    """Authenticate every request as the given user."""

    def _login(user):
        app.dependency_overrides[get_current_user] = lambda: user
        return TestClient(app)

    yield _login
    app.dependency_overrides.clear()


class TestAuthentication:
    def test_missing_token_is_401(self):
        response = TestClient(app).get("/api/appointments")

        assert response.status_code == 401
        assert response.json() == {"error": "unauthorized", "detail": "Not authenticated"}

    def test_garbage_token_is_401(self):
        response = TestClient(app).get(
            "/api/notifications", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401

    def test_bearer_token_resolves_user(self, client_user):
        token, _ = create_access_token(client_user.id)

        with patch("api.routes.auth.is_token_blacklisted", AsyncMock(return_value=False)):
            with patch("api.routes.auth.get_user_by_id", AsyncMock(return_value=client_user)):
                response = TestClient(app).get(
                    "/api/auth/session", headers={"Authorization": f"Bearer {token}"}
                )

        assert response.status_code == 200
        assert response.json()["user"]["username"] == "user1"

    def test_login_sets_http_only_cookie(self, client_user):
        with patch("api.routes.auth.authenticate_user", AsyncMock(return_value=client_user)):
            response = TestClient(app).post(
                "/api/auth/login", json={"username": "user1", "password": "segura123"}
            )

        assert response.status_code == 200
        assert response.json()["access_token"]
        assert "httponly" in response.headers["set-cookie"].lower()

    def test_bad_credentials(self):
        with patch("api.routes.auth.authenticate_user", AsyncMock(return_value=None)):
            response = TestClient(app).post(
                "/api/auth/login", json={"username": "user1", "password": "x"}
            )

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid credentials"

    def test_logout_revokes_valid_token(self, client_user):
        token, jti = create_access_token(client_user.id)
        blacklist = AsyncMock()
        client = TestClient(app)
        client.cookies.set("session_token", token)

        with patch("api.routes.auth.blacklist_token", blacklist):
            response = client.post("/api/auth/logout")

        assert response.status_code == 200
        assert blacklist.await_args.args[0] == jti
        assert "session_token=" in response.headers["set-cookie"]

    @pytest.mark.parametrize("cookie", ["expired-or-garbage", None])
    def test_logout_with_stale_session_still_clears_cookie(self, cookie):
        blacklist = AsyncMock()
        client = TestClient(app)
        if cookie:
            client.cookies.set("session_token", cookie)

        with patch("api.routes.auth.blacklist_token", blacklist):
            response = client.post("/api/auth/logout")

        assert response.status_code == 200
        assert response.json() == {"message": "Logged out"}
        assert "session_token=" in response.headers["set-cookie"]
        blacklist.assert_not_awaited()


class TestErrorMapping:
    @pytest.mark.parametrize(
        "error,status_code,code",
        [
            (AuthorizationError("Only the client can confirm"), 403, "forbidden"),
            (NotFoundError("Appointment", 1), 404, "not_found"),
            (BookingValidationError("duration must be positive"), 400, "validation_error"),
            (InvalidTransitionError("completed", "pending"), 400, "validation_error"),
        ],
    )
    def test_domain_errors(self, as_user, client_user, error, status_code, code):
        client = as_user(client_user)

        with patch(
            "api.routes.appointments.appointment_service.get_appointment",
            AsyncMock(side_effect=error),
        ):
            response = client.get("/api/appointments/1")

        assert response.status_code == status_code
        assert response.json() == {"error": code, "detail": error.message}

    def test_provider_error_hides_detail(self, as_user, client_user):
        client = as_user(client_user)

        with patch(
            "api.routes.appointments.payment_service.initiate_payment",
            AsyncMock(side_effect=PaymentProviderError("Your card was declined")),
        ):
            response = client.post("/api/appointments/1/payment-intent")

        assert response.status_code == 502
        assert response.json() == {
            "error": "connection_error",
            "detail": "External service unavailable",
        }

    def test_request_validation_is_400(self, as_user, client_user):
        client = as_user(client_user)

        response = client.post(
            "/api/appointments",
            json={"client_id": 1, "professional_id": 2, "horse_ids": [], "title": "x"},
        )

        body = response.json()
        assert response.status_code == 400
        assert body["error"] == "validation_error"
        assert {tuple(d["loc"]) for d in body["details"]} >= {("body", "horse_ids")}

    def test_unknown_route_is_404(self):
        response = TestClient(app).get("/api/nothing-here")

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_unexpected_error_is_500(self, as_user, client_user):
        app.dependency_overrides[get_current_user] = lambda: client_user
        client = TestClient(app, raise_server_exceptions=False)

        with patch(
            "api.routes.appointments.appointment_service.get_appointment",
            AsyncMock(side_effect=RuntimeError("boom")),
        ):
            response = client.get("/api/appointments/1")

        assert response.status_code == 500
        assert response.json() == {"error": "server_error", "detail": "Internal server error"}


class TestAppointmentRoutes:
    def test_create_passes_horse_order(self, as_user, client_user):
        client = as_user(client_user)
        create = AsyncMock(return_value={"id": 7, "horse_ids": [4, 2]})

        with patch("api.routes.appointments.appointment_service.create_appointment", create):
            response = client.post(
                "/api/appointments",
                json={
                    "client_id": 1,
                    "professional_id": 2,
                    "horse_ids": [4, 2],
                    "service_type": "farrier",
                    "title": "Herraje",
                    "date": "2025-06-02T10:00:00+02:00",
                    "duration": 60,
                },
            )

        assert response.status_code == 201
        assert create.await_args.kwargs["horse_ids"] == [4, 2]

    def test_delete_cancels(self, as_user, client_user):
        client = as_user(client_user)
        transition = AsyncMock(return_value={"id": 1, "status": "cancelled"})

        with patch("api.routes.appointments.appointment_service.transition_appointment", transition):
            response = client.delete("/api/appointments/1", params={"reason": "Lluvia"})

        assert response.status_code == 200
        args = transition.await_args
        assert args.args[1:] == (1, "cancelled")
        assert args.kwargs == {"reason": "Lluvia"}

    def test_list_filters(self, as_user, client_user):
        client = as_user(client_user)
        listing = AsyncMock(return_value=[])

        with patch("api.routes.appointments.appointment_query_service.list_appointments", listing):
            response = client.get(
                "/api/appointments", params={"view": "upcoming", "status": "confirmed"}
            )

        assert response.status_code == 200
        assert listing.await_args.kwargs["view"] == "upcoming"
        assert listing.await_args.kwargs["status"] == "confirmed"

    def test_unknown_view_rejected(self, as_user, client_user):
        response = as_user(client_user).get("/api/appointments", params={"view": "archived"})
        assert response.status_code == 400

    def test_calendar_is_not_an_appointment_id(self, as_user, client_user):
        client = as_user(client_user)
        calendar = AsyncMock(return_value=[])

        with patch("api.routes.appointments.appointment_query_service.get_calendar", calendar):
            response = client.get(
                "/api/appointments/calendar",
                params={"start": "2025-06-01T00:00:00Z", "end": "2025-07-01T00:00:00Z"},
            )

        assert response.status_code == 200
        calendar.assert_awaited_once()

    def test_payment_type_pattern(self, as_user, client_user):
        response = as_user(client_user).post(
            "/api/appointments/1/payment-intent", json={"payment_type": "half"}
        )
        assert response.status_code == 400


class TestStaticRoutesBeforeParams:
    def test_unread_count(self, as_user, client_user):
        client = as_user(client_user)

        with patch(
            "api.routes.messages.message_service.count_unread_messages",
            AsyncMock(return_value=3),
        ):
            response = client.get("/api/messages/unread-count")

        assert response.json() == {"count": 3}

    def test_read_all(self, as_user, client_user):
        client = as_user(client_user)

        with patch(
            "api.routes.notifications.notification_service.mark_all_notifications_read",
            AsyncMock(return_value=4),
        ):
            response = client.put("/api/notifications/read-all")

        assert response.json() == {"updated": 4}

    def test_message_length_limit(self, as_user, client_user):
        response = as_user(client_user).post("/api/messages/2", json={"content": "x" * 5001})
        assert response.status_code == 400


class TestSubscriptionGate:
    def test_unsubscribed_professional_forbidden(self, as_user, make_user):
        client = as_user(make_user(3, UserType.TRAINER))

        response = client.get("/api/statistics/professional")

        assert response.status_code == 403
        assert response.json()["error"] == "forbidden"

    def test_subscribed_professional_allowed(self, as_user, professional_user):
        client = as_user(professional_user)

        with patch(
            "api.routes.statistics.get_professional_statistics",
            AsyncMock(return_value={"total_appointments": 0}),
        ):
            response = client.get("/api/statistics/professional")

        assert response.status_code == 200

    def test_chat_open_to_every_user(self, as_user, make_user):
        client = as_user(make_user(3, UserType.TRAINER))
        ask = AsyncMock(return_value={"response": "Hola", "fallback": False})

        with patch("api.routes.ai.ask_assistant", ask):
            response = client.post(
                "/api/ai/chat",
                json={"message": "hola", "history": [{"role": "assistant", "content": "¿Sí?"}]},
            )

        assert response.status_code == 200
        assert ask.await_args.args[2] == [{"role": "assistant", "content": "¿Sí?"}]


class TestHealth:
    def test_degraded_when_dependencies_down(self):
        redis = AsyncMock()
        redis.ping.side_effect = RedisConnectionError("down")

        with patch("api.main.get_redis_client", return_value=redis):
            with patch("api.main.validate_database_connection", AsyncMock(return_value=False)):
                response = TestClient(app).get("/health")

        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "degraded"
        assert body["redis"] == "disconnected"
        assert body["postgres"] == "disconnected"
        assert "stripe" in body["circuit_breakers"]
