"""
HTTP tests for authentication, permissions, bookings and availability.

Services are patched at the route module level; no database is needed.
"""

import uuid
from datetime import date
from unittest.mock import AsyncMock, MagicMock, patch

from fastapi import HTTPException

from api.routes.auth import create_access_token, decode_token


def booking_service_mock(**methods) -> MagicMock:
    service = MagicMock()
    for name, value in methods.items():
        setattr(service, name, value)
    return service


# =============================================================================
# Root & Errors
# =============================================================================


async def test_root(client):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json()["message"] == "MotoresRD API"


async def test_missing_token_returns_spanish_error(client):
    response = await client.get("/api/auth/me")

    assert response.status_code == 401
    body = response.json()
    assert body["success"] is False
    assert body["error_code"] == "HTTP_401"
    assert body["message"] == "No autorizado. Por favor, inicie sesión."


# =============================================================================
# Authentication
# =============================================================================


class TestTokens:
    def test_token_roundtrip(self, make_user):
        user = make_user("dealer")
        token, _ = create_access_token(user.id, user.email, user.role)

        payload = decode_token(token)
        assert payload["sub"] == str(user.id)
        assert payload["role"] == "dealer"
        assert payload["jti"]

    async def test_bearer_token_authenticates(self, client, make_user, mock_redis):
        user = make_user("customer")
        token, _ = create_access_token(user.id, user.email, user.role)
        user_service = MagicMock(get_user=AsyncMock(return_value=user))

        with patch("api.routes.auth.get_user_service", return_value=user_service):
            response = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        assert response.json()["email"] == user.email

    async def test_cookie_authenticates(self, client, make_user, mock_redis):
        user = make_user("customer")
        token, _ = create_access_token(user.id, user.email, user.role)
        user_service = MagicMock(get_user=AsyncMock(return_value=user))

        with patch("api.routes.auth.get_user_service", return_value=user_service):
            response = await client.get("/api/auth/me", headers={"Cookie": f"motoresrd_token={token}"})

        assert response.status_code == 200

    async def test_revoked_token_rejected(self, client, make_user, mock_redis):
        user = make_user("customer")
        token, _ = create_access_token(user.id, user.email, user.role)
        mock_redis.get.return_value = "1"

        response = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    async def test_disabled_user_rejected(self, client, make_user, mock_redis):
        user = make_user("customer", is_active=False)
        token, _ = create_access_token(user.id, user.email, user.role)
        user_service = MagicMock(get_user=AsyncMock(return_value=user))

        with patch("api.routes.auth.get_user_service", return_value=user_service):
            response = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert "desactivada" in response.json()["message"]

    async def test_garbage_token_rejected(self, client, mock_redis):
        response = await client.get("/api/auth/me", headers={"Authorization": "Bearer not.a.jwt"})
        assert response.status_code == 401


class TestLogin:
    async def test_invalid_credentials(self, client):
        user_service = MagicMock(authenticate=AsyncMock(return_value=(None, "invalid_credentials")))

        with patch("api.routes.auth.get_user_service", return_value=user_service):
            response = await client.post(
                "/api/auth/login", json={"email": "nobody@example.com", "password": "secret123"}
            )

        assert response.status_code == 401

    async def test_failure_reasons_share_one_message(self, client, make_user):
        user = make_user("dealer", is_active=False)
        results = {}

        for reason, found in (
            ("unknown_email", None),
            ("account_disabled", user),
            ("invalid_password", user),
        ):
            user_service = MagicMock(
                authenticate=AsyncMock(return_value=(found, reason)),
                record_access=AsyncMock(),
            )
            with patch("api.routes.auth.get_user_service", return_value=user_service):
                response = await client.post(
                    "/api/auth/login", json={"email": user.email, "password": "secret123"}
                )
            results[reason] = (response.status_code, response.json()["message"])

            if found is not None:
                details = user_service.record_access.await_args.kwargs["details"]
                assert details == {"reason": reason}

        assert set(results.values()) == {
            (401, "Credenciales inválidas. Verifique su correo y contraseña.")
        }

    async def test_login_sets_cookie(self, client, make_user):
        user = make_user("admin")
        user_service = MagicMock(
            authenticate=AsyncMock(return_value=(user, None)),
            record_access=AsyncMock(),
        )

        with patch("api.routes.auth.get_user_service", return_value=user_service):
            response = await client.post(
                "/api/auth/login", json={"email": user.email, "password": "secret123"}
            )

        assert response.status_code == 200
        assert response.json()["user"]["role"] == "admin"
        assert "motoresrd_token" in response.cookies
        user_service.record_access.assert_awaited_once()

    async def test_login_rate_limited(self, client):
        user_service = MagicMock(authenticate=AsyncMock(return_value=(None, "invalid_credentials")))

        with patch("api.routes.auth.get_user_service", return_value=user_service):
            for _ in range(10):
                await client.post("/api/auth/login", json={"email": "a@example.com", "password": "secret123"})
            response = await client.post(
                "/api/auth/login", json={"email": "a@example.com", "password": "secret123"}
            )

        assert response.status_code == 429


# =============================================================================
# Role checks
# =============================================================================


class TestRoles:
    async def test_customer_cannot_create_brand(self, client, login_as, make_user):
        login_as(make_user("customer"))
        response = await client.post("/api/admin/brands", json={"name": "Honda"})
        assert response.status_code == 403

    async def test_dealer_cannot_read_admin_kpis(self, client, login_as, make_user):
        login_as(make_user("dealer"))
        response = await client.get("/api/admin/dashboard/kpis")
        assert response.status_code == 403

    async def test_customer_cannot_publish_listing(self, client, login_as, make_user):
        login_as(make_user("customer"))
        response = await client.post("/api/motorcycles", json={})
        assert response.status_code == 403


# =============================================================================
# Bookings
# =============================================================================


class TestBookingRoutes:
    async def test_create_booking(self, client, login_as, make_user, make_booking):
        customer = login_as(make_user("customer"))
        booking = make_booking(user_id=customer.id)
        service = booking_service_mock(create_booking=AsyncMock(return_value=booking))

        with patch("api.routes.bookings.get_booking_service", return_value=service):
            response = await client.post(
                "/api/bookings",
                json={
                    "motorcycle_id": str(booking.motorcycle_id),
                    "start_date": "2025-03-10",
                    "end_date": "2025-03-12",
                    "customer_name": "Ana Pérez",
                    "customer_email": "ana@example.com",
                    "customer_phone": "809-555-1234",
                },
            )

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "pending"
        assert body["total_days"] == 3
        form = service.create_booking.await_args.args[0]
        assert form.customer_phone == "+18095551234"

    async def test_create_booking_reversed_dates_is_400(self, client, login_as, make_user):
        login_as(make_user("customer"))
        response = await client.post(
            "/api/bookings",
            json={
                "motorcycle_id": str(uuid.uuid4()),
                "start_date": "2025-03-12",
                "end_date": "2025-03-10",
                "customer_name": "Ana",
                "customer_email": "ana@example.com",
                "customer_phone": "809-555-1234",
            },
        )
        assert response.status_code == 400
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    async def test_dates_taken_is_409(self, client, login_as, make_user):
        login_as(make_user("customer"))
        conflict = HTTPException(
            status_code=409, detail="La motocicleta no está disponible en las fechas seleccionadas"
        )
        service = booking_service_mock(create_booking=AsyncMock(side_effect=conflict))

        with patch("api.routes.bookings.get_booking_service", return_value=service):
            response = await client.post(
                "/api/bookings",
                json={
                    "motorcycle_id": str(uuid.uuid4()),
                    "start_date": "2025-03-10",
                    "end_date": "2025-03-12",
                    "customer_name": "Ana",
                    "customer_email": "ana@example.com",
                    "customer_phone": "809-555-1234",
                },
            )

        assert response.status_code == 409
        assert response.json()["message"] == "La motocicleta no está disponible en las fechas seleccionadas"

    async def test_stranger_cannot_view_booking(self, client, login_as, make_user, make_booking):
        from api.services.booking_service import BookingService, build_booking_details

        login_as(make_user("customer"))
        details = build_booking_details(make_booking(), None, None)
        service = MagicMock(
            get_booking_with_details=AsyncMock(return_value=details),
            can_view=BookingService().can_view,
        )

        with patch("api.routes.bookings.get_booking_service", return_value=service):
            response = await client.get(f"/api/bookings/{details.id}")

        assert response.status_code == 403

    async def test_customer_views_own_booking(self, client, login_as, make_user, make_booking):
        from api.services.booking_service import BookingService, build_booking_details

        customer = login_as(make_user("customer"))
        details = build_booking_details(make_booking(user_id=customer.id), None, None)
        service = MagicMock(
            get_booking_with_details=AsyncMock(return_value=details),
            can_view=BookingService().can_view,
        )

        with patch("api.routes.bookings.get_booking_service", return_value=service):
            response = await client.get(f"/api/bookings/{details.id}")

        assert response.status_code == 200
        assert response.json()["owner"]["business_name"] == "Unknown"

    async def test_reject_without_body(self, client, login_as, make_user, make_booking):
        dealer = login_as(make_user("dealer"))
        booking = make_booking("rejected", owner_id=dealer.id)
        service = booking_service_mock(reject_booking=AsyncMock(return_value=booking))

        with patch("api.routes.bookings.get_booking_service", return_value=service):
            response = await client.post(f"/api/bookings/{booking.id}/reject")

        assert response.status_code == 200
        service.reject_booking.assert_awaited_once_with(booking.id, dealer, None)

    async def test_cancel_with_reason(self, client, login_as, make_user, make_booking):
        customer = login_as(make_user("customer"))
        booking = make_booking("cancelled", user_id=customer.id, cancellation_reason="Viaje cancelado")
        service = booking_service_mock(cancel_booking=AsyncMock(return_value=booking))

        with patch("api.routes.bookings.get_booking_service", return_value=service):
            response = await client.post(
                f"/api/bookings/{booking.id}/cancel", json={"reason": "Viaje cancelado"}
            )

        assert response.status_code == 200
        assert response.json()["cancellation_reason"] == "Viaje cancelado"
        service.cancel_booking.assert_awaited_once_with(booking.id, customer, "Viaje cancelado")


# =============================================================================
# Availability
# =============================================================================


class TestAvailabilityRoutes:
    async def test_check_availability(self, client):
        motorcycle_id = uuid.uuid4()
        service = MagicMock(check_availability=AsyncMock(return_value=False))

        with patch("api.routes.motorcycles.get_availability_service", return_value=service):
            response = await client.get(
                f"/api/motorcycles/{motorcycle_id}/availability/check",
                params={"start_date": "2025-05-01", "end_date": "2025-05-03"},
            )

        assert response.status_code == 200
        assert response.json()["available"] is False
        service.check_availability.assert_awaited_once_with(
            motorcycle_id, date(2025, 5, 1), date(2025, 5, 3)
        )

    async def test_block_dates(self, client, login_as, make_user):
        dealer = login_as(make_user("dealer"))
        motorcycle_id = uuid.uuid4()
        service = MagicMock(block_dates=AsyncMock(return_value=2))

        with patch("api.routes.motorcycles.get_availability_service", return_value=service):
            response = await client.post(
                f"/api/motorcycles/{motorcycle_id}/block-dates",
                json={"dates": ["2025-05-01", "2025-05-02", "2025-05-02"], "reason": "Mantenimiento"},
            )

        assert response.status_code == 200
        assert response.json() == {"message": "2 fecha(s) bloqueada(s)", "blocked": 2}
        args = service.block_dates.await_args.args
        assert args[0] == motorcycle_id
        assert args[2] == "Mantenimiento"
        assert args[3] is dealer

    async def test_block_dates_requires_dates(self, client, login_as, make_user):
        login_as(make_user("dealer"))
        response = await client.post(f"/api/motorcycles/{uuid.uuid4()}/block-dates", json={"dates": []})
        assert response.status_code == 400
