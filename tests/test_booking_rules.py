"""
Tests for booking pricing, status transitions and access rules.
"""

import uuid
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from fastapi import HTTPException

from api.models.booking import BookingFormData
from api.services.booking_service import (
    ALLOWED_TRANSITIONS,
    BookingService,
    apply_status_change,
    build_booking_details,
    calculate_total_days,
    calculate_total_price,
    can_transition,
)
from database.models import Motorcycle


# =============================================================================
# Pricing
# =============================================================================


class TestPricing:
    def test_same_day_rental_is_one_day(self):
        assert calculate_total_days(date(2025, 3, 10), date(2025, 3, 10)) == 1

    def test_range_counts_both_ends(self):
        assert calculate_total_days(date(2025, 3, 10), date(2025, 3, 12)) == 3

    def test_range_across_month_end(self):
        assert calculate_total_days(date(2025, 2, 27), date(2025, 3, 2)) == 4

    def test_total_price(self):
        price = calculate_total_price(Decimal("1500.00"), date(2025, 3, 10), date(2025, 3, 12))
        assert price == Decimal("4500.00")


# =============================================================================
# Status Transitions
# =============================================================================


class TestTransitions:
    @pytest.mark.parametrize(
        "current,target",
        [
            ("pending", "confirmed"),
            ("pending", "rejected"),
            ("pending", "cancelled"),
            ("confirmed", "in_progress"),
            ("confirmed", "cancelled"),
            ("in_progress", "completed"),
        ],
    )
    def test_allowed(self, current, target):
        assert can_transition(current, target)

    @pytest.mark.parametrize(
        "current,target",
        [
            ("pending", "completed"),
            ("pending", "in_progress"),
            ("confirmed", "rejected"),
            ("in_progress", "cancelled"),
            ("completed", "cancelled"),
            ("cancelled", "confirmed"),
            ("rejected", "pending"),
        ],
    )
    def test_not_allowed(self, current, target):
        assert not can_transition(current, target)

    def test_terminal_statuses_have_no_exits(self):
        for status in ("completed", "cancelled", "rejected"):
            assert ALLOWED_TRANSITIONS[status] == frozenset()

    def test_confirm_stamps_confirmed_at(self, make_booking):
        booking = make_booking("pending")
        apply_status_change(booking, "confirmed")
        assert booking.status == "confirmed"
        assert booking.confirmed_at is not None
        assert booking.cancelled_at is None

    def test_cancel_stores_reason(self, make_booking):
        booking = make_booking("confirmed")
        apply_status_change(booking, "cancelled", "Cambio de planes")
        assert booking.status == "cancelled"
        assert booking.cancelled_at is not None
        assert booking.cancellation_reason == "Cambio de planes"

    def test_reject_without_reason(self, make_booking):
        booking = make_booking("pending")
        apply_status_change(booking, "rejected")
        assert booking.cancelled_at is not None
        assert booking.cancellation_reason is None

    def test_invalid_transition_raises_409(self, make_booking):
        booking = make_booking("completed")
        with pytest.raises(HTTPException) as exc:
            apply_status_change(booking, "cancelled")
        assert exc.value.status_code == 409
        assert booking.status == "completed"


# =============================================================================
# Details & Access
# =============================================================================


class TestBookingDetails:
    def test_details_with_listing_and_owner(self, make_booking, make_user):
        booking = make_booking()
        motorcycle = Motorcycle(
            make="Yamaha",
            model="MT-07",
            slug="yamaha-mt-07",
            images=[{"url": "/listing-images/a.jpg", "color": "Azul", "is_primary": True}],
        )
        owner = make_user("dealer", business_name="Motos del Cibao", business_phone="+18095550000")

        details = build_booking_details(booking, motorcycle, owner)

        assert details.motorcycle.make == "Yamaha"
        assert details.motorcycle.slug == "yamaha-mt-07"
        assert details.motorcycle.images[0].is_primary is True
        assert details.owner.business_name == "Motos del Cibao"
        assert details.owner.phone == "+18095550000"
        assert details.total_price == Decimal("4500.00")

    def test_details_fall_back_to_unknown(self, make_booking):
        details = build_booking_details(make_booking(), None, None)
        assert details.motorcycle.make == "Unknown"
        assert details.motorcycle.model == "Unknown"
        assert details.owner.business_name == "Unknown"
        assert details.owner.phone == ""

    def test_owner_without_business_uses_display_name(self, make_booking, make_user):
        owner = make_user("dealer", display_name="Luis", phone="+18295550000")
        details = build_booking_details(make_booking(), None, owner)
        assert details.owner.business_name == "Luis"
        assert details.owner.phone == "+18295550000"

    def test_can_view(self, make_booking, make_user):
        service = BookingService()
        customer = make_user("customer")
        owner = make_user("dealer")
        stranger = make_user("customer")
        admin = make_user("admin")
        booking = make_booking(user_id=customer.id, owner_id=owner.id)

        assert service.can_view(booking, customer)
        assert service.can_view(booking, owner)
        assert service.can_view(booking, admin)
        assert not service.can_view(booking, stranger)


class TestBookingAuthorization:
    async def test_customer_can_cancel_own_booking(self, make_booking, make_user):
        service = BookingService()
        customer = make_user("customer")
        booking = make_booking(user_id=customer.id)

        with patch.object(service, "get_booking_by_id", AsyncMock(return_value=booking)), \
             patch.object(service, "update_booking_status", AsyncMock(return_value=booking)) as update:
            await service.cancel_booking(booking.id, customer, "No puedo ir")

        update.assert_awaited_once_with(booking.id, "cancelled", "No puedo ir")

    async def test_customer_cannot_confirm(self, make_booking, make_user):
        service = BookingService()
        customer = make_user("customer")
        booking = make_booking(user_id=customer.id)

        with patch.object(service, "get_booking_by_id", AsyncMock(return_value=booking)), \
             patch.object(service, "update_booking_status", AsyncMock()) as update:
            with pytest.raises(HTTPException) as exc:
                await service.confirm_booking(booking.id, customer)

        assert exc.value.status_code == 403
        update.assert_not_awaited()

    async def test_owner_can_confirm(self, make_booking, make_user):
        service = BookingService()
        owner = make_user("dealer")
        booking = make_booking(owner_id=owner.id)

        with patch.object(service, "get_booking_by_id", AsyncMock(return_value=booking)), \
             patch.object(service, "update_booking_status", AsyncMock(return_value=booking)) as update:
            await service.confirm_booking(booking.id, owner)

        update.assert_awaited_once_with(booking.id, "confirmed")

    async def test_missing_booking_is_404(self, make_user):
        service = BookingService()
        with patch.object(service, "get_booking_by_id", AsyncMock(return_value=None)):
            with pytest.raises(HTTPException) as exc:
                await service.start_booking(uuid.uuid4(), make_user("admin"))
        assert exc.value.status_code == 404


class TestCreateBookingValidation:
    def _form(self, start: date, end: date) -> BookingFormData:
        return BookingFormData.model_construct(
            motorcycle_id=uuid.uuid4(),
            start_date=start,
            end_date=end,
            customer_name="Ana",
            customer_email="ana@example.com",
            customer_phone="+18095551234",
            pickup_location=None,
            dropoff_location=None,
            notes=None,
        )

    async def test_start_in_past_is_400(self, make_user):
        service = BookingService()
        with patch("api.services.booking_service.local_today", return_value=date(2025, 3, 10)):
            with pytest.raises(HTTPException) as exc:
                await service.create_booking(self._form(date(2025, 3, 9), date(2025, 3, 12)), make_user())
        assert exc.value.status_code == 400

    async def test_reversed_range_is_400(self, make_user):
        service = BookingService()
        with patch("api.services.booking_service.local_today", return_value=date(2025, 3, 1)):
            with pytest.raises(HTTPException) as exc:
                await service.create_booking(self._form(date(2025, 3, 12), date(2025, 3, 10)), make_user())
        assert exc.value.status_code == 400

    def test_form_rejects_reversed_range(self):
        with pytest.raises(ValueError):
            BookingFormData(
                motorcycle_id=uuid.uuid4(),
                start_date=date(2025, 3, 12),
                end_date=date(2025, 3, 10),
                customer_name="Ana",
                customer_email="ana@example.com",
                customer_phone="809-555-1234",
            )

    def test_form_normalizes_phone(self):
        form = BookingFormData(
            motorcycle_id=uuid.uuid4(),
            start_date=date(2025, 3, 10),
            end_date=date(2025, 3, 12),
            customer_name="Ana",
            customer_email="ana@example.com",
            customer_phone="809-555-1234",
        )
        assert form.customer_phone == "+18095551234"
