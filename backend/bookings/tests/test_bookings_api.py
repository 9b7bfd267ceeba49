from datetime import date
from decimal import Decimal

import pytest
from django.urls import reverse
from rest_framework.test import APIClient

from bookings.models import Booking
from notifications.models import Notification
from properties.models import Property
from payments.state import PaymentStatus


def _request(listing, **overrides):
    payload = {
        "property": listing.pk,
        "guest_name": "Rita Renter",
        "email": "renter@example.com",
        "phone": "+94 77 123 4567",
        "check_in": "2025-03-01",
        "check_out": "2025-05-15",
        "guests": 2,
        "message": "Arriving in the evening.",
        "payment_method": Booking.PAYMENT_METHOD_CARD,
    }
    payload.update(overrides)
    return payload


@pytest.mark.django_db
def test_renter_books_property_and_owner_is_notified(renter_client, renter, owner, listing):
    response = renter_client.post(reverse("booking-list"), _request(listing), format="json")

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == Booking.PENDING
    assert body["payment_status"] == PaymentStatus.UNSET
    assert body["property_title"] == "Lakeside Annex"
    # 75 nights rounds up to three months at 450 each.
    assert Decimal(body["advance_amount"]) == Decimal("450.00")
    assert Decimal(body["total_amount"]) == Decimal("1350.00")

    booking = Booking.objects.get(pk=body["id"])
    assert booking.renter == renter
    assert booking.property_owner == owner
    notification = Notification.objects.get(booking=booking)
    assert notification.user == owner
    assert notification.type == Notification.BOOKING_REQUESTED


@pytest.mark.django_db
def test_short_stay_is_charged_one_month(renter_client, listing):
    response = renter_client.post(
        reverse("booking-list"),
        _request(listing, check_in="2025-03-01", check_out="2025-03-05"),
        format="json",
    )

    assert response.status_code == 201
    assert Decimal(response.json()["total_amount"]) == Decimal("450.00")


@pytest.mark.django_db
def test_check_out_must_follow_check_in(renter_client, listing):
    response = renter_client.post(
        reverse("booking-list"),
        _request(listing, check_in="2025-03-05", check_out="2025-03-05"),
        format="json",
    )

    assert response.status_code == 400
    assert "check_out" in response.json()


@pytest.mark.django_db
def test_unapproved_property_cannot_be_booked(renter_client, owner):
    pending = Property.objects.create(
        owner=owner,
        title="Hill Cottage",
        property_type="house",
        address="3 Hill Street, Ella",
        price=Decimal("300.00"),
    )

    response = renter_client.post(reverse("booking-list"), _request(pending), format="json")

    assert response.status_code == 400
    assert "property" in response.json()


@pytest.mark.django_db
def test_owner_cannot_book_own_property(owner_client, listing):
    response = owner_client.post(reverse("booking-list"), _request(listing), format="json")

    assert response.status_code == 400
    assert "property" in response.json()


@pytest.mark.django_db
def test_renter_lists_only_own_bookings(renter_client, booking, listing, owner):
    from django.contrib.auth import get_user_model

    other = get_user_model().objects.create_user(
        username="other@example.com", email="other@example.com", password="examplepass"
    )
    Booking.objects.create(
        renter=other,
        property=listing,
        property_owner=owner,
        guest_name="Other Guest",
        email="other@example.com",
        check_in=date(2025, 7, 1),
        check_out=date(2025, 8, 1),
        advance_amount=Decimal("450.00"),
        total_amount=Decimal("450.00"),
    )

    response = renter_client.get(reverse("booking-list"))

    assert response.status_code == 200
    assert [item["id"] for item in response.json()] == [booking.pk]


@pytest.mark.django_db
def test_owner_list_filters_by_status(owner_client, make_booking):
    pending = make_booking()
    make_booking(status=Booking.APPROVED)

    response = owner_client.get(reverse("booking-owner-list"), {"status": Booking.PENDING})

    assert response.status_code == 200
    assert [item["id"] for item in response.json()] == [pending.pk]


@pytest.mark.django_db
def test_owner_approves_pending_booking(owner_client, booking, renter):
    response = owner_client.put(
        reverse("booking-status", args=[booking.pk]), {"status": Booking.APPROVED}, format="json"
    )

    assert response.status_code == 200
    booking.refresh_from_db()
    assert booking.status == Booking.APPROVED
    notification = Notification.objects.get(booking=booking)
    assert notification.user == renter
    assert notification.type == Notification.BOOKING_STATUS


@pytest.mark.django_db
def test_renter_cannot_approve(renter_client, booking):
    response = renter_client.put(
        reverse("booking-status", args=[booking.pk]), {"status": Booking.APPROVED}, format="json"
    )

    assert response.status_code == 403
    booking.refresh_from_db()
    assert booking.status == Booking.PENDING


@pytest.mark.django_db
def test_owner_cannot_reject_already_decided_booking(owner_client, make_booking):
    booking = make_booking(status=Booking.APPROVED)

    response = owner_client.put(
        reverse("booking-status", args=[booking.pk]), {"status": Booking.REJECTED}, format="json"
    )

    assert response.status_code == 400


@pytest.mark.django_db
def test_renter_cancels_approved_booking_without_touching_payment(renter_client, make_booking, owner):
    booking = make_booking(status=Booking.APPROVED, payment_status=PaymentStatus.CONFIRMED)

    response = renter_client.put(
        reverse("booking-status", args=[booking.pk]), {"status": Booking.CANCELLED}, format="json"
    )

    assert response.status_code == 200
    booking.refresh_from_db()
    assert booking.status == Booking.CANCELLED
    assert booking.payment_status == PaymentStatus.CONFIRMED
    assert Notification.objects.get(booking=booking).user == owner


@pytest.mark.django_db
def test_status_change_hidden_from_unrelated_users(booking):
    from django.contrib.auth import get_user_model

    stranger = get_user_model().objects.create_user(
        username="stranger@example.com", email="stranger@example.com", password="examplepass"
    )
    client = APIClient()
    client.force_authenticate(stranger)

    response = client.put(
        reverse("booking-status", args=[booking.pk]), {"status": Booking.CANCELLED}, format="json"
    )

    assert response.status_code == 404


@pytest.mark.django_db
def test_admin_lists_all_bookings_by_status(marketplace_admin_client, make_booking):
    pending = make_booking()
    make_booking(status=Booking.CANCELLED)

    everything = marketplace_admin_client.get(reverse("admin-booking-list"))
    only_pending = marketplace_admin_client.get(reverse("admin-booking-list"), {"status": Booking.PENDING})

    assert everything.status_code == 200
    assert len(everything.json()) == 2
    assert [item["id"] for item in only_pending.json()] == [pending.pk]


@pytest.mark.django_db
def test_admin_booking_list_requires_admin(owner_client, booking):
    response = owner_client.get(reverse("admin-booking-list"))

    assert response.status_code == 403
