from decimal import Decimal
from datetime import date

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from bookings.models import Booking
from properties.models import Property

User = get_user_model()


@pytest.fixture(autouse=True)
def stripe_settings(settings):
    settings.STRIPE_SECRET_KEY = "sk_test_123"
    settings.STRIPE_WEBHOOK_SECRET = "whsec_test"
    settings.STRIPE_USE_STUB = False
    settings.STRIPE_CURRENCY = "usd"
    return settings


@pytest.fixture
def owner(db):
    return User.objects.create_user(
        username="owner@example.com",
        email="owner@example.com",
        password="examplepass",
        first_name="Omar",
        last_name="Owner",
        role=User.PROPERTY_OWNER,
    )


@pytest.fixture
def renter(db):
    return User.objects.create_user(
        username="renter@example.com",
        email="renter@example.com",
        password="examplepass",
        first_name="Rita",
        last_name="Renter",
    )


@pytest.fixture
def listing(owner):
    return Property.objects.create(
        owner=owner,
        title="Lakeside Annex",
        property_type="annex",
        address="12 Lake Road, Kandy",
        price=Decimal("450.00"),
        approval_status=Property.APPROVED,
    )


@pytest.fixture
def make_booking(renter, owner, listing):
    def _make(**overrides):
        fields = {
            "renter": renter,
            "property": listing,
            "property_owner": owner,
            "guest_name": "Rita Renter",
            "email": "renter@example.com",
            "check_in": date(2025, 3, 1),
            "check_out": date(2025, 6, 1),
            "advance_amount": Decimal("450.00"),
            "total_amount": Decimal("1350.00"),
        }
        fields.update(overrides)
        return Booking.objects.create(**fields)

    return _make


@pytest.fixture
def booking(make_booking):
    return make_booking()


@pytest.fixture
def renter_client(renter):
    client = APIClient()
    client.force_authenticate(renter)
    return client


@pytest.fixture
def owner_client(owner):
    client = APIClient()
    client.force_authenticate(owner)
    return client


@pytest.fixture
def marketplace_admin(db):
    return User.objects.create_user(
        username="admin@example.com",
        email="admin@example.com",
        password="examplepass",
        role=User.ADMIN,
    )


@pytest.fixture
def marketplace_admin_client(marketplace_admin):
    client = APIClient()
    client.force_authenticate(marketplace_admin)
    return client


@pytest.fixture
def pending_listing(owner):
    return Property.objects.create(
        owner=owner,
        title="Hill Cottage",
        property_type="house",
        address="3 Hill Street, Ella",
        price=Decimal("300.00"),
    )
