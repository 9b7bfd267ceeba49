import pytest
from django.core.management import CommandError, call_command

from accounts.models import User
from bookings.models import Booking
from interactions.models import Rating
from properties.models import Property


@pytest.mark.django_db
def test_devseed_is_idempotent(settings):
    settings.DEBUG = True

    call_command("devseed")
    call_command("devseed")

    assert User.objects.filter(email="owner@rentals.test", role=User.PROPERTY_OWNER).count() == 1
    assert User.objects.get(email="admin@rentals.test").is_superuser
    assert Property.objects.get(title="Lakeside Annex").is_bookable
    assert Property.objects.get(title="Hill Cottage").approval_status == Property.PENDING
    assert Booking.objects.count() == 1
    assert Rating.objects.get().score == 5


@pytest.mark.django_db
def test_devseed_refuses_without_debug(settings):
    settings.DEBUG = False

    with pytest.raises(CommandError):
        call_command("devseed")
