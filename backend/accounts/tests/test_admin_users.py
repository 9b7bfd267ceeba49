import pytest
from django.urls import reverse

from accounts.models import User


@pytest.mark.django_db
def test_admin_lists_users_by_role(marketplace_admin_client, owner, renter):
    response = marketplace_admin_client.get(reverse("admin-user-list"), {"role": User.PROPERTY_OWNER})

    assert response.status_code == 200
    assert [item["email"] for item in response.json()] == ["owner@example.com"]
    assert response.json()[0]["is_active"] is True


@pytest.mark.django_db
def test_admin_deactivates_and_reactivates_user(marketplace_admin_client, renter):
    url = reverse("admin-user-status", args=[renter.pk])

    response = marketplace_admin_client.put(url, {"action": "deactivate", "reason": "Spam"}, format="json")
    assert response.status_code == 200
    renter.refresh_from_db()
    assert renter.is_active is False

    marketplace_admin_client.put(url, {"action": "activate"}, format="json")
    renter.refresh_from_db()
    assert renter.is_active is True


@pytest.mark.django_db
def test_admin_cannot_change_own_status(marketplace_admin_client, marketplace_admin):
    response = marketplace_admin_client.put(
        reverse("admin-user-status", args=[marketplace_admin.pk]), {"action": "deactivate"}, format="json"
    )

    assert response.status_code == 400
    marketplace_admin.refresh_from_db()
    assert marketplace_admin.is_active is True


@pytest.mark.django_db
def test_admin_accounts_cannot_be_deactivated(marketplace_admin_client):
    other_admin = User.objects.create_user(
        username="root@example.com", email="root@example.com", password="examplepass", is_superuser=True
    )

    response = marketplace_admin_client.put(
        reverse("admin-user-status", args=[other_admin.pk]), {"action": "deactivate"}, format="json"
    )

    assert response.status_code == 400
    other_admin.refresh_from_db()
    assert other_admin.is_active is True


@pytest.mark.django_db
def test_unknown_action_is_rejected(marketplace_admin_client, renter):
    response = marketplace_admin_client.put(
        reverse("admin-user-status", args=[renter.pk]), {"action": "ban"}, format="json"
    )

    assert response.status_code == 400
    assert "action" in response.json()


@pytest.mark.django_db
def test_user_admin_endpoints_require_admin_role(owner_client, renter):
    assert owner_client.get(reverse("admin-user-list")).status_code == 403
    response = owner_client.put(
        reverse("admin-user-status", args=[renter.pk]), {"action": "deactivate"}, format="json"
    )
    assert response.status_code == 403
