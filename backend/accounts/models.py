from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    TENANT = "tenant"
    PROPERTY_OWNER = "property_owner"
    ADMIN = "admin"
    ROLES = [
        (TENANT, "Tenant"),
        (PROPERTY_OWNER, "Property owner"),
        (ADMIN, "Admin"),
    ]

    display_name = models.CharField(max_length=120, blank=True)
    phone = models.CharField(max_length=30, blank=True)
    role = models.CharField(max_length=20, choices=ROLES, default=TENANT)

    @property
    def is_marketplace_admin(self) -> bool:
        return self.is_superuser or self.role == self.ADMIN
