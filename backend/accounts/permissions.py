from rest_framework.permissions import BasePermission

from .models import User


class IsMarketplaceAdmin(BasePermission):
    """
    Allow access only to marketplace administrators.
    Superusers automatically pass.
    """

    message = "Admin access required."

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        return request.user.is_marketplace_admin


class CanListProperties(BasePermission):
    """Property owners and admins may publish listings; tenants may not."""

    message = "Only property owners can list properties."

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        return request.user.is_marketplace_admin or request.user.role == User.PROPERTY_OWNER
