from django.conf import settings
from django.db import models
from django.utils import timezone


class Property(models.Model):
    """Rental listing published by a property owner; bookable once approved."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    APPROVAL_STATUSES = [
        (PENDING, "Pending"),
        (APPROVED, "Approved"),
        (REJECTED, "Rejected"),
    ]

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="properties",
    )
    title = models.CharField(max_length=200)
    property_type = models.CharField(max_length=50)
    unit_type = models.CharField(max_length=50, blank=True)
    address = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    price = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=10, default="usd")
    bedrooms = models.PositiveIntegerField(default=0)
    bathrooms = models.PositiveIntegerField(default=0)
    amenities = models.JSONField(default=list, blank=True)
    facilities = models.JSONField(default=list, blank=True)
    available_from = models.DateField(null=True, blank=True)
    available_to = models.DateField(null=True, blank=True)
    views_count = models.PositiveIntegerField(default=0)
    approval_status = models.CharField(max_length=12, choices=APPROVAL_STATUSES, default=PENDING)
    approval_reason = models.TextField(blank=True)
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="approved_properties",
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name_plural = "properties"

    def __str__(self):
        return self.title

    @property
    def is_bookable(self) -> bool:
        return self.is_active and self.approval_status == self.APPROVED

    def approve(self, *, by, reason: str = ""):
        self.approval_status = self.APPROVED
        self.approval_reason = reason or "Property approved by admin"
        self.approved_by = by
        self.approved_at = timezone.now()
        self.is_active = True
        self.save(
            update_fields=[
                "approval_status",
                "approval_reason",
                "approved_by",
                "approved_at",
                "is_active",
                "updated_at",
            ]
        )

    def reject(self, *, by, reason: str = ""):
        self.approval_status = self.REJECTED
        self.approval_reason = reason or "Property rejected by admin"
        self.approved_by = by
        self.approved_at = None
        self.save(
            update_fields=[
                "approval_status",
                "approval_reason",
                "approved_by",
                "approved_at",
                "updated_at",
            ]
        )
