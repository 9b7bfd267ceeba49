from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models

from payments.state import PaymentStatus


class Booking(models.Model):
    """Reservation request tying a renter, a property, and a payment outcome."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    STATUSES = [
        (PENDING, "Pending"),
        (APPROVED, "Approved"),
        (REJECTED, "Rejected"),
        (CANCELLED, "Cancelled"),
    ]

    PAYMENT_METHOD_CARD = "card"
    PAYMENT_METHOD_BANK_TRANSFER = "bank_transfer"
    PAYMENT_METHODS = [
        (PAYMENT_METHOD_CARD, "Card"),
        (PAYMENT_METHOD_BANK_TRANSFER, "Bank transfer"),
    ]

    renter = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="bookings",
    )
    property = models.ForeignKey(
        "properties.Property",
        on_delete=models.CASCADE,
        related_name="bookings",
    )
    property_owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="owner_bookings",
    )
    guest_name = models.CharField(max_length=200)
    email = models.EmailField()
    phone = models.CharField(max_length=30, blank=True)
    check_in = models.DateField()
    check_out = models.DateField()
    guests = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    message = models.TextField(blank=True)
    advance_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    currency = models.CharField(max_length=10, default="usd")
    status = models.CharField(max_length=12, choices=STATUSES, default=PENDING)
    payment_method = models.CharField(
        max_length=20, choices=PAYMENT_METHODS, default=PAYMENT_METHOD_CARD
    )

    # Written only by payments.reconciliation.
    payment_status = models.CharField(
        max_length=12, choices=PaymentStatus.choices, default=PaymentStatus.UNSET
    )
    stripe_payment_intent_id = models.CharField(max_length=255, null=True, blank=True, db_index=True)
    payment_amount_cents = models.PositiveIntegerField(null=True, blank=True)
    payment_error_message = models.TextField(blank=True)
    payment_submitted_at = models.DateTimeField(null=True, blank=True)
    payment_confirmed_at = models.DateTimeField(null=True, blank=True)
    payment_failed_at = models.DateTimeField(null=True, blank=True)
    payment_canceled_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.property.title} booking #{self.pk}"
