from django.conf import settings
from django.db import models


class Notification(models.Model):
    PAYMENT_CONFIRMED = "payment_confirmed"
    PAYMENT_FAILED = "payment_failed"
    BOOKING_REQUESTED = "booking_requested"
    BOOKING_STATUS = "booking_status"
    TYPES = [
        (PAYMENT_CONFIRMED, "Payment confirmed"),
        (PAYMENT_FAILED, "Payment failed"),
        (BOOKING_REQUESTED, "Booking requested"),
        (BOOKING_STATUS, "Booking status changed"),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
    )
    type = models.CharField(max_length=40, choices=TYPES)
    title = models.CharField(max_length=200)
    message = models.TextField()
    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="notifications",
    )
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.type} -> {self.user_id}"
