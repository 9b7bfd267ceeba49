from django.db import models


class Payment(models.Model):
    """Local view of a Stripe PaymentIntent created for a booking."""

    booking = models.ForeignKey('bookings.Booking', on_delete=models.CASCADE, related_name='payments')
    stripe_payment_intent = models.CharField(max_length=255, unique=True)
    amount_cents = models.PositiveIntegerField()
    currency = models.CharField(max_length=10, default='usd')
    status = models.CharField(max_length=40)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"{self.stripe_payment_intent} ({self.status})"


class StripeEvent(models.Model):
    """Ledger of webhook deliveries, keyed by Stripe's event id."""

    RECEIVED = 'received'
    PROCESSED = 'processed'
    IGNORED = 'ignored'
    FAILED = 'failed'
    STATUSES = [
        (RECEIVED, 'Received'),
        (PROCESSED, 'Processed'),
        (IGNORED, 'Ignored'),
        (FAILED, 'Failed'),
    ]

    event_id = models.CharField(max_length=255, unique=True)
    event_type = models.CharField(max_length=100)
    payment_intent_id = models.CharField(max_length=255, blank=True)
    booking_id = models.PositiveBigIntegerField(null=True, blank=True)
    status = models.CharField(max_length=12, choices=STATUSES, default=RECEIVED)
    result = models.CharField(max_length=20, blank=True)
    error_message = models.TextField(blank=True)
    attempts = models.PositiveIntegerField(default=0)
    received_at = models.DateTimeField(auto_now_add=True)
    processed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-received_at', '-id']

    def __str__(self):
        return f"{self.event_id} ({self.event_type})"
