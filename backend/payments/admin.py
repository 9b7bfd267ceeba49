from django.contrib import admin

from .models import Payment, StripeEvent


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("stripe_payment_intent", "booking", "amount_cents", "currency", "status", "updated_at")
    list_filter = ("status", "currency")
    search_fields = ("stripe_payment_intent", "booking__email")


@admin.register(StripeEvent)
class StripeEventAdmin(admin.ModelAdmin):
    list_display = ("event_id", "event_type", "booking_id", "status", "result", "attempts", "received_at")
    list_filter = ("status", "event_type", "result")
    search_fields = ("event_id", "payment_intent_id")
    readonly_fields = ("received_at", "processed_at")
