from django.contrib import admin

from payments.models import Payment

from .models import Booking


class PaymentInline(admin.TabularInline):
    model = Payment
    extra = 0
    readonly_fields = ("stripe_payment_intent", "amount_cents", "currency", "status", "created_at")
    can_delete = False


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ("id", "property", "renter", "status", "payment_status", "check_in", "created_at")
    list_filter = ("status", "payment_status", "payment_method")
    search_fields = ("property__title", "renter__email", "email", "stripe_payment_intent_id")
    # Payment fields are owned by the reconciliation flow.
    readonly_fields = (
        "payment_status",
        "stripe_payment_intent_id",
        "payment_amount_cents",
        "payment_error_message",
        "payment_submitted_at",
        "payment_confirmed_at",
        "payment_failed_at",
        "payment_canceled_at",
    )
    inlines = [PaymentInline]
