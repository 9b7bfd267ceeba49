from django.contrib import admin
from django.urls import include, path
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView

from accounts.api import (
    AdminUserListView,
    AdminUserStatusView,
    LoginView,
    MeView,
    RegisterView,
)
from bookings.api import (
    AdminBookingListView,
    BookingListCreateView,
    BookingStatusView,
    OwnerBookingListView,
)
from interactions.api import (
    AdminComplaintListView,
    AdminComplaintStatusView,
    ComplaintView,
    FavoriteView,
    PropertyStatsView,
    PropertyViewTrackView,
    RatingDeleteView,
    RatingView,
)
from notifications.api import NotificationListView, NotificationReadView
from payments.api import (
    BookingPaymentStatusView,
    ConfirmPaymentIntentView,
    CreatePaymentIntentView,
    PaymentConfirmationView,
    StripeWebhookView,
    VerifyPaymentView,
)
from properties.api import PropertyViewSet

router = DefaultRouter()
router.register(r"properties", PropertyViewSet, basename="property")

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/auth/register/", RegisterView.as_view(), name="auth-register"),
    path("api/auth/login/", LoginView.as_view(), name="auth-login"),
    path("api/auth/refresh/", TokenRefreshView.as_view(), name="auth-refresh"),
    path("api/auth/me/", MeView.as_view(), name="auth-me"),
    path(
        "api/properties/<int:property_id>/stats/",
        PropertyStatsView.as_view(),
        name="property-stats",
    ),
    path("api/bookings/", BookingListCreateView.as_view(), name="booking-list"),
    path("api/bookings/owner/", OwnerBookingListView.as_view(), name="booking-owner-list"),
    path(
        "api/bookings/<int:booking_id>/status/",
        BookingStatusView.as_view(),
        name="booking-status",
    ),
    path("api/interactions/favorites/", FavoriteView.as_view(), name="interaction-favorites"),
    path("api/interactions/ratings/", RatingView.as_view(), name="interaction-ratings"),
    path(
        "api/interactions/ratings/<int:property_id>/",
        RatingDeleteView.as_view(),
        name="interaction-rating-delete",
    ),
    path("api/interactions/complaints/", ComplaintView.as_view(), name="interaction-complaints"),
    path("api/interactions/views/", PropertyViewTrackView.as_view(), name="interaction-views"),
    path("api/admin/users/", AdminUserListView.as_view(), name="admin-user-list"),
    path(
        "api/admin/users/<int:user_id>/status/",
        AdminUserStatusView.as_view(),
        name="admin-user-status",
    ),
    path("api/admin/bookings/", AdminBookingListView.as_view(), name="admin-booking-list"),
    path("api/admin/complaints/", AdminComplaintListView.as_view(), name="admin-complaint-list"),
    path(
        "api/admin/complaints/<int:complaint_id>/status/",
        AdminComplaintStatusView.as_view(),
        name="admin-complaint-status",
    ),
    path("api/notifications/", NotificationListView.as_view(), name="notification-list"),
    path(
        "api/notifications/<int:notification_id>/read/",
        NotificationReadView.as_view(),
        name="notification-read",
    ),
    path(
        "api/payments/create-payment-intent/",
        CreatePaymentIntentView.as_view(),
        name="payment-create-intent",
    ),
    path(
        "api/payments/confirm-payment-intent/",
        ConfirmPaymentIntentView.as_view(),
        name="payment-confirm-intent",
    ),
    path(
        "api/payments/verify-stripe-payment/",
        VerifyPaymentView.as_view(),
        name="payment-verify",
    ),
    path("api/payments/webhook/", StripeWebhookView.as_view(), name="stripe-webhook"),
    path(
        "api/payments/confirmation/<str:payment_intent_id>/",
        PaymentConfirmationView.as_view(),
        name="payment-confirmation",
    ),
    path(
        "api/payments/booking/<int:booking_id>/status/",
        BookingPaymentStatusView.as_view(),
        name="payment-booking-status",
    ),
    path("api/", include(router.urls)),
]
