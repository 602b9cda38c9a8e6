"""URL routing for payments."""

from __future__ import annotations

from django.urls import path  # type: ignore

from .views import GcashPaymentIntentView, PaymentStatusView, PaymongoWebhookView

urlpatterns = [
    path("gcash/", GcashPaymentIntentView.as_view(), name="gcash-payment-intent"),
    path("webhook/", PaymongoWebhookView.as_view(), name="paymongo-webhook"),
    path("status/<str:booking_id>/", PaymentStatusView.as_view(), name="payment-status"),
]
