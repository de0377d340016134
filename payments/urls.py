# payments/urls.py
from django.urls import path
from .views import CreateIntentView, ConfirmPurchaseView, StripeWebhookView, PaymentStatsView

urlpatterns = [
    path("create-intent/", CreateIntentView.as_view(), name="payments_create_intent"),
    path("confirm/", ConfirmPurchaseView.as_view(), name="payments_confirm"),
    path("webhook/", StripeWebhookView.as_view(), name="payments_webhook"),
    path("stats/", PaymentStatsView.as_view(), name="payments_stats"),
]
