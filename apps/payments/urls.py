from django.urls import path

from .views import PaymentListCreateView, PaymentDetailView, PaymentLinkView, AirwallexWebhookView

urlpatterns = [
    path("payments/",                      PaymentListCreateView.as_view(), name="payment-list"),
    path("payments/<str:payment_number>/", PaymentDetailView.as_view(),     name="payment-detail"),
    path("pay/<str:token>/",               PaymentLinkView.as_view(),       name="payment-link"),
    path("webhooks/airwallex/",            AirwallexWebhookView.as_view(),  name="webhook-airwallex"),
]
