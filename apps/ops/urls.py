"""Ops URLs."""
from django.urls import path
from .views import HealthView, LedgerSummaryView

urlpatterns = [
    path("",        HealthView.as_view(),        name="health"),
    path("ledger/", LedgerSummaryView.as_view(), name="health-ledger"),
]
