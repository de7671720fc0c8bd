from django.urls import path
from .views import RateEstimateView, DestinationListView

urlpatterns = [
    path("estimate/",     RateEstimateView.as_view(),    name="pricing-estimate"),
    path("destinations/", DestinationListView.as_view(), name="pricing-destinations"),
]
