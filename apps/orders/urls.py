from django.urls import path

from .views import OrderListCreateView, OrderDetailView, OrderStatusView

urlpatterns = [
    path("",                          OrderListCreateView.as_view(), name="order-list"),
    path("<str:order_number>/",        OrderDetailView.as_view(),     name="order-detail"),
    path("<str:order_number>/status/", OrderStatusView.as_view(),     name="order-status"),
]
