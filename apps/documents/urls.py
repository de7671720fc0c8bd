from django.urls import path

from .views import OrderDocumentsView

urlpatterns = [
    path("<str:order_number>/documents/", OrderDocumentsView.as_view(), name="order-documents"),
]
