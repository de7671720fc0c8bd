"""FreightDesk root URL configuration."""

from django.contrib import admin
from django.urls import path, include
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView

urlpatterns = [
    path("admin/", admin.site.urls),

    # OpenAPI / Interactive Docs
    path("api/schema/",  SpectacularAPIView.as_view(),       name="schema"),
    path("api/docs/",    SpectacularSwaggerView.as_view(), name="swagger-ui"),

    # Auth
    path("api/auth/",    include("apps.authentication.urls")),

    # Pricing
    path("api/pricing/", include("apps.pricing.urls")),

    # Quote → order ledger
    path("api/quotes/",  include("apps.quotes.urls")),
    path("api/orders/",  include("apps.orders.urls")),
    path("api/orders/",  include("apps.documents.urls")),

    # Payments, public pay links, provider webhooks
    path("api/",         include("apps.payments.urls")),

    # Ops
    path("api/health/",  include("apps.ops.urls")),
]

# Prometheus metrics
urlpatterns += [path("", include("django_prometheus.urls"))]
