"""
pytest configuration for FreightDesk.
Sets Django settings and provides shared fixtures.
"""

import datetime
import uuid
from decimal import Decimal

import pytest
from django.conf import settings


def pytest_configure(config):
    """Configure Django settings before tests run."""
    if not settings.configured:
        settings.configure(
            DATABASES={
                "default": {
                    "ENGINE": "django.db.backends.sqlite3",
                    "NAME":   ":memory:",
                }
            },
            INSTALLED_APPS=[
                "django.contrib.admin",
                "django.contrib.contenttypes",
                "django.contrib.auth",
                "django.contrib.sessions",
                "django.contrib.messages",
                "django.contrib.staticfiles",
                "rest_framework",
                "rest_framework_simplejwt",
                "drf_spectacular",
                "django_filters",
                "corsheaders",
                "apps.authentication",
                "apps.sequences",
                "apps.pricing",
                "apps.quotes",
                "apps.orders",
                "apps.payments",
                "apps.documents",
                "apps.notifications",
                "apps.ops",
            ],
            AUTH_USER_MODEL="authentication.Agent",
            REST_FRAMEWORK={
                "DEFAULT_AUTHENTICATION_CLASSES": [
                    "rest_framework_simplejwt.authentication.JWTAuthentication",
                ],
                "DEFAULT_PERMISSION_CLASSES": [
                    "rest_framework.permissions.IsAuthenticated",
                ],
                "DEFAULT_FILTER_BACKENDS": [
                    "django_filters.rest_framework.DjangoFilterBackend",
                    "rest_framework.filters.SearchFilter",
                    "rest_framework.filters.OrderingFilter",
                ],
                "DEFAULT_PAGINATION_CLASS": "rest_framework.pagination.PageNumberPagination",
                "PAGE_SIZE": 50,
                "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
                "EXCEPTION_HANDLER": "apps.common.exceptions.ledger_exception_handler",
            },
            SPECTACULAR_SETTINGS={
                "TITLE": "FreightDesk API",
                "DESCRIPTION": "Freight quote-to-order ledger",
                "VERSION": "1.0.0",
                "SERVE_INCLUDE_SCHEMA": False,
            },
            SECRET_KEY="test-secret-key-not-for-production",
            DEBUG=True,
            USE_TZ=True,
            TIME_ZONE="Asia/Shanghai",
            ROOT_URLCONF="freightdesk.urls",
            DEFAULT_AUTO_FIELD="django.db.models.BigAutoField",
            TEMPLATES=[{
                "BACKEND": "django.template.backends.django.DjangoTemplates",
                "DIRS": [],
                "APP_DIRS": True,
                "OPTIONS": {
                    "context_processors": [
                        "django.template.context_processors.debug",
                        "django.template.context_processors.request",
                        "django.contrib.auth.context_processors.auth",
                        "django.contrib.messages.context_processors.messages",
                    ],
                },
            }],
            MIDDLEWARE=[
                "django.middleware.security.SecurityMiddleware",
                "corsheaders.middleware.CorsMiddleware",
                "django.contrib.sessions.middleware.SessionMiddleware",
                "django.middleware.common.CommonMiddleware",
                "django.middleware.csrf.CsrfViewMiddleware",
                "django.contrib.auth.middleware.AuthenticationMiddleware",
                "django.contrib.messages.middleware.MessageMiddleware",
            ],
            STATIC_URL="/static/",
            STATIC_ROOT="/tmp/staticfiles_test",
            CACHES={
                "default": {
                    "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
                }
            },
            EMAIL_BACKEND="django.core.mail.backends.locmem.EmailBackend",
            DEFAULT_FROM_EMAIL="FreightDesk <no-reply@freightdesk.test>",
            CELERY_TASK_ALWAYS_EAGER=True,   # Execute tasks synchronously in tests
            CELERY_TASK_EAGER_PROPAGATES=True,
            CORS_ALLOW_ALL_ORIGINS=True,
            SIMPLE_JWT={
                "ACCESS_TOKEN_LIFETIME": datetime.timedelta(hours=8),
                "REFRESH_TOKEN_LIFETIME": datetime.timedelta(days=7),
                "ALGORITHM": "HS256",
                "AUTH_HEADER_TYPES": ("Bearer",),
            },
            FREIGHTDESK={
                "DEFAULT_CURRENCY":        "USD",
                "DEFAULT_DEPOSIT_PERCENT": 70,
                "QUOTE_VALIDITY_DAYS":     30,
                "SITE_URL":                "https://freightdesk.test",
            },
            # Sandbox mode: no provider key, unsigned webhooks accepted
            AIRWALLEX_ENV="demo",
            AIRWALLEX_API_URL="https://api-demo.airwallex.test",
            AIRWALLEX_CLIENT_ID="",
            AIRWALLEX_API_KEY="",
            AIRWALLEX_WEBHOOK_SECRET="",
        )


# ═══════════════════════════════════════════════════════════════════════════════
# FIXTURES
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.fixture
def api_client():
    from rest_framework.test import APIClient
    return APIClient()


@pytest.fixture
def make_agent(db):
    from apps.authentication.models import Agent

    def _make(email=None, role=Agent.Role.CUSTOMER, **kwargs):
        email = email or f"user-{uuid.uuid4().hex[:8]}@example.com"
        return Agent.objects.create_user(
            email=email, password="Test@1234",
            full_name=kwargs.pop("full_name", "Test Agent"),
            role=role, **kwargs,
        )
    return _make


@pytest.fixture
def customer(make_agent):
    return make_agent(email="mei@example.com", full_name="Mei Chen")


@pytest.fixture
def operator(make_agent):
    from apps.authentication.models import Agent
    return make_agent(email="ops@freightdesk.test", role=Agent.Role.OPERATOR,
                      full_name="Olivia Ops", is_staff=True)


@pytest.fixture
def customer_client(api_client, customer):
    api_client.force_authenticate(user=customer)
    return api_client


@pytest.fixture
def operator_client(api_client, operator):
    api_client.force_authenticate(user=operator)
    return api_client


@pytest.fixture
def quote_data():
    """Two items: 2 × 300 + 1 × 400 = 1000 subtotal."""
    return {
        "customer_name":  "Mei Chen",
        "customer_email": "mei@example.com",
        "customer_phone": "+1 415 555 0100",
        "shipping_method": "Sea freight",
        "destination_city": "Los Angeles",
        "items": [
            {"name": "LED panels", "quantity": 2, "unit_price": Decimal("300.00")},
            {"name": "Power supplies", "quantity": 1, "unit_price": Decimal("400.00")},
        ],
    }


@pytest.fixture
def quotes(db):
    from unittest.mock import MagicMock
    from apps.quotes.service import QuoteService
    return QuoteService(notification_service=MagicMock())


@pytest.fixture
def draft_quote(quotes, quote_data):
    return quotes.create_draft(quote_data, actor="test")


@pytest.fixture
def sent_quote(quotes, draft_quote):
    return quotes.send(draft_quote.quote_number, actor="test")


@pytest.fixture
def converted_order(quotes, sent_quote):
    return quotes.convert(sent_quote.quote_number, actor="test")
