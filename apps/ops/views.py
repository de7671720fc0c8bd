"""
Operations views: health check for the database and the cache, plus a
small ledger summary for operators.
"""

import logging

from django.core.cache import cache
from django.db import connection
from django.db.models import Count, Sum
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import AllowAny
from drf_spectacular.utils import extend_schema

from apps.authentication.permissions import IsOperator

logger = logging.getLogger("freightdesk.ops")


# ── GET /api/health/ ──────────────────────────────────────────────────────────
@extend_schema(tags=["Ops"], summary="Health check: database and cache")
class HealthView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request):
        checks = {}

        try:
            with connection.cursor() as cur:
                cur.execute("SELECT 1")
            checks["database"] = "ok"
        except Exception as exc:
            logger.error("Health check: database unreachable: %s", exc)
            checks["database"] = f"error: {exc}"

        try:
            cache.set("healthcheck", "1", 5)
            checks["cache"] = "ok" if cache.get("healthcheck") == "1" else "miss"
        except Exception as exc:
            logger.error("Health check: cache unreachable: %s", exc)
            checks["cache"] = f"error: {exc}"

        overall = "ok" if all(v == "ok" for v in checks.values()) else "degraded"
        return Response({"status": overall, "checks": checks}, status=200 if overall == "ok" else 503)


# ── GET /api/health/ledger/ ───────────────────────────────────────────────────
@extend_schema(tags=["Ops"], summary="Quote, order and payment counts by status (operator)")
class LedgerSummaryView(APIView):
    permission_classes = [IsOperator]

    def get(self, request):
        from apps.quotes.models import Quote
        from apps.orders.models import Order
        from apps.payments.models import Payment

        def by_status(model):
            return {row["status"]: row["n"] for row in model.objects.values("status").annotate(n=Count("id"))}

        outstanding = Order.objects.exclude(status=Order.Status.CANCELLED).aggregate(total=Sum("balance_due"))
        return Response({
            "quotes":            by_status(Quote),
            "orders":            by_status(Order),
            "payments":          by_status(Payment),
            "outstanding_total": str(outstanding["total"] or 0),
        })
