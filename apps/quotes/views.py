"""Quote API views. Every mutation goes through QuoteService."""

import logging

from rest_framework import generics, permissions, status
from rest_framework.filters import SearchFilter
from rest_framework.response import Response
from rest_framework.views import APIView
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema

from apps.authentication.permissions import IsOperator, actor_label, scope_to_actor
from apps.orders.serializers import OrderDetailSerializer
from .models import Quote
from .service import QuoteService
from . import serializers as sz

logger = logging.getLogger("freightdesk.quotes")
quote_service = QuoteService()


# ── POST /api/quotes/request/ ─────────────────────────────────────────────────
@extend_schema(tags=["Quotes"], summary="Request a quote (public)", request=sz.QuoteRequestSerializer)
class QuoteRequestView(APIView):
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        ser = sz.QuoteRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        quote = quote_service.request_public(ser.validated_data)
        return Response({
            "quote_number":      quote.quote_number,
            "status":            quote.status,
            "shipping_cost":     str(quote.shipping_cost),
            "total_amount":      str(quote.total_amount),
            "currency":          quote.currency,
            "estimated_transit": quote.estimated_transit,
            "valid_until":       quote.valid_until,
        }, status=status.HTTP_201_CREATED)


# ── GET/POST /api/quotes/ ─────────────────────────────────────────────────────
@extend_schema(tags=["Quotes"], summary="List quotes, or draft one (operator)")
class QuoteListCreateView(generics.ListCreateAPIView):
    filter_backends  = [DjangoFilterBackend, SearchFilter]
    filterset_fields = ["status"]
    search_fields    = ["quote_number", "customer_name", "customer_email"]

    def get_permissions(self):
        if self.request.method == "POST":
            return [IsOperator()]
        return [permissions.IsAuthenticated()]

    def get_serializer_class(self):
        if self.request.method == "POST":
            return sz.QuoteWriteSerializer
        return sz.QuoteListSerializer

    def get_queryset(self):
        return scope_to_actor(Quote.objects.all(), self.request.user)

    def create(self, request, *args, **kwargs):
        ser = sz.QuoteWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        quote = quote_service.create_draft(ser.validated_data, actor=actor_label(request.user))
        return Response(sz.QuoteDetailSerializer(quote).data, status=status.HTTP_201_CREATED)


# ── GET/PATCH /api/quotes/{quote_number}/ ─────────────────────────────────────
@extend_schema(tags=["Quotes"], summary="Retrieve a quote, or edit a draft (operator)")
class QuoteDetailView(generics.RetrieveAPIView):
    serializer_class = sz.QuoteDetailSerializer
    lookup_field     = "quote_number"

    def get_permissions(self):
        if self.request.method == "PATCH":
            return [IsOperator()]
        return [permissions.IsAuthenticated()]

    def get_queryset(self):
        return scope_to_actor(Quote.objects.prefetch_related("items"), self.request.user)

    @extend_schema(request=sz.QuoteWriteSerializer)
    def patch(self, request, quote_number):
        ser = sz.QuoteWriteSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        quote = quote_service.edit(quote_number, ser.validated_data, actor=actor_label(request.user))
        return Response(sz.QuoteDetailSerializer(quote).data)


# ── POST /api/quotes/{quote_number}/{action}/ ─────────────────────────────────
@extend_schema(tags=["Quotes"], summary="Move a quote through its lifecycle (operator)", request=None)
class QuoteActionView(APIView):
    permission_classes = [IsOperator]
    transition = None

    def post(self, request, quote_number):
        actor = actor_label(request.user)
        if self.transition == "convert":
            order = quote_service.convert(quote_number, actor=actor)
            return Response(OrderDetailSerializer(order).data, status=status.HTTP_201_CREATED)
        quote = getattr(quote_service, self.transition)(quote_number, actor=actor)
        return Response(sz.QuoteDetailSerializer(quote).data)


# ── POST /api/quotes/bulk-status/ ─────────────────────────────────────────────
@extend_schema(tags=["Quotes"], summary="Reject or expire many quotes (operator)", request=sz.BulkStatusSerializer)
class QuoteBulkStatusView(APIView):
    permission_classes = [IsOperator]

    def post(self, request):
        ser = sz.BulkStatusSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        d = ser.validated_data
        result = quote_service.bulk_status(d["quote_numbers"], d["status"], actor=actor_label(request.user))
        return Response(result)
