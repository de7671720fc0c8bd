"""Order API views."""

import logging

from rest_framework import generics, permissions, status
from rest_framework.filters import SearchFilter
from rest_framework.response import Response
from rest_framework.views import APIView
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema

from apps.authentication.permissions import IsOperator, actor_label, scope_to_actor
from .models import Order
from .service import OrderService
from . import serializers as sz

logger = logging.getLogger("freightdesk.orders")
order_service = OrderService()


# ── GET/POST /api/orders/ ─────────────────────────────────────────────────────
@extend_schema(tags=["Orders"], summary="List orders, or create one directly (operator)")
class OrderListCreateView(generics.ListCreateAPIView):
    filter_backends  = [DjangoFilterBackend, SearchFilter]
    filterset_fields = ["status"]
    search_fields    = ["order_number", "customer_name", "customer_email", "tracking_id"]

    def get_permissions(self):
        if self.request.method == "POST":
            return [IsOperator()]
        return [permissions.IsAuthenticated()]

    def get_serializer_class(self):
        if self.request.method == "POST":
            return sz.DirectOrderSerializer
        return sz.OrderListSerializer

    def get_queryset(self):
        return scope_to_actor(Order.objects.all(), self.request.user)

    def create(self, request, *args, **kwargs):
        ser = sz.DirectOrderSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        order = order_service.create_direct(ser.validated_data, actor=actor_label(request.user))
        return Response(sz.OrderDetailSerializer(order).data, status=status.HTTP_201_CREATED)


# ── GET/PATCH /api/orders/{order_number}/ ─────────────────────────────────────
@extend_schema(tags=["Orders"], summary="Retrieve an order, or update its shipment details (operator)")
class OrderDetailView(generics.RetrieveAPIView):
    serializer_class = sz.OrderDetailSerializer
    lookup_field     = "order_number"

    def get_permissions(self):
        if self.request.method == "PATCH":
            return [IsOperator()]
        return [permissions.IsAuthenticated()]

    def get_queryset(self):
        return scope_to_actor(
            Order.objects.select_related("quote").prefetch_related("items", "history"),
            self.request.user,
        )

    @extend_schema(request=sz.OrderDetailsUpdateSerializer)
    def patch(self, request, order_number):
        ser = sz.OrderDetailsUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        order = order_service.update_details(order_number, ser.validated_data)
        return Response(sz.OrderDetailSerializer(order).data)


# ── POST /api/orders/{order_number}/status/ ───────────────────────────────────
@extend_schema(tags=["Orders"], summary="Record an order status change (operator)", request=sz.StatusUpdateSerializer)
class OrderStatusView(APIView):
    permission_classes = [IsOperator]

    def post(self, request, order_number):
        ser = sz.StatusUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        d = ser.validated_data
        order = order_service.update_status(order_number, d["status"], d["note"], actor=actor_label(request.user))
        return Response(sz.OrderDetailSerializer(order).data)
