"""Billing documents for an order: list (owner or operator), issue (operator)."""

from django.http import HttpResponse
from rest_framework import permissions
from rest_framework.response import Response
from rest_framework.views import APIView
from drf_spectacular.utils import extend_schema

from apps.authentication.permissions import IsOperator, actor_label, scope_to_actor
from apps.common.errors import NotFound
from apps.orders.models import Order
from .service import DocumentService
from . import serializers as sz

document_service = DocumentService()


# ── GET/POST /api/orders/{order_number}/documents/ ────────────────────────────
@extend_schema(tags=["Documents"])
class OrderDocumentsView(APIView):

    def get_permissions(self):
        if self.request.method == "POST":
            return [IsOperator()]
        return [permissions.IsAuthenticated()]

    @extend_schema(summary="List documents issued for an order", responses=sz.DocumentSerializer(many=True))
    def get(self, request, order_number):
        order = scope_to_actor(Order.objects.all(), request.user).filter(order_number=order_number).first()
        if order is None:
            raise NotFound(f"Order {order_number} not found.")
        return Response(sz.DocumentSerializer(order.documents.all(), many=True).data)

    @extend_schema(summary="Issue an invoice, receipt or purchase order (operator)",
                   request=sz.DocumentIssueSerializer)
    def post(self, request, order_number):
        ser = sz.DocumentIssueSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        d = ser.validated_data
        document, content = document_service.issue(
            order_number, d["doc_type"], d["notes"], actor=actor_label(request.user),
        )
        renderer = document_service.renderer
        response = HttpResponse(content, content_type=renderer.content_type, status=201)
        response["Content-Disposition"] = f'attachment; filename="{document.document_number}.{renderer.extension}"'
        response["X-Document-Number"] = document.document_number
        return response
