"""Payment HTTP views, including the public pay-link surface and the provider webhook."""

import json
import logging

from django.utils.decorators import method_decorator
from django.views.decorators.csrf import csrf_exempt
from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView
from drf_spectacular.utils import extend_schema, OpenApiExample

from apps.authentication.permissions import IsOperator, actor_label
from apps.payments.gateway import verify_webhook
from apps.payments.links import PaymentLinkGateway
from apps.payments.serializers import OperatorPaymentSerializer, PaymentDetailSerializer, PayerSerializer
from apps.payments.service import PaymentReconciler, ProviderEvent

logger = logging.getLogger("freightdesk.payments")
reconciler = PaymentReconciler()


# ── GET/POST /api/payments/ ───────────────────────────────────────────────────
@extend_schema(
    tags=["Payments"],
    summary="List payments for an order, or record an offline payment (operator)",
    examples=[
        OpenApiExample(
            "Bank transfer",
            value={"order_number": "ORD-2026-0001", "amount": "700.00", "method": "bank_transfer",
                   "payment_type": "deposit"},
        )
    ],
)
class PaymentListCreateView(APIView):
    permission_classes = [IsOperator]

    def get(self, request):
        order_number = request.query_params.get("order")
        if not order_number:
            return Response({"error": "Query parameter 'order' is required."},
                            status=status.HTTP_400_BAD_REQUEST)
        payments = reconciler.list_for_order(order_number)
        return Response(PaymentDetailSerializer(payments, many=True).data)

    def post(self, request):
        ser = OperatorPaymentSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        payment = reconciler.record_operator_payment(actor=actor_label(request.user), **ser.validated_data)
        return Response(PaymentDetailSerializer(payment).data, status=status.HTTP_201_CREATED)


# ── GET /api/payments/{payment_number}/ ───────────────────────────────────────
@extend_schema(tags=["Payments"], summary="Retrieve a payment (operator)")
class PaymentDetailView(APIView):
    permission_classes = [IsOperator]

    def get(self, request, payment_number):
        return Response(PaymentDetailSerializer(reconciler.get(payment_number)).data)


# ── GET/POST /api/pay/{token}/ ────────────────────────────────────────────────
@extend_schema(tags=["Payments"], summary="Look up or redeem a deposit payment link (public)")
class PaymentLinkView(APIView):
    permission_classes = [permissions.AllowAny]
    authentication_classes = []

    def get(self, request, token):
        return Response(PaymentLinkGateway().lookup(token))

    @extend_schema(request=PayerSerializer)
    def post(self, request, token):
        ser = PayerSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        result = PaymentLinkGateway().redeem(token, ser.validated_data)
        return Response({"success": True, **result})


# ── POST /api/webhooks/airwallex/ ─────────────────────────────────────────────
@extend_schema(tags=["Payments"], summary="Receive Airwallex payment events (webhook)")
@method_decorator(csrf_exempt, name="dispatch")
class AirwallexWebhookView(APIView):
    """
    Signature is verified before any state mutation.
    Unknown references and replays are acknowledged with 200 so the provider
    stops retrying; only a bad signature or an unparseable body is rejected.
    """
    permission_classes = [permissions.AllowAny]
    authentication_classes = []   # webhooks are not JWT-authenticated

    def post(self, request):
        payload   = request.body
        signature = request.headers.get("x-signature", "")
        timestamp = request.headers.get("x-timestamp", "")

        try:
            data = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return Response({"error": "Invalid JSON"}, status=status.HTTP_400_BAD_REQUEST)

        event = ProviderEvent.from_payload(data)
        outcome = reconciler.apply_provider_event(event, verified=verify_webhook(payload, signature, timestamp))
        return Response({"received": True, "outcome": outcome})
