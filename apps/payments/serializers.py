"""Payment serializers."""
from decimal import Decimal

from rest_framework import serializers
from .models import Payment


class OperatorPaymentSerializer(serializers.Serializer):
    order_number = serializers.CharField(max_length=20)
    amount       = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0.01"))
    method       = serializers.ChoiceField(choices=Payment.Method.choices, default=Payment.Method.BANK_TRANSFER)
    payment_type = serializers.ChoiceField(choices=Payment.Type.choices, default=Payment.Type.DEPOSIT)
    currency     = serializers.CharField(max_length=3, required=False, allow_blank=True, default="")
    external_id  = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    notes        = serializers.CharField(required=False, allow_blank=True, default="")


class PaymentDetailSerializer(serializers.ModelSerializer):
    order_number = serializers.CharField(source="order.order_number", read_only=True, default=None)

    class Meta:
        model  = Payment
        fields = ["payment_number", "order_number", "amount", "currency", "method", "status",
                  "payment_type", "external_id", "notes", "paid_at", "failed_at", "refunded_at",
                  "created_at"]


class PayerSerializer(serializers.Serializer):
    name  = serializers.CharField(max_length=120, required=False, allow_blank=True)
    email = serializers.EmailField(required=False, allow_blank=True)
