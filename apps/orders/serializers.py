"""Order serializers."""

from rest_framework import serializers

from apps.authentication.views import validate_phone
from .models import Order, OrderItem, OrderStatusHistory


class OrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model  = OrderItem
        fields = ["name", "description", "unit", "quantity", "unit_price", "total_price",
                  "length_cm", "width_cm", "height_cm", "weight_kg"]


class StatusHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model  = OrderStatusHistory
        fields = ["sequence", "status", "note", "actor", "created_at"]


class OrderDetailSerializer(serializers.ModelSerializer):
    items            = OrderItemSerializer(many=True, read_only=True)
    history          = StatusHistorySerializer(many=True, read_only=True)
    quote_number     = serializers.CharField(source="quote.quote_number", read_only=True, default=None)
    progress_percent = serializers.IntegerField(read_only=True)

    class Meta:
        model  = Order
        fields = [
            "id", "order_number", "status", "progress_percent", "quote_number",
            "customer_name", "customer_email", "customer_phone", "customer_company",
            "subtotal", "shipping_cost", "insurance_cost", "customs_duty", "discount",
            "tax_amount", "total_amount", "currency", "deposit_amount", "balance_due",
            "shipping_method", "origin_city", "destination_city",
            "tracking_id", "vessel_name", "shipment_destination", "estimated_delivery",
            "notes", "closed_at", "created_at", "updated_at",
            "items", "history",
        ]


class OrderListSerializer(serializers.ModelSerializer):
    class Meta:
        model  = Order
        fields = ["order_number", "status", "customer_name", "customer_email", "total_amount",
                  "balance_due", "currency", "tracking_id", "created_at"]


class DirectOrderItemSerializer(serializers.Serializer):
    name        = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True)
    unit        = serializers.CharField(max_length=20, required=False)
    quantity    = serializers.IntegerField(min_value=1)
    unit_price  = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)


class DirectOrderSerializer(serializers.Serializer):
    customer_name    = serializers.CharField(max_length=120)
    customer_email   = serializers.EmailField()
    customer_phone   = serializers.CharField(max_length=30, required=False, allow_blank=True,
                                             validators=[validate_phone])
    customer_company = serializers.CharField(max_length=120, required=False, allow_blank=True)
    shipping_cost    = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    insurance_cost   = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    customs_duty     = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    discount         = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    tax_amount       = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    currency         = serializers.CharField(max_length=3, required=False)
    shipping_method  = serializers.CharField(max_length=40, required=False, allow_blank=True)
    origin_city      = serializers.CharField(max_length=80, required=False, allow_blank=True)
    destination_city = serializers.CharField(max_length=80, required=False, allow_blank=True)
    notes            = serializers.CharField(required=False, allow_blank=True)
    items            = DirectOrderItemSerializer(many=True, allow_empty=False)


class OrderDetailsUpdateSerializer(serializers.Serializer):
    tracking_id          = serializers.CharField(max_length=60, required=False, allow_blank=True)
    vessel_name          = serializers.CharField(max_length=80, required=False, allow_blank=True)
    shipment_destination = serializers.CharField(max_length=120, required=False, allow_blank=True)
    estimated_delivery   = serializers.DateField(required=False, allow_null=True)
    notes                = serializers.CharField(required=False, allow_blank=True)


class StatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Order.Status.choices)
    note   = serializers.CharField(required=False, allow_blank=True, default="")
