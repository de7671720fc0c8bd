"""Quote serializers."""

from rest_framework import serializers

from apps.authentication.views import validate_phone
from apps.payments.models import PaymentLink
from apps.pricing import rates
from .models import Quote, QuoteItem
from .service import pay_url

DELIVERY_TYPES = [rates.DOOR_TO_DOOR, rates.WAREHOUSE_PICKUP]


class CargoItemSerializer(serializers.Serializer):
    name        = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True)
    unit        = serializers.CharField(max_length=20, required=False)
    quantity    = serializers.IntegerField(min_value=1)
    unit_price  = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    length_cm   = serializers.DecimalField(max_digits=8, decimal_places=2, min_value=0, required=False, allow_null=True)
    width_cm    = serializers.DecimalField(max_digits=8, decimal_places=2, min_value=0, required=False, allow_null=True)
    height_cm   = serializers.DecimalField(max_digits=8, decimal_places=2, min_value=0, required=False, allow_null=True)
    weight_kg   = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, required=False, allow_null=True)


class CargoRequestItemSerializer(CargoItemSerializer):
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)


def _money_field():
    return serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)


class QuoteWriteSerializer(serializers.Serializer):
    """Operator create (all of it) and draft edit (partial=True)."""

    customer_name    = serializers.CharField(max_length=120)
    customer_email   = serializers.EmailField()
    customer_phone   = serializers.CharField(max_length=30, required=False, allow_blank=True,
                                             validators=[validate_phone])
    customer_company = serializers.CharField(max_length=120, required=False, allow_blank=True)

    shipping_cost  = _money_field()
    insurance_cost = _money_field()
    customs_duty   = _money_field()
    discount       = _money_field()
    tax_amount     = _money_field()
    currency       = serializers.CharField(max_length=3, required=False)
    deposit_percent = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=0, max_value=100,
                                               required=False)

    shipping_method   = serializers.CharField(max_length=40, required=False, allow_blank=True)
    delivery_type     = serializers.ChoiceField(choices=DELIVERY_TYPES, required=False)
    destination_id    = serializers.CharField(max_length=30, required=False, allow_blank=True)
    origin_city       = serializers.CharField(max_length=80, required=False)
    destination_city  = serializers.CharField(max_length=80, required=False, allow_blank=True)
    estimated_transit = serializers.CharField(max_length=40, required=False, allow_blank=True)
    notes             = serializers.CharField(required=False, allow_blank=True)
    valid_until       = serializers.DateTimeField(required=False)

    items = CargoItemSerializer(many=True, allow_empty=False)

    def validate_currency(self, value):
        return value.upper()


class QuoteRequestSerializer(serializers.Serializer):
    """Anonymous quote request from the public site."""

    customer_name    = serializers.CharField(max_length=120)
    customer_email   = serializers.EmailField()
    customer_phone   = serializers.CharField(max_length=30, required=False, allow_blank=True,
                                             validators=[validate_phone])
    customer_company = serializers.CharField(max_length=120, required=False, allow_blank=True)
    shipping_method  = serializers.CharField(max_length=40, required=False, allow_blank=True)
    delivery_type    = serializers.ChoiceField(choices=DELIVERY_TYPES, default=rates.DOOR_TO_DOOR)
    destination_id   = serializers.CharField(max_length=30)
    destination_city = serializers.CharField(max_length=80, required=False, allow_blank=True)
    notes            = serializers.CharField(required=False, allow_blank=True)
    items            = CargoRequestItemSerializer(many=True, allow_empty=False)


class QuoteItemSerializer(serializers.ModelSerializer):
    class Meta:
        model  = QuoteItem
        fields = ["name", "description", "unit", "quantity", "unit_price", "total_price",
                  "length_cm", "width_cm", "height_cm", "weight_kg"]


class PaymentLinkSerializer(serializers.ModelSerializer):
    pay_url = serializers.SerializerMethodField()

    class Meta:
        model  = PaymentLink
        fields = ["token", "amount", "currency", "status", "expires_at", "pay_url"]

    def get_pay_url(self, obj):
        return pay_url(obj.token)


class QuoteDetailSerializer(serializers.ModelSerializer):
    items        = QuoteItemSerializer(many=True, read_only=True)
    payment_link = serializers.SerializerMethodField()
    order_number = serializers.SerializerMethodField()

    class Meta:
        model  = Quote
        fields = [
            "id", "quote_number", "status",
            "customer_name", "customer_email", "customer_phone", "customer_company",
            "subtotal", "shipping_cost", "shipping_auto", "insurance_cost", "customs_duty", "discount",
            "tax_amount", "total_amount", "currency", "deposit_percent",
            "shipping_method", "delivery_type", "destination_id", "origin_city",
            "destination_city", "estimated_transit", "notes",
            "valid_until", "sent_at", "created_at", "updated_at",
            "items", "payment_link", "order_number",
        ]

    def get_payment_link(self, obj):
        link = PaymentLink.objects.filter(quote=obj).first()
        return PaymentLinkSerializer(link).data if link else None

    def get_order_number(self, obj):
        order = getattr(obj, "order", None) if obj.status == Quote.Status.CONVERTED else None
        return order.order_number if order else None


class QuoteListSerializer(serializers.ModelSerializer):
    class Meta:
        model  = Quote
        fields = ["quote_number", "status", "customer_name", "customer_email",
                  "total_amount", "currency", "valid_until", "created_at"]


class BulkStatusSerializer(serializers.Serializer):
    quote_numbers = serializers.ListField(child=serializers.CharField(max_length=20), allow_empty=False)
    status        = serializers.ChoiceField(choices=[Quote.Status.REJECTED, Quote.Status.EXPIRED])
