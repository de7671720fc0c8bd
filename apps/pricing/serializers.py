"""Pricing serializers."""

from rest_framework import serializers

from . import rates


class CargoDimensionsSerializer(serializers.Serializer):
    """Per-unit physical figures of a cargo line; only used for rate calculation."""
    quantity  = serializers.IntegerField(min_value=1, default=1)
    length_cm = serializers.DecimalField(max_digits=8, decimal_places=2, min_value=0, required=False, allow_null=True)
    width_cm  = serializers.DecimalField(max_digits=8, decimal_places=2, min_value=0, required=False, allow_null=True)
    height_cm = serializers.DecimalField(max_digits=8, decimal_places=2, min_value=0, required=False, allow_null=True)
    weight_kg = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, required=False, allow_null=True)


class RateEstimateSerializer(serializers.Serializer):
    delivery_type  = serializers.ChoiceField(choices=[rates.DOOR_TO_DOOR, rates.WAREHOUSE_PICKUP])
    destination_id = serializers.CharField(max_length=30)
    actual_weight_kg     = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, required=False)
    volumetric_weight_kg = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, required=False)
    items = CargoDimensionsSerializer(many=True, required=False)

    def validate(self, data):
        if not data.get("items") and data.get("actual_weight_kg") is None and data.get("volumetric_weight_kg") is None:
            raise serializers.ValidationError("Provide cargo items or at least one weight figure.")
        return data


class DestinationSerializer(serializers.Serializer):
    id           = serializers.CharField()
    label        = serializers.CharField()
    label_zh     = serializers.CharField()
    transit_days = serializers.CharField()
    last_mile_surcharge_rmb = serializers.DecimalField(max_digits=8, decimal_places=2)
