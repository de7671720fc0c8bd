"""Pricing API views: public rate estimates."""

from decimal import Decimal

from rest_framework import permissions
from rest_framework.response import Response
from rest_framework.views import APIView
from drf_spectacular.utils import extend_schema

from . import rates
from . import serializers as sz


# ── POST /api/pricing/estimate/ ───────────────────────────────────────────────
@extend_schema(tags=["Pricing"], summary="Estimate freight for cargo weights or dimensions")
class RateEstimateView(APIView):
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        ser = sz.RateEstimateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        d = ser.validated_data

        actual, volumetric = rates.cargo_weights(d.get("items") or [])
        if d.get("actual_weight_kg") is not None:
            actual = d["actual_weight_kg"]
        if d.get("volumetric_weight_kg") is not None:
            volumetric = d["volumetric_weight_kg"]

        breakdown = rates.quote_for(d["delivery_type"], d["destination_id"], actual, volumetric)
        return Response({k: str(v) if isinstance(v, Decimal) else v
                         for k, v in breakdown.as_dict().items()})


# ── GET /api/pricing/destinations/ ────────────────────────────────────────────
@extend_schema(tags=["Pricing"], summary="List door-to-door zones and warehouse pickup cities")
class DestinationListView(APIView):
    permission_classes = [permissions.AllowAny]

    def get(self, request):
        return Response({
            rates.DOOR_TO_DOOR:     sz.DestinationSerializer(rates.ZONES, many=True).data,
            rates.WAREHOUSE_PICKUP: sz.DestinationSerializer(rates.WAREHOUSE_CITIES, many=True).data,
            "tiers_kg": [str(t.min_kg) for t in rates.DOOR_TO_DOOR_TIERS],
            "rmb_to_usd": str(rates.RMB_TO_USD),
        })
