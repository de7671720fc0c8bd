"""
Rate card engine. Pure functions, no ORM, no I/O.

Prices are quoted in RMB per chargeable kilogram and converted to USD at a
fixed published rate. Two products share the same weight tiers:

    door-to-door      rate depends on destination zone, plus a flat last-mile surcharge
    warehouse pickup  rate depends on pickup city, no surcharge

chargeable weight = max(actual, volumetric); volumetric = L×W×H / 6000 (cm).
The tier with the highest minimum the chargeable weight meets applies; below
every minimum the lowest tier applies.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional, Tuple

from apps.common.money import d, CENTS

DOOR_TO_DOOR     = "door-to-door"
WAREHOUSE_PICKUP = "warehouse-pickup"

RMB_TO_USD           = Decimal("7.2")
VOLUMETRIC_DIVISOR   = Decimal("6000")
RMB_QUANTUM          = Decimal("1")      # rate card figures are whole yuan
DEFAULT_ZONE_ID      = "other"


@dataclass(frozen=True)
class Destination:
    id: str
    label: str
    label_zh: str
    transit_days: str
    last_mile_surcharge_rmb: Decimal = Decimal("0")


@dataclass(frozen=True)
class Tier:
    min_kg: Decimal
    rates: Dict[str, Decimal]


@dataclass(frozen=True)
class PriceBreakdown:
    delivery_type: str
    destination_id: str
    destination_label: str
    actual_weight_kg: Decimal
    volumetric_weight_kg: Decimal
    chargeable_weight_kg: Decimal
    tier_min_kg: Decimal
    rate_per_kg_rmb: Decimal
    freight_rmb: Decimal
    last_mile_surcharge_rmb: Decimal
    total_rmb: Decimal
    total_usd: Decimal
    transit_days: str

    def as_dict(self) -> dict:
        return asdict(self)


# ── Rate card ─────────────────────────────────────────────────────────────────
ZONES: List[Destination] = [
    Destination("west-1",      "West Coast A (CA, OR, WA)",  "西海岸A区", "25-35 days", Decimal("500")),
    Destination("west-2",      "West Coast B (NV, AZ)",      "西海岸B区", "25-35 days", Decimal("1000")),
    Destination("mountain",    "Mountain States",           "山地州",    "28-38 days", Decimal("2000")),
    Destination("midwest",     "Midwest",                   "中西部",    "28-38 days", Decimal("2500")),
    Destination("south",       "South",                     "南部",      "28-38 days", Decimal("1500")),
    Destination("northeast-1", "Northeast A (NY, NJ, PA)",  "东北A区",   "30-40 days", Decimal("1500")),
    Destination("northeast-2", "Northeast B (New England)", "东北B区",   "30-40 days", Decimal("2500")),
    Destination("other",       "Other US Regions",          "其他地区",  "30-45 days", Decimal("2500")),
]

WAREHOUSE_CITIES: List[Destination] = [
    Destination("la",      "Los Angeles, CA", "洛杉矶",   "22-30 days"),
    Destination("oakland", "Oakland, CA",     "奥克兰",   "22-30 days"),
    Destination("njny",    "New Jersey / New York", "新泽西/纽约", "30-40 days"),
    Destination("chicago", "Chicago, IL",     "芝加哥",   "28-38 days"),
    Destination("houston", "Houston, TX",     "休斯顿",   "28-38 days"),
]


def _tier(min_kg, **rates) -> Tier:
    return Tier(min_kg=d(min_kg), rates={k.replace("_", "-"): d(v) for k, v in rates.items()})


DOOR_TO_DOOR_TIERS: List[Tier] = [
    _tier(100,  west_1=14, west_2=15, mountain=17, midwest=17, south=16,
                northeast_1=17, northeast_2=19, other=20),
    _tier(500,  west_1=12, west_2=13, mountain=15, midwest=15, south=14,
                northeast_1=15, northeast_2=17, other=18),
    _tier(1000, west_1=11, west_2=12, mountain=14, midwest=14, south=13,
                northeast_1=14, northeast_2=16, other=17),
    _tier(3500, west_1=9,  west_2=10, mountain=12, midwest=12, south=11,
                northeast_1=12, northeast_2=14, other=15),
]

WAREHOUSE_PICKUP_TIERS: List[Tier] = [
    _tier(100,  la="10",  oakland="10.5", njny=15, chicago=14, houston=14),
    _tier(500,  la="8.5", oakland=9,      njny=13, chicago=12, houston="12.5"),
    _tier(1000, la="7.5", oakland=8,      njny=12, chicago=11, houston="11.5"),
    _tier(3500, la=6,     oakland="6.5",  njny=10, chicago=9,  houston="9.5"),
]


# ── Weights ───────────────────────────────────────────────────────────────────
def volumetric_weight(length_cm, width_cm, height_cm) -> Decimal:
    return d(length_cm) * d(width_cm) * d(height_cm) / VOLUMETRIC_DIVISOR


def chargeable_weight(actual_kg, volumetric_kg) -> Decimal:
    return max(d(actual_kg), d(volumetric_kg))


def cargo_weights(items: Iterable[dict]) -> Tuple[Decimal, Decimal]:
    """
    Sum (actual, volumetric) weight over cargo line items.
    Items carry per-unit ``weight_kg`` and ``length_cm``/``width_cm``/``height_cm``;
    missing figures contribute nothing.
    """
    actual = Decimal("0")
    volumetric = Decimal("0")
    for item in items:
        qty = d(item.get("quantity") or 1)
        if item.get("weight_kg") is not None:
            actual += qty * d(item["weight_kg"])
        dims = (item.get("length_cm"), item.get("width_cm"), item.get("height_cm"))
        if all(v is not None for v in dims):
            volumetric += qty * volumetric_weight(*dims)
    return actual, volumetric


# ── Lookup ────────────────────────────────────────────────────────────────────
def select_tier(tiers: List[Tier], weight_kg) -> Tier:
    weight = d(weight_kg)
    for tier in sorted(tiers, key=lambda t: t.min_kg, reverse=True):
        if weight >= tier.min_kg:
            return tier
    return min(tiers, key=lambda t: t.min_kg)


def _find(destinations: List[Destination], dest_id: str, fallback: Destination) -> Destination:
    for dest in destinations:
        if dest.id == dest_id:
            return dest
    return fallback


def find_zone(zone_id: str) -> Destination:
    return _find(ZONES, zone_id, _find(ZONES, DEFAULT_ZONE_ID, ZONES[-1]))


def find_city(city_id: str) -> Destination:
    return _find(WAREHOUSE_CITIES, city_id, WAREHOUSE_CITIES[0])


# ── Quotes ────────────────────────────────────────────────────────────────────
def _quote(delivery_type: str, dest: Destination, tiers: List[Tier],
           actual_kg, volumetric_kg) -> PriceBreakdown:
    chargeable = chargeable_weight(actual_kg, volumetric_kg)
    tier = select_tier(tiers, chargeable)
    rate = tier.rates[dest.id]
    freight = (chargeable * rate).quantize(RMB_QUANTUM, rounding=ROUND_HALF_UP)
    surcharge = dest.last_mile_surcharge_rmb
    total_rmb = freight + surcharge
    return PriceBreakdown(
        delivery_type=delivery_type,
        destination_id=dest.id,
        destination_label=dest.label,
        actual_weight_kg=d(actual_kg),
        volumetric_weight_kg=d(volumetric_kg),
        chargeable_weight_kg=chargeable,
        tier_min_kg=tier.min_kg,
        rate_per_kg_rmb=rate,
        freight_rmb=freight,
        last_mile_surcharge_rmb=surcharge,
        total_rmb=total_rmb,
        total_usd=(total_rmb / RMB_TO_USD).quantize(CENTS, rounding=ROUND_HALF_UP),
        transit_days=dest.transit_days,
    )


def door_to_door_quote(zone_id: str, actual_kg, volumetric_kg) -> PriceBreakdown:
    return _quote(DOOR_TO_DOOR, find_zone(zone_id), DOOR_TO_DOOR_TIERS, actual_kg, volumetric_kg)


def warehouse_pickup_quote(city_id: str, actual_kg, volumetric_kg) -> PriceBreakdown:
    return _quote(WAREHOUSE_PICKUP, find_city(city_id), WAREHOUSE_PICKUP_TIERS, actual_kg, volumetric_kg)


def quote_for(delivery_type: str, destination_id: Optional[str], actual_kg, volumetric_kg) -> PriceBreakdown:
    """Dispatch on the delivery type; anything but warehouse pickup is door-to-door."""
    if delivery_type == WAREHOUSE_PICKUP:
        return warehouse_pickup_quote(destination_id or "", actual_kg, volumetric_kg)
    return door_to_door_quote(destination_id or "", actual_kg, volumetric_kg)
