"""
Line-item and cost-breakdown arithmetic shared by quotes and direct orders.

    subtotal = Σ quantity × unit_price
    total    = subtotal + shipping + insurance + customs + tax − discount
"""

from decimal import Decimal
from typing import Iterable, List, Tuple

from apps.common.errors import IntegrityViolation, ValidationFailed
from apps.common.money import ZERO, cents, d

ITEM_FIELDS = ("name", "description", "unit", "quantity", "unit_price",
               "length_cm", "width_cm", "height_cm", "weight_kg")


def price_lines(items: Iterable[dict]) -> Tuple[List[dict], Decimal]:
    """Return normalised line dicts (with ``total_price``) and their subtotal."""
    lines = []
    subtotal = ZERO
    for raw in items:
        quantity = int(raw.get("quantity") or 0)
        unit_price = d(raw.get("unit_price"))
        if quantity <= 0:
            raise ValidationFailed(f"Item '{raw.get('name', '')}' needs a positive quantity.")
        if unit_price < 0:
            raise ValidationFailed(f"Item '{raw.get('name', '')}' has a negative unit price.")
        line = {k: raw[k] for k in ITEM_FIELDS if raw.get(k) is not None}
        line["quantity"] = quantity
        line["unit_price"] = cents(unit_price)
        line["total_price"] = cents(quantity * unit_price)
        subtotal += line["total_price"]
        lines.append(line)
    if not lines:
        raise ValidationFailed("At least one item is required.")
    return lines, cents(subtotal)


def apply_costs(instance, subtotal, costs: dict) -> None:
    """Write subtotal, the optional cost fields and the recomputed total onto ``instance``."""
    instance.subtotal = subtotal
    for field in instance.COST_FIELDS:
        if field in costs and costs[field] is not None:
            value = cents(costs[field])
            if value < 0:
                raise ValidationFailed(f"{field} cannot be negative.")
            setattr(instance, field, value)
    total = instance.compute_total()
    if total < 0:
        raise IntegrityViolation(f"Total would be negative ({total}); reduce the discount.")
    instance.total_amount = total
