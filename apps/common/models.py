"""
Abstract field sets shared by quotes and orders.
Orders copy these values from quotes; they never reference quote rows for money.
"""

from django.core.validators import MinValueValidator
from django.db import models

from apps.common.money import ZERO, cents


def _money(**kwargs):
    return models.DecimalField(max_digits=12, decimal_places=2, default=ZERO, **kwargs)


class CostBreakdown(models.Model):
    subtotal       = _money()
    shipping_cost  = _money(validators=[MinValueValidator(0)])
    insurance_cost = _money(validators=[MinValueValidator(0)])
    customs_duty   = _money(validators=[MinValueValidator(0)])
    discount       = _money(validators=[MinValueValidator(0)])
    tax_amount     = _money(validators=[MinValueValidator(0)])
    total_amount   = _money()
    currency       = models.CharField(max_length=3, default="USD")

    COST_FIELDS = ("shipping_cost", "insurance_cost", "customs_duty", "discount", "tax_amount")
    SNAPSHOT_FIELDS = ("subtotal",) + COST_FIELDS + ("total_amount", "currency")

    class Meta:
        abstract = True

    def compute_total(self):
        return cents(
            self.subtotal + self.shipping_cost + self.insurance_cost
            + self.customs_duty + self.tax_amount - self.discount
        )


class CargoLine(models.Model):
    """A priced cargo line; dimensions and weight are per unit and only feed the rate engine."""

    name        = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    unit        = models.CharField(max_length=20, default="piece")
    quantity    = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    unit_price  = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(0)])
    total_price = models.DecimalField(max_digits=12, decimal_places=2)
    length_cm   = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)
    width_cm    = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)
    height_cm   = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)
    weight_kg   = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)

    COPY_FIELDS = (
        "name", "description", "unit", "quantity", "unit_price", "total_price",
        "length_cm", "width_cm", "height_cm", "weight_kg",
    )

    class Meta:
        abstract = True
        ordering = ["id"]

    def __str__(self):
        return f"{self.quantity} × {self.name}"
