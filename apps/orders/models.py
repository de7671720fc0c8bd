"""
Order models.
Financial totals are a frozen snapshot of the source quote; only the payment
ledger moves deposit_amount and balance_due afterwards.
OrderStatusHistory is append-only: each order numbers its entries 1, 2, 3 …
"""

import uuid

from django.conf import settings
from django.db import models

from apps.common.models import CostBreakdown, CargoLine
from apps.common.money import ZERO


class Order(CostBreakdown):

    class Status(models.TextChoices):
        PENDING    = "pending",    "Pending"
        CONFIRMED  = "confirmed",  "Confirmed"
        SOURCING   = "sourcing",   "Sourcing"
        PACKING    = "packing",    "Packing"
        IN_TRANSIT = "in_transit", "In transit"
        CUSTOMS    = "customs",    "Customs"
        DELIVERED  = "delivered",  "Delivered"
        CLOSED     = "closed",     "Closed"
        CANCELLED  = "cancelled",  "Cancelled"

    PROGRESSION = [
        Status.PENDING, Status.CONFIRMED, Status.SOURCING, Status.PACKING,
        Status.IN_TRANSIT, Status.CUSTOMS, Status.DELIVERED, Status.CLOSED,
    ]
    CLOSING_STATES = (Status.DELIVERED, Status.CLOSED)

    id           = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order_number = models.CharField(max_length=20, unique=True, db_index=True)
    status       = models.CharField(max_length=12, choices=Status.choices, default=Status.PENDING)
    quote        = models.OneToOneField("quotes.Quote", on_delete=models.PROTECT,
                                        null=True, blank=True, related_name="order")

    customer         = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL,
                                         null=True, blank=True, related_name="orders")
    customer_name    = models.CharField(max_length=120)
    customer_email   = models.EmailField()
    customer_phone   = models.CharField(max_length=30, blank=True)
    customer_company = models.CharField(max_length=120, blank=True)

    deposit_amount = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    balance_due    = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)

    shipping_method  = models.CharField(max_length=40, blank=True)
    origin_city      = models.CharField(max_length=80, blank=True)
    destination_city = models.CharField(max_length=80, blank=True)

    # Shipment details, filled in by operators as the cargo moves
    tracking_id          = models.CharField(max_length=60, blank=True, db_index=True)
    vessel_name          = models.CharField(max_length=80, blank=True)
    shipment_destination = models.CharField(max_length=120, blank=True)
    estimated_delivery   = models.DateField(null=True, blank=True)

    notes      = models.TextField(blank=True)
    closed_at  = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes  = [
            models.Index(fields=["status"], name="order_status_idx"),
            models.Index(fields=["customer_email"], name="order_customer_email_idx"),
        ]

    def __str__(self):
        return f"{self.order_number} [{self.status}]"

    @property
    def progress_percent(self) -> int:
        if self.status not in self.PROGRESSION:
            return 0
        step = self.PROGRESSION.index(self.status)
        return round(step * 100 / (len(self.PROGRESSION) - 1))


class OrderItem(CargoLine):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")


class OrderStatusHistory(models.Model):
    """Insert-only audit trail. Never update or delete rows."""

    order      = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="history")
    sequence   = models.PositiveIntegerField()
    status     = models.CharField(max_length=12, choices=Order.Status.choices)
    note       = models.TextField(blank=True)
    actor      = models.CharField(max_length=120, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering    = ["order", "sequence"]
        constraints = [
            models.UniqueConstraint(fields=["order", "sequence"], name="uniq_order_history_sequence"),
        ]

    def __str__(self):
        return f"{self.order.order_number} #{self.sequence}: {self.status}"
