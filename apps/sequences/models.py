"""
Sequence counters: one row per (prefix, year).
The row is the serialization point for number allocation; it is never shared in-process.
"""

from django.db import models


class Prefix(models.TextChoices):
    QUOTE          = "QT",  "Quote"
    ORDER          = "ORD", "Order"
    PAYMENT        = "PAY", "Payment"
    INVOICE        = "INV", "Invoice"
    RECEIPT        = "REC", "Receipt"
    PURCHASE_ORDER = "PO",  "Purchase order"


class SequenceCounter(models.Model):
    prefix     = models.CharField(max_length=8)
    year       = models.PositiveSmallIntegerField()
    last_value = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["prefix", "year"], name="uniq_sequence_prefix_year"),
        ]

    def __str__(self):
        return f"{self.prefix}-{self.year} @ {self.last_value}"
