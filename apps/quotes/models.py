"""
Quote models.
A Quote moves through draft → sent → (accepted) → converted, or ends rejected/expired.
Only drafts are editable; once sent, everything but the status is frozen.
"""

import uuid
from datetime import timedelta

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from apps.common.models import CostBreakdown, CargoLine


def default_valid_until():
    days = settings.FREIGHTDESK.get("QUOTE_VALIDITY_DAYS", 30)
    return timezone.now() + timedelta(days=days)


class Quote(CostBreakdown):

    class Status(models.TextChoices):
        DRAFT     = "draft",     "Draft"
        SENT      = "sent",      "Sent"
        ACCEPTED  = "accepted",  "Accepted"
        REJECTED  = "rejected",  "Rejected"
        EXPIRED   = "expired",   "Expired"
        CONVERTED = "converted", "Converted"

    CONVERTIBLE = (Status.SENT, Status.ACCEPTED)
    CLOSABLE    = (Status.DRAFT, Status.SENT, Status.ACCEPTED)

    id           = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    quote_number = models.CharField(max_length=20, unique=True, db_index=True)
    status       = models.CharField(max_length=10, choices=Status.choices, default=Status.DRAFT)

    # Snapshot taken at submission; the account link is resolved lazily by email
    customer         = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL,
                                         null=True, blank=True, related_name="quotes")
    customer_name    = models.CharField(max_length=120)
    customer_email   = models.EmailField()
    customer_phone   = models.CharField(max_length=30, blank=True)
    customer_company = models.CharField(max_length=120, blank=True)

    deposit_percent = models.DecimalField(max_digits=5, decimal_places=2, default=70,
                                          validators=[MinValueValidator(0), MaxValueValidator(100)])
    # Set when shipping_cost came from the rate card; such a figure is re-priced on edit
    shipping_auto   = models.BooleanField(default=False)

    shipping_method   = models.CharField(max_length=40, blank=True)
    delivery_type     = models.CharField(max_length=20, blank=True)
    destination_id    = models.CharField(max_length=30, blank=True)
    origin_city       = models.CharField(max_length=80, default="Shenzhen")
    destination_city  = models.CharField(max_length=80, blank=True)
    estimated_transit = models.CharField(max_length=40, blank=True)
    notes             = models.TextField(blank=True)

    valid_until = models.DateTimeField(default=default_valid_until)
    sent_at     = models.DateTimeField(null=True, blank=True)
    created_at  = models.DateTimeField(auto_now_add=True)
    updated_at  = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes  = [
            models.Index(fields=["status"], name="quote_status_idx"),
            models.Index(fields=["customer_email"], name="quote_customer_email_idx"),
            models.Index(fields=["created_at"], name="quote_created_idx"),
        ]

    def __str__(self):
        return f"{self.quote_number} [{self.status}]"

    def is_past_deadline(self, now=None) -> bool:
        return (now or timezone.now()) >= self.valid_until


class QuoteItem(CargoLine):
    quote = models.ForeignKey(Quote, on_delete=models.CASCADE, related_name="items")
