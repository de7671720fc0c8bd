"""
Payment ledger models.

Payment       processing → completed | failed,  completed → refunded  (forward only)
PaymentLink   active → used (at most once) | expired
"""

import secrets
import uuid

from django.db import models
from django.utils import timezone


def generate_token():
    return secrets.token_urlsafe(24)


# ── Payment ───────────────────────────────────────────────────────────────────
class Payment(models.Model):

    class Status(models.TextChoices):
        PROCESSING = "processing", "Processing"
        COMPLETED  = "completed",  "Completed"
        FAILED     = "failed",     "Failed"
        REFUNDED   = "refunded",   "Refunded"

    class Type(models.TextChoices):
        DEPOSIT = "deposit", "Deposit"
        BALANCE = "balance", "Balance"
        FULL    = "full",    "Full"

    class Method(models.TextChoices):
        AIRWALLEX     = "airwallex",     "Airwallex"
        SANDBOX       = "sandbox",       "Sandbox"
        BANK_TRANSFER = "bank_transfer", "Bank transfer"
        WIRE          = "wire",          "Wire"
        CASH          = "cash",          "Cash"
        OTHER         = "other",         "Other"

    id             = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    payment_number = models.CharField(max_length=20, unique=True, db_index=True)
    # Null only while a live checkout has not settled yet
    order          = models.ForeignKey("orders.Order", on_delete=models.PROTECT,
                                       null=True, blank=True, related_name="payments")
    # Checkout payments keep their quote so a late provider event can still settle
    quote          = models.ForeignKey("quotes.Quote", on_delete=models.SET_NULL,
                                       null=True, blank=True, related_name="checkout_payments")
    amount         = models.DecimalField(max_digits=12, decimal_places=2)
    currency       = models.CharField(max_length=3, default="USD")
    method         = models.CharField(max_length=20, choices=Method.choices, default=Method.BANK_TRANSFER)
    status         = models.CharField(max_length=10, choices=Status.choices, default=Status.PROCESSING)
    payment_type   = models.CharField(max_length=10, choices=Type.choices, default=Type.DEPOSIT)
    external_id    = models.CharField(max_length=100, unique=True, null=True, blank=True)
    notes          = models.TextField(blank=True)
    paid_at        = models.DateTimeField(null=True, blank=True)
    failed_at      = models.DateTimeField(null=True, blank=True)
    refunded_at    = models.DateTimeField(null=True, blank=True)
    created_at     = models.DateTimeField(auto_now_add=True)
    updated_at     = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes  = [models.Index(fields=["status"], name="payment_status_idx")]

    def __str__(self):
        return f"{self.payment_number} – {self.status} ({self.amount} {self.currency})"


# ── Payment link ──────────────────────────────────────────────────────────────
class PaymentLink(models.Model):

    class Status(models.TextChoices):
        ACTIVE  = "active",  "Active"
        USED    = "used",    "Used"
        EXPIRED = "expired", "Expired"

    id          = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    token       = models.CharField(max_length=64, unique=True, default=generate_token)
    quote       = models.OneToOneField("quotes.Quote", on_delete=models.CASCADE, related_name="payment_link")
    payment     = models.OneToOneField(Payment, on_delete=models.SET_NULL,
                                       null=True, blank=True, related_name="link")
    amount      = models.DecimalField(max_digits=12, decimal_places=2)
    currency    = models.CharField(max_length=3, default="USD")
    description = models.CharField(max_length=255, blank=True)
    status      = models.CharField(max_length=10, choices=Status.choices, default=Status.ACTIVE)
    expires_at  = models.DateTimeField()
    used_at     = models.DateTimeField(null=True, blank=True)
    created_at  = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [models.Index(fields=["status", "expires_at"], name="paylink_status_expiry_idx")]

    def __str__(self):
        return f"Link for {self.quote.quote_number} [{self.status}]"

    def is_expired(self, now=None) -> bool:
        return self.status == self.Status.EXPIRED or (now or timezone.now()) >= self.expires_at
