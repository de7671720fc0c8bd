"""Issued billing documents. The snapshot is frozen at issue time."""

import uuid

from django.core.serializers.json import DjangoJSONEncoder
from django.db import models


class Document(models.Model):

    class Type(models.TextChoices):
        INVOICE        = "invoice",        "Invoice"
        RECEIPT        = "receipt",        "Receipt"
        PURCHASE_ORDER = "purchase_order", "Purchase order"

    id              = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    document_number = models.CharField(max_length=20, unique=True, db_index=True)
    doc_type        = models.CharField(max_length=20, choices=Type.choices)
    order           = models.ForeignKey("orders.Order", on_delete=models.CASCADE, related_name="documents")
    snapshot        = models.JSONField(encoder=DjangoJSONEncoder)
    issued_by       = models.CharField(max_length=120, blank=True)
    created_at      = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.document_number} ({self.doc_type})"
