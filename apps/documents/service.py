"""
DocumentService: invoices, receipts and purchase orders for an order.
Each type numbers from its own sequence (INV / REC / PO). Rendering is a
collaborator: anything with ``render(snapshot) -> bytes`` and ``content_type``.
"""

import logging

from django.db import transaction
from django.utils import timezone

from apps.common.errors import ValidationFailed
from apps.documents.models import Document
from apps.orders.service import OrderService
from apps.payments.models import Payment
from apps.payments.service import completed_total
from apps.sequences.models import Prefix
from apps.sequences.service import allocate

logger = logging.getLogger("freightdesk.documents")

PREFIXES = {
    Document.Type.INVOICE.value:        Prefix.INVOICE,
    Document.Type.RECEIPT.value:        Prefix.RECEIPT,
    Document.Type.PURCHASE_ORDER.value: Prefix.PURCHASE_ORDER,
}


class PlainTextRenderer:
    content_type = "text/plain; charset=utf-8"
    extension    = "txt"

    def render(self, snapshot: dict) -> bytes:
        lines = [
            f"{snapshot['type'].replace('_', ' ').upper()}  {snapshot['document_number']}",
            f"Date: {snapshot['date']}",
            f"Order: {snapshot['order_number']}",
        ]
        if snapshot.get("quote_number"):
            lines.append(f"Quote: {snapshot['quote_number']}")
        lines.append(f"Bill to: {snapshot['customer_name']} <{snapshot['customer_email']}>")
        lines.append("")
        for item in snapshot["items"]:
            lines.append(f"  {item['quantity']} {item['unit']}  {item['name']}  @ {item['unit_price']}  = {item['total_price']}")
        lines.append("")
        for label, key in (("Subtotal", "subtotal"), ("Shipping", "shipping_cost"),
                           ("Insurance", "insurance_cost"), ("Customs", "customs_duty"),
                           ("Discount", "discount"), ("Tax", "tax_amount"), ("Total", "total_amount")):
            lines.append(f"{label:>10}: {snapshot[key]} {snapshot['currency']}")
        if "amount_paid" in snapshot:
            lines.append(f"{'Paid':>10}: {snapshot['amount_paid']} {snapshot['currency']} ({snapshot['payment_method']})")
        if snapshot.get("notes"):
            lines += ["", snapshot["notes"]]
        return ("\n".join(lines) + "\n").encode("utf-8")


class DocumentService:

    def __init__(self, renderer=None, order_service=None):
        self.renderer = renderer or PlainTextRenderer()
        self.orders   = order_service or OrderService()

    def build_snapshot(self, order, doc_type: str, document_number: str, notes: str = "") -> dict:
        snapshot = {
            "document_number": document_number,
            "type":            doc_type,
            "date":            timezone.now().date().isoformat(),
            "customer_name":   order.customer_name,
            "customer_email":  order.customer_email,
            "customer_phone":  order.customer_phone,
            "order_number":    order.order_number,
            "quote_number":    order.quote.quote_number if order.quote_id else None,
            "items": [
                {f: str(getattr(item, f)) if f in ("unit_price", "total_price") else getattr(item, f)
                 for f in ("name", "description", "unit", "quantity", "unit_price", "total_price")}
                for item in order.items.all()
            ],
            "notes": notes or order.notes,
        }
        for field in order.SNAPSHOT_FIELDS:
            snapshot[field] = str(getattr(order, field))
        if doc_type == Document.Type.RECEIPT:
            first = order.payments.filter(status=Payment.Status.COMPLETED).order_by("paid_at").first()
            snapshot["amount_paid"]    = str(completed_total(order))
            snapshot["payment_method"] = first.method if first else "N/A"
        return snapshot

    @transaction.atomic
    def issue(self, order_number: str, doc_type: str, notes: str = "", actor: str = "system"):
        """Returns (document, rendered bytes)."""
        if doc_type not in PREFIXES:
            raise ValidationFailed(f"Unknown document type '{doc_type}'.")
        order = self.orders.get(order_number)
        number = allocate(PREFIXES[doc_type])
        snapshot = self.build_snapshot(order, doc_type, number, notes)
        document = Document.objects.create(
            document_number=number, doc_type=doc_type, order=order,
            snapshot=snapshot, issued_by=actor,
        )
        content = self.renderer.render(snapshot)
        logger.info("Issued %s for %s by %s", number, order.order_number, actor)
        return document, content
