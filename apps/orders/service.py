"""
OrderService: the order ledger.

    Quote (sent/accepted) ──convert──▶ Order [confirmed]
    direct create ──────────────────▶ Order [pending]

Every status change appends one OrderStatusHistory row under the order's row
lock. Deposit and balance only move through the payment ledger
(apps.payments.service.recompute_balance).
"""

import logging

from django.db import transaction
from django.db.models import Max
from django.utils import timezone

from apps.authentication.models import Agent
from apps.common.errors import NotFound, ValidationFailed
from apps.common.money import percent_of
from apps.common.totals import apply_costs, price_lines
from apps.notifications import service as notifications
from apps.notifications.service import NotificationService
from apps.orders.models import Order, OrderItem, OrderStatusHistory
from apps.sequences.models import Prefix
from apps.sequences.service import allocate

logger = logging.getLogger("freightdesk.orders")

DETAIL_FIELDS = (
    "tracking_id", "vessel_name", "shipment_destination", "estimated_delivery", "notes",
)
CUSTOMER_FIELDS = ("customer_name", "customer_email", "customer_phone", "customer_company")
ROUTE_FIELDS    = ("shipping_method", "origin_city", "destination_city")


def order_payload(order: Order, **extra) -> dict:
    payload = {
        "order_number":  order.order_number,
        "customer_name": order.customer_name,
        "customer_email": order.customer_email,
        "status":        order.status,
        "balance_due":   order.balance_due,
        "currency":      order.currency,
    }
    payload.update(extra)
    return payload


class OrderService:
    """Dependencies are injected so they can be swapped in tests."""

    def __init__(self, notification_service=None):
        self.notifier = notification_service or NotificationService()

    # ── Lookup ────────────────────────────────────────────────────────────────
    def get(self, order_number: str, *, lock: bool = False) -> Order:
        qs = Order.objects.select_for_update() if lock else Order.objects
        try:
            return qs.get(order_number=order_number)
        except Order.DoesNotExist:
            raise NotFound(f"Order {order_number} not found.")

    # ── History ───────────────────────────────────────────────────────────────
    def append_history(self, order: Order, status: str, note: str = "", actor: str = "system"):
        """Caller must hold the order row lock (or have just created the order)."""
        last = order.history.aggregate(last=Max("sequence"))["last"] or 0
        return OrderStatusHistory.objects.create(
            order=order, sequence=last + 1, status=status, note=note, actor=actor,
        )

    # ── Create ────────────────────────────────────────────────────────────────
    @transaction.atomic
    def create_from_quote(self, quote, actor: str = "system") -> Order:
        """
        Snapshot a quote into a confirmed order.
        The caller locks the quote and checks its state; the quote's items are
        copied so later quote edits can never reach the order.
        """
        deposit = percent_of(quote.total_amount, quote.deposit_percent)
        order = Order(
            order_number = allocate(Prefix.ORDER),
            status       = Order.Status.CONFIRMED,
            quote        = quote,
            customer     = quote.customer,
            deposit_amount = deposit,
            balance_due    = quote.total_amount - deposit,
            notes          = quote.notes,
        )
        for field in Order.SNAPSHOT_FIELDS + CUSTOMER_FIELDS + ROUTE_FIELDS:
            setattr(order, field, getattr(quote, field))
        order.save()

        OrderItem.objects.bulk_create([
            OrderItem(order=order, **{f: getattr(item, f) for f in OrderItem.COPY_FIELDS})
            for item in quote.items.all()
        ])
        self.append_history(order, Order.Status.CONFIRMED, f"Converted from {quote.quote_number}", actor)

        logger.info("Order %s created from %s (deposit %s)", order.order_number, quote.quote_number, deposit)
        self.notifier.dispatch_on_commit(notifications.ORDER_CONFIRMED, order_payload(order))
        return order

    @transaction.atomic
    def create_direct(self, data: dict, actor: str = "system") -> Order:
        """Operator-entered order with no quote. Nothing is paid yet, so the whole total is due."""
        lines, subtotal = price_lines(data.get("items") or [])
        if not data.get("customer_name") or not data.get("customer_email"):
            raise ValidationFailed("Customer name and email are required.")

        order = Order(status=Order.Status.PENDING)
        for field in CUSTOMER_FIELDS + ROUTE_FIELDS + DETAIL_FIELDS + ("currency",):
            if data.get(field) not in (None, ""):
                setattr(order, field, data[field])
        apply_costs(order, subtotal, data)
        order.deposit_amount = 0
        order.balance_due    = order.total_amount
        order.customer       = Agent.objects.find_by_email(order.customer_email)
        order.order_number   = allocate(Prefix.ORDER)
        order.save()

        OrderItem.objects.bulk_create([OrderItem(order=order, **line) for line in lines])
        self.append_history(order, Order.Status.PENDING, "Order created", actor)
        logger.info("Order %s created directly by %s", order.order_number, actor)
        return order

    # ── Update ────────────────────────────────────────────────────────────────
    @transaction.atomic
    def update_status(self, order_number: str, status: str, note: str = "", actor: str = "system") -> Order:
        if status not in Order.Status.values:
            raise ValidationFailed(f"Unknown order status '{status}'.")
        order = self.get(order_number, lock=True)
        if order.status == status:
            return order

        previous = order.status
        order.status = status
        update_fields = ["status", "updated_at"]
        if status in Order.CLOSING_STATES and order.closed_at is None:
            order.closed_at = timezone.now()
            update_fields.append("closed_at")
        order.save(update_fields=update_fields)
        self.append_history(order, status, note, actor)

        logger.info("Order %s: %s → %s by %s", order.order_number, previous, status, actor)
        self.notifier.dispatch_on_commit(
            notifications.ORDER_STATUS_CHANGED, order_payload(order, note=note),
        )
        return order

    def close(self, order_number: str, note: str = "", actor: str = "system") -> Order:
        return self.update_status(order_number, Order.Status.CLOSED, note or "Order closed", actor)

    @transaction.atomic
    def update_details(self, order_number: str, data: dict) -> Order:
        order = self.get(order_number, lock=True)
        changed = [f for f in DETAIL_FIELDS if f in data]
        for field in changed:
            value = data[field]
            setattr(order, field, value if value is not None else Order._meta.get_field(field).get_default())
        if changed:
            order.save(update_fields=changed + ["updated_at"])
        return order
