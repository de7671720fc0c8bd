"""
PaymentReconciler: the payment ledger.

Two writers feed it:
  * operators recording offline payments (bank transfer, wire, cash …)
  * provider webhooks moving a checkout payment forward

Order balances are never adjusted incrementally. Every change re-derives
deposit_amount and balance_due from the completed payments, under the
order's row lock, in the same transaction as the payment write.
"""

import logging
from dataclasses import dataclass, field

from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from apps.common.errors import (
    Conflict, IntegrityViolation, LedgerError, NotFound, SignatureRejected, ValidationFailed,
)
from apps.common.money import ZERO, cents
from apps.notifications import service as notifications
from apps.notifications.service import NotificationService
from apps.orders.models import Order
from apps.orders.service import OrderService, order_payload
from apps.payments.models import Payment, PaymentLink
from apps.sequences.models import Prefix
from apps.sequences.service import allocate

logger = logging.getLogger("freightdesk.payments")

# Provider event names
PAYMENT_SUCCEEDED = "payment_intent.succeeded"
PAYMENT_FAILED    = "payment_intent.payment_failed"
REFUND_SUCCEEDED  = "refund.succeeded"

# Webhook outcomes
APPLIED           = "applied"
DUPLICATE         = "duplicate"
UNKNOWN_REFERENCE = "unknown_reference"
IGNORED           = "ignored"
NEEDS_REVIEW      = "needs_review"

PROVIDER_ACTOR = "airwallex"


@dataclass
class ProviderEvent:
    name: str
    reference: str
    event_id: str = ""
    data: dict = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: dict) -> "ProviderEvent":
        """Parse an Airwallex webhook body. Refund objects point back at their intent."""
        try:
            obj = payload["data"]["object"]
            name = payload["name"]
        except (KeyError, TypeError):
            raise ValidationFailed("Webhook body is missing name or data.object.")
        if not isinstance(obj, dict):
            raise ValidationFailed("Webhook data.object must be an object.")
        reference = obj.get("payment_intent_id") or obj.get("id") or ""
        return cls(name=name, reference=reference, event_id=payload.get("id", ""), data=obj)


def completed_total(order: Order):
    return order.payments.filter(status=Payment.Status.COMPLETED).aggregate(
        total=Sum("amount"))["total"] or ZERO


def recompute_balance(order: Order) -> Order:
    """Caller holds the order row lock."""
    paid = completed_total(order)
    order.deposit_amount = paid
    order.balance_due    = max(ZERO, order.total_amount - paid)
    order.save(update_fields=["deposit_amount", "balance_due", "updated_at"])
    return order


class PaymentReconciler:
    """Dependencies are injected so they can be swapped in tests."""

    def __init__(self, order_service=None, notification_service=None):
        self.notifier = notification_service or NotificationService()
        self.orders   = order_service or OrderService(notification_service=self.notifier)

    # ── Queries ───────────────────────────────────────────────────────────────
    def list_for_order(self, order_number: str):
        order = self.orders.get(order_number)
        return order.payments.all()

    def get(self, payment_number: str) -> Payment:
        try:
            return Payment.objects.select_related("order").get(payment_number=payment_number)
        except Payment.DoesNotExist:
            raise NotFound(f"Payment {payment_number} not found.")

    # ── Settlement ────────────────────────────────────────────────────────────
    def settle(self, order: Order, payment: Payment, actor: str) -> Order:
        """Recompute the balance and confirm a pending order. Order row must be locked."""
        recompute_balance(order)
        if order.status == Order.Status.PENDING:
            order.status = Order.Status.CONFIRMED
            order.save(update_fields=["status", "updated_at"])
            self.orders.append_history(
                order, Order.Status.CONFIRMED, f"Payment {payment.payment_number} received", actor,
            )
            self.notifier.dispatch_on_commit(notifications.ORDER_CONFIRMED, order_payload(order))
        self.notifier.dispatch_on_commit(
            notifications.PAYMENT_RECEIVED,
            order_payload(order, amount=payment.amount, payment_number=payment.payment_number),
        )
        logger.info("Order %s settled: paid %s, balance %s",
                    order.order_number, order.deposit_amount, order.balance_due)
        return order

    # ── Operator payments ─────────────────────────────────────────────────────
    @transaction.atomic
    def record_operator_payment(self, order_number: str, amount, method: str = Payment.Method.BANK_TRANSFER,
                                payment_type: str = Payment.Type.DEPOSIT, currency: str = "",
                                external_id: str = "", notes: str = "", actor: str = "system") -> Payment:
        amount = cents(amount)
        if amount <= 0:
            raise ValidationFailed("Payment amount must be greater than zero.")
        if method not in Payment.Method.values:
            raise ValidationFailed(f"Unknown payment method '{method}'.")
        if payment_type not in Payment.Type.values:
            raise ValidationFailed(f"Unknown payment type '{payment_type}'.")

        order = self.orders.get(order_number, lock=True)
        paid = completed_total(order)
        if paid + amount > order.total_amount:
            raise IntegrityViolation(
                f"Payment of {amount} would exceed order total {order.total_amount} "
                f"({paid} already paid).",
            )
        if external_id and Payment.objects.filter(external_id=external_id).exists():
            raise Conflict(f"A payment with reference {external_id} already exists.",
                           reason="duplicate_reference")

        payment = Payment.objects.create(
            payment_number = allocate(Prefix.PAYMENT),
            order          = order,
            amount         = amount,
            currency       = currency or order.currency,
            method         = method,
            status         = Payment.Status.COMPLETED,
            payment_type   = payment_type,
            external_id    = external_id or None,
            notes          = notes,
            paid_at        = timezone.now(),
        )
        logger.info("Payment %s of %s recorded on %s by %s",
                    payment.payment_number, amount, order.order_number, actor)
        self.settle(order, payment, actor)
        return payment

    # ── Provider events ───────────────────────────────────────────────────────
    def apply_provider_event(self, event: ProviderEvent, verified: bool) -> str:
        """
        Apply one webhook delivery. Deliveries are at-least-once and may arrive
        out of order: an event whose payment is not in the required source
        state is a no-op. Ledger failures are logged and acknowledged as
        ``needs_review``; only a bad signature is refused.
        """
        if not verified:
            logger.warning("Rejected unsigned webhook %s for %s", event.name, event.reference)
            raise SignatureRejected("Webhook signature could not be verified.")

        handlers = {
            PAYMENT_SUCCEEDED: self._payment_succeeded,
            PAYMENT_FAILED:    self._payment_failed,
            REFUND_SUCCEEDED:  self._refund_succeeded,
        }
        handler = handlers.get(event.name)
        if handler is None:
            logger.info("Unhandled provider event %s", event.name)
            return IGNORED

        with transaction.atomic():
            payment = (
                Payment.objects.select_for_update()
                .filter(external_id=event.reference)
                .first()
            ) if event.reference else None
            if payment is None:
                logger.warning("Webhook %s for unknown reference %r", event.name, event.reference)
                return UNKNOWN_REFERENCE
            try:
                with transaction.atomic():
                    outcome = handler(payment)
            except LedgerError as exc:
                logger.error("Webhook %s for %s needs review: %s",
                             event.name, payment.payment_number, exc.message)
                outcome = NEEDS_REVIEW

        logger.info("Webhook %s for %s: %s", event.name, payment.payment_number, outcome)
        return outcome

    def _lock_quote(self, payment: Payment):
        """The quote behind a checkout payment, row-locked. Quote rows are locked before link rows."""
        from apps.quotes.models import Quote

        quote_id = payment.quote_id
        if quote_id is None:
            quote_id = PaymentLink.objects.filter(payment=payment).values_list("quote_id", flat=True).first()
        if quote_id is None:
            return None
        return Quote.objects.select_for_update().filter(pk=quote_id).first()

    def _payment_succeeded(self, payment: Payment) -> str:
        if payment.status != Payment.Status.PROCESSING:
            return DUPLICATE
        now = timezone.now()
        quote = self._lock_quote(payment)

        if quote is not None:
            PaymentLink.objects.filter(quote=quote).exclude(
                status=PaymentLink.Status.USED,
            ).update(status=PaymentLink.Status.USED, used_at=now, payment=payment)
            if payment.order_id is None:
                payment.order = self._order_for_quote(quote)

        payment.status  = Payment.Status.COMPLETED
        payment.paid_at = now
        payment.save(update_fields=["status", "paid_at", "order", "updated_at"])

        if payment.order_id is None:
            logger.error("Payment %s captured but no order could be settled%s",
                         payment.payment_number, f" for {quote.quote_number}" if quote else "")
            return NEEDS_REVIEW

        order = self.orders.get(payment.order.order_number, lock=True)
        self.settle(order, payment, PROVIDER_ACTOR)
        return APPLIED

    def _order_for_quote(self, quote):
        """
        The order a captured checkout settles into: the quote's existing order,
        or a fresh conversion. None when the quote can no longer convert.
        """
        from apps.quotes.service import QuoteService

        existing = Order.objects.filter(quote_id=quote.pk).first()
        if existing is not None:
            return existing
        quotes = QuoteService(order_service=self.orders, notification_service=self.notifier)
        try:
            return quotes.convert(quote.quote_number, actor=PROVIDER_ACTOR, settling=True)
        except Conflict as exc:
            logger.warning("Cannot convert %s for a captured payment: %s", quote.quote_number, exc.message)
            return None

    def _payment_failed(self, payment: Payment) -> str:
        if payment.status != Payment.Status.PROCESSING:
            return DUPLICATE
        payment.status    = Payment.Status.FAILED
        payment.failed_at = timezone.now()
        payment.save(update_fields=["status", "failed_at", "updated_at"])
        return APPLIED

    def _refund_succeeded(self, payment: Payment) -> str:
        if payment.status != Payment.Status.COMPLETED:
            return DUPLICATE
        payment.status      = Payment.Status.REFUNDED
        payment.refunded_at = timezone.now()
        payment.save(update_fields=["status", "refunded_at", "updated_at"])
        if payment.order_id is None:
            return APPLIED
        order = self.orders.get(payment.order.order_number, lock=True)
        recompute_balance(order)
        logger.info("Payment %s refunded; %s balance now %s",
                    payment.payment_number, order.order_number, order.balance_due)
        return APPLIED
