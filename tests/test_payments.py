"""
Payment reconciler: operator payments, provider webhooks, balance invariant.
Webhook events are applied with an explicit ``verified`` flag, so no real
signatures are needed here; signature checking itself is covered at the end.
"""

import hashlib
import hmac
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
from django.db.models import Sum
from django.test import override_settings

from apps.common.errors import (
    Conflict, IntegrityViolation, NotFound, SignatureRejected, ValidationFailed,
)
from apps.orders.models import Order
from apps.orders.service import OrderService
from apps.payments import service as ledger
from apps.payments.gateway import AirwallexClient, verify_webhook
from apps.payments.models import Payment, PaymentLink
from apps.payments.service import PaymentReconciler, ProviderEvent
from apps.quotes.models import Quote
from apps.sequences.models import Prefix
from apps.sequences.service import allocate


@pytest.fixture
def reconciler(db):
    return PaymentReconciler(notification_service=MagicMock())


@pytest.fixture
def pending_order(db):
    return OrderService(notification_service=MagicMock()).create_direct({
        "customer_name": "Acme Imports", "customer_email": "buyer@acme.test",
        "items": [{"name": "Machinery", "quantity": 2, "unit_price": Decimal("2500")}],
    })


def processing_payment(order, external_id, amount="1000.00"):
    return Payment.objects.create(
        payment_number=allocate(Prefix.PAYMENT), order=order, amount=Decimal(amount),
        method=Payment.Method.AIRWALLEX, status=Payment.Status.PROCESSING, external_id=external_id,
    )


def event(name, reference):
    return ProviderEvent.from_payload({"id": "evt_1", "name": name, "data": {"object": {"id": reference}}})


def assert_balance_invariant(order):
    order.refresh_from_db()
    payments = Payment.objects.filter(order=order)
    ever_completed = payments.filter(status__in=["completed", "refunded"]).aggregate(s=Sum("amount"))["s"] or 0
    refunded = payments.filter(status="refunded").aggregate(s=Sum("amount"))["s"] or 0
    assert order.balance_due == max(0, order.total_amount - ever_completed + refunded)
    assert order.balance_due >= 0


# ═══════════════════════════════════════════════════════════════════════════════
# OPERATOR PAYMENTS
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.mark.django_db
class TestOperatorPayments:

    def test_deposit_confirms_pending_order(self, reconciler, pending_order):
        payment = reconciler.record_operator_payment(pending_order.order_number, Decimal("3500"), actor="ops")
        pending_order.refresh_from_db()

        assert payment.status == Payment.Status.COMPLETED
        assert payment.paid_at is not None
        assert payment.payment_number.startswith("PAY-")
        assert pending_order.deposit_amount == Decimal("3500.00")
        assert pending_order.balance_due == Decimal("1500.00")
        assert pending_order.status == Order.Status.CONFIRMED
        last = pending_order.history.last()
        assert (last.sequence, last.status) == (2, "confirmed")
        assert payment.payment_number in last.note

    def test_balance_payment_clears_order(self, reconciler, pending_order):
        reconciler.record_operator_payment(pending_order.order_number, Decimal("3500"))
        reconciler.record_operator_payment(pending_order.order_number, Decimal("1500"), payment_type="balance")
        pending_order.refresh_from_db()
        assert pending_order.balance_due == Decimal("0.00")
        assert pending_order.deposit_amount == Decimal("5000.00")
        # already confirmed: no second confirmation entry
        assert pending_order.history.filter(status="confirmed").count() == 1

    def test_overpayment_is_blocked(self, reconciler, pending_order):
        reconciler.record_operator_payment(pending_order.order_number, Decimal("4000"))
        with pytest.raises(IntegrityViolation):
            reconciler.record_operator_payment(pending_order.order_number, Decimal("1000.01"))
        assert Payment.objects.count() == 1
        assert_balance_invariant(pending_order)

    def test_recomputes_from_ledger_not_increments(self, reconciler, converted_order):
        """A converted order starts with the expected deposit; the first payment replaces it with what was paid."""
        reconciler.record_operator_payment(converted_order.order_number, Decimal("200"))
        converted_order.refresh_from_db()
        assert converted_order.deposit_amount == Decimal("200.00")
        assert converted_order.balance_due == Decimal("800.00")

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5")])
    def test_amount_must_be_positive(self, reconciler, pending_order, amount):
        with pytest.raises(ValidationFailed):
            reconciler.record_operator_payment(pending_order.order_number, amount)

    def test_unknown_order(self, reconciler):
        with pytest.raises(NotFound):
            reconciler.record_operator_payment("ORD-2026-9999", Decimal("10"))

    def test_duplicate_external_reference(self, reconciler, pending_order):
        reconciler.record_operator_payment(pending_order.order_number, Decimal("10"), external_id="WIRE-1")
        with pytest.raises(Conflict) as exc:
            reconciler.record_operator_payment(pending_order.order_number, Decimal("10"), external_id="WIRE-1")
        assert exc.value.reason == "duplicate_reference"

    def test_notifications(self, pending_order):
        notifier = MagicMock()
        PaymentReconciler(notification_service=notifier).record_operator_payment(
            pending_order.order_number, Decimal("100"),
        )
        events = [c.args[0] for c in notifier.dispatch_on_commit.call_args_list]
        assert events == ["order_confirmed", "payment_received"]


# ═══════════════════════════════════════════════════════════════════════════════
# PROVIDER EVENTS
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.mark.django_db
class TestProviderEvents:

    def test_unverified_event_is_rejected(self, reconciler, pending_order):
        payment = processing_payment(pending_order, "int_1")
        with pytest.raises(SignatureRejected):
            reconciler.apply_provider_event(event(ledger.PAYMENT_SUCCEEDED, "int_1"), verified=False)
        payment.refresh_from_db()
        assert payment.status == Payment.Status.PROCESSING

    def test_success_completes_and_settles(self, reconciler, pending_order):
        payment = processing_payment(pending_order, "int_1", amount="3500.00")
        outcome = reconciler.apply_provider_event(event(ledger.PAYMENT_SUCCEEDED, "int_1"), verified=True)

        assert outcome == ledger.APPLIED
        payment.refresh_from_db(); pending_order.refresh_from_db()
        assert payment.status == Payment.Status.COMPLETED
        assert payment.paid_at is not None
        assert pending_order.balance_due == Decimal("1500.00")
        assert pending_order.status == Order.Status.CONFIRMED

    def test_replayed_success_is_a_no_op(self, reconciler, pending_order):
        processing_payment(pending_order, "int_1", amount="3500.00")
        first = reconciler.apply_provider_event(event(ledger.PAYMENT_SUCCEEDED, "int_1"), verified=True)
        second = reconciler.apply_provider_event(event(ledger.PAYMENT_SUCCEEDED, "int_1"), verified=True)

        assert (first, second) == (ledger.APPLIED, ledger.DUPLICATE)
        assert Payment.objects.filter(status=Payment.Status.COMPLETED).count() == 1
        pending_order.refresh_from_db()
        assert pending_order.balance_due == Decimal("1500.00")
        assert pending_order.history.filter(status="confirmed").count() == 1

    def test_failure_marks_failed_without_recompute(self, reconciler, pending_order):
        payment = processing_payment(pending_order, "int_2")
        outcome = reconciler.apply_provider_event(event(ledger.PAYMENT_FAILED, "int_2"), verified=True)
        assert outcome == ledger.APPLIED
        payment.refresh_from_db(); pending_order.refresh_from_db()
        assert payment.status == Payment.Status.FAILED
        assert payment.failed_at is not None
        assert pending_order.balance_due == Decimal("5000.00")
        assert pending_order.status == Order.Status.PENDING

    def test_late_failure_after_success_is_ignored(self, reconciler, pending_order):
        payment = processing_payment(pending_order, "int_3")
        reconciler.apply_provider_event(event(ledger.PAYMENT_SUCCEEDED, "int_3"), verified=True)
        outcome = reconciler.apply_provider_event(event(ledger.PAYMENT_FAILED, "int_3"), verified=True)
        assert outcome == ledger.DUPLICATE
        payment.refresh_from_db()
        assert payment.status == Payment.Status.COMPLETED

    def test_refund_restores_balance(self, reconciler, pending_order):
        payment = processing_payment(pending_order, "int_4", amount="3500.00")
        reconciler.apply_provider_event(event(ledger.PAYMENT_SUCCEEDED, "int_4"), verified=True)
        refund = ProviderEvent.from_payload({
            "name": ledger.REFUND_SUCCEEDED,
            "data": {"object": {"id": "rfd_1", "payment_intent_id": "int_4"}},
        })
        assert reconciler.apply_provider_event(refund, verified=True) == ledger.APPLIED

        payment.refresh_from_db(); pending_order.refresh_from_db()
        assert payment.status == Payment.Status.REFUNDED
        assert payment.refunded_at is not None
        assert pending_order.balance_due == Decimal("5000.00")
        assert_balance_invariant(pending_order)

    def test_refund_of_unsettled_payment_is_a_no_op(self, reconciler, pending_order):
        processing_payment(pending_order, "int_5")
        assert reconciler.apply_provider_event(event(ledger.REFUND_SUCCEEDED, "int_5"), verified=True) == ledger.DUPLICATE

    def test_unknown_reference_is_acknowledged(self, reconciler):
        outcome = reconciler.apply_provider_event(event(ledger.PAYMENT_SUCCEEDED, "int_nobody"), verified=True)
        assert outcome == ledger.UNKNOWN_REFERENCE

    def test_unhandled_event_is_ignored(self, reconciler):
        outcome = reconciler.apply_provider_event(
            event("payment_intent.requires_payment_method", "int_1"), verified=True,
        )
        assert outcome == ledger.IGNORED

    def test_ledger_failure_rolls_back_and_is_acknowledged(self, reconciler, pending_order):
        payment = processing_payment(pending_order, "int_review")
        with patch.object(reconciler, "settle", side_effect=IntegrityViolation("ledger drift")):
            outcome = reconciler.apply_provider_event(event(ledger.PAYMENT_SUCCEEDED, "int_review"), verified=True)

        assert outcome == ledger.NEEDS_REVIEW
        payment.refresh_from_db(); pending_order.refresh_from_db()
        assert payment.status == Payment.Status.PROCESSING
        assert pending_order.status == Order.Status.PENDING

    def test_malformed_payload(self):
        with pytest.raises(ValidationFailed):
            ProviderEvent.from_payload({"name": "payment_intent.succeeded"})

    def test_mixed_history_keeps_invariant(self, reconciler, pending_order):
        reconciler.record_operator_payment(pending_order.order_number, Decimal("1000"))
        processing_payment(pending_order, "int_a", amount="2000.00")
        processing_payment(pending_order, "int_b", amount="1500.00")
        reconciler.apply_provider_event(event(ledger.PAYMENT_SUCCEEDED, "int_a"), verified=True)
        reconciler.apply_provider_event(event(ledger.PAYMENT_FAILED, "int_b"), verified=True)
        reconciler.apply_provider_event(event(ledger.REFUND_SUCCEEDED, "int_a"), verified=True)
        reconciler.apply_provider_event(event(ledger.PAYMENT_SUCCEEDED, "int_a"), verified=True)
        assert_balance_invariant(pending_order)
        pending_order.refresh_from_db()
        assert pending_order.balance_due == Decimal("4000.00")


@pytest.mark.django_db
class TestCheckoutSettlement:
    """A live checkout payment has no order until the provider confirms it."""

    def test_success_converts_the_quote(self, reconciler, sent_quote):
        link = PaymentLink.objects.get(quote=sent_quote)
        payment = Payment.objects.create(
            payment_number=allocate(Prefix.PAYMENT), amount=link.amount,
            method=Payment.Method.AIRWALLEX, status=Payment.Status.PROCESSING, external_id="int_live",
        )
        PaymentLink.objects.filter(pk=link.pk).update(payment=payment)

        assert reconciler.apply_provider_event(event(ledger.PAYMENT_SUCCEEDED, "int_live"), verified=True) == ledger.APPLIED

        payment.refresh_from_db(); link.refresh_from_db(); sent_quote.refresh_from_db()
        assert sent_quote.status == Quote.Status.CONVERTED
        assert link.status == PaymentLink.Status.USED
        order = payment.order
        assert order.quote_id == sent_quote.id
        assert order.deposit_amount == Decimal("700.00")
        assert order.balance_due == Decimal("300.00")
        assert_balance_invariant(order)

    def test_success_reuses_existing_order(self, reconciler, quotes, sent_quote):
        order = quotes.convert(sent_quote.quote_number)
        link = PaymentLink.objects.get(quote=sent_quote)
        payment = Payment.objects.create(
            payment_number=allocate(Prefix.PAYMENT), amount=link.amount,
            method=Payment.Method.AIRWALLEX, status=Payment.Status.PROCESSING, external_id="int_late",
        )
        PaymentLink.objects.filter(pk=link.pk).update(payment=payment)

        reconciler.apply_provider_event(event(ledger.PAYMENT_SUCCEEDED, "int_late"), verified=True)
        payment.refresh_from_db()
        assert payment.order_id == order.id
        assert Order.objects.count() == 1

    def test_capture_with_nothing_to_settle_is_acknowledged(self, reconciler):
        payment = Payment.objects.create(
            payment_number=allocate(Prefix.PAYMENT), amount=Decimal("700.00"),
            method=Payment.Method.AIRWALLEX, status=Payment.Status.PROCESSING, external_id="int_stray",
        )
        outcome = reconciler.apply_provider_event(event(ledger.PAYMENT_SUCCEEDED, "int_stray"), verified=True)

        assert outcome == ledger.NEEDS_REVIEW
        payment.refresh_from_db()
        assert payment.status == Payment.Status.COMPLETED
        assert payment.order_id is None
        assert Order.objects.count() == 0


# ═══════════════════════════════════════════════════════════════════════════════
# SIGNATURES
# ═══════════════════════════════════════════════════════════════════════════════

class TestSignatures:

    def _sign(self, secret, timestamp, body):
        return hmac.new(secret.encode(), timestamp.encode() + body, hashlib.sha256).hexdigest()

    def test_valid_signature(self):
        client = AirwallexClient(api_url="https://x", client_id="c", api_key="k", webhook_secret="whsec", env="demo")
        body = b'{"name":"payment_intent.succeeded"}'
        assert client.verify_webhook_signature(body, self._sign("whsec", "1700000000", body), "1700000000")

    def test_tampered_body(self):
        client = AirwallexClient(api_url="https://x", client_id="c", api_key="k", webhook_secret="whsec", env="demo")
        sig = self._sign("whsec", "1700000000", b"{}")
        assert not client.verify_webhook_signature(b'{"x":1}', sig, "1700000000")

    def test_missing_signature(self):
        client = AirwallexClient(api_url="https://x", client_id="c", api_key="k", webhook_secret="whsec", env="demo")
        assert not client.verify_webhook_signature(b"{}", "", "1700000000")

    def test_sandbox_accepts_unsigned(self):
        assert verify_webhook(b"{}", "", "")

    @override_settings(AIRWALLEX_API_KEY="live-key", AIRWALLEX_WEBHOOK_SECRET="")
    def test_live_mode_without_secret_rejects(self):
        assert not verify_webhook(b"{}", "", "")

    @override_settings(AIRWALLEX_WEBHOOK_SECRET="whsec")
    def test_configured_secret_is_enforced(self):
        body = b"{}"
        assert verify_webhook(body, self._sign("whsec", "1", body), "1")
        assert not verify_webhook(body, "bad", "1")
