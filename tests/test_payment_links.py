"""
Public payment links: lookup, sandbox redeem, live checkout, expiry.
"""

import datetime
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
from django.utils import timezone

from apps.common.errors import ExternalDependencyError, LinkAlreadyUsed, LinkExpired, NotFound
from apps.orders.models import Order
from apps.payments import service as ledger
from apps.payments.links import PaymentLinkGateway
from apps.payments.models import Payment, PaymentLink
from apps.payments.service import PaymentReconciler, ProviderEvent
from apps.payments.tasks import expire_payment_links
from apps.quotes.models import Quote


@pytest.fixture
def link(sent_quote):
    return PaymentLink.objects.get(quote=sent_quote)


@pytest.fixture
def sandbox(db):
    return PaymentLinkGateway(provider_client=None, reconciler=PaymentReconciler(notification_service=MagicMock()))


@pytest.fixture
def provider():
    client = MagicMock()
    client.create_intent.return_value = {"id": "int_123"}
    client.build_checkout_url.side_effect = lambda intent: f"https://demo.airwallex.com/checkout/{intent['id']}"
    return client


@pytest.fixture
def live(db, provider):
    return PaymentLinkGateway(provider_client=provider, reconciler=PaymentReconciler(notification_service=MagicMock()))


def expire(link):
    PaymentLink.objects.filter(pk=link.pk).update(expires_at=timezone.now() - datetime.timedelta(minutes=1))


def locked_rows(gateway, token, *args):
    """Redeem and return the kinds of row locked, in the order they were taken."""
    calls = []
    get_quote, get_link = gateway.quotes.get, gateway._get

    def quote_get(number, lock=False):
        calls.append(("quote", lock))
        return get_quote(number, lock=lock)

    def link_get(token, lock=False):
        calls.append(("link", lock))
        return get_link(token, lock=lock)

    with patch.object(gateway.quotes, "get", side_effect=quote_get), \
         patch.object(gateway, "_get", side_effect=link_get):
        gateway.redeem(token, *args)
    return [kind for kind, lock in calls if lock]


# ═══════════════════════════════════════════════════════════════════════════════
# LOOKUP
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.mark.django_db
class TestLookup:

    def test_link_details(self, sandbox, link, sent_quote):
        info = sandbox.lookup(link.token)
        assert info["amount"] == Decimal("700.00")
        assert info["quote"]["quote_number"] == sent_quote.quote_number
        assert len(info["quote"]["items"]) == 2

    def test_unknown_token(self, sandbox):
        with pytest.raises(NotFound):
            sandbox.lookup("no-such-token")

    def test_expired_link(self, sandbox, link):
        expire(link)
        with pytest.raises(LinkExpired):
            sandbox.lookup(link.token)


# ═══════════════════════════════════════════════════════════════════════════════
# SANDBOX REDEEM
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.mark.django_db
class TestSandboxRedeem:

    def test_redeem_converts_and_books_deposit(self, sandbox, link, sent_quote):
        result = sandbox.redeem(link.token)

        assert result["mode"] == "sandbox"
        assert result["redirect_url"] == f"https://freightdesk.test/pay/{link.token}/success?demo=1"
        order = Order.objects.get(order_number=result["order_number"])
        payment = Payment.objects.get(payment_number=result["payment_number"])
        link.refresh_from_db(); sent_quote.refresh_from_db()

        assert sent_quote.status == Quote.Status.CONVERTED
        assert link.status == PaymentLink.Status.USED
        assert link.used_at is not None
        assert link.payment_id == payment.id
        assert payment.method == Payment.Method.SANDBOX
        assert payment.status == Payment.Status.COMPLETED
        assert order.deposit_amount == Decimal("700.00")
        assert order.balance_due == Decimal("300.00")

    def test_second_redeem_is_rejected(self, sandbox, link):
        sandbox.redeem(link.token)
        with pytest.raises(LinkAlreadyUsed):
            sandbox.redeem(link.token)
        assert Order.objects.count() == 1
        assert Payment.objects.count() == 1

    def test_expired_link_cannot_be_redeemed(self, sandbox, link):
        expire(link)
        with pytest.raises(LinkExpired):
            sandbox.redeem(link.token)
        assert Order.objects.count() == 0

    def test_redeem_after_manual_conversion_reuses_order(self, sandbox, quotes, link, sent_quote):
        order = quotes.convert(sent_quote.quote_number)
        result = sandbox.redeem(link.token)
        assert result["order_number"] == order.order_number
        assert Order.objects.count() == 1

    def test_rejected_quote_kills_link(self, sandbox, quotes, link, sent_quote):
        quotes.reject(sent_quote.quote_number)
        with pytest.raises(LinkExpired):
            sandbox.redeem(link.token)

    def test_quote_row_locked_before_link_row(self, sandbox, link):
        assert locked_rows(sandbox, link.token)[:2] == ["quote", "link"]
        assert Order.objects.count() == 1


# ═══════════════════════════════════════════════════════════════════════════════
# LIVE CHECKOUT
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.mark.django_db
class TestLiveCheckout:

    def test_redeem_opens_checkout(self, live, provider, link, sent_quote):
        result = live.redeem(link.token, {"email": "payer@example.com"})

        assert result == {
            "mode":           "live",
            "redirect_url":   "https://demo.airwallex.com/checkout/int_123",
            "payment_number": result["payment_number"],
        }
        kwargs = provider.create_intent.call_args.kwargs
        assert kwargs["amount"] == Decimal("700.00")
        assert kwargs["merchant_order_id"] == sent_quote.quote_number
        assert kwargs["customer_email"] == "payer@example.com"

        payment = Payment.objects.get(external_id="int_123")
        link.refresh_from_db()
        assert payment.status == Payment.Status.PROCESSING
        assert payment.order_id is None
        assert link.status == PaymentLink.Status.ACTIVE
        assert link.payment_id == payment.id

    def test_webhook_completes_checkout(self, live, link, sent_quote):
        live.redeem(link.token)
        event = ProviderEvent.from_payload(
            {"name": ledger.PAYMENT_SUCCEEDED, "data": {"object": {"id": "int_123"}}},
        )
        assert live.reconciler.apply_provider_event(event, verified=True) == ledger.APPLIED

        link.refresh_from_db(); sent_quote.refresh_from_db()
        order = Order.objects.get(quote=sent_quote)
        assert link.status == PaymentLink.Status.USED
        assert sent_quote.status == Quote.Status.CONVERTED
        assert order.balance_due == Decimal("300.00")

        with pytest.raises(LinkAlreadyUsed):
            live.redeem(link.token)

    def test_first_checkout_settles_after_a_second_redeem(self, live, provider, link, sent_quote):
        provider.create_intent.side_effect = [{"id": "int_A"}, {"id": "int_B"}]
        live.redeem(link.token)
        live.redeem(link.token)

        event = ProviderEvent.from_payload(
            {"name": ledger.PAYMENT_SUCCEEDED, "data": {"object": {"id": "int_A"}}},
        )
        assert live.reconciler.apply_provider_event(event, verified=True) == ledger.APPLIED

        first = Payment.objects.get(external_id="int_A")
        order = Order.objects.get(quote=sent_quote)
        link.refresh_from_db(); sent_quote.refresh_from_db()
        assert first.status == Payment.Status.COMPLETED
        assert first.order_id == order.id
        assert sent_quote.status == Quote.Status.CONVERTED
        assert link.status == PaymentLink.Status.USED
        assert link.payment_id == first.id
        assert order.balance_due == Decimal("300.00")

    def test_both_captures_land_on_one_order(self, live, provider, link, sent_quote):
        provider.create_intent.side_effect = [{"id": "int_A"}, {"id": "int_B"}]
        live.redeem(link.token)
        live.redeem(link.token)

        for reference in ("int_A", "int_B"):
            event = ProviderEvent.from_payload(
                {"name": ledger.PAYMENT_SUCCEEDED, "data": {"object": {"id": reference}}},
            )
            assert live.reconciler.apply_provider_event(event, verified=True) == ledger.APPLIED

        order = Order.objects.get(quote=sent_quote)
        assert list(order.payments.values_list("status", flat=True)) == [Payment.Status.COMPLETED] * 2
        assert order.balance_due == Decimal("0.00")

    def test_capture_after_rejection_is_kept_for_review(self, live, quotes, link, sent_quote):
        live.redeem(link.token)
        quotes.reject(sent_quote.quote_number)

        event = ProviderEvent.from_payload(
            {"name": ledger.PAYMENT_SUCCEEDED, "data": {"object": {"id": "int_123"}}},
        )
        assert live.reconciler.apply_provider_event(event, verified=True) == ledger.NEEDS_REVIEW

        payment = Payment.objects.get(external_id="int_123")
        link.refresh_from_db(); sent_quote.refresh_from_db()
        assert payment.status == Payment.Status.COMPLETED
        assert payment.paid_at is not None
        assert payment.order_id is None
        assert payment.quote_id == sent_quote.id
        assert sent_quote.status == Quote.Status.REJECTED
        assert link.status == PaymentLink.Status.USED
        assert Order.objects.count() == 0

        assert live.reconciler.apply_provider_event(event, verified=True) == ledger.DUPLICATE

    def test_quote_row_locked_before_link_row(self, live, link):
        assert locked_rows(live, link.token, {})[-2:] == ["quote", "link"]

    def test_provider_failure_leaves_nothing(self, live, provider, link):
        provider.create_intent.side_effect = ExternalDependencyError("provider down")
        with pytest.raises(ExternalDependencyError):
            live.redeem(link.token)
        link.refresh_from_db()
        assert Payment.objects.count() == 0
        assert link.status == PaymentLink.Status.ACTIVE
        assert link.payment_id is None


# ═══════════════════════════════════════════════════════════════════════════════
# HTTP + SCHEDULED
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.mark.django_db
class TestPaymentLinkApi:

    def test_get_is_public(self, api_client, link):
        resp = api_client.get(f"/api/pay/{link.token}/")
        assert resp.status_code == 200
        assert resp.data["amount"] == Decimal("700.00")

    def test_redeem_over_http(self, api_client, link):
        resp = api_client.post(f"/api/pay/{link.token}/", {}, format="json")
        assert resp.status_code == 200
        assert resp.data["success"] is True
        assert resp.data["redirect_url"].endswith("?demo=1")

        again = api_client.post(f"/api/pay/{link.token}/", {}, format="json")
        assert again.status_code == 409
        assert again.data["reason"] == "already_used"

    def test_expired_is_gone(self, api_client, link):
        expire(link)
        resp = api_client.get(f"/api/pay/{link.token}/")
        assert resp.status_code == 410
        assert resp.data["kind"] == "conflict"

    def test_unknown_token_404(self, api_client, db):
        assert api_client.get("/api/pay/nope/").status_code == 404


@pytest.mark.django_db
class TestExpiryTask:

    def test_overdue_links_are_flagged(self, link):
        expire(link)
        assert expire_payment_links() == 1
        link.refresh_from_db()
        assert link.status == PaymentLink.Status.EXPIRED

    def test_live_links_untouched(self, link):
        assert expire_payment_links() == 0
        link.refresh_from_db()
        assert link.status == PaymentLink.Status.ACTIVE
