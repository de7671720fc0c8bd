"""Quote ledger: totals, state machine, conversion, scheduled expiry."""

from datetime import timedelta
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
from django.utils import timezone

from apps.common.errors import Conflict, IntegrityViolation, NotFound, ValidationFailed
from apps.orders.models import Order
from apps.payments.models import PaymentLink
from apps.quotes.models import Quote


# ═══════════════════════════════════════════════════════════════════════════════
# CREATE & EDIT
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.mark.django_db
class TestCreateDraft:

    def test_cost_breakdown_totals(self, quotes):
        quote = quotes.create_draft({
            "customer_name": "Mei Chen", "customer_email": "mei@example.com",
            "items": [
                {"name": "A", "quantity": 2, "unit_price": Decimal("500")},
                {"name": "B", "quantity": 1, "unit_price": Decimal("300")},
            ],
            "shipping_cost": Decimal("200"), "insurance_cost": Decimal("50"),
            "customs_duty": Decimal("100"), "tax_amount": Decimal("30"), "discount": Decimal("80"),
        })
        assert quote.subtotal == Decimal("1300.00")
        assert quote.total_amount == Decimal("1600.00")
        assert quote.status == Quote.Status.DRAFT
        assert quote.items.count() == 2

    def test_defaults(self, draft_quote):
        assert draft_quote.quote_number.startswith(f"QT-{timezone.now().year}-")
        assert draft_quote.currency == "USD"
        assert draft_quote.deposit_percent == 70
        assert draft_quote.origin_city == "Shenzhen"
        remaining = draft_quote.valid_until - timezone.now()
        assert timedelta(days=29) < remaining <= timedelta(days=30)

    def test_requires_items(self, quotes, quote_data):
        with pytest.raises(ValidationFailed):
            quotes.create_draft({**quote_data, "items": []})
        assert Quote.objects.count() == 0

    def test_requires_customer_email(self, quotes, quote_data):
        with pytest.raises(ValidationFailed):
            quotes.create_draft({**quote_data, "customer_email": ""})

    def test_negative_total_is_an_integrity_failure(self, quotes, quote_data):
        with pytest.raises(IntegrityViolation):
            quotes.create_draft({**quote_data, "discount": Decimal("5000")})
        assert Quote.objects.count() == 0

    def test_shipping_priced_from_rate_card(self, quotes, quote_data):
        items = [{"name": "Crate", "quantity": 4, "unit_price": Decimal("100"), "weight_kg": Decimal("50")}]
        quote = quotes.create_draft({
            **quote_data, "items": items,
            "delivery_type": "door-to-door", "destination_id": "west-1", "destination_city": "",
        })
        # 200 kg × 14 + 500 = 3300 RMB → 458.33 USD
        assert quote.shipping_cost == Decimal("458.33")
        assert quote.total_amount == Decimal("858.33")
        assert quote.destination_city == "West Coast A (CA, OR, WA)"
        assert quote.estimated_transit == "25-35 days"

    def test_explicit_shipping_cost_is_kept(self, quotes, quote_data):
        quote = quotes.create_draft({**quote_data, "destination_id": "west-1", "shipping_cost": Decimal("99")})
        assert quote.shipping_cost == Decimal("99.00")

    def test_binds_registered_customer_by_email(self, quotes, quote_data, customer):
        quote = quotes.create_draft({**quote_data, "customer_email": "MEI@example.com"})
        assert quote.customer == customer

    def test_public_request_defaults_prices_to_zero(self, quotes):
        quote = quotes.request_public({
            "customer_name": "Sam", "customer_email": "sam@example.com",
            "delivery_type": "warehouse-pickup", "destination_id": "la",
            "items": [{"name": "Chairs", "quantity": 10, "weight_kg": Decimal("50")}],
        })
        assert quote.subtotal == Decimal("0.00")
        assert quote.shipping_cost == Decimal("590.28")
        assert quote.total_amount == Decimal("590.28")


@pytest.mark.django_db
class TestEdit:

    def test_edit_replaces_items(self, quotes, draft_quote):
        quote = quotes.edit(draft_quote.quote_number, {
            "items": [{"name": "Only", "quantity": 3, "unit_price": Decimal("10")}],
        })
        assert list(quote.items.values_list("name", flat=True)) == ["Only"]
        assert quote.subtotal == Decimal("30.00")
        assert quote.total_amount == Decimal("30.00")

    def test_edit_costs_recomputes_total(self, quotes, draft_quote):
        quote = quotes.edit(draft_quote.quote_number, {"insurance_cost": Decimal("25.50")})
        assert quote.total_amount == Decimal("1025.50")

    def test_sent_quote_is_frozen(self, quotes, sent_quote):
        with pytest.raises(Conflict) as exc:
            quotes.edit(sent_quote.quote_number, {"notes": "late change"})
        assert exc.value.current_state == Quote.Status.SENT

    def test_rate_card_shipping_follows_new_cargo(self, quotes, quote_data):
        crates = lambda kg: [{"name": "Crate", "quantity": 4, "unit_price": Decimal("100"), "weight_kg": Decimal(kg)}]
        quote = quotes.create_draft({
            **quote_data, "items": crates("50"), "delivery_type": "door-to-door", "destination_id": "west-1",
        })
        assert quote.shipping_cost == Decimal("458.33")
        assert quote.shipping_auto is True

        quote = quotes.edit(quote.quote_number, {"items": crates("1000")})
        # 4000 kg × 9 + 500 = 36500 RMB → 5069.44 USD
        assert quote.shipping_cost == Decimal("5069.44")
        assert quote.total_amount == Decimal("5469.44")
        quote.refresh_from_db()
        assert quote.shipping_cost == Decimal("5069.44")

    def test_operator_shipping_survives_cargo_edit(self, quotes, quote_data):
        quote = quotes.create_draft({
            **quote_data, "destination_id": "west-1", "shipping_cost": Decimal("99"),
        })
        assert quote.shipping_auto is False

        quote = quotes.edit(quote.quote_number, {
            "items": [{"name": "Crate", "quantity": 4, "unit_price": Decimal("100"), "weight_kg": Decimal("1000")}],
        })
        assert quote.shipping_cost == Decimal("99.00")
        assert quote.total_amount == Decimal("499.00")


# ═══════════════════════════════════════════════════════════════════════════════
# STATE MACHINE
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.mark.django_db
class TestTransitions:

    def test_send_mints_deposit_link(self, quotes, draft_quote):
        quote = quotes.send(draft_quote.quote_number)
        assert quote.status == Quote.Status.SENT
        assert quote.sent_at is not None
        link = PaymentLink.objects.get(quote=quote)
        assert link.amount == Decimal("700.00")
        assert link.status == PaymentLink.Status.ACTIVE
        assert link.expires_at == quote.valid_until
        assert link.description == f"70% deposit for {quote.quote_number}"

    def test_send_notifies_with_pay_url(self, draft_quote):
        from apps.quotes.service import QuoteService
        notifier = MagicMock()
        QuoteService(notification_service=notifier).send(draft_quote.quote_number)
        event, payload = notifier.dispatch_on_commit.call_args[0]
        assert event == "quote_sent"
        token = PaymentLink.objects.get(quote=draft_quote).token
        assert payload["pay_url"] == f"https://freightdesk.test/pay/{token}"

    def test_sending_twice_is_a_conflict(self, quotes, sent_quote):
        with pytest.raises(Conflict) as exc:
            quotes.send(sent_quote.quote_number)
        assert exc.value.current_state == "sent"

    def test_send_past_deadline_is_rejected(self, quotes, quote_data):
        quote = quotes.create_draft({**quote_data, "valid_until": timezone.now() - timedelta(days=1)})
        with pytest.raises(ValidationFailed):
            quotes.send(quote.quote_number)

    def test_accept(self, quotes, sent_quote):
        assert quotes.accept(sent_quote.quote_number).status == Quote.Status.ACCEPTED

    def test_accept_draft_is_a_conflict(self, quotes, draft_quote):
        with pytest.raises(Conflict):
            quotes.accept(draft_quote.quote_number)

    def test_reject_expires_the_link(self, quotes, sent_quote):
        quotes.reject(sent_quote.quote_number)
        assert PaymentLink.objects.get(quote=sent_quote).status == PaymentLink.Status.EXPIRED

    def test_rejected_is_terminal(self, quotes, draft_quote):
        quotes.reject(draft_quote.quote_number)
        for action in (quotes.send, quotes.accept, quotes.convert, quotes.expire, quotes.reopen):
            with pytest.raises(Conflict):
                action(draft_quote.quote_number)

    def test_expired_can_be_reopened_and_resent(self, quotes, sent_quote):
        old_token = PaymentLink.objects.get(quote=sent_quote).token
        quotes.expire(sent_quote.quote_number)
        assert quotes.reopen(sent_quote.quote_number).status == Quote.Status.DRAFT
        quotes.send(sent_quote.quote_number)
        link = PaymentLink.objects.get(quote=sent_quote)
        assert link.token != old_token
        assert link.status == PaymentLink.Status.ACTIVE

    def test_unknown_quote(self, quotes):
        with pytest.raises(NotFound):
            quotes.send("QT-2026-9999")


# ═══════════════════════════════════════════════════════════════════════════════
# CONVERSION
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.mark.django_db
class TestConvert:

    def test_round_trip_preserves_items_and_figures(self, quotes, quote_data):
        quote = quotes.create_draft({
            **quote_data,
            "shipping_cost": Decimal("123.45"), "insurance_cost": Decimal("6.78"),
            "customs_duty": Decimal("9.10"), "tax_amount": Decimal("1.11"), "discount": Decimal("2.22"),
            "deposit_percent": Decimal("33.33"),
        })
        quotes.send(quote.quote_number)
        order = quotes.convert(quote.quote_number)

        quote.refresh_from_db()
        assert quote.status == Quote.Status.CONVERTED
        for field in Quote.SNAPSHOT_FIELDS:
            assert getattr(order, field) == getattr(quote, field), field
        q_items = list(quote.items.values_list("name", "quantity", "unit_price", "total_price"))
        o_items = list(order.items.values_list("name", "quantity", "unit_price", "total_price"))
        assert o_items == q_items

    def test_deposit_and_balance(self, converted_order):
        assert converted_order.status == Order.Status.CONFIRMED
        assert converted_order.deposit_amount == Decimal("700.00")
        assert converted_order.balance_due == Decimal("300.00")
        entry = converted_order.history.get()
        assert entry.sequence == 1
        assert entry.status == Order.Status.CONFIRMED
        assert entry.note == f"Converted from {converted_order.quote.quote_number}"

    def test_order_items_are_copies(self, quotes, converted_order):
        converted_order.quote.items.all().delete()
        assert converted_order.items.count() == 2

    def test_accepted_quote_converts(self, quotes, sent_quote):
        quotes.accept(sent_quote.quote_number)
        assert quotes.convert(sent_quote.quote_number).quote_id == sent_quote.id

    def test_draft_cannot_convert(self, quotes, draft_quote):
        with pytest.raises(Conflict) as exc:
            quotes.convert(draft_quote.quote_number)
        assert exc.value.current_state == "draft"
        assert Order.objects.count() == 0

    def test_converts_at_most_once(self, quotes, converted_order):
        with pytest.raises(Conflict):
            quotes.convert(converted_order.quote.quote_number)
        assert Order.objects.count() == 1

    def test_failed_order_creation_leaves_quote_untouched(self, quotes, sent_quote):
        with patch.object(quotes.orders, "create_from_quote", side_effect=RuntimeError("store down")):
            with pytest.raises(RuntimeError):
                quotes.convert(sent_quote.quote_number)
        sent_quote.refresh_from_db()
        assert sent_quote.status == Quote.Status.SENT


# ═══════════════════════════════════════════════════════════════════════════════
# BULK & SCHEDULED
# ═══════════════════════════════════════════════════════════════════════════════

@pytest.mark.django_db
class TestBulkAndExpiry:

    def test_bulk_reject_reports_ineligible(self, quotes, quote_data, converted_order):
        draft = quotes.create_draft(quote_data)
        converted_number = converted_order.quote.quote_number
        result = quotes.bulk_status([draft.quote_number, converted_number, "QT-2026-9999"], "rejected")
        assert result["updated"] == [draft.quote_number]
        skipped = {s["quote_number"]: s for s in result["skipped"]}
        assert skipped[converted_number]["current_state"] == "converted"
        assert skipped["QT-2026-9999"]["kind"] == "not_found"

    def test_bulk_rejects_unsupported_status(self, quotes, draft_quote):
        with pytest.raises(ValidationFailed):
            quotes.bulk_status([draft_quote.quote_number], "converted")

    def test_expire_overdue_task(self, quotes, quote_data):
        from apps.quotes.tasks import expire_overdue_quotes

        overdue = quotes.send(quotes.create_draft(quote_data).quote_number)
        fresh = quotes.send(quotes.create_draft(quote_data).quote_number)
        draft = quotes.create_draft(quote_data)
        Quote.objects.filter(pk=overdue.pk).update(valid_until=timezone.now() - timedelta(minutes=1))

        assert expire_overdue_quotes() == 1
        overdue.refresh_from_db(); fresh.refresh_from_db(); draft.refresh_from_db()
        assert overdue.status == Quote.Status.EXPIRED
        assert fresh.status == Quote.Status.SENT
        assert draft.status == Quote.Status.DRAFT
