"""
QuoteService: the quote ledger state machine.

    draft ──send──▶ sent ──accept──▶ accepted
      ▲               │                 │
      │            convert ◀────────────┘──▶ converted (terminal)
    reopen            │
      │         reject / expire ──▶ rejected (terminal) | expired

Only drafts can be edited. Sending mints the deposit payment link; converting
hands the quote to the order ledger in the same transaction.
"""

import logging

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from apps.authentication.models import Agent
from apps.common.errors import Conflict, LedgerError, NotFound, ValidationFailed
from apps.common.money import d, percent_label, percent_of
from apps.common.totals import apply_costs, price_lines
from apps.notifications import service as notifications
from apps.notifications.service import NotificationService
from apps.orders.service import OrderService
from apps.payments.models import PaymentLink
from apps.pricing import rates
from apps.quotes.models import Quote, QuoteItem
from apps.sequences.models import Prefix
from apps.sequences.service import allocate

logger = logging.getLogger("freightdesk.quotes")

CUSTOMER_FIELDS = ("customer_name", "customer_email", "customer_phone", "customer_company")
ROUTE_FIELDS = (
    "shipping_method", "delivery_type", "destination_id", "origin_city",
    "destination_city", "estimated_transit",
)
EDITABLE_FIELDS = CUSTOMER_FIELDS + ROUTE_FIELDS + (
    "currency", "deposit_percent", "notes", "valid_until",
)


def business_setting(name):
    return settings.FREIGHTDESK[name]


def pay_url(token: str) -> str:
    return f"{business_setting('SITE_URL').rstrip('/')}/pay/{token}"


class QuoteService:
    """Dependencies are injected so they can be swapped in tests."""

    def __init__(self, order_service=None, notification_service=None):
        self.notifier = notification_service or NotificationService()
        self.orders   = order_service or OrderService(notification_service=self.notifier)

    # ── Lookup ────────────────────────────────────────────────────────────────
    def get(self, quote_number: str, *, lock: bool = False) -> Quote:
        qs = Quote.objects.select_for_update() if lock else Quote.objects
        try:
            return qs.get(quote_number=quote_number)
        except Quote.DoesNotExist:
            raise NotFound(f"Quote {quote_number} not found.")

    def _require(self, quote: Quote, allowed, action: str):
        if quote.status not in allowed:
            raise Conflict(
                f"Cannot {action} quote {quote.quote_number} while it is {quote.status}.",
                current_state=quote.status,
            )

    # ── Pricing ───────────────────────────────────────────────────────────────
    def _price_shipping(self, quote: Quote, lines, costs: dict) -> dict:
        """
        Fill in shipping from the rate card when a destination is set and no cost was given.
        Runs on create and on every edit: a rate-card figure follows the cargo,
        an operator-entered one is never overwritten.
        """
        if d(costs.get("shipping_cost")) > 0:
            quote.shipping_auto = False
            return costs
        if not quote.destination_id or (quote.shipping_cost > 0 and not quote.shipping_auto):
            return costs
        actual, volumetric = rates.cargo_weights(lines)
        breakdown = rates.quote_for(quote.delivery_type, quote.destination_id, actual, volumetric)
        quote.delivery_type     = breakdown.delivery_type
        quote.destination_id    = breakdown.destination_id
        quote.destination_city  = quote.destination_city or breakdown.destination_label
        quote.estimated_transit = quote.estimated_transit or breakdown.transit_days
        logger.info("Priced shipping for %s: %s kg → %s RMB / %s USD",
                    quote.destination_id, breakdown.chargeable_weight_kg,
                    breakdown.total_rmb, breakdown.total_usd)
        quote.shipping_auto = True
        return {**costs, "shipping_cost": breakdown.total_usd}

    # ── Create ────────────────────────────────────────────────────────────────
    @transaction.atomic
    def create_draft(self, data: dict, actor: str = "system") -> Quote:
        if not data.get("customer_name") or not data.get("customer_email"):
            raise ValidationFailed("Customer name and email are required.")
        lines, subtotal = price_lines(data.get("items") or [])

        quote = Quote(
            currency        = business_setting("DEFAULT_CURRENCY"),
            deposit_percent = business_setting("DEFAULT_DEPOSIT_PERCENT"),
        )
        for field in EDITABLE_FIELDS:
            if data.get(field) not in (None, ""):
                setattr(quote, field, data[field])
        costs = self._price_shipping(quote, lines, data)
        apply_costs(quote, subtotal, costs)

        quote.customer     = Agent.objects.find_by_email(quote.customer_email)
        quote.quote_number = allocate(Prefix.QUOTE)
        quote.save()
        QuoteItem.objects.bulk_create([QuoteItem(quote=quote, **line) for line in lines])

        logger.info("Quote %s drafted by %s: total %s %s",
                    quote.quote_number, actor, quote.total_amount, quote.currency)
        return quote

    def request_public(self, data: dict) -> Quote:
        """Anonymous quote request: cargo only, prices are filled in by an operator."""
        items = [{**item, "unit_price": item.get("unit_price") or 0} for item in data.get("items") or []]
        return self.create_draft({**data, "items": items}, actor="public")

    # ── Edit ──────────────────────────────────────────────────────────────────
    @transaction.atomic
    def edit(self, quote_number: str, data: dict, actor: str = "system") -> Quote:
        quote = self.get(quote_number, lock=True)
        self._require(quote, (Quote.Status.DRAFT,), "edit")

        for field in EDITABLE_FIELDS:
            if field in data and data[field] is not None:
                setattr(quote, field, data[field])

        if "items" in data:
            lines, subtotal = price_lines(data["items"])
            quote.items.all().delete()
            QuoteItem.objects.bulk_create([QuoteItem(quote=quote, **line) for line in lines])
        else:
            lines = [{f: getattr(item, f) for f in QuoteItem.COPY_FIELDS} for item in quote.items.all()]
            subtotal = sum((line["total_price"] for line in lines), d(0))

        costs = self._price_shipping(quote, lines, data)
        apply_costs(quote, subtotal, costs)
        quote.save()
        logger.info("Quote %s edited by %s", quote.quote_number, actor)
        return quote

    # ── Transitions ───────────────────────────────────────────────────────────
    @transaction.atomic
    def send(self, quote_number: str, actor: str = "system") -> Quote:
        quote = self.get(quote_number, lock=True)
        self._require(quote, (Quote.Status.DRAFT,), "send")
        if quote.is_past_deadline():
            raise ValidationFailed(f"Quote {quote_number} is past its validity deadline; extend it first.")

        # A reopened quote gets a fresh link
        PaymentLink.objects.filter(quote=quote).delete()
        link = PaymentLink.objects.create(
            quote       = quote,
            amount      = percent_of(quote.total_amount, quote.deposit_percent),
            currency    = quote.currency,
            description = f"{percent_label(quote.deposit_percent)}% deposit for {quote.quote_number}",
            expires_at  = quote.valid_until,
        )
        quote.status  = Quote.Status.SENT
        quote.sent_at = timezone.now()
        quote.save(update_fields=["status", "sent_at", "updated_at"])

        logger.info("Quote %s sent by %s; deposit link %s", quote.quote_number, actor, link.amount)
        self.notifier.dispatch_on_commit(notifications.QUOTE_SENT, {
            "quote_number":    quote.quote_number,
            "customer_name":   quote.customer_name,
            "customer_email":  quote.customer_email,
            "total":           quote.total_amount,
            "currency":        quote.currency,
            "deposit_percent": percent_label(quote.deposit_percent),
            "pay_url":         pay_url(link.token),
            "valid_until":     quote.valid_until.date().isoformat(),
        })
        return quote

    @transaction.atomic
    def accept(self, quote_number: str, actor: str = "system") -> Quote:
        return self._move(quote_number, (Quote.Status.SENT,), Quote.Status.ACCEPTED, "accept", actor)

    @transaction.atomic
    def convert(self, quote_number: str, actor: str = "system", settling: bool = False):
        """
        Create the order and mark the quote converted, atomically.
        ``settling`` is set when a provider payment has already been captured;
        the quote may have expired in the meantime but the money is real.
        """
        quote = self.get(quote_number, lock=True)
        allowed = Quote.CONVERTIBLE + ((Quote.Status.EXPIRED,) if settling else ())
        self._require(quote, allowed, "convert")

        order = self.orders.create_from_quote(quote, actor=actor)
        quote.status = Quote.Status.CONVERTED
        quote.save(update_fields=["status", "updated_at"])
        logger.info("Quote %s converted to %s by %s", quote.quote_number, order.order_number, actor)
        return order

    @transaction.atomic
    def reject(self, quote_number: str, actor: str = "system") -> Quote:
        return self._move(quote_number, Quote.CLOSABLE, Quote.Status.REJECTED, "reject", actor)

    @transaction.atomic
    def expire(self, quote_number: str, actor: str = "system") -> Quote:
        return self._move(quote_number, Quote.CLOSABLE, Quote.Status.EXPIRED, "expire", actor)

    @transaction.atomic
    def reopen(self, quote_number: str, actor: str = "system") -> Quote:
        return self._move(quote_number, (Quote.Status.EXPIRED,), Quote.Status.DRAFT, "reopen", actor)

    def _move(self, quote_number, allowed, target, action, actor) -> Quote:
        quote = self.get(quote_number, lock=True)
        self._require(quote, allowed, action)
        previous = quote.status
        quote.status = target
        quote.save(update_fields=["status", "updated_at"])
        if target in (Quote.Status.REJECTED, Quote.Status.EXPIRED):
            PaymentLink.objects.filter(quote=quote, status=PaymentLink.Status.ACTIVE).update(
                status=PaymentLink.Status.EXPIRED,
            )
        logger.info("Quote %s: %s → %s by %s", quote.quote_number, previous, target, actor)
        return quote

    # ── Bulk / scheduled ──────────────────────────────────────────────────────
    def bulk_status(self, quote_numbers, status: str, actor: str = "system") -> dict:
        """Apply reject/expire one quote at a time; ineligible quotes are reported, not coerced."""
        actions = {Quote.Status.REJECTED.value: self.reject, Quote.Status.EXPIRED.value: self.expire}
        action = actions.get(status)
        if action is None:
            raise ValidationFailed(f"Bulk status must be one of: {', '.join(actions)}.")

        updated, skipped = [], []
        for number in dict.fromkeys(quote_numbers):
            try:
                action(number, actor=actor)
            except LedgerError as exc:
                skipped.append({"quote_number": number, **exc.as_dict()})
            else:
                updated.append(number)
        return {"updated": updated, "skipped": skipped}

    def expire_overdue(self, now=None) -> int:
        now = now or timezone.now()
        count = Quote.objects.filter(
            status__in=Quote.CONVERTIBLE, valid_until__lt=now,
        ).update(status=Quote.Status.EXPIRED, updated_at=now)
        if count:
            logger.info("Expired %d overdue quotes", count)
        return count
