"""
PaymentLinkGateway: the public, token-keyed payment surface.

Sandbox mode (no provider key): redeeming settles inline. The link is claimed
with a conditional UPDATE, the quote is converted and a completed deposit
payment is booked, all in one transaction.

Live mode: the provider intent is created first, outside any transaction, so
a provider failure leaves nothing behind. A processing payment then carries
the intent id until the provider's webhook settles it.
"""

import logging

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from apps.common.errors import IntegrityViolation, LinkAlreadyUsed, LinkExpired, NotFound
from apps.orders.models import Order
from apps.payments.gateway import get_provider_client
from apps.payments.models import Payment, PaymentLink
from apps.payments.service import PaymentReconciler, completed_total
from apps.quotes.service import QuoteService
from apps.sequences.models import Prefix
from apps.sequences.service import allocate

logger = logging.getLogger("freightdesk.payments")

LINK_ACTOR = "payment-link"

_UNSET = object()


def site_url(path: str) -> str:
    return f"{settings.FREIGHTDESK['SITE_URL'].rstrip('/')}{path}"


class PaymentLinkGateway:
    """
    ``provider_client`` defaults to the configured client; pass None to force
    sandbox mode or a stub to exercise the live path.
    """

    def __init__(self, provider_client=_UNSET, reconciler=None, quote_service=None):
        self.provider   = get_provider_client() if provider_client is _UNSET else provider_client
        self.reconciler = reconciler or PaymentReconciler()
        self.quotes     = quote_service or QuoteService(
            order_service=self.reconciler.orders, notification_service=self.reconciler.notifier,
        )

    @property
    def sandbox(self) -> bool:
        return self.provider is None

    # ── Lookup ────────────────────────────────────────────────────────────────
    def _get(self, token: str, *, lock: bool = False) -> PaymentLink:
        qs = PaymentLink.objects.select_for_update() if lock else PaymentLink.objects.select_related("quote")
        try:
            return qs.get(token=token)
        except PaymentLink.DoesNotExist:
            raise NotFound("Payment link not found.")

    def _check_redeemable(self, link: PaymentLink):
        if link.status == PaymentLink.Status.USED:
            raise LinkAlreadyUsed("This payment link has already been used.", current_state=link.status)
        if link.is_expired():
            raise LinkExpired("This payment link has expired.", current_state=PaymentLink.Status.EXPIRED)

    def lookup(self, token: str) -> dict:
        link = self._get(token)
        self._check_redeemable(link)
        quote = link.quote
        return {
            "token":       link.token,
            "amount":      link.amount,
            "currency":    link.currency,
            "status":      link.status,
            "description": link.description,
            "expires_at":  link.expires_at,
            "quote": {
                "quote_number":    quote.quote_number,
                "customer_name":   quote.customer_name,
                "total_amount":    quote.total_amount,
                "deposit_percent": quote.deposit_percent,
                "items": [
                    {
                        "name":        item.name,
                        "quantity":    item.quantity,
                        "unit_price":  item.unit_price,
                        "total_price": item.total_price,
                    }
                    for item in quote.items.all()
                ],
            },
        }

    # ── Redeem ────────────────────────────────────────────────────────────────
    def redeem(self, token: str, payer: dict = None) -> dict:
        payer = payer or {}
        if self.sandbox:
            return self._redeem_sandbox(token)
        return self._redeem_live(token, payer)

    def _order_for(self, link: PaymentLink) -> Order:
        existing = Order.objects.filter(quote_id=link.quote_id).first()
        if existing is not None:
            return existing
        return self.quotes.convert(link.quote.quote_number, actor=LINK_ACTOR)

    def _lock(self, token: str) -> PaymentLink:
        """Lock the quote row, then the link row: the order every quote-side writer uses."""
        link = self._get(token)
        self.quotes.get(link.quote.quote_number, lock=True)
        return self._get(token, lock=True)

    @transaction.atomic
    def _redeem_sandbox(self, token: str) -> dict:
        link = self._lock(token)
        self._check_redeemable(link)

        now = timezone.now()
        claimed = PaymentLink.objects.filter(
            pk=link.pk, status=PaymentLink.Status.ACTIVE, expires_at__gt=now,
        ).update(status=PaymentLink.Status.USED, used_at=now)
        if not claimed:
            raise LinkAlreadyUsed("This payment link has already been used.", current_state=PaymentLink.Status.USED)

        order = self._order_for(link)
        order = self.reconciler.orders.get(order.order_number, lock=True)
        if completed_total(order) + link.amount > order.total_amount:
            raise IntegrityViolation(f"Deposit would exceed the total of {order.order_number}.")

        payment = Payment.objects.create(
            payment_number = allocate(Prefix.PAYMENT),
            order          = order,
            amount         = link.amount,
            currency       = link.currency,
            method         = Payment.Method.SANDBOX,
            status         = Payment.Status.COMPLETED,
            payment_type   = Payment.Type.DEPOSIT,
            notes          = f"Sandbox payment via link for {link.quote.quote_number}",
            paid_at        = now,
        )
        PaymentLink.objects.filter(pk=link.pk).update(payment=payment)
        self.reconciler.settle(order, payment, LINK_ACTOR)

        logger.info("Sandbox redeem of %s: %s booked on %s",
                    link.quote.quote_number, payment.payment_number, order.order_number)
        return {
            "mode":           "sandbox",
            "redirect_url":   site_url(f"/pay/{token}/success?demo=1"),
            "payment_number": payment.payment_number,
            "order_number":   order.order_number,
        }

    def _redeem_live(self, token: str, payer: dict) -> dict:
        link = self._get(token)
        self._check_redeemable(link)
        quote = link.quote

        intent = self.provider.create_intent(
            amount            = link.amount,
            currency          = link.currency,
            merchant_order_id = quote.quote_number,
            description       = link.description or "Deposit",
            customer_email    = payer.get("email") or quote.customer_email,
            customer_name     = payer.get("name") or quote.customer_name,
            return_url        = site_url(f"/pay/{token}/success"),
        )

        with transaction.atomic():
            link = self._lock(token)
            self._check_redeemable(link)
            payment = Payment.objects.create(
                payment_number = allocate(Prefix.PAYMENT),
                order          = Order.objects.filter(quote_id=link.quote_id).first(),
                quote          = quote,
                amount         = link.amount,
                currency       = link.currency,
                method         = Payment.Method.AIRWALLEX,
                status         = Payment.Status.PROCESSING,
                payment_type   = Payment.Type.DEPOSIT,
                external_id    = intent["id"],
                notes          = f"Checkout for {quote.quote_number}",
            )
            link.payment = payment
            link.save(update_fields=["payment"])

        logger.info("Checkout %s opened for %s (%s)", intent["id"], quote.quote_number, payment.payment_number)
        return {
            "mode":           "live",
            "redirect_url":   self.provider.build_checkout_url(intent),
            "payment_number": payment.payment_number,
        }

    # ── Scheduled ─────────────────────────────────────────────────────────────
    def expire_overdue(self, now=None) -> int:
        now = now or timezone.now()
        count = PaymentLink.objects.filter(
            status=PaymentLink.Status.ACTIVE, expires_at__lte=now,
        ).update(status=PaymentLink.Status.EXPIRED)
        if count:
            logger.info("Expired %d overdue payment links", count)
        return count
