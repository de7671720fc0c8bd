"""
Notification service.
Ledger events are turned into customer emails through Django's mail backend.
Dispatch runs after the surrounding transaction commits and fails silently.
"""

import logging

from django.conf import settings
from django.core.mail import send_mail
from django.db import transaction

logger = logging.getLogger("freightdesk.notifications")


QUOTE_SENT           = "quote_sent"
ORDER_CONFIRMED      = "order_confirmed"
PAYMENT_RECEIVED     = "payment_received"
ORDER_STATUS_CHANGED = "order_status_changed"

TEMPLATES = {
    QUOTE_SENT: (
        "Your quote {quote_number}",
        "Hello {customer_name},\n\n"
        "Your freight quote {quote_number} totals {total} {currency}.\n"
        "Pay the {deposit_percent}% deposit to confirm the booking:\n{pay_url}\n\n"
        "This link is valid until {valid_until}.",
    ),
    ORDER_CONFIRMED: (
        "Order {order_number} confirmed",
        "Hello {customer_name},\n\n"
        "Order {order_number} is confirmed. Balance due: {balance_due} {currency}.",
    ),
    PAYMENT_RECEIVED: (
        "Payment received for {order_number}",
        "Hello {customer_name},\n\n"
        "We received {amount} {currency} ({payment_number}) for order {order_number}.\n"
        "Remaining balance: {balance_due} {currency}.",
    ),
    ORDER_STATUS_CHANGED: (
        "Order {order_number} is now {status}",
        "Hello {customer_name},\n\n"
        "Order {order_number} moved to {status}.\n{note}",
    ),
}


class NotificationService:
    """Send ledger notifications by email. Fails silently; never blocks the main flow."""

    def send_email(self, email: str, subject: str, body: str) -> bool:
        if not email:
            return False
        try:
            send_mail(subject, body, settings.DEFAULT_FROM_EMAIL, [email], fail_silently=False)
        except Exception as exc:
            logger.warning("Email to %s failed: %s", email, exc)
            return False
        logger.info("EMAIL → %s | Subject: %s", email, subject)
        return True

    def dispatch(self, event: str, payload: dict) -> bool:
        """Render ``event`` with ``payload`` and mail it to ``payload["customer_email"]``."""
        template = TEMPLATES.get(event)
        if template is None:
            logger.warning("No template for notification event %s", event)
            return False
        subject, body = template
        try:
            subject = subject.format(**payload)
            body    = body.format(**payload)
        except KeyError as exc:
            logger.warning("Notification %s missing field %s", event, exc)
            return False
        return self.send_email(payload.get("customer_email", ""), subject, body)

    def dispatch_on_commit(self, event: str, payload: dict) -> None:
        transaction.on_commit(lambda: self.dispatch(event, payload))
