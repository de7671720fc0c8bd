"""Payment Celery tasks. Scheduled from CELERY_BEAT_SCHEDULE."""

import logging

from celery import shared_task

logger = logging.getLogger("freightdesk.payments")


@shared_task
def expire_payment_links():
    """Active links past their deadline are flagged expired so lookups stop early."""
    from apps.payments.links import PaymentLinkGateway

    count = PaymentLinkGateway(provider_client=None).expire_overdue()
    logger.info("expire_payment_links: %d links expired", count)
    return count
