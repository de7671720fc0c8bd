"""Quote Celery tasks. Scheduled from CELERY_BEAT_SCHEDULE."""

import logging

from celery import shared_task

logger = logging.getLogger("freightdesk.quotes")


@shared_task
def expire_overdue_quotes():
    """Sent or accepted quotes past their validity deadline become expired."""
    from apps.quotes.service import QuoteService

    count = QuoteService().expire_overdue()
    logger.info("expire_overdue_quotes: %d quotes expired", count)
    return count
