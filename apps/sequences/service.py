"""
Sequence allocator.

    allocate("QT")  →  "QT-2026-0001", "QT-2026-0002", …

Each (prefix, year) pair owns one SequenceCounter row. The row is locked with
SELECT … FOR UPDATE for the read-increment-write; the first allocation of a
year inserts the row under a unique constraint. A concurrent insert
(IntegrityError) or a serialization failure (OperationalError) rolls back the
savepoint and the whole cycle is retried.
"""

import logging
import time

from django.db import IntegrityError, OperationalError, transaction
from django.utils import timezone

from apps.sequences.models import SequenceCounter

logger = logging.getLogger("freightdesk.sequences")

MAX_ATTEMPTS  = 8
RETRY_BACKOFF = 0.02   # seconds, multiplied by the attempt number


def format_number(prefix: str, year: int, value: int) -> str:
    # At least 4 digits; 10000 and beyond widen naturally
    return f"{prefix}-{year}-{value:04d}"


def _increment(prefix: str, year: int) -> int:
    counter = (
        SequenceCounter.objects
        .select_for_update()
        .filter(prefix=prefix, year=year)
        .first()
    )
    if counter is None:
        SequenceCounter.objects.create(prefix=prefix, year=year, last_value=1)
        return 1
    counter.last_value += 1
    counter.save(update_fields=["last_value", "updated_at"])
    return counter.last_value


def allocate(prefix: str, year: int | None = None) -> str:
    """Return the next unused number for ``prefix`` in the current (or given) year."""
    prefix = str(prefix)
    year = year or timezone.now().year
    for attempt in range(1, MAX_ATTEMPTS + 1):
        try:
            with transaction.atomic():
                value = _increment(prefix, year)
        except (IntegrityError, OperationalError) as exc:
            if attempt == MAX_ATTEMPTS:
                logger.error("Sequence %s-%s still contended after %d attempts", prefix, year, attempt)
                raise
            logger.warning("Sequence %s-%s conflict (attempt %d): %s", prefix, year, attempt, exc)
            time.sleep(RETRY_BACKOFF * attempt)
            continue
        return format_number(prefix, year, value)
    raise RuntimeError("unreachable")


def peek(prefix: str, year: int | None = None) -> int:
    """Last value issued for (prefix, year); 0 when nothing has been issued."""
    year = year or timezone.now().year
    counter = SequenceCounter.objects.filter(prefix=prefix, year=year).first()
    return counter.last_value if counter else 0
