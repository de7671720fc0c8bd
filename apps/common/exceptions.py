"""DRF exception handler that renders LedgerError subclasses."""

import logging

from rest_framework.response import Response
from rest_framework.views import exception_handler

from apps.common.errors import LedgerError

logger = logging.getLogger("freightdesk.api")


def ledger_exception_handler(exc, context):
    if isinstance(exc, LedgerError):
        view = context.get("view")
        logger.info(
            "%s rejected by %s: %s",
            exc.kind, view.__class__.__name__ if view else "?", exc.message,
        )
        return Response(exc.as_dict(), status=exc.status_code)
    return exception_handler(exc, context)
