"""
Ledger error taxonomy.

Services raise these for expected failures; the DRF exception handler in
apps.common.exceptions renders them. Each carries a ``kind`` so callers can
branch without string matching.
"""


class LedgerError(Exception):
    """Base class for every expected failure of a ledger operation."""

    kind = "error"
    status_code = 500
    reason = None

    def __init__(self, message: str, *, reason: str | None = None, current_state: str | None = None):
        self.message = message
        if reason is not None:
            self.reason = reason
        self.current_state = current_state
        super().__init__(message)

    def as_dict(self) -> dict:
        body = {"error": self.message, "kind": self.kind}
        if self.reason:
            body["reason"] = self.reason
        if self.current_state:
            body["current_state"] = self.current_state
        return body


class ValidationFailed(LedgerError):
    """Malformed or missing input. Nothing was written."""

    kind = "validation"
    status_code = 400


class NotFound(LedgerError):
    kind = "not_found"
    status_code = 404


class Conflict(LedgerError):
    """A state-machine transition was requested from an ineligible state."""

    kind = "conflict"
    status_code = 409
    reason = "invalid_state"


class LinkAlreadyUsed(Conflict):
    reason = "already_used"


class LinkExpired(Conflict):
    status_code = 410
    reason = "expired"


class IntegrityViolation(LedgerError):
    """The write would break a ledger invariant (e.g. a negative balance)."""

    kind = "integrity"
    status_code = 422


class ExternalDependencyError(LedgerError):
    """The payment provider failed or could not be reached."""

    kind = "external_dependency"
    status_code = 502


class SignatureRejected(ExternalDependencyError):
    status_code = 401
    reason = "invalid_signature"
