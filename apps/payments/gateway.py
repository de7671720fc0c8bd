"""
Payment provider client.
AirwallexClient talks to the Airwallex Payments API over HTTPS (requests).
Without AIRWALLEX_API_KEY the project runs in sandbox mode and
get_provider_client() returns None: payment links settle inline instead.
"""

import hashlib
import hmac
import logging
import uuid

import requests
from django.conf import settings

from apps.common.errors import ExternalDependencyError

logger = logging.getLogger("freightdesk.payments")


# ── Client interface ──────────────────────────────────────────────────────────
class PaymentProviderClient:
    """Abstract base: all providers implement this interface."""

    def create_intent(self, *, amount, currency, merchant_order_id, description,
                      customer_email="", customer_name="", return_url="") -> dict:
        raise NotImplementedError

    def retrieve_intent(self, intent_id: str) -> dict:
        raise NotImplementedError

    def verify_webhook_signature(self, payload: bytes, signature: str, timestamp: str) -> bool:
        raise NotImplementedError

    def build_checkout_url(self, intent: dict) -> str:
        raise NotImplementedError


# ── Airwallex ─────────────────────────────────────────────────────────────────
class AirwallexClient(PaymentProviderClient):
    """
    Bearer tokens come from /api/v1/authentication/login and are reused for
    the lifetime of the client. Any transport error or non-2xx response
    raises ExternalDependencyError; nothing is retried.
    """

    TIMEOUT = 10

    def __init__(self, api_url=None, client_id=None, api_key=None,
                 webhook_secret=None, env=None, session=None):
        self.api_url        = (api_url or settings.AIRWALLEX_API_URL).rstrip("/")
        self.client_id      = client_id if client_id is not None else settings.AIRWALLEX_CLIENT_ID
        self.api_key        = api_key if api_key is not None else settings.AIRWALLEX_API_KEY
        self.webhook_secret = webhook_secret if webhook_secret is not None else settings.AIRWALLEX_WEBHOOK_SECRET
        self.env            = env or settings.AIRWALLEX_ENV
        self.session        = session or requests.Session()
        self._token         = None

    def _post(self, path: str, **kwargs) -> dict:
        return self._call("POST", path, **kwargs)

    def _call(self, method: str, path: str, headers=None, **kwargs) -> dict:
        try:
            resp = self.session.request(
                method, f"{self.api_url}{path}", headers=headers, timeout=self.TIMEOUT, **kwargs,
            )
            resp.raise_for_status()
            return resp.json()
        except (requests.RequestException, ValueError) as exc:
            logger.error("Airwallex %s %s failed: %s", method, path, exc)
            raise ExternalDependencyError(f"Payment provider request failed: {exc}")

    def _auth_headers(self) -> dict:
        if self._token is None:
            data = self._post(
                "/api/v1/authentication/login",
                headers={"x-client-id": self.client_id, "x-api-key": self.api_key},
            )
            self._token = data.get("token")
            if not self._token:
                raise ExternalDependencyError("Payment provider returned no access token.")
        return {"Authorization": f"Bearer {self._token}"}

    def create_intent(self, *, amount, currency, merchant_order_id, description,
                      customer_email="", customer_name="", return_url="") -> dict:
        data = self._post(
            "/api/v1/pa/payment_intents/create",
            headers=self._auth_headers(),
            json={
                "request_id":        str(uuid.uuid4()),
                "amount":            str(amount),
                "currency":          currency,
                "merchant_order_id": merchant_order_id,
                "descriptor":        description[:32],
                "metadata":          {"customer_email": customer_email, "customer_name": customer_name},
                "return_url":        return_url,
            },
        )
        logger.info("Airwallex intent %s created for %s (%s %s)",
                    data.get("id"), merchant_order_id, amount, currency)
        return data

    def retrieve_intent(self, intent_id: str) -> dict:
        return self._call("GET", f"/api/v1/pa/payment_intents/{intent_id}", headers=self._auth_headers())

    def verify_webhook_signature(self, payload: bytes, signature: str, timestamp: str) -> bool:
        """HMAC-SHA256 over ``timestamp + body`` with the webhook secret."""
        if not self.webhook_secret or not signature:
            return False
        message  = timestamp.encode() + payload
        expected = hmac.new(self.webhook_secret.encode(), message, hashlib.sha256).hexdigest()
        return hmac.compare_digest(expected, signature)

    def build_checkout_url(self, intent: dict) -> str:
        host = "airwallex.com" if self.env == "production" else "demo.airwallex.com"
        return f"https://{host}/checkout/{intent['id']}"


# ── Factory ────────────────────────────────────────────────────────────────────
def sandbox_mode() -> bool:
    return not settings.AIRWALLEX_API_KEY


def get_provider_client():
    """The configured provider client, or None in sandbox mode."""
    if sandbox_mode():
        return None
    return AirwallexClient()


def verify_webhook(payload: bytes, signature: str, timestamp: str) -> bool:
    """
    Live mode requires a valid signature. In sandbox mode with no webhook
    secret configured, events are accepted unsigned.
    """
    if not settings.AIRWALLEX_WEBHOOK_SECRET:
        return sandbox_mode()
    return AirwallexClient(api_key="").verify_webhook_signature(payload, signature, timestamp)
