"""
PayMongo GCash integration

Intent -> GCash payment method -> attach with return URL; the attach answer
carries the checkout URL the customer is redirected to. Verdicts come back
through the webhook (`payment.paid` / `payment.failed`).
"""

import base64
import hashlib
import hmac
import logging
import uuid
from decimal import Decimal
from typing import Optional
from urllib.parse import quote

import requests
from django.conf import settings

from shared.domain.value_objects import Money

logger = logging.getLogger(__name__)

STATEMENT_DESCRIPTOR = "CAR RENTAL"
SIGNATURE_HEADER = "Paymongo-Signature"


class PaymongoPaymentError(Exception):
    """Raised when PayMongo rejects a request or cannot be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None, details=None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


def _secret_key() -> str:
    return getattr(settings, "PAYMONGO_SECRET_KEY", "")


def is_stub_mode() -> bool:
    """No real PayMongo calls in DEBUG or without a secret key"""
    return settings.DEBUG or not _secret_key()


def _headers() -> dict:
    encoded = base64.b64encode(f"{_secret_key()}:".encode()).decode()
    return {
        "Authorization": f"Basic {encoded}",
        "Content-Type": "application/json",
        "Accept": "application/json",
    }


def _post(path: str, attributes: dict) -> dict:
    url = f"{settings.PAYMONGO_API_BASE_URL.rstrip('/')}/{path.lstrip('/')}"
    try:
        response = requests.post(url, json={"data": {"attributes": attributes}}, headers=_headers(), timeout=30)
    except requests.exceptions.RequestException as e:
        logger.error(f"Network error calling PayMongo {path}: {e}")
        raise PaymongoPaymentError(f"Unable to reach PayMongo: {e}") from e

    try:
        body = response.json()
    except ValueError:
        body = {}

    if not response.ok:
        errors = body.get("errors") or []
        detail = errors[0].get("detail") if errors else response.reason
        logger.error(f"PayMongo {path} returned {response.status_code}: {body}")
        raise PaymongoPaymentError(f"PayMongo error: {detail}", status_code=response.status_code, details=body)

    return body.get("data") or {}


def _flat_metadata(metadata: dict) -> dict:
    # PayMongo only accepts flat string values
    return {str(k): "" if v is None else str(v) for k, v in metadata.items()}


def create_payment_intent(amount: Decimal, currency: str = "PHP", description: str = "",
                          metadata: Optional[dict] = None) -> dict:
    money = Money(amount, currency)
    attributes = {
        "amount": money.cents,
        "payment_method_allowed": ["gcash"],
        "currency": money.currency,
        "capture_type": "automatic",
        "description": description or "Car rental payment",
        "statement_descriptor": STATEMENT_DESCRIPTOR,
        "metadata": _flat_metadata({
            **(metadata or {}),
            "source": "car_rental_app",
            "payment_method": "gcash",
        }),
    }
    intent = _post("payment_intents", attributes)
    logger.info(f"PayMongo payment intent created: {intent.get('id')} ({money})")
    return intent


def create_gcash_payment_method(billing: dict) -> dict:
    method = _post("payment_methods", {"type": "gcash", "billing": billing})
    logger.info(f"PayMongo GCash payment method created: {method.get('id')}")
    return method


def attach_payment_method(intent_id: str, method_id: str, return_url: str,
                          client_key: Optional[str] = None) -> dict:
    attributes = {"payment_method": method_id, "return_url": return_url}
    if client_key:
        attributes["client_key"] = client_key
    return _post(f"payment_intents/{intent_id}/attach", attributes)


def initiate_gcash_payment(amount: Decimal, billing: dict, metadata: dict, return_url: str,
                           currency: str = "PHP", description: str = "") -> dict:
    """
    Create a GCash checkout

    Returns {"id", "checkoutUrl", "status"}.
    """
    booking_id = metadata.get("bookingId")
    logger.info(f"Initiating GCash payment for booking {booking_id}, amount {amount} {currency}")

    if is_stub_mode():
        logger.warning("Using PayMongo stub (DEBUG mode or no secret key)")
        intent_id = f"pi_stub_{uuid.uuid4().hex[:16]}"
        return {
            "id": intent_id,
            "checkoutUrl": (
                f"{settings.SITE_URL.rstrip('/')}/payment/test"
                f"?intent={intent_id}&amount={Money(amount, currency).rounded().amount}"
                f"&return_url={quote(return_url, safe='')}"
            ),
            "status": "awaiting_next_action",
        }

    intent = create_payment_intent(amount, currency, description, metadata)
    method = create_gcash_payment_method(billing)
    attached = attach_payment_method(
        intent["id"],
        method["id"],
        return_url,
        client_key=(intent.get("attributes") or {}).get("client_key"),
    )

    attributes = attached.get("attributes") or {}
    redirect = (attributes.get("next_action") or {}).get("redirect") or {}
    checkout_url = redirect.get("url")
    if not checkout_url:
        logger.error(f"PayMongo intent {intent['id']} has no checkout URL: {attributes.get('status')}")
        raise PaymongoPaymentError("PayMongo did not return a checkout URL")

    return {
        "id": intent["id"],
        "checkoutUrl": checkout_url,
        "status": attributes.get("status", "awaiting_next_action"),
    }


def parse_signature_header(header: str) -> dict:
    parts = {}
    for item in (header or "").split(","):
        key, _, value = item.strip().partition("=")
        if key:
            parts[key] = value
    return parts


def compute_signature(timestamp: str, body: bytes, secret: str) -> str:
    message = f"{timestamp}.".encode() + body
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def verify_webhook_signature(header: str, body: bytes, secret: Optional[str] = None,
                             livemode: Optional[bool] = None) -> bool:
    """
    Check the `Paymongo-Signature` header (`t=..,te=..,li=..`)

    `te` is signed in test mode, `li` in live mode; when livemode is not
    known either one is accepted.
    """
    secret = secret if secret is not None else getattr(settings, "PAYMONGO_WEBHOOK_SECRET", "")
    if not secret:
        logger.error("PAYMONGO_WEBHOOK_SECRET is not configured, rejecting webhook")
        return False

    parts = parse_signature_header(header)
    timestamp = parts.get("t")
    if not timestamp:
        return False

    expected = compute_signature(timestamp, body, secret)
    if livemode is True:
        candidates = [parts.get("li")]
    elif livemode is False:
        candidates = [parts.get("te")]
    else:
        candidates = [parts.get("te"), parts.get("li")]

    return any(c and hmac.compare_digest(expected, c) for c in candidates)
