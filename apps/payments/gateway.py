"""Client for the booking backend's payment endpoints."""

from __future__ import annotations

import logging
from typing import Optional

import requests
from django.conf import settings

from apps.payments.domain.entities import PaymentIntent, RetryPayload

logger = logging.getLogger(__name__)


class PaymentGatewayError(Exception):
    """Raised when a payment intent cannot be created."""


class PaymentGatewayUnavailable(PaymentGatewayError):
    """The backend could not be reached."""


class PaymentGatewayClient:
    """Blocking; async callers go through `sync_to_async`."""

    def __init__(self, base_url: Optional[str] = None, *, timeout: float = 30,
                 session: Optional[requests.Session] = None):
        self.base_url = (base_url or settings.BOOKING_API_BASE_URL).rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    def create_gcash_intent(self, payload: RetryPayload) -> PaymentIntent:
        """
        Create a GCash payment intent for the payload

        Raises PaymentGatewayError when the backend rejects the request, is
        unreachable, or answers without a checkout URL.
        """
        booking_id = payload.booking_id
        logger.info(f"Creating GCash payment intent for booking {booking_id}, amount {payload.amount} {payload.currency}")
        try:
            response = self.session.post(
                f"{self.base_url}/api/v1/payments/gcash/",
                json=payload.to_request(),
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Network error creating payment intent for booking {booking_id}: {e}")
            raise PaymentGatewayUnavailable("Something went wrong. Please try again.") from e

        try:
            result = response.json()
        except ValueError:
            result = {}

        if not response.ok or not result.get("success"):
            message = result.get("message") or "Failed to initiate GCash payment. Please try again."
            logger.warning(f"Payment intent rejected for booking {booking_id} ({response.status_code}): {message}")
            raise PaymentGatewayError(message)

        data = result.get("data") or {}
        if not data.get("checkoutUrl"):
            logger.warning(f"Payment intent {data.get('id')} for booking {booking_id} has no checkout URL")
            raise PaymentGatewayError("Failed to initiate GCash payment. Please try again.")

        return PaymentIntent(
            id=data.get("id", ""),
            checkout_url=data["checkoutUrl"],
            status=data.get("status", "awaiting_next_action"),
        )

    def get_status(self, booking_id: str) -> dict:
        """Last verdict the backend recorded for a booking"""
        try:
            response = self.session.get(
                f"{self.base_url}/api/v1/payments/status/{booking_id}/",
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            raise PaymentGatewayError(f"Unable to fetch payment status for {booking_id}: {e}") from e
