"""Client for the external reservation service (hold and release of car dates)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import requests
from django.conf import settings

from apps.realtime.events import parse_timestamp

logger = logging.getLogger(__name__)


class ReservationServiceError(Exception):
    """Raised when the reservation service rejects or cannot be reached."""


@dataclass(frozen=True)
class HoldGrant:
    """What the reservation service returns for a successful hold"""
    booking_id: str
    room: str = ''
    expires_at: Optional[datetime] = None
    duration_ms: Optional[int] = None


class ReservationClient:
    """
    Thin requests wrapper around the reservation service

    Blocking; async callers go through `sync_to_async`.
    """

    def __init__(self, base_url: Optional[str] = None, *, timeout: float = 5,
                 session: Optional[requests.Session] = None):
        self.base_url = (base_url or settings.RESERVATION_API_BASE_URL).rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def hold_dates(self, car_id: str, *, start_date: str, end_date: str,
                   start_time: str = '', end_time: str = '') -> HoldGrant:
        """Ask the service to hold the car for the dates"""
        payload = {
            "startDate": start_date,
            "endDate": end_date,
            "startTime": start_time,
            "endTime": end_time,
        }
        logger.info(f"Requesting hold on car {car_id} for {start_date} - {end_date}")
        try:
            response = self.session.post(
                self._url(f"/api/cars/hold-date/{car_id}"),
                json=payload,
                timeout=self.timeout,
            )
            response.raise_for_status()
            result = response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"Hold request for car {car_id} failed: {e}")
            raise ReservationServiceError(f"Unable to hold the car: {e}") from e
        except ValueError as e:
            raise ReservationServiceError(f"Reservation service returned invalid JSON: {e}") from e

        if not result.get("success", True):
            raise ReservationServiceError(result.get("message") or "Hold was rejected")

        booking_id = (result.get("newBooking") or {}).get("_id")
        if not booking_id:
            raise ReservationServiceError("Reservation service did not return a booking id")

        hold = result.get("hold") or {}
        try:
            expires_at = parse_timestamp(hold.get("expiresAt") or (result.get("data") or {}).get("holdExpiry"))
        except ValueError:
            logger.warning(f"Ignoring unreadable hold expiry for booking {booking_id}: {hold.get('expiresAt')!r}")
            expires_at = None

        grant = HoldGrant(
            booking_id=str(booking_id),
            room=hold.get("room") or '',
            expires_at=expires_at,
            duration_ms=hold.get("durationMs"),
        )
        logger.info(f"Car {car_id} held as booking {grant.booking_id} until {grant.expires_at}")
        return grant

    def release_hold(self, car_id: str, booking_id: Optional[str] = None) -> None:
        """Give the held dates back"""
        body = {"bookingId": booking_id} if booking_id else None
        try:
            response = self.session.delete(
                self._url(f"/api/cars/release-date/{car_id}"),
                json=body,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.error(f"Release of car {car_id} (booking {booking_id}) failed: {e}")
            raise ReservationServiceError(f"Unable to release the hold: {e}") from e
        logger.info(f"Released hold on car {car_id} (booking {booking_id})")
