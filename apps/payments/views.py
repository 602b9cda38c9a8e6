"""API views for GCash payments: intent creation, webhook, status lookup."""

from __future__ import annotations

import json
import logging
from decimal import Decimal

from rest_framework import permissions, status  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from shared.domain.value_objects import Money
from apps.realtime.events import PAYMENT_FAILED, PAYMENT_PAID, PAYMENT_STATUS_UPDATED
from apps.realtime.tasks import publish_event

from . import paymongo_service
from .paymongo_service import PaymongoPaymentError
from .serializers import GcashPaymentIntentSerializer
from .status import get_verdict, lookup_intent, record_verdict, remember_intent

logger = logging.getLogger(__name__)

WEBHOOK_VERDICTS = {
    "payment.paid": PAYMENT_PAID,
    "payment.failed": PAYMENT_FAILED,
}


class GcashPaymentIntentView(APIView):
    """Create a GCash checkout for a booking's down payment."""

    permission_classes = [permissions.AllowAny]

    def post(self, request):  # type: ignore
        serializer = GcashPaymentIntentSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {"success": False, "message": "Invalid payment request.", "errors": serializer.errors},
                status=status.HTTP_400_BAD_REQUEST,
            )

        data = serializer.validated_data
        metadata = data["metadata"]
        try:
            intent = paymongo_service.initiate_gcash_payment(
                amount=data["amount"],
                currency=data["currency"],
                description=data["description"],
                billing=data["billing"],
                metadata=metadata,
                return_url=data["return_url"],
            )
        except PaymongoPaymentError as e:
            logger.error(f"GCash payment intent failed for booking {metadata.get('bookingId')}: {e}")
            return Response({"success": False, "message": str(e)}, status=status.HTTP_502_BAD_GATEWAY)

        remember_intent(intent["id"], str(metadata["bookingId"]), str(metadata.get("room") or ""))
        return Response({"success": True, "data": intent}, status=status.HTTP_200_OK)


class PaymongoWebhookView(APIView):
    """Receive PayMongo payment events and relay the verdict to the client room."""

    permission_classes = [permissions.AllowAny]
    authentication_classes: list = []

    def post(self, request):  # type: ignore
        # Signature covers the raw body: read it before request.data
        body = request.body
        try:
            payload = json.loads(body)
        except ValueError:
            logger.error("PayMongo webhook: invalid JSON")
            return Response({"success": False, "message": "Invalid JSON"}, status=status.HTTP_400_BAD_REQUEST)

        event = (payload.get("data") or {}).get("attributes") or {}
        header = request.headers.get(paymongo_service.SIGNATURE_HEADER, "")
        if not paymongo_service.verify_webhook_signature(header, body, livemode=event.get("livemode")):
            logger.error("PayMongo webhook: invalid signature")
            return Response({"success": False, "message": "Invalid signature"}, status=status.HTTP_403_FORBIDDEN)

        event_type = event.get("type")
        verdict_status = WEBHOOK_VERDICTS.get(event_type)
        if verdict_status is None:
            logger.info(f"PayMongo webhook: ignoring event {event_type}")
            return Response({"success": True, "ignored": True})

        payment = event.get("data") or {}
        attributes = payment.get("attributes") or {}
        metadata = attributes.get("metadata") or {}
        known = lookup_intent(attributes.get("payment_intent_id"))

        booking_id = metadata.get("bookingId") or known.get("bookingId")
        if not booking_id:
            logger.warning(f"PayMongo webhook: {event_type} for payment {payment.get('id')} without booking id")
            return Response({"success": True, "ignored": True})

        verdict = {
            "bookingId": booking_id,
            "status": verdict_status,
            "paymentId": payment.get("id"),
        }
        if attributes.get("amount") is not None:
            verdict["amount"] = str(Money(Decimal(attributes["amount"]) / 100).rounded().amount)
        if verdict_status == PAYMENT_FAILED:
            verdict["reason"] = attributes.get("failed_message") or "Payment was declined or failed"

        record_verdict(booking_id, verdict)
        logger.info(f"PayMongo webhook: booking {booking_id} is {verdict_status}")

        room = metadata.get("room") or known.get("room")
        if room:
            publish_event.delay(room, PAYMENT_STATUS_UPDATED, verdict)
        else:
            logger.warning(f"PayMongo webhook: no room for booking {booking_id}, verdict only available by polling")

        return Response({"success": True})


class PaymentStatusView(APIView):
    """Last known verdict for a booking, for clients that missed the push."""

    permission_classes = [permissions.AllowAny]

    def get(self, request, booking_id: str):  # type: ignore
        verdict = get_verdict(booking_id)
        if verdict is None:
            return Response({"bookingId": booking_id, "status": "pending"})
        return Response(verdict)
