"""Serializers for the payment endpoints."""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers  # type: ignore

from shared.domain.value_objects import SUPPORTED_CURRENCIES


class BillingAddressSerializer(serializers.Serializer):
    line1 = serializers.CharField(required=False, allow_blank=True, default="")
    city = serializers.CharField(required=False, allow_blank=True, default="")
    state = serializers.CharField(required=False, allow_blank=True, default="")
    postal_code = serializers.CharField(required=False, allow_blank=True, default="")
    country = serializers.CharField(required=False, default="PH")


class BillingSerializer(serializers.Serializer):
    name = serializers.CharField()
    email = serializers.EmailField(required=False, allow_blank=True, default="")
    phone = serializers.CharField(required=False, allow_blank=True, default="")
    address = BillingAddressSerializer(required=False)

    def to_internal_value(self, data):  # type: ignore
        value = super().to_internal_value(data)
        value.setdefault("address", BillingAddressSerializer().to_internal_value({}))
        return value


class GcashPaymentIntentSerializer(serializers.Serializer):
    """Body of a GCash payment intent request."""

    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0.01"))
    currency = serializers.ChoiceField(choices=SUPPORTED_CURRENCIES, default="PHP")
    description = serializers.CharField(required=False, allow_blank=True, default="Car Rental Payment")
    return_url = serializers.URLField()
    billing = BillingSerializer()
    metadata = serializers.DictField()

    def validate_metadata(self, value):  # type: ignore
        if not value.get("bookingId"):
            raise serializers.ValidationError("metadata.bookingId is required.")
        return value
