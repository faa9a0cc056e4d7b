"""Booking and payment serializers"""
from rest_framework import serializers
from ..models import Booking, PaymentHold
from ..utils.constants import PaymentProcessor
from .ride_serializers import RideSerializer


class PaymentHoldSerializer(serializers.ModelSerializer):
    class Meta:
        model = PaymentHold
        fields = [
            'id', 'processor', 'status', 'amount', 'currency', 'captured_amount',
            'refunded_amount', 'expires_at', 'created_at',
        ]


class BookingSerializer(serializers.ModelSerializer):
    ride = RideSerializer(read_only=True)
    payment_hold = PaymentHoldSerializer(read_only=True)

    class Meta:
        model = Booking
        fields = [
            'id', 'ride', 'passenger', 'seats_booked', 'total_amount', 'status', 'payment_status',
            'payment_hold', 'created_at', 'confirmed_at', 'cancelled_at',
        ]


class BookingCreateSerializer(serializers.Serializer):
    ride = serializers.IntegerField()
    seats_booked = serializers.IntegerField(min_value=1, default=1)
    processor = serializers.ChoiceField(choices=PaymentProcessor.CHOICES)
    payer_ref = serializers.CharField(max_length=128)
    customer_ref = serializers.CharField(max_length=128, required=False, allow_blank=True)


class BookingRejectSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class HoldSnapshotSerializer(serializers.Serializer):
    hold_id = serializers.IntegerField()
    booking_id = serializers.IntegerField()
    processor = serializers.CharField()
    processor_reference = serializers.CharField()
    status = serializers.CharField()
    amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    currency = serializers.CharField()
    captured_amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    refunded_amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    expires_at = serializers.DateTimeField()
    created_at = serializers.DateTimeField()
    processor_status = serializers.CharField(allow_null=True)
