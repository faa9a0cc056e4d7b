"""Ride-related serializers"""
from rest_framework import serializers
from ..models import Ride


class RideSerializer(serializers.ModelSerializer):
    driver = serializers.PrimaryKeyRelatedField(read_only=True)

    class Meta:
        model = Ride
        fields = [
            'id', 'driver', 'from_location', 'to_location',
            'from_latitude', 'from_longitude', 'to_latitude', 'to_longitude',
            'departure_time', 'arrival_time', 'total_seats', 'available_seats', 'price_per_seat',
            'status', 'cancellation_reason', 'created_at', 'cancelled_at',
        ]
        read_only_fields = ['available_seats', 'status', 'cancellation_reason', 'created_at', 'cancelled_at']

    def validate_total_seats(self, value):
        if value < 1:
            raise serializers.ValidationError('A ride needs at least one seat')
        return value

    def validate_price_per_seat(self, value):
        if value < 0:
            raise serializers.ValidationError('Price cannot be negative')
        return value


class RideCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class ConflictCheckSerializer(serializers.Serializer):
    departure_time = serializers.DateTimeField()
    arrival_time = serializers.DateTimeField(required=False, allow_null=True)
    exclude_ride_id = serializers.IntegerField(required=False, allow_null=True)


class SlotSuggestionSerializer(serializers.Serializer):
    preferred_departure = serializers.DateTimeField()
    duration_minutes = serializers.IntegerField(min_value=1, max_value=24 * 60)
