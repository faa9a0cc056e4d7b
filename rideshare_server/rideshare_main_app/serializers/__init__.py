"""Serializers package - imports from domain-specific modules"""

# Ride serializers
from .ride_serializers import (
    RideSerializer,
    RideCancelSerializer,
    ConflictCheckSerializer,
    SlotSuggestionSerializer,
)

# Booking serializers
from .booking_serializers import (
    PaymentHoldSerializer,
    BookingSerializer,
    BookingCreateSerializer,
    BookingRejectSerializer,
    HoldSnapshotSerializer,
)

# Reliability serializers
from .reliability_serializers import (
    DriverReliabilityRecordSerializer,
    CancellationEventSerializer,
    ClearWarningsSerializer,
)

__all__ = [
    'RideSerializer',
    'RideCancelSerializer',
    'ConflictCheckSerializer',
    'SlotSuggestionSerializer',
    'PaymentHoldSerializer',
    'BookingSerializer',
    'BookingCreateSerializer',
    'BookingRejectSerializer',
    'HoldSnapshotSerializer',
    'DriverReliabilityRecordSerializer',
    'CancellationEventSerializer',
    'ClearWarningsSerializer',
]
