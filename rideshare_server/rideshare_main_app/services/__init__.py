"""Services package - business logic layer"""

from .conflict_service import ConflictService, ConflictReport, RideConflict, find_conflicts, classify_overlap
from .payment_service import PaymentService, HoldSnapshot
from .reliability_service import ReliabilityService, outcome_for_count, replay_events
from .notification_service import NotificationService
from .booking_service import BookingService, refund_percentage_for

__all__ = [
    'ConflictService',
    'ConflictReport',
    'RideConflict',
    'find_conflicts',
    'classify_overlap',
    'PaymentService',
    'HoldSnapshot',
    'ReliabilityService',
    'outcome_for_count',
    'replay_events',
    'NotificationService',
    'BookingService',
    'refund_percentage_for',
]
