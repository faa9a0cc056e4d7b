"""Models package - domain-based organization"""

# Ride models
from .ride import Ride

# Booking models
from .booking import Booking

# Payment models
from .payment import PaymentHold, HoldRefund

# Reliability models
from .reliability import DriverReliabilityRecord, CancellationEvent, ReliabilityOverride

# Notification models
from .notification import Notification, DriverWarning, SupportTicket

__all__ = [
    'Ride', 'Booking', 'PaymentHold', 'HoldRefund',
    'DriverReliabilityRecord', 'CancellationEvent', 'ReliabilityOverride',
    'Notification', 'DriverWarning', 'SupportTicket',
]
