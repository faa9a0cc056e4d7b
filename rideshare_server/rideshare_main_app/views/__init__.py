"""Views package - HTTP request handlers"""

from .ride_views import RideViewSet
from .booking_views import BookingViewSet
from .reliability_views import DriverStatusViewSet

__all__ = [
    'RideViewSet',
    'BookingViewSet',
    'DriverStatusViewSet',
]
