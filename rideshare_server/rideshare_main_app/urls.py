from django.urls import path, include
from rest_framework import routers

from .views import RideViewSet, BookingViewSet, DriverStatusViewSet

router = routers.DefaultRouter()
router.register(r"rides", RideViewSet, basename="rides")
router.register(r"bookings", BookingViewSet, basename="bookings")
router.register(r"driver-status", DriverStatusViewSet, basename="driver-status")

urlpatterns = [
    path('', include(router.urls)),
]
