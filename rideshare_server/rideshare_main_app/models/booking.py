"""Booking-related models"""
from django.db import models
from django.conf import settings

from ..utils.constants import BookingStatus, PaymentStatus


class Booking(models.Model):
    ride = models.ForeignKey('Ride', on_delete=models.PROTECT, related_name='bookings')
    passenger = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='ride_bookings')
    seats_booked = models.PositiveIntegerField(default=1)
    total_amount = models.DecimalField(max_digits=10, decimal_places=2)
    status = models.CharField(max_length=20, choices=BookingStatus.CHOICES, default=BookingStatus.PENDING)
    payment_status = models.CharField(max_length=20, choices=PaymentStatus.CHOICES, default=PaymentStatus.PENDING)
    payment_hold = models.ForeignKey(
        'PaymentHold', on_delete=models.SET_NULL, null=True, blank=True, related_name='+'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    confirmed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        indexes = [
            models.Index(fields=['ride', 'status'], name='booking_ride_status_idx'),
            models.Index(fields=['passenger', '-created_at'], name='booking_passenger_created_idx'),
        ]

    def __str__(self):
        return f"Booking #{self.id} by {self.passenger} on ride {self.ride_id} ({self.status})"
