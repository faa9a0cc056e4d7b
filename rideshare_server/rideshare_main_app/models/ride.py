"""Ride-related models"""
from datetime import timedelta

from django.db import models
from django.conf import settings
from django.utils import timezone

from ..utils.constants import RideStatus, BusinessRules


class Ride(models.Model):
    driver = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='rides')
    from_location = models.CharField(max_length=255)
    to_location = models.CharField(max_length=255)
    from_latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    from_longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    to_latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    to_longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    departure_time = models.DateTimeField(db_index=True)
    arrival_time = models.DateTimeField(null=True, blank=True)
    total_seats = models.PositiveIntegerField(default=4)
    available_seats = models.PositiveIntegerField(default=4)
    price_per_seat = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    status = models.CharField(max_length=20, choices=RideStatus.CHOICES, default=RideStatus.ACTIVE, db_index=True)
    cancellation_reason = models.TextField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['departure_time']
        indexes = [
            models.Index(fields=['driver', 'status', 'departure_time'], name='ride_driver_status_dep_idx'),
        ]

    def __str__(self):
        return f"{self.from_location} → {self.to_location} ({self.departure_time:%Y-%m-%d %H:%M})"

    @property
    def scheduled_end(self):
        """Arrival time, or departure plus the default ride duration when unknown"""
        if self.arrival_time:
            return self.arrival_time
        return self.departure_time + timedelta(minutes=BusinessRules.DEFAULT_RIDE_DURATION_MINUTES)

    def has_started(self, now=None):
        now = now or timezone.now()
        return now >= self.departure_time - timedelta(minutes=BusinessRules.RIDE_START_GRACE_MINUTES)
