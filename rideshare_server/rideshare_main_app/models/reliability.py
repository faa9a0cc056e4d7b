"""Driver reliability models"""
from django.db import models
from django.conf import settings

from ..utils.constants import AccountStatus


class DriverReliabilityRecord(models.Model):
    """Status projection derived from the driver's cancellation events"""
    driver = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='reliability_record')
    warnings_sent = models.PositiveIntegerField(default=0)
    account_status = models.CharField(max_length=20, choices=AccountStatus.CHOICES, default=AccountStatus.ACTIVE)
    suspension_until = models.DateTimeField(null=True, blank=True)
    last_warning_date = models.DateTimeField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.driver} - {self.account_status}"


class CancellationEvent(models.Model):
    """Append-only log of driver-initiated ride cancellations"""
    driver = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='cancellation_events')
    ride = models.ForeignKey('Ride', on_delete=models.SET_NULL, null=True, blank=True, related_name='cancellation_events')
    occurred_at = models.DateTimeField(db_index=True)
    warning_level = models.CharField(max_length=20, default='none')
    suspension_until = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['occurred_at', 'id']
        indexes = [models.Index(fields=['driver', 'occurred_at'], name='cancellation_driver_time_idx')]

    def __str__(self):
        return f"{self.driver} cancelled ride {self.ride_id} at {self.occurred_at}"


class ReliabilityOverride(models.Model):
    """Administrative reset of a driver's escalation ladder"""
    driver = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='reliability_overrides')
    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+'
    )
    previous_status = models.CharField(max_length=20, choices=AccountStatus.CHOICES)
    reason = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"Override for {self.driver} at {self.created_at}"
