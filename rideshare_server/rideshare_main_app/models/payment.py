"""Payment hold models"""
from decimal import Decimal

from django.db import models

from ..utils.constants import HoldStatus, PaymentProcessor, RefundReason


class PaymentHold(models.Model):
    booking = models.ForeignKey('Booking', on_delete=models.CASCADE, related_name='payment_holds')
    processor = models.CharField(max_length=20, choices=PaymentProcessor.CHOICES)
    processor_reference = models.CharField(max_length=128)
    capture_reference = models.CharField(max_length=128, null=True, blank=True)
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=3, default='CAD')
    status = models.CharField(max_length=20, choices=HoldStatus.CHOICES, default=HoldStatus.AUTHORIZED)
    captured_amount = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    refunded_amount = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    cancel_reason = models.CharField(max_length=64, null=True, blank=True)
    expires_at = models.DateTimeField()
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    captured_at = models.DateTimeField(null=True, blank=True)
    canceled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['booking'],
                condition=models.Q(status__in=HoldStatus.OPEN),
                name='one_open_hold_per_booking',
            ),
            models.CheckConstraint(
                condition=models.Q(refunded_amount__lte=models.F('captured_amount')),
                name='refunds_within_captured_amount',
            ),
        ]

    def __str__(self):
        return f"{self.processor} hold {self.processor_reference} ({self.status})"

    @property
    def refundable_amount(self):
        if self.status not in HoldStatus.REFUNDABLE:
            return Decimal('0.00')
        return self.captured_amount - self.refunded_amount


class HoldRefund(models.Model):
    hold = models.ForeignKey(PaymentHold, on_delete=models.CASCADE, related_name='refunds')
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    reason = models.CharField(max_length=32, choices=RefundReason.CHOICES)
    processor_refund_id = models.CharField(max_length=128, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"Refund {self.amount} on hold {self.hold_id} ({self.reason})"
