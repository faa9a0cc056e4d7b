from django.db import models
from django.conf import settings


class DriverEarning(models.Model):
    STATUS_PENDING = 'pending'
    STATUS_AVAILABLE = 'available'
    STATUS_PAID_OUT = 'paid_out'
    STATUS_REVERSED = 'reversed'

    STATUS_CHOICES = (
        (STATUS_PENDING, 'Pending'),
        (STATUS_AVAILABLE, 'Available'),
        (STATUS_PAID_OUT, 'Paid out'),
        (STATUS_REVERSED, 'Reversed'),
    )

    driver = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="earnings")
    ride = models.ForeignKey('rideshare_main_app.Ride', on_delete=models.PROTECT, related_name="earnings")
    booking = models.OneToOneField('rideshare_main_app.Booking', on_delete=models.PROTECT, related_name="earning")
    gross_amount = models.DecimalField(max_digits=10, decimal_places=2)
    service_fee_percentage = models.DecimalField(max_digits=5, decimal_places=2)
    service_fee_amount = models.DecimalField(max_digits=10, decimal_places=2)
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=3, default='CAD')
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING)
    description = models.TextField(blank=True, max_length=150)
    earning_date = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-earning_date']

    def __str__(self):
        return f"{self.driver} earned {self.amount} {self.currency} on booking {self.booking_id} ({self.status})"
