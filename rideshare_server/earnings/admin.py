from django.contrib import admin
from .models import DriverEarning


@admin.register(DriverEarning)
class DriverEarningAdmin(admin.ModelAdmin):
    list_display = ['driver', 'booking', 'gross_amount', 'service_fee_amount', 'amount', 'status', 'earning_date']
    list_filter = ['status']
    search_fields = ['driver__username']
