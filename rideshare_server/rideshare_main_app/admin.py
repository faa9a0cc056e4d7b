from django.contrib import admin
from .models import (
    Ride, Booking, PaymentHold, HoldRefund, DriverReliabilityRecord, CancellationEvent,
    ReliabilityOverride, Notification, DriverWarning, SupportTicket,
)
from .services import ReliabilityService

# Customize admin site
admin.site.site_header = "Rideshare Administration"
admin.site.site_title = "Rideshare Admin"
admin.site.index_title = "Welcome to Rideshare Admin Panel"


@admin.register(Ride)
class RideAdmin(admin.ModelAdmin):
    list_display = ['id', 'driver', 'from_location', 'to_location', 'departure_time', 'arrival_time', 'available_seats', 'status']
    list_filter = ['status', 'departure_time']
    search_fields = ['driver__username', 'from_location', 'to_location']
    ordering = ['-departure_time']
    date_hierarchy = 'departure_time'
    list_per_page = 50


class PaymentHoldInline(admin.TabularInline):
    model = PaymentHold
    extra = 0
    can_delete = False
    readonly_fields = ['processor', 'processor_reference', 'status', 'amount', 'captured_amount', 'refunded_amount', 'expires_at']


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ['id', 'ride', 'passenger', 'seats_booked', 'total_amount', 'status', 'payment_status', 'created_at']
    list_filter = ['status', 'payment_status']
    search_fields = ['passenger__username', 'ride__from_location', 'ride__to_location']
    ordering = ['-created_at']
    inlines = [PaymentHoldInline]
    list_per_page = 50


class HoldRefundInline(admin.TabularInline):
    model = HoldRefund
    extra = 0
    can_delete = False
    readonly_fields = ['amount', 'reason', 'processor_refund_id', 'created_at']


@admin.register(PaymentHold)
class PaymentHoldAdmin(admin.ModelAdmin):
    list_display = ['id', 'booking', 'processor', 'processor_reference', 'status', 'amount', 'captured_amount', 'refunded_amount', 'expires_at']
    list_filter = ['processor', 'status']
    search_fields = ['processor_reference', 'capture_reference']
    readonly_fields = ['created_at', 'updated_at', 'captured_at', 'canceled_at']
    inlines = [HoldRefundInline]


@admin.register(DriverReliabilityRecord)
class DriverReliabilityRecordAdmin(admin.ModelAdmin):
    list_display = ['driver', 'account_status', 'warnings_sent', 'suspension_until', 'last_warning_date']
    list_filter = ['account_status']
    search_fields = ['driver__username', 'driver__email']
    actions = ['clear_warnings', 'rebuild_status']

    def clear_warnings(self, request, queryset):
        service = ReliabilityService()
        for record in queryset:
            service.clear_warnings(record.driver_id, performed_by=request.user, reason='Cleared from admin')
        self.message_user(request, f"Cleared warnings for {queryset.count()} driver(s).")
    clear_warnings.short_description = "Clear warnings and reactivate"

    def rebuild_status(self, request, queryset):
        service = ReliabilityService()
        changed = sum(1 for record in queryset if service.rebuild(record.driver_id))
        self.message_user(request, f"Rebuilt {queryset.count()} driver status(es), {changed} changed.")
    rebuild_status.short_description = "Rebuild status from cancellation log"


@admin.register(CancellationEvent)
class CancellationEventAdmin(admin.ModelAdmin):
    list_display = ['driver', 'ride', 'occurred_at', 'warning_level', 'suspension_until']
    list_filter = ['warning_level']
    search_fields = ['driver__username']
    date_hierarchy = 'occurred_at'


@admin.register(ReliabilityOverride)
class ReliabilityOverrideAdmin(admin.ModelAdmin):
    list_display = ['driver', 'performed_by', 'previous_status', 'created_at']
    search_fields = ['driver__username']
    readonly_fields = ['created_at']


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['user', 'notification_type', 'title', 'is_read', 'created_at']
    list_filter = ['notification_type', 'is_read']


@admin.register(DriverWarning)
class DriverWarningAdmin(admin.ModelAdmin):
    list_display = ['driver', 'warning_type', 'title', 'suspension_until', 'created_at']
    list_filter = ['warning_type']


@admin.register(SupportTicket)
class SupportTicketAdmin(admin.ModelAdmin):
    list_display = ['subject', 'user', 'category', 'priority', 'status', 'created_at']
    list_filter = ['priority', 'status', 'category']
