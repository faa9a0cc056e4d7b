"""Notification service - in-app notifications, driver warnings and support tickets.

Delivery is scheduled with ``transaction.on_commit`` and failures are only
logged, so a notification problem never undoes the change that caused it.
"""
import logging

from django.db import transaction

from ..models import Notification, DriverWarning, SupportTicket
from ..utils.constants import NotificationType, WarningLevel

logger = logging.getLogger(__name__)


class NotificationService:

    def notify(self, user_id, notification_type, title, message, data=None):
        transaction.on_commit(
            lambda: self._create_notification(user_id, notification_type, title, message, data or {})
        )

    def _create_notification(self, user_id, notification_type, title, message, data):
        try:
            Notification.objects.create(
                user_id=user_id,
                notification_type=notification_type,
                title=title,
                message=message,
                data=data,
            )
        except Exception:
            logger.exception(f'[NOTIFY] Failed to notify user {user_id} ({notification_type})')

    def send_booking_request(self, booking):
        ride = booking.ride
        self.notify(
            ride.driver_id,
            NotificationType.BOOKING_REQUEST,
            'New booking request',
            f'{booking.seats_booked} seat(s) requested on {ride.from_location} → {ride.to_location}',
            {'booking_id': booking.id, 'ride_id': ride.id},
        )

    def send_booking_confirmation(self, booking):
        ride = booking.ride
        self.notify(
            booking.passenger_id,
            NotificationType.BOOKING_CONFIRMED,
            'Booking confirmed',
            f'Your booking for {ride.from_location} → {ride.to_location} on {ride.departure_time:%Y-%m-%d %H:%M} is confirmed',
            {'booking_id': booking.id, 'ride_id': ride.id},
        )

    def send_booking_rejection(self, booking, reason=''):
        ride = booking.ride
        message = f'The driver declined your booking for {ride.from_location} → {ride.to_location}. Your payment has been released.'
        if reason:
            message = f'{message} Reason: {reason}'
        self.notify(
            booking.passenger_id,
            NotificationType.BOOKING_REJECTED,
            'Booking declined',
            message,
            {'booking_id': booking.id, 'ride_id': ride.id},
        )

    def send_booking_cancellation(self, booking):
        """Tell the driver a passenger cancelled"""
        ride = booking.ride
        self.notify(
            ride.driver_id,
            NotificationType.BOOKING_CANCELLED,
            'Booking cancelled',
            f'A passenger cancelled {booking.seats_booked} seat(s) on {ride.from_location} → {ride.to_location}',
            {'booking_id': booking.id, 'ride_id': ride.id},
        )

    def send_ride_cancellation(self, booking):
        """Tell a passenger the driver cancelled the whole ride"""
        ride = booking.ride
        self.notify(
            booking.passenger_id,
            NotificationType.RIDE_CANCELLED,
            'Ride cancelled',
            f'Your ride {ride.from_location} → {ride.to_location} on {ride.departure_time:%Y-%m-%d %H:%M} '
            f'was cancelled by the driver. Your payment has been released.',
            {'booking_id': booking.id, 'ride_id': ride.id},
        )

    def send_reliability_outcome(self, driver_id, level, cancellation_count, suspension_until=None):
        """Warning record for the driver plus a support ticket for suspensions and bans"""
        if level == WarningLevel.NONE:
            return
        transaction.on_commit(
            lambda: self._deliver_reliability_outcome(driver_id, level, cancellation_count, suspension_until)
        )

    def _deliver_reliability_outcome(self, driver_id, level, cancellation_count, suspension_until):
        if level == WarningLevel.WARNING:
            warning_type = 'warning'
            title = 'Cancellation warning'
            message = (
                f'You have cancelled {cancellation_count} rides in the last 30 days. '
                f'Further cancellations will lead to a temporary suspension.'
            )
        elif level == WarningLevel.SUSPENSION:
            warning_type = 'suspension'
            title = 'Account suspended'
            message = (
                f'You have cancelled {cancellation_count} rides in the last 30 days. '
                f'You cannot post rides until {suspension_until:%Y-%m-%d %H:%M}.'
            )
        else:
            warning_type = 'ban'
            title = 'Account banned'
            message = (
                f'You have cancelled {cancellation_count} rides in the last 30 days. '
                f'Your account has been banned from posting rides.'
            )

        try:
            DriverWarning.objects.create(
                driver_id=driver_id,
                warning_type=warning_type,
                title=title,
                message=message,
                suspension_until=suspension_until,
            )
            Notification.objects.create(
                user_id=driver_id,
                notification_type=NotificationType.ACCOUNT_WARNING,
                title=title,
                message=message,
                data={'level': level, 'cancellation_count': cancellation_count},
            )
            if level in (WarningLevel.SUSPENSION, WarningLevel.BANNED):
                SupportTicket.objects.create(
                    user_id=driver_id,
                    subject=f'Driver {title.lower()}: {cancellation_count} cancellations in 30 days',
                    description=message,
                    category='driver_reliability',
                    priority='high',
                    status='auto_generated',
                )
        except Exception:
            logger.exception(f'[NOTIFY] Failed to deliver {level} outcome for driver {driver_id}')
