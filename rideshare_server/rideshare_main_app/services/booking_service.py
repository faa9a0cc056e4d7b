"""Booking service - sequences conflicts, payments and reliability for ride and booking flows"""

import logging
import time
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from earnings.services import create_earning_for_booking, reverse_earning_for_booking, settle_earning_after_refund

from ..exceptions import (
    BookingEngineError, ValidationError, InvalidStateError, TransientError, ProfileProvisioningError,
    RideConflictError, DriverNotAllowedError, RideNotFoundError, BookingNotFoundError, PermissionDeniedError,
)
from ..models import Ride, Booking
from ..utils.constants import (
    RideStatus, BookingStatus, PaymentStatus, ConflictType, RefundReason, BusinessRules,
)
from ..utils.currency import to_decimal, percentage_of
from .conflict_service import ConflictService
from .payment_service import PaymentService
from .reliability_service import ReliabilityService
from .notification_service import NotificationService

logger = logging.getLogger(__name__)


@dataclass
class PassengerCancellation:
    booking: Booking
    refund_percentage: int
    refund_amount: Decimal
    cancellation_fee: Decimal


@dataclass
class RideCancellation:
    ride: Ride
    released_bookings: int
    outcome: object


def refund_percentage_for(hours_until_departure):
    """Share of a captured payment returned to a passenger who cancels"""
    for min_hours, percentage in BusinessRules.CANCELLATION_REFUND_TIERS:
        if hours_until_departure >= min_hours:
            return percentage
    return 0


class BookingService:
    """Service for ride posting and the booking lifecycle"""

    def __init__(self, conflict_service=None, payment_service=None, reliability_service=None,
                 notification_service=None, sleep=time.sleep):
        self.notification_service = notification_service or NotificationService()
        self.conflict_service = conflict_service or ConflictService()
        self.payment_service = payment_service or PaymentService()
        self.reliability_service = reliability_service or ReliabilityService(self.notification_service)
        self.sleep = sleep

    def _with_retries(self, operation, *args, **kwargs):
        """Call a payment operation, retrying only transient processor failures"""
        attempts = BusinessRules.PAYMENT_RETRY_ATTEMPTS
        for attempt in range(1, attempts + 1):
            try:
                return operation(*args, **kwargs)
            except TransientError as e:
                if attempt == attempts:
                    logger.error(f'[BOOKING] {operation.__name__} failed after {attempts} attempts: {e.message}')
                    raise
                delay = BusinessRules.PAYMENT_RETRY_BACKOFF_SECONDS * 2 ** (attempt - 1)
                logger.warning(f'[BOOKING] {operation.__name__} transient failure ({e.message}), retry in {delay}s')
                self.sleep(delay)

    # Rides

    def check_posting_allowed(self, driver_id):
        """Posting gate, provisioning a missing reliability profile once"""
        try:
            return self.reliability_service.can_driver_post(driver_id)
        except ProfileProvisioningError:
            logger.info(f'[BOOKING] Driver {driver_id} has no reliability profile, provisioning')
            self.reliability_service.ensure_profile(driver_id)
            return self.reliability_service.can_driver_post(driver_id)

    def _ensure_schedulable(self, driver_id, departure_time, arrival_time, exclude_ride_id=None):
        end = arrival_time or departure_time + timedelta(minutes=BusinessRules.DEFAULT_RIDE_DURATION_MINUTES)
        report = self.conflict_service.check_conflicts(driver_id, departure_time, end, exclude_ride_id)
        if not report.conflict_exists:
            return
        message = self.conflict_service.format_conflict_message(report)
        if report.primary_conflict.conflict_type == ConflictType.INVALID_TIME_WINDOW:
            raise ValidationError(message)
        raise RideConflictError(message, report)

    def post_ride(self, driver, departure_time, arrival_time=None, total_seats=4, **ride_data):
        decision = self.check_posting_allowed(driver.id)
        if not decision.allowed:
            raise DriverNotAllowedError(decision.reason, decision.suspension_until)
        if departure_time <= timezone.now():
            raise ValidationError('Departure time must be in the future')
        if total_seats < 1:
            raise ValidationError('A ride needs at least one seat')

        with transaction.atomic():
            # serializes concurrent postings by the same driver
            self.reliability_service.lock_profile(driver.id)
            self._ensure_schedulable(driver.id, departure_time, arrival_time)
            ride = Ride.objects.create(
                driver=driver,
                departure_time=departure_time,
                arrival_time=arrival_time,
                total_seats=total_seats,
                available_seats=total_seats,
                **ride_data,
            )

        logger.info(f'[BOOKING] Driver {driver.id} posted ride {ride.id}')
        return ride

    def _lock_ride(self, ride_id):
        try:
            return Ride.objects.select_for_update().get(id=ride_id)
        except Ride.DoesNotExist:
            raise RideNotFoundError(f'Ride {ride_id} not found')

    def _lock_driver_ride(self, driver, ride_id):
        ride = self._lock_ride(ride_id)
        if ride.driver_id != driver.id:
            raise PermissionDeniedError('You can only manage your own rides')
        return ride

    def reschedule_ride(self, driver, ride_id, **changes):
        with transaction.atomic():
            self.reliability_service.lock_profile(driver.id)
            ride = self._lock_driver_ride(driver, ride_id)
            if ride.status != RideStatus.ACTIVE:
                raise InvalidStateError(f'Cannot edit a {ride.status} ride')

            departure = changes.get('departure_time', ride.departure_time)
            arrival = changes.get('arrival_time', ride.arrival_time)
            if 'departure_time' in changes and departure <= timezone.now():
                raise ValidationError('Departure time must be in the future')
            if 'departure_time' in changes or 'arrival_time' in changes:
                self._ensure_schedulable(driver.id, departure, arrival, exclude_ride_id=ride.id)

            if 'total_seats' in changes:
                booked = ride.total_seats - ride.available_seats
                if changes['total_seats'] < booked:
                    raise ValidationError(f'{booked} seats are already booked on this ride')
                ride.available_seats = changes['total_seats'] - booked

            for field, value in changes.items():
                setattr(ride, field, value)
            ride.save()
        return ride

    def cancel_ride(self, driver, ride_id, reason=''):
        """Driver cancels a whole ride: release every open booking, then record the cancellation.

        Each booking is settled and committed on its own. If a release fails
        the ride stays active with the earlier bookings already cancelled, and
        calling again picks up the rest.
        """
        with transaction.atomic():
            ride = self._lock_driver_ride(driver, ride_id)
            if ride.status != RideStatus.ACTIVE:
                raise InvalidStateError(f'Cannot cancel a {ride.status} ride')

        released = 0
        while True:
            for booking_id in self._open_booking_ids(ride.id):
                if self._release_for_ride_cancellation(booking_id):
                    released += 1

            with transaction.atomic():
                ride = self._lock_driver_ride(driver, ride_id)
                if ride.status != RideStatus.ACTIVE:
                    raise InvalidStateError(f'Cannot cancel a {ride.status} ride')
                # bookings made while releasing; the ride lock keeps out any more
                if self._open_booking_ids(ride.id):
                    continue

                now = timezone.now()
                ride.status = RideStatus.CANCELLED
                ride.cancelled_at = now
                ride.cancellation_reason = reason
                ride.available_seats = ride.total_seats
                ride.save()

                outcome = self.reliability_service.record_cancellation(driver.id, ride.id, at=now)
            break

        logger.info(f'[BOOKING] Driver {driver.id} cancelled ride {ride.id}, released {released} booking(s)')
        return RideCancellation(ride=ride, released_bookings=released, outcome=outcome)

    def _open_booking_ids(self, ride_id):
        return list(
            Booking.objects.filter(ride_id=ride_id, status__in=BookingStatus.OPEN)
            .order_by('id')
            .values_list('id', flat=True)
        )

    def _release_for_ride_cancellation(self, booking_id):
        with transaction.atomic():
            booking = self._lock_booking(booking_id)
            if booking.status not in BookingStatus.OPEN:
                return False

            self._with_retries(self.payment_service.release, booking.id, RefundReason.RIDE_CANCELLED)

            booking.refresh_from_db()
            booking.status = BookingStatus.CANCELLED
            booking.cancelled_at = timezone.now()
            booking.save()
            reverse_earning_for_booking(booking)
            self._restore_seats(booking)
            self.notification_service.send_ride_cancellation(booking)
        return True

    # Bookings

    def create_booking(self, passenger, ride_id, seats_booked, processor, payer_ref, customer_ref=None):
        """Reserve seats and place a payment hold; nothing survives a failed hold"""
        if seats_booked < 1:
            raise ValidationError('At least one seat must be booked')

        with transaction.atomic():
            ride = self._lock_ride(ride_id)
            if ride.status != RideStatus.ACTIVE or ride.has_started():
                raise InvalidStateError('This ride is no longer open for booking')
            if ride.driver_id == passenger.id:
                raise ValidationError('Drivers cannot book their own rides')
            if ride.available_seats < seats_booked:
                raise ValidationError(f'Only {ride.available_seats} seats available')

            ride.available_seats -= seats_booked
            ride.save(update_fields=['available_seats', 'updated_at'])
            booking = Booking.objects.create(
                ride=ride,
                passenger=passenger,
                seats_booked=seats_booked,
                total_amount=to_decimal(ride.price_per_seat * seats_booked),
                status=BookingStatus.PENDING,
                payment_status=PaymentStatus.PENDING,
            )

        try:
            authorization = self._with_retries(
                self.payment_service.authorize,
                booking.id,
                booking.total_amount,
                payer_ref=payer_ref,
                processor=processor,
                customer_ref=customer_ref,
            )
        except BookingEngineError as e:
            logger.warning(f'[BOOKING] Hold for booking {booking.id} failed, discarding: {e.message}')
            self._discard_booking(booking)
            raise

        booking.refresh_from_db()
        self.notification_service.send_booking_request(booking)
        return booking, authorization

    @transaction.atomic
    def _discard_booking(self, booking):
        ride = self._lock_ride(booking.ride_id)
        ride.available_seats = min(ride.total_seats, ride.available_seats + booking.seats_booked)
        ride.save(update_fields=['available_seats', 'updated_at'])
        Booking.objects.filter(id=booking.id).delete()

    def _restore_seats(self, booking):
        ride = self._lock_ride(booking.ride_id)
        if ride.status == RideStatus.ACTIVE:
            ride.available_seats = min(ride.total_seats, ride.available_seats + booking.seats_booked)
            ride.save(update_fields=['available_seats', 'updated_at'])

    def _lock_booking(self, booking_id):
        try:
            return Booking.objects.select_for_update().select_related('ride').get(id=booking_id)
        except Booking.DoesNotExist:
            raise BookingNotFoundError(f'Booking {booking_id} not found')

    def _lock_driver_booking(self, driver, booking_id):
        booking = self._lock_booking(booking_id)
        if booking.ride.driver_id != driver.id:
            raise PermissionDeniedError('Only the driver of this ride can respond to the booking')
        return booking

    def accept_booking(self, driver, booking_id):
        """Capture the hold, then confirm; a failed capture leaves the booking pending"""
        with transaction.atomic():
            booking = self._lock_driver_booking(driver, booking_id)
            if booking.status != BookingStatus.PENDING:
                raise InvalidStateError(f'Cannot accept a {booking.status} booking')

            capture = self._with_retries(self.payment_service.capture, booking.id)

            booking.refresh_from_db()
            booking.status = BookingStatus.CONFIRMED
            booking.confirmed_at = timezone.now()
            booking.save()
            earning = create_earning_for_booking(booking, capture.captured_amount)

        self.notification_service.send_booking_confirmation(booking)
        logger.info(f'[BOOKING] Booking {booking.id} confirmed, captured {capture.captured_amount}')
        return booking, earning

    def reject_booking(self, driver, booking_id, reason=''):
        """Release the payment (void or refund) and mark the booking rejected"""
        with transaction.atomic():
            booking = self._lock_driver_booking(driver, booking_id)
            if booking.status not in BookingStatus.OPEN:
                raise InvalidStateError(f'Cannot reject a {booking.status} booking')

            self._with_retries(self.payment_service.release, booking.id, RefundReason.DRIVER_REJECTED)

            booking.refresh_from_db()
            booking.status = BookingStatus.REJECTED
            booking.cancelled_at = timezone.now()
            booking.save()
            reverse_earning_for_booking(booking)
            self._restore_seats(booking)

        self.notification_service.send_booking_rejection(booking, reason)
        logger.info(f'[BOOKING] Booking {booking.id} rejected by driver {driver.id}')
        return booking

    def cancel_booking(self, passenger, booking_id, now=None):
        """Passenger cancellation, refunded by how long before departure it happens"""
        now = now or timezone.now()
        with transaction.atomic():
            booking = self._lock_booking(booking_id)
            if booking.passenger_id != passenger.id:
                raise PermissionDeniedError('You can only cancel your own bookings')
            if booking.status not in BookingStatus.OPEN:
                raise InvalidStateError(f'Cannot cancel a {booking.status} booking')
            ride = booking.ride
            if ride.has_started(now):
                raise InvalidStateError('The ride has already started and can no longer be cancelled')

            if booking.payment_status == PaymentStatus.PAID:
                paid = booking.payment_hold.captured_amount - booking.payment_hold.refunded_amount
                hours_until = (ride.departure_time - now).total_seconds() / 3600
                percentage = refund_percentage_for(hours_until)
                refund_amount = percentage_of(paid, percentage)
                fee = paid - refund_amount
                if refund_amount > 0:
                    self._with_retries(
                        self.payment_service.refund, booking.id, refund_amount, RefundReason.PASSENGER_CANCELLED
                    )
            else:
                percentage, refund_amount, fee = 100, booking.total_amount, Decimal('0.00')
                self._with_retries(self.payment_service.release, booking.id, RefundReason.PASSENGER_CANCELLED)

            booking.refresh_from_db()
            booking.status = BookingStatus.CANCELLED
            booking.cancelled_at = now
            booking.save()
            settle_earning_after_refund(booking, fee)
            self._restore_seats(booking)

        self.notification_service.send_booking_cancellation(booking)
        logger.info(f'[BOOKING] Booking {booking.id} cancelled by passenger, refund {refund_amount} ({percentage}%)')
        return PassengerCancellation(
            booking=booking,
            refund_percentage=percentage,
            refund_amount=refund_amount,
            cancellation_fee=fee,
        )

    def get_payment(self, user, booking_id, refresh=False):
        booking = Booking.objects.select_related('ride').filter(id=booking_id).first()
        if booking is None:
            raise BookingNotFoundError(f'Booking {booking_id} not found')
        if user.id not in (booking.passenger_id, booking.ride.driver_id) and not user.is_staff:
            raise PermissionDeniedError('You cannot view this payment')
        return self.payment_service.retrieve(booking.id, refresh=refresh)
