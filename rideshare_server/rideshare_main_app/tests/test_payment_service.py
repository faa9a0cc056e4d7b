"""Tests for the payment hold lifecycle"""

from datetime import timedelta
from decimal import Decimal

from django.db import IntegrityError, transaction
from django.test import TestCase, SimpleTestCase

from ..exceptions import ValidationError, InvalidStateError, DeclinedError, BookingNotFoundError
from ..models import PaymentHold, HoldRefund
from ..services.payment_service import PaymentService
from ..utils.constants import HoldStatus, PaymentStatus, RefundReason
from ..utils.currency import to_decimal, to_minor_units, from_minor_units, percentage_of
from .helpers import make_user, make_ride, make_booking, FakeGateway


class CurrencyTest(SimpleTestCase):
    def test_minor_unit_conversion_rounds_half_even(self):
        self.assertEqual(to_minor_units(Decimal('50.00')), 5000)
        self.assertEqual(to_minor_units(Decimal('0.125')), 12)
        self.assertEqual(to_minor_units(Decimal('0.135')), 14)
        self.assertEqual(from_minor_units(3333), Decimal('33.33'))

    def test_to_decimal_rejects_garbage(self):
        self.assertEqual(to_decimal(19.99), Decimal('19.99'))
        self.assertEqual(to_decimal('2.345'), Decimal('2.34'))
        with self.assertRaises(ValueError):
            to_decimal('abc')
        with self.assertRaises(ValueError):
            to_decimal('NaN')

    def test_percentage_of(self):
        self.assertEqual(percentage_of(Decimal('33.33'), 15), Decimal('5.00'))
        self.assertEqual(percentage_of(Decimal('50.00'), 75), Decimal('37.50'))


class PaymentServiceTest(TestCase):
    def setUp(self):
        self.driver = make_user('driver')
        self.passenger = make_user('passenger')
        self.ride = make_ride(self.driver)
        self.booking = make_booking(self.ride, self.passenger, amount=Decimal('50.00'))
        self.gateway = FakeGateway()
        self.service = PaymentService(gateway_factory=lambda processor: self.gateway, currency='CAD')

    def authorize(self, amount=Decimal('50.00')):
        return self.service.authorize(self.booking.id, amount, payer_ref='pm_card_visa', processor='stripe')

    def test_authorize_places_hold(self):
        result = self.authorize()

        hold = PaymentHold.objects.get(id=result.hold_id)
        self.booking.refresh_from_db()
        self.assertEqual(hold.status, HoldStatus.AUTHORIZED)
        self.assertEqual(hold.amount, Decimal('50.00'))
        self.assertEqual(hold.processor, 'stripe')
        self.assertEqual(self.booking.payment_hold_id, hold.id)
        self.assertEqual(self.booking.payment_status, PaymentStatus.AUTHORIZED)

        call = self.gateway.calls_for('authorize')[0]
        self.assertEqual(call['amount_minor'], 5000)
        self.assertEqual(call['currency'], 'CAD')
        self.assertEqual(call['idempotency_key'], f'booking-{self.booking.id}-authorize-1')

    def test_authorize_rejects_non_positive_amount(self):
        for amount in (Decimal('0'), Decimal('-5'), 'abc'):
            with self.assertRaises(ValidationError):
                self.authorize(amount)
        self.assertFalse(PaymentHold.objects.exists())
        self.assertEqual(self.gateway.calls, [])

    def test_authorize_twice_is_rejected(self):
        self.authorize()
        with self.assertRaises(InvalidStateError):
            self.authorize()
        self.assertEqual(PaymentHold.objects.count(), 1)

    def test_declined_authorization_leaves_no_hold(self):
        self.gateway.fail('authorize', DeclinedError('Insufficient funds', decline_code='insufficient_funds'))

        with self.assertRaises(DeclinedError) as ctx:
            self.authorize()

        self.assertEqual(ctx.exception.decline_code, 'insufficient_funds')
        self.assertFalse(PaymentHold.objects.exists())
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.payment_status, PaymentStatus.PENDING)

    def test_unknown_booking(self):
        with self.assertRaises(BookingNotFoundError):
            self.service.authorize(999999, Decimal('10'), payer_ref='pm', processor='stripe')

    def test_capture_full_amount(self):
        self.authorize()
        result = self.service.capture(self.booking.id)

        self.assertEqual(result.captured_amount, Decimal('50.00'))
        hold = PaymentHold.objects.get()
        self.assertEqual(hold.status, HoldStatus.CAPTURED)
        self.assertEqual(hold.capture_reference, 'ch_hold_1')
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.payment_status, PaymentStatus.PAID)

    def test_capture_twice_fails(self):
        self.authorize()
        self.service.capture(self.booking.id)
        with self.assertRaises(InvalidStateError):
            self.service.capture(self.booking.id)
        self.assertEqual(len(self.gateway.calls_for('capture')), 1)

    def test_capture_after_cancel_fails(self):
        self.authorize()
        self.service.cancel(self.booking.id, RefundReason.DRIVER_REJECTED)
        with self.assertRaises(InvalidStateError):
            self.service.capture(self.booking.id)

    def test_cancel_after_capture_fails(self):
        self.authorize()
        self.service.capture(self.booking.id)
        with self.assertRaises(InvalidStateError):
            self.service.cancel(self.booking.id)
        self.assertEqual(self.gateway.calls_for('void'), [])

    def test_capture_more_than_authorized(self):
        self.authorize()
        with self.assertRaises(ValidationError):
            self.service.capture(self.booking.id, Decimal('50.01'))

    def test_partial_capture(self):
        self.authorize()
        result = self.service.capture(self.booking.id, Decimal('30'))
        self.assertEqual(result.captured_amount, Decimal('30.00'))
        self.assertEqual(self.gateway.calls_for('capture')[0]['amount_minor'], 3000)

    def test_capture_expired_hold_is_declined(self):
        self.gateway.expires_in = timedelta(hours=-1)
        self.authorize()
        with self.assertRaises(DeclinedError):
            self.service.capture(self.booking.id)
        self.assertEqual(PaymentHold.objects.get().status, HoldStatus.AUTHORIZED)

    def test_capture_without_hold(self):
        with self.assertRaises(InvalidStateError):
            self.service.capture(self.booking.id)

    def test_cancel_voids_hold(self):
        self.authorize()
        self.service.cancel(self.booking.id, RefundReason.PASSENGER_CANCELLED)

        hold = PaymentHold.objects.get()
        self.assertEqual(hold.status, HoldStatus.CANCELED)
        self.assertEqual(hold.cancel_reason, RefundReason.PASSENGER_CANCELLED)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.payment_status, PaymentStatus.REFUNDED)
        self.assertEqual(self.gateway.calls_for('void')[0]['idempotency_key'], f'booking-{self.booking.id}-cancel')

    def test_cancel_hold_the_processor_already_voided(self):
        self.authorize()
        self.gateway.fail('void', InvalidStateError('This PaymentIntent has a status of canceled'))
        self.gateway.hold_status = 'canceled'

        self.service.cancel(self.booking.id, RefundReason.DRIVER_REJECTED)

        self.assertEqual(PaymentHold.objects.get().status, HoldStatus.CANCELED)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.payment_status, PaymentStatus.REFUNDED)

    def test_release_expired_hold(self):
        self.gateway.expires_in = timedelta(hours=-1)
        self.authorize()
        self.gateway.fail('void', DeclinedError('Authorization has expired', decline_code='AUTHORIZATION_EXPIRED'))

        self.service.release(self.booking.id, RefundReason.TIMEOUT)

        self.assertEqual(PaymentHold.objects.get().status, HoldStatus.CANCELED)
        self.assertEqual(self.gateway.calls_for('retrieve'), [])

    def test_refused_void_of_live_hold_still_fails(self):
        self.authorize()
        self.gateway.fail('void', DeclinedError('Processor refused the void'))

        with self.assertRaises(DeclinedError):
            self.service.cancel(self.booking.id)
        self.assertEqual(PaymentHold.objects.get().status, HoldStatus.AUTHORIZED)

    def test_unknown_reason_is_rejected_before_processor_call(self):
        self.authorize()
        with self.assertRaises(ValidationError):
            self.service.cancel(self.booking.id, 'driver phoned support to say the car broke down on the way')
        self.assertEqual(self.gateway.calls_for('void'), [])

        self.service.capture(self.booking.id)
        with self.assertRaises(ValidationError):
            self.service.refund(self.booking.id, Decimal('10'), 'goodwill')
        self.assertEqual(self.gateway.calls_for('refund'), [])

    def test_refund_before_capture_fails(self):
        self.authorize()
        with self.assertRaises(InvalidStateError):
            self.service.refund(self.booking.id, Decimal('10'), RefundReason.DRIVER_REJECTED)

    def test_partial_refunds_cannot_exceed_captured_amount(self):
        self.authorize()
        self.service.capture(self.booking.id)

        first = self.service.refund(self.booking.id, Decimal('20'), RefundReason.PASSENGER_CANCELLED)
        self.assertEqual(first.hold_status, HoldStatus.PARTIALLY_REFUNDED)

        with self.assertRaises(ValidationError):
            self.service.refund(self.booking.id, Decimal('31'), RefundReason.PASSENGER_CANCELLED)

        hold = PaymentHold.objects.get()
        self.assertEqual(hold.refunded_amount, Decimal('20.00'))
        self.assertEqual(len(self.gateway.calls_for('refund')), 1)

        last = self.service.refund(self.booking.id, Decimal('30'), RefundReason.PASSENGER_CANCELLED)
        self.assertEqual(last.total_refunded, Decimal('50.00'))
        self.assertEqual(last.hold_status, HoldStatus.REFUNDED)
        self.assertEqual(HoldRefund.objects.filter(hold=hold).count(), 2)

        with self.assertRaises(InvalidStateError):
            self.service.refund(self.booking.id, Decimal('1'), RefundReason.PASSENGER_CANCELLED)

    def test_full_refund_by_default(self):
        self.authorize()
        self.service.capture(self.booking.id)
        result = self.service.refund(self.booking.id, reason=RefundReason.DRIVER_REJECTED)

        self.assertEqual(result.refunded_amount, Decimal('50.00'))
        self.assertEqual(self.gateway.calls_for('refund')[0]['idempotency_key'], f'booking-{self.booking.id}-refund-1')
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.payment_status, PaymentStatus.REFUNDED)

    def test_release_picks_void_or_refund(self):
        self.assertIsNone(self.service.release(self.booking.id, RefundReason.DRIVER_REJECTED))

        self.authorize()
        self.service.release(self.booking.id, RefundReason.DRIVER_REJECTED)
        self.assertEqual(len(self.gateway.calls_for('void')), 1)

        self.authorize()
        self.service.capture(self.booking.id)
        self.service.release(self.booking.id, RefundReason.RIDE_CANCELLED)
        self.assertEqual(len(self.gateway.calls_for('refund')), 1)
        self.assertEqual(
            self.gateway.calls_for('authorize')[1]['idempotency_key'], f'booking-{self.booking.id}-authorize-2'
        )

    def test_retrieve_snapshot(self):
        self.authorize()
        snapshot = self.service.retrieve(self.booking.id)
        self.assertEqual(snapshot.status, HoldStatus.AUTHORIZED)
        self.assertIsNone(snapshot.processor_status)

        refreshed = self.service.retrieve(self.booking.id, refresh=True)
        self.assertEqual(refreshed.processor_status, 'requires_capture')

    def test_database_refuses_second_open_hold(self):
        self.authorize()
        hold = PaymentHold.objects.get()
        with self.assertRaises(IntegrityError), transaction.atomic():
            PaymentHold.objects.create(
                booking=self.booking, processor='stripe', processor_reference='dup',
                amount=Decimal('50'), expires_at=hold.expires_at,
            )
