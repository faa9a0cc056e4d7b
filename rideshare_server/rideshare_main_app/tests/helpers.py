"""Shared fixtures for engine tests"""
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth.models import User
from django.utils import timezone

from ..models import Ride, Booking
from ..payment_gateways.payment_gateway import (
    PaymentGateway, GatewayAuthorization, GatewayCapture, GatewayRefund, GatewayHoldState,
)


def make_user(username, **extra):
    return User.objects.create_user(username, password='pass', **extra)


def make_ride(driver, hours_ahead=48, duration_hours=2, **fields):
    departure = timezone.now().replace(microsecond=0) + timedelta(hours=hours_ahead)
    defaults = {
        'from_location': 'Toronto',
        'to_location': 'Ottawa',
        'departure_time': departure,
        'arrival_time': departure + timedelta(hours=duration_hours),
        'total_seats': 3,
        'available_seats': 3,
        'price_per_seat': Decimal('25.00'),
    }
    defaults.update(fields)
    return Ride.objects.create(driver=driver, **defaults)


def make_booking(ride, passenger, amount=Decimal('50.00'), seats=2):
    return Booking.objects.create(ride=ride, passenger=passenger, seats_booked=seats, total_amount=amount)


class FakeGateway(PaymentGateway):
    """In-memory processor; queue exceptions per operation in ``failures``"""

    processor = 'stripe'
    released_statuses = ('canceled',)

    def __init__(self, expires_in=timedelta(hours=12)):
        self.calls = []
        self.failures = {}
        self.expires_in = expires_in
        self.hold_status = 'requires_capture'
        self._counter = 0

    def fail(self, operation, *errors):
        self.failures.setdefault(operation, []).extend(errors)

    def _record(self, operation, **kwargs):
        self.calls.append((operation, kwargs))
        pending = self.failures.get(operation)
        if pending:
            raise pending.pop(0)

    def calls_for(self, operation):
        return [kwargs for name, kwargs in self.calls if name == operation]

    def authorize(self, amount_minor, currency, payer_ref, booking_id, idempotency_key, customer_ref=None):
        self._record('authorize', amount_minor=amount_minor, currency=currency, payer_ref=payer_ref,
                     idempotency_key=idempotency_key)
        self._counter += 1
        return GatewayAuthorization(
            reference=f'hold_{self._counter}',
            status='requires_capture',
            amount_minor=amount_minor,
            client_token=f'secret_{self._counter}',
            expires_at=timezone.now() + self.expires_in,
        )

    def capture(self, reference, amount_minor, currency, idempotency_key):
        self._record('capture', reference=reference, amount_minor=amount_minor, idempotency_key=idempotency_key)
        return GatewayCapture(amount_minor=amount_minor, capture_reference=f'ch_{reference}')

    def void(self, reference, reason, idempotency_key):
        self._record('void', reference=reference, reason=reason, idempotency_key=idempotency_key)

    def refund(self, reference, capture_reference, amount_minor, currency, reason, idempotency_key):
        self._record('refund', reference=reference, amount_minor=amount_minor, reason=reason,
                     idempotency_key=idempotency_key)
        return GatewayRefund(amount_minor=amount_minor, refund_reference=f're_{len(self.calls)}')

    def retrieve(self, reference):
        self._record('retrieve', reference=reference)
        return GatewayHoldState(reference=reference, status=self.hold_status, amount_minor=0)
