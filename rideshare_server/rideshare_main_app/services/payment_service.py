"""Payment service - per-booking authorization hold lifecycle.

Every operation locks the booking row for the duration of the processor
call, so of two concurrent capture/cancel/refund calls on one booking the
loser sees the hold already moved and gets InvalidStateError. Processor
failures are never retried here; callers decide.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from ..exceptions import ValidationError, InvalidStateError, DeclinedError, BookingNotFoundError
from ..models import Booking, PaymentHold, HoldRefund
from ..payment_gateways import get_gateway
from ..utils.constants import HoldStatus, PaymentStatus, RefundReason
from ..utils.currency import to_decimal, to_minor_units, from_minor_units

logger = logging.getLogger(__name__)

REFUND_REASONS = {value for value, _ in RefundReason.CHOICES}


@dataclass
class AuthorizationResult:
    hold_id: int
    processor_reference: str
    client_token: Optional[str]
    expires_at: datetime
    amount: Decimal


@dataclass
class CaptureResult:
    captured_amount: Decimal
    captured_at: datetime


@dataclass
class RefundResult:
    refunded_amount: Decimal
    total_refunded: Decimal
    hold_status: str


@dataclass
class HoldSnapshot:
    hold_id: int
    booking_id: int
    processor: str
    processor_reference: str
    status: str
    amount: Decimal
    currency: str
    captured_amount: Decimal
    refunded_amount: Decimal
    expires_at: datetime
    created_at: datetime
    processor_status: Optional[str] = None

    @classmethod
    def from_hold(cls, hold, processor_status=None):
        return cls(
            hold_id=hold.id,
            booking_id=hold.booking_id,
            processor=hold.processor,
            processor_reference=hold.processor_reference,
            status=hold.status,
            amount=hold.amount,
            currency=hold.currency,
            captured_amount=hold.captured_amount,
            refunded_amount=hold.refunded_amount,
            expires_at=hold.expires_at,
            created_at=hold.created_at,
            processor_status=processor_status,
        )


def _positive_amount(amount, label='Amount'):
    try:
        value = to_decimal(amount)
    except ValueError:
        raise ValidationError(f'{label} is not a valid amount: {amount!r}')
    if value <= 0:
        raise ValidationError(f'{label} must be greater than 0')
    return value


def _reason_code(reason):
    if reason is None:
        return None
    if reason not in REFUND_REASONS:
        raise ValidationError(f'Unknown refund reason: {reason!r}')
    return reason


class PaymentService:
    """Authorize / capture / cancel / refund / retrieve for a booking's hold.

    The processor kind is chosen once at authorize time and stored on the
    hold; later operations resolve the gateway from the hold.
    """

    def __init__(self, gateway_factory=None, currency=None):
        self.gateway_factory = gateway_factory or get_gateway
        self.currency = currency or settings.PAYMENT_CURRENCY

    def _lock_booking(self, booking_id):
        try:
            return Booking.objects.select_for_update().get(id=booking_id)
        except Booking.DoesNotExist:
            raise BookingNotFoundError(f'Booking {booking_id} not found')

    def _lock_hold(self, booking):
        if booking.payment_hold_id is None:
            raise InvalidStateError(f'Booking {booking.id} has no payment hold')
        return PaymentHold.objects.select_for_update().get(id=booking.payment_hold_id)

    def _released_at_processor(self, gateway, hold):
        if hold.expires_at and hold.expires_at <= timezone.now():
            return True
        state = gateway.retrieve(hold.processor_reference)
        return state.status in gateway.released_statuses

    @transaction.atomic
    def authorize(self, booking_id, amount, payer_ref, processor, currency=None, customer_ref=None):
        """Place a hold for ``amount`` without moving funds"""
        amount = _positive_amount(amount)
        currency = (currency or self.currency).upper()
        if not payer_ref:
            raise ValidationError('A payment method reference is required')

        booking = self._lock_booking(booking_id)
        if booking.payment_holds.filter(status__in=HoldStatus.OPEN).exists():
            raise InvalidStateError(f'Booking {booking_id} already has an open payment hold')

        gateway = self.gateway_factory(processor)
        attempt = booking.payment_holds.count() + 1
        authorization = gateway.authorize(
            to_minor_units(amount),
            currency,
            payer_ref,
            booking.id,
            idempotency_key=f'booking-{booking.id}-authorize-{attempt}',
            customer_ref=customer_ref,
        )

        hold = PaymentHold.objects.create(
            booking=booking,
            processor=processor,
            processor_reference=authorization.reference,
            amount=amount,
            currency=currency,
            status=HoldStatus.AUTHORIZED,
            expires_at=authorization.expires_at,
        )
        booking.payment_hold = hold
        booking.payment_status = PaymentStatus.AUTHORIZED
        booking.save(update_fields=['payment_hold', 'payment_status', 'updated_at'])

        logger.info(f'[PAYMENT] Authorized {amount} {currency} for booking {booking.id} via {processor}')
        return AuthorizationResult(
            hold_id=hold.id,
            processor_reference=hold.processor_reference,
            client_token=authorization.client_token,
            expires_at=hold.expires_at,
            amount=amount,
        )

    @transaction.atomic
    def capture(self, booking_id, amount=None):
        """Move held funds; defaults to the full authorized amount"""
        booking = self._lock_booking(booking_id)
        hold = self._lock_hold(booking)
        if hold.status != HoldStatus.AUTHORIZED:
            raise InvalidStateError(f'Cannot capture a hold in state {hold.status}')

        amount = hold.amount if amount is None else _positive_amount(amount, 'Capture amount')
        if amount > hold.amount:
            raise ValidationError(f'Capture amount {amount} exceeds authorized amount {hold.amount}')
        if hold.expires_at and hold.expires_at <= timezone.now():
            raise DeclinedError('The payment authorization has expired', decline_code='expired')

        gateway = self.gateway_factory(hold.processor)
        capture = gateway.capture(
            hold.processor_reference,
            to_minor_units(amount),
            hold.currency,
            idempotency_key=f'booking-{booking.id}-capture',
        )

        now = timezone.now()
        hold.status = HoldStatus.CAPTURED
        hold.captured_amount = from_minor_units(capture.amount_minor)
        hold.capture_reference = capture.capture_reference
        hold.captured_at = now
        hold.save()

        booking.payment_status = PaymentStatus.PAID
        booking.save(update_fields=['payment_status', 'updated_at'])

        logger.info(f'[PAYMENT] Captured {hold.captured_amount} for booking {booking.id}')
        return CaptureResult(captured_amount=hold.captured_amount, captured_at=now)

    @transaction.atomic
    def cancel(self, booking_id, reason=None):
        """Void an uncaptured hold; one the processor already let go of is recorded as canceled"""
        reason = _reason_code(reason)
        booking = self._lock_booking(booking_id)
        hold = self._lock_hold(booking)
        if hold.status != HoldStatus.AUTHORIZED:
            raise InvalidStateError(f'Cannot cancel a hold in state {hold.status}')

        gateway = self.gateway_factory(hold.processor)
        try:
            gateway.void(hold.processor_reference, reason, idempotency_key=f'booking-{booking.id}-cancel')
        except (InvalidStateError, DeclinedError) as e:
            # authorization already expired or voided on the processor side
            if not self._released_at_processor(gateway, hold):
                raise
            logger.warning(f'[PAYMENT] Hold for booking {booking.id} already released by {hold.processor}: {e.message}')

        hold.status = HoldStatus.CANCELED
        hold.cancel_reason = reason
        hold.canceled_at = timezone.now()
        hold.save()

        booking.payment_status = PaymentStatus.REFUNDED
        booking.save(update_fields=['payment_status', 'updated_at'])

        logger.info(f'[PAYMENT] Voided hold for booking {booking.id} ({reason})')
        return HoldSnapshot.from_hold(hold)

    @transaction.atomic
    def refund(self, booking_id, amount=None, reason=None):
        """Refund captured funds; partial refunds accumulate up to the captured total"""
        reason = _reason_code(reason)
        booking = self._lock_booking(booking_id)
        hold = self._lock_hold(booking)
        if hold.status not in HoldStatus.REFUNDABLE:
            raise InvalidStateError(f'Cannot refund a hold in state {hold.status}')

        remaining = hold.refundable_amount
        amount = remaining if amount is None else _positive_amount(amount, 'Refund amount')
        if amount > remaining:
            raise ValidationError(f'Refund amount {amount} exceeds remaining refundable amount {remaining}')

        gateway = self.gateway_factory(hold.processor)
        sequence = hold.refunds.count() + 1
        refund = gateway.refund(
            hold.processor_reference,
            hold.capture_reference,
            to_minor_units(amount),
            hold.currency,
            reason,
            idempotency_key=f'booking-{booking.id}-refund-{sequence}',
        )
        refunded = from_minor_units(refund.amount_minor)

        HoldRefund.objects.create(
            hold=hold,
            amount=refunded,
            reason=reason or '',
            processor_refund_id=refund.refund_reference,
        )
        hold.refunded_amount += refunded
        hold.status = (
            HoldStatus.REFUNDED if hold.refunded_amount >= hold.captured_amount
            else HoldStatus.PARTIALLY_REFUNDED
        )
        hold.save()

        booking.payment_status = PaymentStatus.REFUNDED
        booking.save(update_fields=['payment_status', 'updated_at'])

        logger.info(
            f'[PAYMENT] Refunded {refunded} for booking {booking.id} '
            f'({hold.refunded_amount}/{hold.captured_amount}, {reason})'
        )
        return RefundResult(refunded_amount=refunded, total_refunded=hold.refunded_amount, hold_status=hold.status)

    def release(self, booking_id, reason, amount=None):
        """Give the payer's money back whatever state the hold is in.

        Voids an authorized hold, refunds a captured one (``amount`` or the
        remainder), and does nothing when the booking never held funds.
        """
        reason = _reason_code(reason)
        booking = Booking.objects.filter(id=booking_id).only('payment_hold').first()
        if booking is None:
            raise BookingNotFoundError(f'Booking {booking_id} not found')
        if booking.payment_hold is None:
            return None

        status = booking.payment_hold.status
        if status == HoldStatus.AUTHORIZED:
            return self.cancel(booking_id, reason)
        if status in HoldStatus.REFUNDABLE:
            return self.refund(booking_id, amount, reason)
        return None

    def retrieve(self, booking_id, refresh=False):
        """Current hold snapshot; ``refresh`` also asks the processor for its view"""
        booking = Booking.objects.select_related('payment_hold').filter(id=booking_id).first()
        if booking is None:
            raise BookingNotFoundError(f'Booking {booking_id} not found')
        hold = booking.payment_hold
        if hold is None:
            raise InvalidStateError(f'Booking {booking_id} has no payment hold')

        processor_status = None
        if refresh:
            processor_status = self.gateway_factory(hold.processor).retrieve(hold.processor_reference).status
        return HoldSnapshot.from_hold(hold, processor_status=processor_status)
