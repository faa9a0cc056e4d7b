import logging

from django.conf import settings
from django.db import transaction

from rideshare_main_app.utils.constants import BusinessRules
from rideshare_main_app.utils.currency import to_decimal, percentage_of
from .models import DriverEarning

logger = logging.getLogger(__name__)


def create_earning_for_booking(booking, gross_amount, fee_percentage=BusinessRules.SERVICE_FEE_PERCENTAGE):
    """Record what the driver earns from a captured booking, net of the service fee"""
    gross = to_decimal(gross_amount)
    fee = percentage_of(gross, fee_percentage)
    ride = booking.ride

    earning = DriverEarning.objects.create(
        driver_id=ride.driver_id,
        ride=ride,
        booking=booking,
        gross_amount=gross,
        service_fee_percentage=fee_percentage,
        service_fee_amount=fee,
        amount=gross - fee,
        currency=booking.payment_hold.currency if booking.payment_hold_id else settings.PAYMENT_CURRENCY,
        description=f'{ride.from_location} → {ride.to_location}, {booking.seats_booked} seat(s)',
    )
    logger.info(f'[EARNING] Driver {ride.driver_id} earns {earning.amount} on booking {booking.id} (fee {fee})')
    return earning


def reverse_earning_for_booking(booking):
    """Mark a not-yet-paid-out earning as reversed after its booking was refunded"""
    updated = DriverEarning.objects.filter(
        booking=booking,
        status__in=[DriverEarning.STATUS_PENDING, DriverEarning.STATUS_AVAILABLE],
    ).update(status=DriverEarning.STATUS_REVERSED)
    if updated:
        logger.info(f'[EARNING] Reversed earning for booking {booking.id}')
    return bool(updated)


@transaction.atomic
def settle_earning_after_refund(booking, retained_amount):
    """Shrink an earning to what the payer is still charged after a partial refund"""
    retained = to_decimal(retained_amount)
    if retained <= 0:
        return reverse_earning_for_booking(booking)

    earning = (
        DriverEarning.objects.select_for_update()
        .filter(booking=booking, status__in=[DriverEarning.STATUS_PENDING, DriverEarning.STATUS_AVAILABLE])
        .first()
    )
    if earning is None:
        return False

    fee = percentage_of(retained, earning.service_fee_percentage)
    earning.gross_amount = retained
    earning.service_fee_amount = fee
    earning.amount = retained - fee
    earning.save(update_fields=['gross_amount', 'service_fee_amount', 'amount', 'updated_at'])
    logger.info(f'[EARNING] Earning for booking {booking.id} reduced to {earning.amount} after refund')
    return True
