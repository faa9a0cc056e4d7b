import logging
from datetime import timedelta

import stripe
from django.conf import settings
from django.utils import timezone

from ..exceptions import TransientError, DeclinedError, InvalidStateError
from ..utils.constants import PaymentProcessor, RefundReason
from .payment_gateway import (
    PaymentGateway, GatewayAuthorization, GatewayCapture, GatewayRefund, GatewayHoldState,
)

logger = logging.getLogger(__name__)

HELD_STATUSES = ('requires_capture', 'requires_action', 'requires_confirmation')

CANCELLATION_REASONS = {
    RefundReason.PASSENGER_CANCELLED: 'requested_by_customer',
    RefundReason.DRIVER_REJECTED: 'requested_by_customer',
    RefundReason.RIDE_CANCELLED: 'requested_by_customer',
    RefundReason.TIMEOUT: 'abandoned',
}


def translate_stripe_error(exc):
    """Map a Stripe SDK error onto the engine error taxonomy"""
    message = getattr(exc, 'user_message', None) or str(exc)
    if isinstance(exc, stripe.CardError):
        return DeclinedError(message, reason=message, decline_code=getattr(exc, 'code', None))
    if isinstance(exc, (stripe.APIConnectionError, stripe.RateLimitError, stripe.APIError)):
        return TransientError(f'Stripe unavailable: {message}')
    if isinstance(exc, stripe.InvalidRequestError) and getattr(exc, 'code', None) == 'payment_intent_unexpected_state':
        return InvalidStateError(message)
    return DeclinedError(message, reason=message, decline_code=getattr(exc, 'code', None))


class StripePaymentGateway(PaymentGateway):
    """Manual-capture PaymentIntents as authorization holds"""

    processor = PaymentProcessor.STRIPE
    released_statuses = ('canceled',)

    def __init__(self, api_key=None, timeout=None):
        stripe.api_key = api_key or settings.STRIPE_SECRET_KEY
        stripe.max_network_retries = 0
        stripe.default_http_client = stripe.RequestsClient(
            timeout=timeout or settings.PAYMENT_PROCESSOR_TIMEOUT
        )

    def authorize(self, amount_minor, currency, payer_ref, booking_id, idempotency_key, customer_ref=None):
        params = {
            'amount': amount_minor,
            'currency': currency.lower(),
            'capture_method': 'manual',
            'payment_method': payer_ref,
            'confirm': True,
            'automatic_payment_methods': {'enabled': True, 'allow_redirects': 'never'},
            'metadata': {'booking_id': str(booking_id)},
        }
        if customer_ref:
            params['customer'] = customer_ref

        try:
            intent = stripe.PaymentIntent.create(idempotency_key=idempotency_key, **params)
        except stripe.StripeError as e:
            logger.error(f'[STRIPE] Hold for booking {booking_id} failed: {e}')
            raise translate_stripe_error(e) from e

        if intent.status not in HELD_STATUSES:
            error = getattr(intent, 'last_payment_error', None)
            reason = getattr(error, 'message', None) or f'Payment intent status {intent.status}'
            raise DeclinedError(reason, reason=reason, decline_code=getattr(error, 'decline_code', None))

        logger.info(f'[STRIPE] Hold {intent.id} placed for booking {booking_id} ({intent.status})')
        return GatewayAuthorization(
            reference=intent.id,
            status=intent.status,
            amount_minor=intent.amount,
            client_token=intent.client_secret,
            expires_at=timezone.now() + timedelta(hours=settings.PAYMENT_HOLD_HOURS),
        )

    def capture(self, reference, amount_minor, currency, idempotency_key):
        try:
            intent = stripe.PaymentIntent.capture(
                reference,
                amount_to_capture=amount_minor,
                idempotency_key=idempotency_key,
            )
        except stripe.StripeError as e:
            logger.error(f'[STRIPE] Capture of {reference} failed: {e}')
            raise translate_stripe_error(e) from e

        return GatewayCapture(
            amount_minor=intent.amount_received,
            capture_reference=getattr(intent, 'latest_charge', None),
        )

    def void(self, reference, reason, idempotency_key):
        params = {}
        if reason in CANCELLATION_REASONS:
            params['cancellation_reason'] = CANCELLATION_REASONS[reason]
        try:
            stripe.PaymentIntent.cancel(reference, idempotency_key=idempotency_key, **params)
        except stripe.StripeError as e:
            logger.error(f'[STRIPE] Cancel of {reference} failed: {e}')
            raise translate_stripe_error(e) from e

    def refund(self, reference, capture_reference, amount_minor, currency, reason, idempotency_key):
        try:
            refund = stripe.Refund.create(
                payment_intent=reference,
                amount=amount_minor,
                reason='requested_by_customer',
                metadata={'reason': reason or ''},
                idempotency_key=idempotency_key,
            )
        except stripe.StripeError as e:
            logger.error(f'[STRIPE] Refund on {reference} failed: {e}')
            raise translate_stripe_error(e) from e

        if refund.status in ('failed', 'canceled'):
            reason_text = getattr(refund, 'failure_reason', None) or f'Refund {refund.status}'
            raise DeclinedError(reason_text, reason=reason_text)

        return GatewayRefund(amount_minor=refund.amount, refund_reference=refund.id)

    def retrieve(self, reference):
        try:
            intent = stripe.PaymentIntent.retrieve(reference)
        except stripe.StripeError as e:
            raise translate_stripe_error(e) from e
        return GatewayHoldState(reference=intent.id, status=intent.status, amount_minor=intent.amount)
