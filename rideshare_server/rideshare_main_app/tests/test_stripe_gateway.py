"""Tests for the Stripe gateway error mapping and hold calls"""

from unittest.mock import patch, MagicMock

import stripe
from django.test import SimpleTestCase, override_settings

from ..exceptions import DeclinedError, TransientError, InvalidStateError
from ..payment_gateways.stripe_payment_gateway import StripePaymentGateway, translate_stripe_error


@override_settings(STRIPE_SECRET_KEY='sk_test_123', PAYMENT_PROCESSOR_TIMEOUT=5, PAYMENT_HOLD_HOURS=12)
class StripePaymentGatewayTest(SimpleTestCase):
    def setUp(self):
        self.gateway = StripePaymentGateway()

    @patch('stripe.PaymentIntent.create')
    def test_authorize_creates_manual_capture_intent(self, mock_create):
        mock_create.return_value = MagicMock(id='pi_123', status='requires_capture', amount=5000, client_secret='pi_123_secret')

        result = self.gateway.authorize(5000, 'CAD', 'pm_card_visa', 7, idempotency_key='booking-7-authorize-1')

        kwargs = mock_create.call_args.kwargs
        self.assertEqual(kwargs['capture_method'], 'manual')
        self.assertEqual(kwargs['amount'], 5000)
        self.assertEqual(kwargs['currency'], 'cad')
        self.assertEqual(kwargs['idempotency_key'], 'booking-7-authorize-1')
        self.assertEqual(kwargs['metadata'], {'booking_id': '7'})
        self.assertNotIn('customer', kwargs)
        self.assertEqual(result.reference, 'pi_123')
        self.assertEqual(result.client_token, 'pi_123_secret')
        self.assertIsNotNone(result.expires_at)

    @patch('stripe.PaymentIntent.create')
    def test_authorize_unheld_intent_is_declined(self, mock_create):
        error = MagicMock(message='Your card has insufficient funds.', decline_code='insufficient_funds')
        mock_create.return_value = MagicMock(id='pi_1', status='requires_payment_method', last_payment_error=error)

        with self.assertRaises(DeclinedError) as ctx:
            self.gateway.authorize(5000, 'CAD', 'pm_card_visa', 7, idempotency_key='k')

        self.assertEqual(ctx.exception.decline_code, 'insufficient_funds')
        self.assertEqual(ctx.exception.reason, 'Your card has insufficient funds.')

    @patch('stripe.PaymentIntent.create')
    def test_card_error_maps_to_declined(self, mock_create):
        mock_create.side_effect = stripe.CardError('Your card was declined.', None, 'card_declined')
        with self.assertRaises(DeclinedError) as ctx:
            self.gateway.authorize(5000, 'CAD', 'pm_card_visa', 7, idempotency_key='k')
        self.assertEqual(ctx.exception.decline_code, 'card_declined')

    @patch('stripe.PaymentIntent.capture')
    def test_connection_error_maps_to_transient(self, mock_capture):
        mock_capture.side_effect = stripe.APIConnectionError('Network unreachable')
        with self.assertRaises(TransientError):
            self.gateway.capture('pi_1', 5000, 'CAD', idempotency_key='booking-7-capture')

    @patch('stripe.PaymentIntent.capture')
    def test_capture_returns_received_amount(self, mock_capture):
        mock_capture.return_value = MagicMock(amount_received=3000, latest_charge='ch_1')

        result = self.gateway.capture('pi_1', 3000, 'CAD', idempotency_key='booking-7-capture')

        mock_capture.assert_called_once_with('pi_1', amount_to_capture=3000, idempotency_key='booking-7-capture')
        self.assertEqual(result.amount_minor, 3000)
        self.assertEqual(result.capture_reference, 'ch_1')

    @patch('stripe.PaymentIntent.cancel')
    def test_void_passes_cancellation_reason(self, mock_cancel):
        self.gateway.void('pi_1', 'timeout', idempotency_key='booking-7-cancel')
        mock_cancel.assert_called_once_with('pi_1', idempotency_key='booking-7-cancel', cancellation_reason='abandoned')

    @patch('stripe.Refund.create')
    def test_refund_partial_amount(self, mock_refund):
        mock_refund.return_value = MagicMock(id='re_1', status='succeeded', amount=2000)

        result = self.gateway.refund('pi_1', 'ch_1', 2000, 'CAD', 'passenger_cancelled', idempotency_key='booking-7-refund-1')

        self.assertEqual(mock_refund.call_args.kwargs['payment_intent'], 'pi_1')
        self.assertEqual(mock_refund.call_args.kwargs['amount'], 2000)
        self.assertEqual(result.refund_reference, 're_1')

    @patch('stripe.Refund.create')
    def test_failed_refund_is_declined(self, mock_refund):
        mock_refund.return_value = MagicMock(id='re_1', status='failed', failure_reason='expired_or_canceled_card')
        with self.assertRaises(DeclinedError):
            self.gateway.refund('pi_1', 'ch_1', 2000, 'CAD', 'passenger_cancelled', idempotency_key='k')

    def test_error_translation(self):
        self.assertIsInstance(translate_stripe_error(stripe.RateLimitError('slow down')), TransientError)
        self.assertIsInstance(translate_stripe_error(stripe.APIError('server error')), TransientError)
        unexpected_state = stripe.InvalidRequestError('already captured', None, code='payment_intent_unexpected_state')
        self.assertIsInstance(translate_stripe_error(unexpected_state), InvalidStateError)
        self.assertIsInstance(translate_stripe_error(stripe.InvalidRequestError('No such payment_intent', 'id')), DeclinedError)
