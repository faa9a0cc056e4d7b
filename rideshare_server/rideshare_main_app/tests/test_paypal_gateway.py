"""Tests for the PayPal gateway"""

import json
from unittest.mock import MagicMock

import requests
from django.test import SimpleTestCase, override_settings

from ..exceptions import DeclinedError, TransientError, InvalidStateError, ValidationError
from ..payment_gateways import paypal_payment_gateway
from ..payment_gateways.paypal_payment_gateway import PayPalPaymentGateway


def make_response(status_code, payload=None):
    response = requests.Response()
    response.status_code = status_code
    response.url = 'https://api-m.sandbox.paypal.com'
    response._content = json.dumps(payload).encode() if payload is not None else b''
    return response


TOKEN = make_response(200, {'access_token': 'A21AA', 'expires_in': 32400})


def order_with_authorization(status='CREATED', value='50.00'):
    return {
        'id': 'ORDER-1',
        'status': 'COMPLETED',
        'purchase_units': [{
            'payments': {
                'authorizations': [{
                    'id': 'AUTH-1',
                    'status': status,
                    'amount': {'currency_code': 'CAD', 'value': value},
                    'expiration_time': '2030-01-30T10:00:00Z',
                }],
            },
        }],
    }


@override_settings(PAYMENT_HOLD_HOURS=12)
class PayPalPaymentGatewayTest(SimpleTestCase):
    def setUp(self):
        paypal_payment_gateway._token_cache.clear()
        self.session = MagicMock()
        self.session.post.return_value = TOKEN
        self.gateway = PayPalPaymentGateway(
            client_id='client', client_secret='secret', environment='sandbox', timeout=5, session=self.session,
        )

    def test_authorize_approved_order(self):
        self.session.request.return_value = make_response(201, order_with_authorization())

        result = self.gateway.authorize(5000, 'CAD', 'ORDER-1', 7, idempotency_key='booking-7-authorize-1')

        method, url = self.session.request.call_args.args
        headers = self.session.request.call_args.kwargs['headers']
        self.assertEqual(method, 'POST')
        self.assertEqual(url, 'https://api-m.sandbox.paypal.com/v2/checkout/orders/ORDER-1/authorize')
        self.assertEqual(headers['PayPal-Request-Id'], 'booking-7-authorize-1')
        self.assertEqual(headers['Authorization'], 'Bearer A21AA')
        self.assertEqual(result.reference, 'AUTH-1')
        self.assertEqual(result.expires_at.year, 2030)

    def test_access_token_is_cached(self):
        self.session.request.return_value = make_response(200, {'id': 'AUTH-1', 'status': 'CREATED'})
        self.gateway.retrieve('AUTH-1')
        self.gateway.retrieve('AUTH-1')
        self.assertEqual(self.session.post.call_count, 1)

    def test_denied_authorization(self):
        self.session.request.return_value = make_response(201, order_with_authorization(status='DENIED'))
        with self.assertRaises(DeclinedError):
            self.gateway.authorize(5000, 'CAD', 'ORDER-1', 7, idempotency_key='k')

    def test_amount_mismatch_voids_and_fails(self):
        self.session.request.side_effect = [
            make_response(201, order_with_authorization(value='45.00')),
            make_response(204),
        ]
        with self.assertRaises(ValidationError):
            self.gateway.authorize(5000, 'CAD', 'ORDER-1', 7, idempotency_key='k')

        void_call = self.session.request.call_args_list[1]
        self.assertTrue(void_call.args[1].endswith('/v2/payments/authorizations/AUTH-1/void'))

    def test_server_error_is_transient(self):
        self.session.request.return_value = make_response(503, {'name': 'SERVICE_UNAVAILABLE'})
        with self.assertRaises(TransientError):
            self.gateway.capture('AUTH-1', 5000, 'CAD', idempotency_key='k')

    def test_timeout_is_transient(self):
        self.session.request.side_effect = requests.Timeout('read timed out')
        with self.assertRaises(TransientError):
            self.gateway.void('AUTH-1', None, idempotency_key='k')

    def test_already_captured_is_invalid_state(self):
        self.session.request.return_value = make_response(422, {
            'name': 'UNPROCESSABLE_ENTITY',
            'details': [{'issue': 'AUTHORIZATION_ALREADY_CAPTURED', 'description': 'Authorization has been previously captured'}],
        })
        with self.assertRaises(InvalidStateError):
            self.gateway.capture('AUTH-1', 5000, 'CAD', idempotency_key='k')

    def test_instrument_decline_keeps_issue(self):
        self.session.request.return_value = make_response(422, {
            'name': 'UNPROCESSABLE_ENTITY',
            'details': [{'issue': 'INSTRUMENT_DECLINED', 'description': 'The instrument was declined'}],
        })
        with self.assertRaises(DeclinedError) as ctx:
            self.gateway.authorize(5000, 'CAD', 'ORDER-1', 7, idempotency_key='k')
        self.assertEqual(ctx.exception.decline_code, 'INSTRUMENT_DECLINED')

    def test_capture_sends_amount(self):
        self.session.request.return_value = make_response(201, {
            'id': 'CAP-1', 'status': 'COMPLETED', 'amount': {'currency_code': 'CAD', 'value': '30.00'},
        })

        result = self.gateway.capture('AUTH-1', 3000, 'CAD', idempotency_key='booking-7-capture')

        body = self.session.request.call_args.kwargs['json']
        self.assertEqual(body['amount'], {'currency_code': 'CAD', 'value': '30.00'})
        self.assertEqual(result.amount_minor, 3000)
        self.assertEqual(result.capture_reference, 'CAP-1')

    def test_refund_requires_capture(self):
        with self.assertRaises(InvalidStateError):
            self.gateway.refund('AUTH-1', None, 2000, 'CAD', 'driver_rejected', idempotency_key='k')

    def test_refund_against_capture(self):
        self.session.request.return_value = make_response(201, {
            'id': 'REF-1', 'status': 'COMPLETED', 'amount': {'currency_code': 'CAD', 'value': '20.00'},
        })

        result = self.gateway.refund('AUTH-1', 'CAP-1', 2000, 'CAD', 'driver_rejected', idempotency_key='k')

        self.assertTrue(self.session.request.call_args.args[1].endswith('/v2/payments/captures/CAP-1/refund'))
        self.assertEqual(result.amount_minor, 2000)
        self.assertEqual(result.refund_reference, 'REF-1')
