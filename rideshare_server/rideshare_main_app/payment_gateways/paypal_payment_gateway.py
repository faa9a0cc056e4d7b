import logging
import time
from datetime import timedelta
from decimal import Decimal

import requests
from django.conf import settings
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from ..exceptions import TransientError, DeclinedError, InvalidStateError, ValidationError
from ..utils.constants import PaymentProcessor
from ..utils.currency import to_minor_units, from_minor_units
from .payment_gateway import (
    PaymentGateway, GatewayAuthorization, GatewayCapture, GatewayRefund, GatewayHoldState,
)

logger = logging.getLogger(__name__)

BASE_URLS = {
    'sandbox': 'https://api-m.sandbox.paypal.com',
    'live': 'https://api-m.paypal.com',
}

STATE_ISSUES = {
    'AUTHORIZATION_ALREADY_CAPTURED',
    'AUTHORIZATION_VOIDED',
    'PREVIOUSLY_VOIDED',
    'CANNOT_BE_VOID_DUE_TO_STATUS',
    'CAPTURE_FULLY_REFUNDED',
    'ORDER_ALREADY_AUTHORIZED',
    'ORDER_ALREADY_CAPTURED',
}

# access tokens keyed by client id
_token_cache = {}


def _format_amount(amount_minor, currency):
    return {'currency_code': currency.upper(), 'value': str(from_minor_units(amount_minor))}


def _parse_amount(amount):
    if not amount or 'value' not in amount:
        return None
    return to_minor_units(Decimal(amount['value']))


def translate_paypal_error(response):
    """Map a non-2xx PayPal REST response onto the engine error taxonomy"""
    if response.status_code >= 500 or response.status_code == 429:
        return TransientError(f'PayPal unavailable ({response.status_code})')

    try:
        body = response.json()
    except ValueError:
        body = {}
    details = body.get('details') or [{}]
    issue = details[0].get('issue') or body.get('name')
    message = details[0].get('description') or body.get('message') or f'PayPal error {response.status_code}'

    if issue in STATE_ISSUES:
        return InvalidStateError(message, code=issue.lower())
    return DeclinedError(message, reason=message, decline_code=issue)


class PayPalPaymentGateway(PaymentGateway):
    """PayPal order authorizations as holds.

    ``payer_ref`` is the id of an order created with intent AUTHORIZE and
    approved by the payer in the PayPal checkout.
    """

    processor = PaymentProcessor.PAYPAL
    released_statuses = ('VOIDED', 'EXPIRED')

    def __init__(self, client_id=None, client_secret=None, environment=None, timeout=None, session=None):
        self.client_id = client_id or settings.PAYPAL_CLIENT_ID
        self.client_secret = client_secret or settings.PAYPAL_CLIENT_SECRET
        self.base_url = BASE_URLS.get(environment or settings.PAYPAL_ENVIRONMENT, BASE_URLS['sandbox'])
        self.timeout = timeout or settings.PAYMENT_PROCESSOR_TIMEOUT
        self.session = session or requests.Session()

    def _access_token(self):
        cached = _token_cache.get(self.client_id)
        if cached and time.monotonic() < cached['expires_at']:
            return cached['token']

        try:
            response = self.session.post(
                f'{self.base_url}/v1/oauth2/token',
                auth=(self.client_id, self.client_secret),
                data={'grant_type': 'client_credentials'},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise TransientError(f'PayPal unavailable: {e}') from e
        if not response.ok:
            raise translate_paypal_error(response)

        payload = response.json()
        _token_cache[self.client_id] = {
            'token': payload['access_token'],
            'expires_at': time.monotonic() + int(payload.get('expires_in', 0)) - 60,
        }
        return payload['access_token']

    def _request(self, method, path, json=None, idempotency_key=None):
        headers = {
            'Authorization': f'Bearer {self._access_token()}',
            'Content-Type': 'application/json',
            'Prefer': 'return=representation',
        }
        if idempotency_key:
            headers['PayPal-Request-Id'] = idempotency_key

        try:
            response = self.session.request(
                method, f'{self.base_url}{path}', json=json, headers=headers, timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.error(f'[PAYPAL] {method} {path} failed: {e}')
            raise TransientError(f'PayPal unavailable: {e}') from e

        if not response.ok:
            logger.error(f'[PAYPAL] {method} {path} returned {response.status_code}: {response.text}')
            raise translate_paypal_error(response)
        if response.status_code == 204 or not response.content:
            return {}
        return response.json()

    def authorize(self, amount_minor, currency, payer_ref, booking_id, idempotency_key, customer_ref=None):
        order = self._request(
            'POST', f'/v2/checkout/orders/{payer_ref}/authorize', json={}, idempotency_key=idempotency_key
        )
        try:
            authorization = order['purchase_units'][0]['payments']['authorizations'][0]
        except (KeyError, IndexError):
            raise DeclinedError(f'PayPal order {payer_ref} returned no authorization')

        if authorization.get('status') == 'DENIED':
            raise DeclinedError('PayPal denied the authorization', decline_code='DENIED')

        authorized_minor = _parse_amount(authorization.get('amount'))
        if authorized_minor is not None and authorized_minor != amount_minor:
            self.void(authorization['id'], None, f'{idempotency_key}-mismatch')
            raise ValidationError(
                f'PayPal order amount {authorized_minor} does not match booking amount {amount_minor}'
            )

        expires_at = parse_datetime(authorization.get('expiration_time') or '')
        if expires_at is None:
            expires_at = timezone.now() + timedelta(hours=settings.PAYMENT_HOLD_HOURS)

        logger.info(f'[PAYPAL] Authorization {authorization["id"]} placed for booking {booking_id}')
        return GatewayAuthorization(
            reference=authorization['id'],
            status=authorization.get('status', 'CREATED'),
            amount_minor=amount_minor,
            client_token=payer_ref,
            expires_at=expires_at,
        )

    def capture(self, reference, amount_minor, currency, idempotency_key):
        capture = self._request(
            'POST',
            f'/v2/payments/authorizations/{reference}/capture',
            json={'amount': _format_amount(amount_minor, currency), 'final_capture': True},
            idempotency_key=idempotency_key,
        )
        if capture.get('status') in ('DECLINED', 'FAILED'):
            raise DeclinedError(f'PayPal capture {capture.get("status")}', decline_code=capture.get('status'))

        captured_minor = _parse_amount(capture.get('amount'))
        return GatewayCapture(
            amount_minor=captured_minor if captured_minor is not None else amount_minor,
            capture_reference=capture.get('id'),
        )

    def void(self, reference, reason, idempotency_key):
        self._request('POST', f'/v2/payments/authorizations/{reference}/void', idempotency_key=idempotency_key)

    def refund(self, reference, capture_reference, amount_minor, currency, reason, idempotency_key):
        if not capture_reference:
            raise InvalidStateError(f'PayPal authorization {reference} has no capture to refund')

        payload = {'amount': _format_amount(amount_minor, currency)}
        if reason:
            payload['note_to_payer'] = reason.replace('_', ' ')
        refund = self._request(
            'POST', f'/v2/payments/captures/{capture_reference}/refund',
            json=payload, idempotency_key=idempotency_key,
        )
        if refund.get('status') in ('CANCELLED', 'FAILED'):
            raise DeclinedError(f'PayPal refund {refund.get("status")}', decline_code=refund.get('status'))

        refunded_minor = _parse_amount(refund.get('amount'))
        return GatewayRefund(
            amount_minor=refunded_minor if refunded_minor is not None else amount_minor,
            refund_reference=refund.get('id'),
        )

    def retrieve(self, reference):
        authorization = self._request('GET', f'/v2/payments/authorizations/{reference}')
        return GatewayHoldState(
            reference=authorization.get('id', reference),
            status=authorization.get('status', ''),
            amount_minor=_parse_amount(authorization.get('amount')) or 0,
        )
