"""Payment gateways - one implementation per processor"""

from ..exceptions import ValidationError
from ..utils.constants import PaymentProcessor
from .payment_gateway import PaymentGateway
from .stripe_payment_gateway import StripePaymentGateway
from .paypal_payment_gateway import PayPalPaymentGateway

GATEWAYS = {
    PaymentProcessor.STRIPE: StripePaymentGateway,
    PaymentProcessor.PAYPAL: PayPalPaymentGateway,
}


def get_gateway(processor):
    """Instantiate the gateway for a processor kind"""
    try:
        gateway_class = GATEWAYS[processor]
    except KeyError:
        raise ValidationError(f'Unsupported payment processor: {processor}')
    return gateway_class()


__all__ = [
    'PaymentGateway',
    'StripePaymentGateway',
    'PayPalPaymentGateway',
    'get_gateway',
]
