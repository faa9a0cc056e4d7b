from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class GatewayAuthorization:
    """Normalized result of placing a hold with a processor"""
    reference: str
    status: str
    amount_minor: int
    client_token: Optional[str] = None
    expires_at: Optional[datetime] = None


@dataclass
class GatewayCapture:
    amount_minor: int
    capture_reference: Optional[str] = None


@dataclass
class GatewayRefund:
    amount_minor: int
    refund_reference: Optional[str] = None


@dataclass
class GatewayHoldState:
    reference: str
    status: str
    amount_minor: int


class PaymentGateway(ABC):
    """Uniform hold/capture/void/refund contract over one payment processor.

    Amounts cross this boundary in minor units. Implementations raise the
    engine error taxonomy (TransientError, DeclinedError, InvalidStateError)
    and never retry on their own.
    """

    processor = None
    # processor-side statuses of an authorization that no longer holds funds
    released_statuses = ()

    @abstractmethod
    def authorize(self, amount_minor, currency, payer_ref, booking_id, idempotency_key, customer_ref=None):
        pass

    @abstractmethod
    def capture(self, reference, amount_minor, currency, idempotency_key):
        pass

    @abstractmethod
    def void(self, reference, reason, idempotency_key):
        pass

    @abstractmethod
    def refund(self, reference, capture_reference, amount_minor, currency, reason, idempotency_key):
        pass

    @abstractmethod
    def retrieve(self, reference):
        pass
