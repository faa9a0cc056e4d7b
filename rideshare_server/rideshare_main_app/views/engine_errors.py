"""Translation of engine errors into API responses"""
import logging

from rest_framework import status
from rest_framework.response import Response

from ..exceptions import (
    BookingEngineError, ValidationError, InvalidStateError, TransientError, DeclinedError,
    ProfileProvisioningError, RideConflictError, DriverNotAllowedError, RideNotFoundError,
    BookingNotFoundError, PermissionDeniedError,
)

logger = logging.getLogger(__name__)

STATUS_CODES = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (RideConflictError, status.HTTP_409_CONFLICT),
    (InvalidStateError, status.HTTP_409_CONFLICT),
    (DeclinedError, status.HTTP_402_PAYMENT_REQUIRED),
    (TransientError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (DriverNotAllowedError, status.HTTP_403_FORBIDDEN),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
    (RideNotFoundError, status.HTTP_404_NOT_FOUND),
    (BookingNotFoundError, status.HTTP_404_NOT_FOUND),
    (ProfileProvisioningError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def engine_error_response(exc):
    http_status = next(
        (code for error_class, code in STATUS_CODES if isinstance(exc, error_class)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    body = {'error': exc.code, 'message': exc.message}
    if isinstance(exc, RideConflictError):
        body.update(exc.report.to_dict())
    elif isinstance(exc, DeclinedError):
        body['decline_reason'] = exc.reason
        body['decline_code'] = exc.decline_code
    elif isinstance(exc, DriverNotAllowedError):
        body['suspension_until'] = exc.suspension_until
    elif isinstance(exc, TransientError):
        body['retryable'] = True

    if http_status >= 500:
        logger.error(f'[API] {exc.__class__.__name__}: {exc.message}')
    return Response(body, status=http_status)


class EngineErrorMixin:
    """Lets viewsets raise engine errors and get the matching HTTP response"""

    def handle_exception(self, exc):
        if isinstance(exc, BookingEngineError):
            return engine_error_response(exc)
        return super().handle_exception(exc)
