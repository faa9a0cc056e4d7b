"""Error taxonomy for the booking settlement and reliability engine."""


class BookingEngineError(Exception):
    """Base class for errors raised by the engine services."""
    code = 'engine_error'

    def __init__(self, message='', code=None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class ValidationError(BookingEngineError):
    """Bad input from the caller. Never retried."""
    code = 'validation_error'


class InvalidStateError(BookingEngineError):
    """Operation attempted against a hold or booking in the wrong state."""
    code = 'invalid_state'


class TransientError(BookingEngineError):
    """Processor timeout or server-side failure. Safe to retry with backoff."""
    code = 'transient_error'
    retryable = True


class DeclinedError(BookingEngineError):
    """Processor explicitly refused the operation."""
    code = 'declined'

    def __init__(self, message='', reason=None, decline_code=None):
        super().__init__(message)
        self.reason = reason or message
        self.decline_code = decline_code


class ProfileProvisioningError(BookingEngineError):
    """Driver has no reliability profile yet. Recoverable once by provisioning."""
    code = 'profile_missing'


class RideConflictError(BookingEngineError):
    """Raised when a proposed ride window overlaps the driver's schedule."""
    code = 'ride_conflict'

    def __init__(self, message, report):
        super().__init__(message)
        self.report = report


class DriverNotAllowedError(BookingEngineError):
    """Raised when a driver account is suspended or banned."""
    code = 'driver_not_allowed'

    def __init__(self, message, suspension_until=None):
        super().__init__(message)
        self.reason = message
        self.suspension_until = suspension_until


class RideNotFoundError(BookingEngineError):
    code = 'ride_not_found'


class BookingNotFoundError(BookingEngineError):
    code = 'booking_not_found'


class PermissionDeniedError(BookingEngineError):
    """Raised when the acting user does not own the ride or booking."""
    code = 'permission_denied'
