"""Centralized constants and business rules"""

class RideStatus:
    ACTIVE = 'active'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'

    CHOICES = [
        (ACTIVE, 'Active'),
        (COMPLETED, 'Completed'),
        (CANCELLED, 'Cancelled'),
    ]

class BookingStatus:
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    REJECTED = 'rejected'
    CANCELLED = 'cancelled'
    COMPLETED = 'completed'

    CHOICES = [
        (PENDING, 'Pending'),
        (CONFIRMED, 'Confirmed'),
        (REJECTED, 'Rejected'),
        (CANCELLED, 'Cancelled'),
        (COMPLETED, 'Completed'),
    ]

    OPEN = [PENDING, CONFIRMED]

class PaymentStatus:
    PENDING = 'pending'
    AUTHORIZED = 'authorized'
    PAID = 'paid'
    REFUNDED = 'refunded'

    CHOICES = [
        (PENDING, 'Pending'),
        (AUTHORIZED, 'Authorized'),
        (PAID, 'Paid'),
        (REFUNDED, 'Refunded'),
    ]

class HoldStatus:
    AUTHORIZED = 'authorized'
    CAPTURED = 'captured'
    CANCELED = 'canceled'
    REFUNDED = 'refunded'
    PARTIALLY_REFUNDED = 'partially_refunded'

    CHOICES = [
        (AUTHORIZED, 'Authorized'),
        (CAPTURED, 'Captured'),
        (CANCELED, 'Canceled'),
        (REFUNDED, 'Refunded'),
        (PARTIALLY_REFUNDED, 'Partially refunded'),
    ]

    # A booking may hold at most one hold in any of these states
    OPEN = [AUTHORIZED, CAPTURED, PARTIALLY_REFUNDED]
    REFUNDABLE = [CAPTURED, PARTIALLY_REFUNDED]

class PaymentProcessor:
    STRIPE = 'stripe'
    PAYPAL = 'paypal'

    CHOICES = [
        (STRIPE, 'Stripe'),
        (PAYPAL, 'PayPal'),
    ]

class AccountStatus:
    ACTIVE = 'active'
    WARNED = 'warned'
    SUSPENDED = 'suspended'
    BANNED = 'banned'

    CHOICES = [
        (ACTIVE, 'Active'),
        (WARNED, 'Warned'),
        (SUSPENDED, 'Suspended'),
        (BANNED, 'Banned'),
    ]

    SEVERITY = {ACTIVE: 0, WARNED: 1, SUSPENDED: 2, BANNED: 3}

class WarningLevel:
    NONE = 'none'
    WARNING = 'warning'
    SUSPENSION = 'suspension'
    BANNED = 'banned'

    ACCOUNT_STATUS = {
        WARNING: AccountStatus.WARNED,
        SUSPENSION: AccountStatus.SUSPENDED,
        BANNED: AccountStatus.BANNED,
    }

class ConflictType:
    EXISTING_COVERS_NEW = 'existing_covers_new'
    NEW_COVERS_EXISTING = 'new_covers_existing'
    STARTS_DURING = 'starts_during'
    ENDS_DURING = 'ends_during'
    PARTIAL_OVERLAP = 'partial_overlap'
    INVALID_TIME_WINDOW = 'invalid_time_window'

class RefundReason:
    DRIVER_REJECTED = 'driver_rejected'
    PASSENGER_CANCELLED = 'passenger_cancelled'
    RIDE_CANCELLED = 'ride_cancelled'
    TIMEOUT = 'timeout'

    CHOICES = [
        (DRIVER_REJECTED, 'Driver rejected'),
        (PASSENGER_CANCELLED, 'Passenger cancelled'),
        (RIDE_CANCELLED, 'Ride cancelled by driver'),
        (TIMEOUT, 'Timeout'),
    ]

class NotificationType:
    BOOKING_REQUEST = 'booking_request'
    BOOKING_CONFIRMED = 'booking_confirmed'
    BOOKING_REJECTED = 'booking_rejected'
    BOOKING_CANCELLED = 'booking_cancelled'
    RIDE_CANCELLED = 'ride_cancelled'
    ACCOUNT_WARNING = 'account_warning'

    CHOICES = [
        (BOOKING_REQUEST, 'Booking request'),
        (BOOKING_CONFIRMED, 'Booking confirmed'),
        (BOOKING_REJECTED, 'Booking rejected'),
        (BOOKING_CANCELLED, 'Booking cancelled'),
        (RIDE_CANCELLED, 'Ride cancelled'),
        (ACCOUNT_WARNING, 'Account warning'),
    ]

class BusinessRules:
    """Business rules and limits"""
    DEFAULT_RIDE_DURATION_MINUTES = 120
    RIDE_START_GRACE_MINUTES = 5
    ALTERNATIVE_SLOT_OFFSETS_MINUTES = [-120, -90, -60, -30, 30, 60, 90, 120]
    MAX_ALTERNATIVE_SLOTS = 3

    RELIABILITY_WINDOW_DAYS = 30
    WARNING_THRESHOLD = 3
    SHORT_SUSPENSION_THRESHOLD = 4
    LONG_SUSPENSION_THRESHOLD = 6
    BAN_THRESHOLD = 8
    SHORT_SUSPENSION_DAYS = 3
    LONG_SUSPENSION_DAYS = 7

    PAYMENT_RETRY_ATTEMPTS = 3
    PAYMENT_RETRY_BACKOFF_SECONDS = 0.5
    SERVICE_FEE_PERCENTAGE = 15

    # (minimum hours before departure, refund percentage)
    CANCELLATION_REFUND_TIERS = [
        (12, 100),
        (6, 75),
        (2, 50),
        (0, 25),
    ]
