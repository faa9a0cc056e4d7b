"""Conversion between decimal currency amounts and processor minor units.

Both directions round half-to-even so an amount that was authorized and
later captured or refunded never drifts by a cent.
"""
from decimal import Decimal, ROUND_HALF_EVEN, InvalidOperation

CENT = Decimal('0.01')
MINOR_UNITS_PER_MAJOR = 100


def to_decimal(amount):
    """Normalize ints, floats, strings and Decimals to a 2-place Decimal"""
    if isinstance(amount, Decimal):
        value = amount
    elif isinstance(amount, float):
        value = Decimal(repr(amount))
    else:
        try:
            value = Decimal(str(amount))
        except InvalidOperation:
            raise ValueError(f'Invalid amount: {amount!r}')
    if not value.is_finite():
        raise ValueError(f'Invalid amount: {amount!r}')
    return value.quantize(CENT, rounding=ROUND_HALF_EVEN)


def to_minor_units(amount):
    value = Decimal(str(amount)) if not isinstance(amount, Decimal) else amount
    return int((value * MINOR_UNITS_PER_MAJOR).quantize(Decimal('1'), rounding=ROUND_HALF_EVEN))


def from_minor_units(minor):
    return (Decimal(int(minor)) / MINOR_UNITS_PER_MAJOR).quantize(CENT, rounding=ROUND_HALF_EVEN)


def percentage_of(amount, percentage):
    return (to_decimal(amount) * Decimal(str(percentage)) / 100).quantize(CENT, rounding=ROUND_HALF_EVEN)
