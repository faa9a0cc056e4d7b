"""Utils package - helper functions and utilities"""

from .constants import *
from .currency import to_decimal, to_minor_units, from_minor_units, percentage_of

__all__ = [
    'to_decimal',
    'to_minor_units',
    'from_minor_units',
    'percentage_of',
]
