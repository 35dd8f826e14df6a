# callsign/doubles/__init__.py
# Test double proxies, their bookkeeping, and best-effort instantiation.

from .instantiator import Instantiator, Placeholder
from .instance import (
    Double,
    DoubleMethod,
    DoubleState,
    SpyState,
    deferred,
    is_double,
    new_double,
    new_spy,
    state_of,
)

__all__ = [
    "Double",
    "DoubleMethod",
    "DoubleState",
    "Instantiator",
    "Placeholder",
    "SpyState",
    "deferred",
    "is_double",
    "new_double",
    "new_spy",
    "state_of",
]
