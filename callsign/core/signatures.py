# callsign/core/signatures.py
# Signature drawing and value-class rules for multi-round signing, plus the
# type-default table used for default answers.
#
# A signature is a per-round sentinel value substituted for a real argument
# at a matcher-declared position. By-value classes draw random values from a
# numpy Generator; every other class is instantiated through the
# Instantiator and compared by identity.

from __future__ import annotations

import inspect
import types
import typing
from typing import Any, Callable, Dict, Optional

import numpy as np

from callsign.core.invocation import Ref
from callsign.utils.constants import (
    BY_VALUE_TYPES,
    SIGNATURE_BYTES_LENGTH,
    SIGNATURE_INT_BITS,
)

# Marker for a method without a return annotation.
UNANNOTATED = inspect.Signature.empty

_UNION_ORIGINS = (typing.Union, getattr(types, "UnionType", typing.Union))


# ---------------------------------------------------------------------------
# VALUE-CLASS RULES
# ---------------------------------------------------------------------------

def by_value(cls: Any) -> bool:
    """True iff values of exactly this class compare by value."""
    return cls in BY_VALUE_TYPES


def comparison_key(value: Any) -> Any:
    """Key under which an argument or signature is compared across rounds."""
    if by_value(type(value)):
        return value
    return Ref(value)


# ---------------------------------------------------------------------------
# SIGNATURE GENERATOR
# ---------------------------------------------------------------------------

class SignatureGenerator:
    """
    Draws fresh signature values.

    Args:
        instantiate:  Callable producing a fresh instance of an arbitrary
                      class; used for identity-compared classes.
        seed:         Optional seed for the numpy Generator. None draws
                      from OS entropy.
    """

    def __init__(
        self,
        instantiate: Callable[[type], Any],
        seed: Optional[int] = None,
    ) -> None:
        self._rng = np.random.default_rng(seed)
        self._instantiate = instantiate

    def _int(self) -> int:
        return int(self._rng.integers(0, 2 ** SIGNATURE_INT_BITS, dtype=np.int64))

    def draw(self, cls: Any) -> Any:
        if cls is bool:
            return bool(self._rng.integers(0, 2))
        if cls is int:
            return self._int()
        if cls is float:
            return float(self._rng.random())
        if cls is complex:
            return complex(float(self._rng.random()), float(self._rng.random()))
        if cls is str:
            return format(self._int(), "x")
        if cls is bytes:
            return self._rng.bytes(SIGNATURE_BYTES_LENGTH)
        if cls is object or cls is None:
            return object()
        return self._instantiate(cls)


# ---------------------------------------------------------------------------
# TYPE DEFAULTS
# ---------------------------------------------------------------------------

_DEFAULT_FACTORIES: Dict[Any, Callable[[], Any]] = {
    type(None): lambda: None,
    bool:       lambda: False,
    int:        lambda: 0,
    float:      lambda: 0.0,
    complex:    lambda: 0j,
    str:        lambda: "",
    bytes:      lambda: b"",
    list:       list,
    dict:       dict,
    tuple:      tuple,
    set:        set,
    frozenset:  frozenset,
    object:     object,
}


def any_value(return_type: Any, fallback: Callable[[], Any]) -> Any:
    """
    Type-appropriate default for return_type.

    None for `-> None` and Optional[...], zero / empty for primitives and
    builtin containers (including parametrized generics such as List[int]).
    Everything else, including unannotated methods, is delegated to
    fallback, which produces a child double.
    """
    if return_type is None:
        return None
    if return_type is UNANNOTATED or return_type is typing.Any:
        return fallback()
    origin = typing.get_origin(return_type)
    if origin in _UNION_ORIGINS:
        if type(None) in typing.get_args(return_type):
            return None
        return fallback()
    if origin is not None:
        return_type = origin
    factory = _DEFAULT_FACTORIES.get(return_type)
    if factory is None:
        return fallback()
    return factory()


__all__ = [
    "SignatureGenerator",
    "UNANNOTATED",
    "any_value",
    "by_value",
    "comparison_key",
]
