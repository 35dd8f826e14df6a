# callsign/doubles/instantiator.py
# Best-effort instantiation of arbitrary classes, used to draw
# identity-compared signatures.
#
# Instances are created without running __init__ (cls.__new__(cls)), so
# constructors with required arguments or side effects are never invoked.
# Classes that refuse bare allocation, or hand back a shared instance, get
# an inert Placeholder whose __class__ reports the requested class, so
# isinstance() checks in the block still pass.

from __future__ import annotations

import enum
import typing
from typing import Any

# Classes whose __new__ hands back a shared singleton; their instances can
# never serve as fresh identity-compared signatures.
_SINGLETON_TYPES: frozenset = frozenset({
    type(None),
    type(Ellipsis),
    type(NotImplemented),
})


class Placeholder:
    """Inert stand-in for an instance of spec. Compared by identity only."""

    __slots__ = ("_spec",)

    def __init__(self, spec: type) -> None:
        object.__setattr__(self, "_spec", spec)

    @property
    def __class__(self) -> type:  # type: ignore[override]
        return object.__getattribute__(self, "_spec")

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("placeholder instances are read-only")

    def __repr__(self) -> str:
        spec = object.__getattribute__(self, "_spec")
        return "placeholder<" + spec.__name__ + ">()"


class Instantiator:
    """Produces a fresh, identity-distinct value of an arbitrary class."""

    def instantiate(self, cls: Any) -> Any:
        target = typing.get_origin(cls) or cls
        if not isinstance(target, type):
            return object()
        if target in _SINGLETON_TYPES or isinstance(target, enum.EnumMeta):
            return Placeholder(target)
        try:
            value = target.__new__(target)
            # Immutable builtins (tuple, frozenset) intern their empty instance.
            if value is target.__new__(target):
                return Placeholder(target)
        except (TypeError, ValueError):
            return Placeholder(target)
        return value


__all__ = ["Instantiator", "Placeholder"]
