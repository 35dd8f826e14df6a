# callsign/core/matchers.py
# Matcher value objects: immutable predicates over one argument, the
# receiver, or the method of an invocation.
#
# Standard import:
#   from callsign.core.matchers import (
#       Matcher, EqMatcher, ConstantMatcher, LambdaMatcher, CaptureMatcher,
#   )

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, List

import numpy as np


class Matcher(ABC):
    """Predicate deciding whether a receiver, method or argument is accepted."""

    @abstractmethod
    def match(self, arg: Any) -> bool:
        ...


class CapturingMatcher(ABC):
    """Matcher mixin that receives the real argument after a successful match."""

    @abstractmethod
    def capture(self, arg: Any) -> None:
        ...


def equal(left: Any, right: Any) -> bool:
    """
    Equality used by eq() matchers. Arrays compare by shape and elements;
    operands whose == cannot produce a single truth value are unequal.
    """
    if isinstance(left, np.ndarray) or isinstance(right, np.ndarray):
        try:
            return bool(np.array_equal(left, right))
        except (TypeError, ValueError):
            return False
    try:
        return bool(left == right)
    except (TypeError, ValueError):
        return False


def render(value: Any) -> str:
    """Readable rendering used in matcher and answer descriptions."""
    if value is None:
        return "None"
    if isinstance(value, str):
        return repr(value)
    return str(value)


# ---------------------------------------------------------------------------
# CONCRETE MATCHERS
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class EqMatcher(Matcher):
    """Accepts arguments equal (==) to value."""
    value: Any

    def match(self, arg: Any) -> bool:
        return equal(arg, self.value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EqMatcher):
            return NotImplemented
        return self.value is other.value or equal(self.value, other.value)

    def __hash__(self) -> int:
        try:
            return hash(("eq", self.value))
        except TypeError:
            return hash("eq")

    def __str__(self) -> str:
        return "eq(" + render(self.value) + ")"


@dataclass(frozen=True)
class ConstantMatcher(Matcher):
    """Accepts everything (any()) or nothing (none())."""
    const_value: bool

    def match(self, arg: Any) -> bool:
        return self.const_value

    def __str__(self) -> str:
        return "any()" if self.const_value else "none()"


@dataclass(frozen=True)
class LambdaMatcher(Matcher):
    """Accepts arguments for which matching_func returns a truthy value."""
    matching_func: Callable[[Any], bool]

    def match(self, arg: Any) -> bool:
        return bool(self.matching_func(arg))

    def __str__(self) -> str:
        return "matcher()"


@dataclass(frozen=True, eq=False)
class CaptureMatcher(Matcher, CapturingMatcher):
    """Accepts everything; appends the real argument to capture_list on dispatch."""
    capture_list: List[Any]

    def match(self, arg: Any) -> bool:
        return True

    def capture(self, arg: Any) -> None:
        self.capture_list.append(arg)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CaptureMatcher):
            return NotImplemented
        return self.capture_list is other.capture_list

    def __hash__(self) -> int:
        return id(self.capture_list)

    def __str__(self) -> str:
        return "capture()"


def captured(capture_list: List[Any]) -> Any:
    """Return the most recently captured value."""
    return capture_list[-1]


__all__ = [
    "Matcher",
    "CapturingMatcher",
    "EqMatcher",
    "ConstantMatcher",
    "LambdaMatcher",
    "CaptureMatcher",
    "captured",
    "equal",
    "render",
]
