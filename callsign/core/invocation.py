# callsign/core/invocation.py
# Recorded call facts (Invocation, MethodDescriptor) and the compiled
# InvocationMatcher used to bind answers and test recorded invocations.
#
# Standard import:
#   from callsign.core.invocation import (
#       Invocation, InvocationMatcher, InvocationMatcherWithCall,
#       MethodDescriptor, Ref,
#   )

from __future__ import annotations

import inspect
import itertools
import threading
from dataclasses import dataclass, field
from typing import Any, Optional, Tuple

from callsign.core.matchers import Matcher, render


# ---------------------------------------------------------------------------
# TIMESTAMPS
# ---------------------------------------------------------------------------
# Monotonic order key shared by all doubles in the process. Strictly
# increasing, so SEQUENCE verification can merge histories without ties.

_timestamp_counter = itertools.count(1)
_timestamp_lock = threading.Lock()


def next_timestamp() -> int:
    with _timestamp_lock:
        return next(_timestamp_counter)


# ---------------------------------------------------------------------------
# IDENTITY WRAPPER
# ---------------------------------------------------------------------------

class Ref:
    """
    Identity wrapper: two Refs are equal iff they wrap the very same object.

    Used for signatures and argument values whose class is not compared by
    value, so structurally equal but distinct instances never collide.
    """

    __slots__ = ("value",)

    def __init__(self, value: Any) -> None:
        self.value = value

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, Ref):
            return False
        return self.value is other.value

    def __hash__(self) -> int:
        return id(self.value)

    def __repr__(self) -> str:
        return "Ref({}@{:x})".format(type(self.value).__name__, id(self.value))


# ---------------------------------------------------------------------------
# METHOD DESCRIPTOR
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MethodDescriptor:
    """
    Stable identity of an intercepted method.

    Fields:
      name        -- attribute name on the double.
      owner       -- spec class of the double, or None for unspecced doubles.
      return_type -- declared return annotation; inspect.Signature.empty
                     when unannotated.
      is_async    -- True for `async def` spec methods.
      deferred    -- True when the trailing argument is a continuation
                     placeholder; that position always compiles to any().

    Equality and hashing use owner and name only.
    """
    name:        str
    owner:       Optional[type] = None
    return_type: Any = field(default=inspect.Signature.empty, compare=False)
    is_async:    bool = field(default=False, compare=False)
    deferred:    bool = field(default=False, compare=False)

    def __str__(self) -> str:
        if self.owner is None:
            return self.name + "()"
        return self.owner.__name__ + "." + self.name + "()"


# ---------------------------------------------------------------------------
# INVOCATION
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class Invocation:
    """
    One intercepted call. Created once per call.

    Fields:
      self_     -- the double proxy that received the call.
      method    -- MethodDescriptor of the called method.
      args      -- positional arguments; keyword arguments are normalized
                   into positional order by the double.
      timestamp -- monotonic order key, unique per invocation.
    """
    self_:     Any
    method:    MethodDescriptor
    args:      Tuple[Any, ...]
    timestamp: int = field(default_factory=next_timestamp)

    def __str__(self) -> str:
        return "Invocation(self={}, method={}, args=[{}])".format(
            render(self.self_),
            self.method,
            ", ".join(render(a) for a in self.args),
        )


# ---------------------------------------------------------------------------
# COMPILED MATCHERS
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class InvocationMatcher:
    """Compiled matcher for one call-site: receiver, method, per-argument."""
    self_:  Matcher
    method: Matcher
    args:   Tuple[Matcher, ...]

    def match(self, invocation: Invocation) -> bool:
        if not self.self_.match(invocation.self_):
            return False
        if not self.method.match(invocation.method):
            return False
        if len(self.args) != len(invocation.args):
            return False
        for matcher, arg in zip(self.args, invocation.args):
            if not matcher.match(arg):
                return False
        return True

    def __str__(self) -> str:
        return "{}.{}({})".format(
            _strip_eq(self.self_),
            _strip_eq(self.method),
            ", ".join(str(m) for m in self.args),
        )


def _strip_eq(matcher: Matcher) -> str:
    value = getattr(matcher, "value", None)
    if value is None:
        return str(matcher)
    if isinstance(value, MethodDescriptor):
        return value.name
    return render(value)


@dataclass(frozen=True)
class InvocationMatcherWithCall:
    """
    A compiled matcher together with its round-0 call facts.

    Fields:
      invocation -- round-0 Invocation of the call-site (owning double).
      matcher    -- compiled InvocationMatcher.
      returned   -- value handed back to the block for this call-site in
                    round 0; inner call-sites are stubbed to return it.
    """
    invocation: Invocation
    matcher:    InvocationMatcher
    returned:   Any = None


__all__ = [
    "Invocation",
    "InvocationMatcher",
    "InvocationMatcherWithCall",
    "MethodDescriptor",
    "Ref",
    "next_timestamp",
]
