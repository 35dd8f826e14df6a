# callsign/verification/verifiers.py
# Verifiers -- check recorded call histories against compiled matchers.
#
# UNORDERED  each matcher accepts at least one call in its double's history.
# SEQUENCE   merged histories of the referenced doubles, in timestamp order,
#            equal the matcher list one-to-one.
# ORDERED    not implemented; always reports failure.
#
# Verifiers are pure reads: they never mutate a double's history.

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from callsign.core.invocation import Invocation, InvocationMatcher, InvocationMatcherWithCall, Ref
from callsign.doubles.instance import state_of


class Ordering(enum.Enum):
    UNORDERED = "UNORDERED"
    ORDERED   = "ORDERED"
    SEQUENCE  = "SEQUENCE"


@dataclass(frozen=True)
class VerificationResult:
    """
    Verdict of one verifier run.

    Fields:
      matches -- True iff the recorded history satisfies the matchers.
      matcher -- first offending InvocationMatcher, or None.
      detail  -- optional explanation when no single matcher is at fault.
    """
    matches: bool
    matcher: Optional[InvocationMatcher] = None
    detail:  str = ""


class Verifier(ABC):

    @abstractmethod
    def verify(self, matchers: Sequence[InvocationMatcherWithCall]) -> VerificationResult:
        ...


class UnorderedVerifier(Verifier):
    """Every matcher must accept some call of its owning double, in any order."""

    def verify(self, matchers: Sequence[InvocationMatcherWithCall]) -> VerificationResult:
        for compiled in matchers:
            state = state_of(compiled.invocation.self_)
            if not state.matches_any_recorded_call(compiled.matcher):
                return VerificationResult(False, compiled.matcher)
        return VerificationResult(True)


class OrderedVerifier(Verifier):
    """Relaxed sequence check. Not implemented: always fails."""

    def verify(self, matchers: Sequence[InvocationMatcherWithCall]) -> VerificationResult:
        return VerificationResult(False, detail="ordered verification is not implemented")


class SequenceVerifier(Verifier):
    """
    The referenced doubles must have received exactly the verified calls,
    in exactly this order.
    """

    def verify(self, matchers: Sequence[InvocationMatcherWithCall]) -> VerificationResult:
        doubles: Dict[Ref, Any] = {}
        for compiled in reversed(matchers):
            key = Ref(compiled.invocation.self_)
            if key not in doubles:
                doubles[key] = compiled.invocation.self_

        all_calls: List[Invocation] = sorted(
            (call for double in doubles.values() for call in state_of(double).all_recorded_calls()),
            key=lambda call: call.timestamp,
        )

        detail = ""
        if len(all_calls) != len(matchers):
            detail = "expected {} calls, recorded {}".format(len(matchers), len(all_calls))

        for compiled, call in zip(matchers, all_calls):
            if not compiled.matcher.match(call):
                return VerificationResult(False, compiled.matcher, detail)

        if len(matchers) > len(all_calls):
            return VerificationResult(False, matchers[len(all_calls)].matcher, detail)
        if len(matchers) < len(all_calls):
            # Unexpected calls follow the last matcher.
            return VerificationResult(False, matchers[-1].matcher if matchers else None, detail)

        return VerificationResult(True)


__all__ = [
    "Ordering",
    "OrderedVerifier",
    "SequenceVerifier",
    "UnorderedVerifier",
    "VerificationResult",
    "Verifier",
]
