# callsign/recording/signing.py
# Multi-round signing: compiles the calls captured over several executions
# of one every/verify block into InvocationMatchers.
#
# A literal argument is identical in every round because the same literal
# appears in source each time. A matcher-governed position instead carries a
# fresh random signature each round. Comparing the per-round value sequence
# at each argument position against the per-round signature sequence of each
# declared matcher tells the two apart.
#
# Standard import:
#   from callsign.recording.signing import (
#       SignedCall, CallRound, compile_call_rounds,
#   )

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple

from callsign.core.exceptions import UsageError
from callsign.core.invocation import (
    Invocation,
    InvocationMatcher,
    InvocationMatcherWithCall,
)
from callsign.core.matchers import ConstantMatcher, EqMatcher, Matcher
from callsign.core.signatures import comparison_key


# =============================================================================
# SECTION 1 -- ROUND DATA
# =============================================================================

@dataclass(frozen=True)
class SignedCall:
    """
    One intercepted call within one round.

    Fields:
      invocation -- the realized Invocation (signatures in place of matchers).
      matchers   -- matchers declared since the previous call, in order.
      signatures -- comparison keys of the signatures handed out for them.
      returned   -- value handed back to the block for this call.
    """
    invocation: Invocation
    matchers:   Tuple[Matcher, ...]
    signatures: Tuple[Any, ...]
    returned:   Any = None


@dataclass(frozen=True)
class CallRound:
    """All SignedCalls of one full block execution, in call order."""
    calls: Tuple[SignedCall, ...]


# =============================================================================
# SECTION 2 -- SHAPE CHECKS
# =============================================================================

def _check_shapes(call_rounds: Sequence[CallRound]) -> int:
    """
    Verify that every round has the same call count, and every call-site the
    same matcher, signature and argument counts. Return the call count.
    """
    if not call_rounds:
        raise UsageError("No call rounds captured")

    n_calls = len(call_rounds[0].calls)
    if n_calls == 0:
        raise UsageError("No calls inside every/verify block")
    if any(len(call_round.calls) != n_calls for call_round in call_rounds):
        raise UsageError("Not all call rounds result in same amount of calls")

    for call_n in range(n_calls):
        zero = call_rounds[0].calls[call_n]
        for call_round in call_rounds[1:]:
            call = call_round.calls[call_n]
            if (
                len(call.matchers) != len(zero.matchers)
                or len(call.signatures) != len(zero.signatures)
                or len(call.invocation.args) != len(zero.invocation.args)
            ):
                raise UsageError(
                    "Not all calls attached to same number of matchers and "
                    "arguments at call #{} ({})".format(call_n, zero.invocation.method)
                )
    return n_calls


# =============================================================================
# SECTION 3 -- PER CALL-SITE COMPILATION
# =============================================================================

def compile_call_site(
    call_n: int,
    calls_in_rounds: Sequence[SignedCall],
) -> InvocationMatcherWithCall:
    """
    Compile one call-site observed across all rounds. Round 0 is the
    template: its literals become equality matchers.
    """
    zero = calls_in_rounds[0]
    method = zero.invocation.method

    matcher_map: Dict[Tuple[Any, ...], Matcher] = {}
    for n_matcher, matcher in enumerate(zero.matchers):
        signature = tuple(call.signatures[n_matcher] for call in calls_in_rounds)
        matcher_map[signature] = matcher

    arg_matchers: List[Matcher] = []
    for n_argument, literal in enumerate(zero.invocation.args):
        observed = tuple(
            comparison_key(call.invocation.args[n_argument])
            for call in calls_in_rounds
        )
        matcher = matcher_map.pop(observed, None)
        if matcher is None:
            matcher = EqMatcher(literal)
        arg_matchers.append(matcher)

    if method.deferred and arg_matchers:
        arg_matchers[-1] = ConstantMatcher(True)

    if matcher_map:
        unbound = ", ".join(str(m) for m in matcher_map.values())
        raise UsageError(
            "Failed to find few matchers by signature at call #{} ({}): {}".format(
                call_n, method, unbound,
            )
        )

    return InvocationMatcherWithCall(
        invocation=zero.invocation,
        matcher=InvocationMatcher(
            self_=EqMatcher(zero.invocation.self_),
            method=EqMatcher(method),
            args=tuple(arg_matchers),
        ),
        returned=zero.returned,
    )


def compile_call_rounds(
    call_rounds: Sequence[CallRound],
) -> List[InvocationMatcherWithCall]:
    """Compile every call-site. Raises UsageError on inconsistent rounds."""
    n_calls = _check_shapes(call_rounds)
    return [
        compile_call_site(call_n, [call_round.calls[call_n] for call_round in call_rounds])
        for call_n in range(n_calls)
    ]


__all__ = [
    "SignedCall",
    "CallRound",
    "compile_call_site",
    "compile_call_rounds",
]
