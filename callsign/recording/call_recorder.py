# callsign/recording/call_recorder.py
# CallRecorder -- mode state machine that drives multi-round signing,
# attaches answers and dispatches real calls.
#
# MODES
# -----
#   ANSWERING  -- default. Real calls are recorded on their double and
#                 resolved against its attached answers.
#   STUBBING   -- inside every {}. Calls are captured as SignedCalls.
#   VERIFYING  -- inside verify {}. Calls are captured as SignedCalls.
#
# ANSWERING -> STUBBING   start_stubbing()
# ANSWERING -> VERIFYING  start_verification()
# STUBBING  -> ANSWERING  answer()
# VERIFYING -> ANSWERING  verify()
# any       -> ANSWERING  reset()
#
# One CallRecorder serves exactly one execution context (thread / asyncio
# task). Recording buffers and the journal are reset on entry into
# STUBBING / VERIFYING so an aborted attempt never leaks into the next one.

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, List, Optional, Tuple

from callsign.core import logging_layer as events
from callsign.core.answers import Answer, ConstantAnswer
from callsign.core.exceptions import UsageError, VerificationError
from callsign.core.invocation import Invocation, InvocationMatcherWithCall
from callsign.core.logging_layer import EventLogger
from callsign.core.matchers import Matcher
from callsign.core.signatures import SignatureGenerator, any_value, comparison_key
from callsign.doubles.instance import child_spec, new_double, state_of
from callsign.recording.signing import CallRound, SignedCall, compile_call_rounds

if TYPE_CHECKING:
    from callsign.gateway import Gateway
    from callsign.verification.verifiers import Ordering


def _now() -> datetime:
    """Current UTC time. For journal timestamps only."""
    return datetime.now(timezone.utc)


class Mode(enum.Enum):
    ANSWERING = "ANSWERING"
    STUBBING  = "STUBBING"
    VERIFYING = "VERIFYING"


class CallRecorder:
    """
    Records calls made inside every/verify blocks and answers real calls.

    Args:
        gateway:   Gateway supplying the instantiator and verifiers.
        owner:     Opaque key of the execution context this recorder serves.
        seed:      Optional seed for the signature generator.
    """

    def __init__(
        self,
        gateway: "Gateway",
        owner: Any = None,
        seed: Optional[int] = None,
    ) -> None:
        self.gateway = gateway
        self.owner = owner
        self.mode: Mode = Mode.ANSWERING
        self.journal: EventLogger = EventLogger()
        self._signatures_gen = SignatureGenerator(gateway.instantiator.instantiate, seed)

        self._signed_calls: List[SignedCall] = []
        self._call_rounds: List[CallRound] = []
        self._invocation_matchers: List[InvocationMatcherWithCall] = []
        self._child_doubles: List[Any] = []
        self._matchers: List[Matcher] = []
        self._signatures: List[Any] = []

    # -----------------------------------------------------------------------
    # Mode handling
    # -----------------------------------------------------------------------

    def _check_mode(self, *modes: Mode) -> None:
        if self.mode not in modes:
            raise UsageError("Bad recording sequence", mode=self.mode.value)

    def _clear_buffers(self) -> None:
        self._signed_calls.clear()
        self._call_rounds.clear()
        self._invocation_matchers.clear()
        self._child_doubles.clear()
        self._matchers.clear()
        self._signatures.clear()

    def start_stubbing(self) -> None:
        self._check_mode(Mode.ANSWERING)
        self._clear_buffers()
        self.journal.clear()
        self.mode = Mode.STUBBING
        self.journal.log_event(events.STUBBING_STARTED, {}, _now())

    def start_verification(self) -> None:
        self._check_mode(Mode.ANSWERING)
        self._clear_buffers()
        self.journal.clear()
        self.mode = Mode.VERIFYING
        self.journal.log_event(events.VERIFICATION_STARTED, {}, _now())

    def reset(self) -> None:
        """Abandon the current attempt and return to ANSWERING."""
        aborted = self.mode
        self._clear_buffers()
        self.mode = Mode.ANSWERING
        self.journal.log_event(events.RECORDER_RESET, {"aborted_mode": aborted.value}, _now())

    @property
    def invocation_matchers(self) -> Tuple[InvocationMatcherWithCall, ...]:
        return tuple(self._invocation_matchers)

    # -----------------------------------------------------------------------
    # Rounds
    # -----------------------------------------------------------------------

    def catch_args(self, round: int, total_rounds: int) -> None:
        """
        Mark a round boundary. round 0 opens the first execution; each
        later round closes the previous execution; round == total_rounds
        compiles the captured rounds into InvocationMatchers.
        """
        self._check_mode(Mode.STUBBING, Mode.VERIFYING)
        self._child_doubles.clear()
        self._matchers.clear()
        self._signatures.clear()

        if round > 0:
            self._call_rounds.append(CallRound(tuple(self._signed_calls)))
            self._signed_calls.clear()

        if round == total_rounds:
            self._invocation_matchers = compile_call_rounds(self._call_rounds)
            self.journal.log_event(
                events.ROUNDS_CAPTURED,
                {"rounds": len(self._call_rounds), "calls": len(self._invocation_matchers)},
                _now(),
            )
            self._call_rounds.clear()
            for compiled in self._invocation_matchers:
                self.journal.log_event(
                    events.MATCHER_COMPILED,
                    {"matcher": str(compiled.matcher)},
                    _now(),
                )

    # -----------------------------------------------------------------------
    # Matcher registration
    # -----------------------------------------------------------------------

    def register(self, matcher: Matcher, value_class: Any = object) -> Any:
        """
        Declare matcher for the next intercepted call and return the
        signature to pass in place of the real argument.
        """
        self._check_mode(Mode.STUBBING, Mode.VERIFYING)
        signature = self._signatures_gen.draw(value_class)
        self._matchers.append(matcher)
        self._signatures.append(comparison_key(signature))
        return signature

    # -----------------------------------------------------------------------
    # Call dispatch
    # -----------------------------------------------------------------------

    def call(self, invocation: Invocation) -> Any:
        if self.mode is Mode.ANSWERING:
            state = state_of(invocation.self_)
            state.record_call(invocation)
            return state.find_answer_and_capture(invocation).answer(invocation)
        return self._add_call_with_matchers(invocation)

    def _add_call_with_matchers(self, invocation: Invocation) -> Any:
        if len(self._matchers) > len(invocation.args):
            raise UsageError(
                "More matchers than arguments at {}".format(invocation.method),
                mode=self.mode.value,
            )
        if any(arg is child for arg in invocation.args for child in self._child_doubles):
            raise UsageError(
                "Passing child doubles to arguments is prohibited at {}".format(invocation.method),
                mode=self.mode.value,
            )

        returned = any_value(invocation.method.return_type, lambda: self._new_child(invocation))
        self._signed_calls.append(SignedCall(
            invocation=invocation,
            matchers=tuple(self._matchers),
            signatures=tuple(self._signatures),
            returned=returned,
        ))
        self._matchers.clear()
        self._signatures.clear()
        return returned

    def _new_child(self, invocation: Invocation) -> Any:
        child = new_double(child_spec(invocation.method.return_type))
        self._child_doubles.append(child)
        return child

    # -----------------------------------------------------------------------
    # Stubbing
    # -----------------------------------------------------------------------

    def answer(self, answer: Answer) -> None:
        """
        Attach answer to the outermost call-site. Inner call-sites answer
        with the value the block received for them, so chained calls
        resolve to the double carrying the next stub.
        """
        self._check_mode(Mode.STUBBING)
        last = len(self._invocation_matchers) - 1
        for call_n, compiled in enumerate(self._invocation_matchers):
            current = answer if call_n == last else ConstantAnswer(compiled.returned)
            state_of(compiled.invocation.self_).add_answer(compiled.matcher, current)
            self.journal.log_event(
                events.ANSWER_ATTACHED,
                {"matcher": str(compiled.matcher), "answer": str(current)},
                _now(),
            )
        self._invocation_matchers.clear()
        self.mode = Mode.ANSWERING

    # -----------------------------------------------------------------------
    # Verification
    # -----------------------------------------------------------------------

    def verify(self, ordering: "Ordering", inverse: bool = False) -> None:
        """Raise VerificationError unless the verdict matches expectations."""
        self._check_mode(Mode.VERIFYING)
        compiled = list(self._invocation_matchers)
        outcome = self.gateway.verifier(ordering).verify(compiled)
        self._invocation_matchers.clear()
        self.mode = Mode.ANSWERING
        self.journal.log_event(
            events.VERIFICATION_DONE,
            {
                "ordering": ordering.value,
                "inverse": inverse,
                "matches": outcome.matches,
                "matcher": "" if outcome.matcher is None else str(outcome.matcher),
            },
            _now(),
        )

        if inverse and outcome.matches:
            # Every matcher was satisfied; name the first one.
            first = compiled[0].matcher if compiled else None
            raise VerificationError(matcher=first, inverse=True, detail=outcome.detail)
        if not inverse and not outcome.matches:
            raise VerificationError(matcher=outcome.matcher, inverse=False, detail=outcome.detail)


__all__ = ["CallRecorder", "Mode"]
