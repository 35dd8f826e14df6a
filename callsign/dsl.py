# callsign/dsl.py
# User-facing stub/verify DSL.
#
# Standard usage:
#   from callsign import mock, every, verify
#
#   repo = mock(Repository)
#   every(lambda s: repo.load(s.eq(3))).returns(record)
#   service.run(repo)
#   verify(lambda s: repo.load(s.any(int)))
#
# A block is executed gateway.n_call_rounds times. Matcher markers
# (s.eq, s.any, s.match, s.capture) must be evaluated, in the block's
# synchronous order, before the call they annotate -- which is what
# passing them as call arguments does.

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Callable, List, Optional, Union

from callsign.core.answers import Answer, ConstantAnswer, LambdaAnswer
from callsign.core.exceptions import UsageError
from callsign.core.invocation import Invocation, MethodDescriptor
from callsign.core.matchers import (
    CaptureMatcher,
    ConstantMatcher,
    EqMatcher,
    LambdaMatcher,
    Matcher,
)
from callsign.doubles.instance import Double, SpyState, new_double, new_spy, state_of
from callsign.gateway import Gateway
from callsign.recording.call_recorder import CallRecorder
from callsign.verification.verifiers import Ordering

Block = Callable[["MatcherScope"], Any]


# =============================================================================
# SECTION 1 -- DOUBLE FACTORIES
# =============================================================================

def mock(spec: Optional[type] = None, name: Optional[str] = None) -> Any:
    """
    Create a test double. With a spec class, only its methods resolve and
    return annotations drive default answers; without one, any method name
    resolves and unmatched calls return child doubles.
    """
    return new_double(spec=spec, name=name)


def spy(obj: Any, name: Optional[str] = None) -> Any:
    """Create a double whose unmatched calls run obj's real methods."""
    return new_spy(obj, name=name)


# =============================================================================
# SECTION 2 -- SCOPES
# =============================================================================

class MatcherScope:
    """Matcher markers available inside every/verify blocks."""

    def __init__(self, recorder: CallRecorder) -> None:
        self._recorder = recorder

    def match(self, matcher: Union[Matcher, Callable[[Any], bool]], cls: Any = object) -> Any:
        if not isinstance(matcher, Matcher):
            matcher = LambdaMatcher(matcher)
        return self._recorder.register(matcher, cls)

    def eq(self, value: Any) -> Any:
        cls = value.__class__
        return self._recorder.register(EqMatcher(value), object if cls is Double else cls)

    def any(self, cls: Any = object) -> Any:
        return self._recorder.register(ConstantMatcher(True), cls)

    def capture(self, capture_list: List[Any], cls: Any = object) -> Any:
        return self._recorder.register(CaptureMatcher(capture_list), cls)


class AnswerScope:
    """View of the intercepted Invocation handed to lambda answers."""

    def __init__(self, invocation: Invocation) -> None:
        self.invocation = invocation

    @property
    def self_(self) -> Any:
        return self.invocation.self_

    @property
    def method(self) -> MethodDescriptor:
        return self.invocation.method

    @property
    def args(self) -> tuple:
        return self.invocation.args

    @property
    def n_args(self) -> int:
        return len(self.invocation.args)

    def first_arg(self) -> Any:
        return self.invocation.args[0]

    def second_arg(self) -> Any:
        return self.invocation.args[1]

    def third_arg(self) -> Any:
        return self.invocation.args[2]

    def last_arg(self) -> Any:
        return self.invocation.args[-1]

    def spied_obj(self) -> Any:
        state = state_of(self.invocation.self_)
        if not isinstance(state, SpyState):
            raise UsageError("spied_obj is available only for spies")
        return state.spied_obj


class StubScope:
    """Returned by every(); binds the answer for the recorded call."""

    def __init__(self, recorder: CallRecorder) -> None:
        self._recorder = recorder

    def answers(self, answer: Union[Answer, Callable[[AnswerScope], Any]]) -> None:
        if not isinstance(answer, Answer):
            func = answer
            answer = LambdaAnswer(lambda invocation: func(AnswerScope(invocation)))
        self._recorder.answer(answer)

    def returns(self, value: Any) -> None:
        self._recorder.answer(ConstantAnswer(value))


# =============================================================================
# SECTION 3 -- ROUND DRIVERS
# =============================================================================

def _run_coroutine(result: Any) -> None:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        asyncio.run(result)
        return
    result.close()
    raise UsageError(
        "Coroutine blocks inside a running event loop need every_async / verify_async"
    )


def _record_rounds(recorder: CallRecorder, block: Block, n_rounds: int) -> None:
    scope = MatcherScope(recorder)
    try:
        for round_n in range(n_rounds):
            recorder.catch_args(round_n, n_rounds)
            result = block(scope)
            if inspect.iscoroutine(result):
                _run_coroutine(result)
        recorder.catch_args(n_rounds, n_rounds)
    except Exception:
        recorder.reset()
        raise


async def _record_rounds_async(recorder: CallRecorder, block: Block, n_rounds: int) -> None:
    scope = MatcherScope(recorder)
    try:
        for round_n in range(n_rounds):
            recorder.catch_args(round_n, n_rounds)
            result = block(scope)
            if inspect.isawaitable(result):
                await result
        recorder.catch_args(n_rounds, n_rounds)
    except Exception:
        recorder.reset()
        raise


# =============================================================================
# SECTION 4 -- ENTRY POINTS
# =============================================================================

def every(block: Block) -> StubScope:
    """Record the call expression in block for stubbing."""
    gw = Gateway.locate()
    recorder = gw.bind_call_recorder()
    recorder.start_stubbing()
    _record_rounds(recorder, block, gw.n_call_rounds)
    return StubScope(recorder)


async def every_async(block: Block) -> StubScope:
    """every() for use inside a running event loop; block may be async."""
    gw = Gateway.locate()
    recorder = gw.bind_call_recorder()
    recorder.start_stubbing()
    await _record_rounds_async(recorder, block, gw.n_call_rounds)
    return StubScope(recorder)


def verify(
    block: Block,
    ordering: Ordering = Ordering.UNORDERED,
    inverse: bool = False,
) -> None:
    """
    Check that the calls in block were made.

    Raises VerificationError when they were not, or, with inverse=True,
    when they were.
    """
    gw = Gateway.locate()
    recorder = gw.bind_call_recorder()
    recorder.start_verification()
    _record_rounds(recorder, block, gw.n_call_rounds)
    recorder.verify(ordering, inverse)


async def verify_async(
    block: Block,
    ordering: Ordering = Ordering.UNORDERED,
    inverse: bool = False,
) -> None:
    gw = Gateway.locate()
    recorder = gw.bind_call_recorder()
    recorder.start_verification()
    await _record_rounds_async(recorder, block, gw.n_call_rounds)
    recorder.verify(ordering, inverse)


def verify_order(block: Block, inverse: bool = False) -> None:
    verify(block, Ordering.ORDERED, inverse)


def verify_sequence(block: Block, inverse: bool = False) -> None:
    verify(block, Ordering.SEQUENCE, inverse)


__all__ = [
    "AnswerScope",
    "MatcherScope",
    "StubScope",
    "every",
    "every_async",
    "mock",
    "spy",
    "verify",
    "verify_async",
    "verify_order",
    "verify_sequence",
]
