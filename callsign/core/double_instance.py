# callsign/core/double_instance.py
# Contract every double instance satisfies towards the CallRecorder and
# the verifiers. The concrete implementation lives in
# callsign.doubles.instance; the core never depends on how proxies are built.

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, List

from callsign.core.answers import Answer
from callsign.core.invocation import Invocation, InvocationMatcher


class DoubleInstance(ABC):
    """
    Per-double bookkeeping: recorded-call history and attached answers.

    Both lists are append-only and are cleared only by discarding the
    double. Implementations serialize mutations per instance.
    """

    @abstractmethod
    def add_answer(self, matcher: InvocationMatcher, answer: Answer) -> None:
        ...

    @abstractmethod
    def find_answer_and_capture(self, invocation: Invocation) -> Answer:
        """
        Return the first-registered answer whose matcher accepts invocation,
        after feeding every capturing argument matcher its real argument.
        Falls back to a default answer when nothing matches.
        """

    @abstractmethod
    def child_double(self, invocation: Invocation) -> Any:
        ...

    @abstractmethod
    def record_call(self, invocation: Invocation) -> None:
        ...

    @abstractmethod
    def matches_any_recorded_call(self, matcher: InvocationMatcher) -> bool:
        ...

    @abstractmethod
    def all_recorded_calls(self) -> List[Invocation]:
        ...


__all__ = ["DoubleInstance"]
