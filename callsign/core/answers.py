# callsign/core/answers.py
# Answer value objects: functions from an Invocation to a call result.

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from callsign.core.matchers import render

if TYPE_CHECKING:
    from callsign.core.invocation import Invocation


class Answer(ABC):
    """Behavior bound to a compiled matcher for a stubbed call."""

    @abstractmethod
    def answer(self, invocation: "Invocation") -> Any:
        ...


@dataclass(frozen=True)
class ConstantAnswer(Answer):
    """Always yields constant_value."""
    constant_value: Any

    def answer(self, invocation: "Invocation") -> Any:
        return self.constant_value

    def __str__(self) -> str:
        return "const(" + render(self.constant_value) + ")"


@dataclass(frozen=True)
class LambdaAnswer(Answer):
    """Delegates to answer_func(invocation). Exceptions propagate to the caller."""
    answer_func: Callable[["Invocation"], Any]

    def answer(self, invocation: "Invocation") -> Any:
        return self.answer_func(invocation)

    def __str__(self) -> str:
        return "answer()"


__all__ = [
    "Answer",
    "ConstantAnswer",
    "LambdaAnswer",
]
