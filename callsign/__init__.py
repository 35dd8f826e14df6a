# callsign/__init__.py
# Test doubles with multi-round argument-matcher recording.
# Authoritative import source for the stub/verify DSL.

from callsign.core.exceptions import CallsignError, UsageError, VerificationError
from callsign.core.matchers import captured
from callsign.doubles.instance import deferred
from callsign.gateway import Gateway
from callsign.verification.verifiers import Ordering
from callsign.dsl import (
    AnswerScope,
    MatcherScope,
    StubScope,
    every,
    every_async,
    mock,
    spy,
    verify,
    verify_async,
    verify_order,
    verify_sequence,
)

__version__ = "1.0.0"

__all__ = [
    "AnswerScope",
    "CallsignError",
    "Gateway",
    "MatcherScope",
    "Ordering",
    "StubScope",
    "UsageError",
    "VerificationError",
    "captured",
    "deferred",
    "every",
    "every_async",
    "mock",
    "spy",
    "verify",
    "verify_async",
    "verify_order",
    "verify_sequence",
]
