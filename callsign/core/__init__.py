# callsign/core/__init__.py
# Core value objects and contracts for the callsign recorder.
# Authoritative import source for matchers, answers and invocation facts.

from callsign.core.exceptions import (
    CallsignError,
    UsageError,
    VerificationError,
)
from callsign.core.matchers import (
    Matcher,
    CapturingMatcher,
    EqMatcher,
    ConstantMatcher,
    LambdaMatcher,
    CaptureMatcher,
    captured,
)
from callsign.core.answers import (
    Answer,
    ConstantAnswer,
    LambdaAnswer,
)
from callsign.core.invocation import (
    Invocation,
    InvocationMatcher,
    InvocationMatcherWithCall,
    MethodDescriptor,
    Ref,
)
from callsign.core.double_instance import DoubleInstance
from callsign.core.logging_layer import EventLogger, Event, EventFilter, LoggingError
