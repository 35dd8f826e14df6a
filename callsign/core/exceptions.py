# =============================================================================
# callsign v1.0.0 -- CORE
# File:   callsign/core/exceptions.py
# =============================================================================
#
# SCOPE
# -----
# Defines the exception hierarchy for recording, stubbing and verification.
# All exceptions are pure value objects: no side effects, no logging,
# no I/O of any kind.
#
# EXCEPTION HIERARCHY
# -------------------
#   CallsignError(Exception)              -- base; never raised directly
#     UsageError(CallsignError)           -- wrong mode, inconsistent rounds,
#                                            unbound or surplus matchers
#     VerificationError(CallsignError)    -- expected call absent, or present
#                                            under inverse verification
#
# MESSAGE CONTRACT
# ----------------
# Every exception message is:
#   - Deterministic: identical inputs -> identical message string.
#   - Explicit: the offending mode, call-site or matcher is always named.
#   - Non-empty.
#
# =============================================================================

from __future__ import annotations

from typing import Any, Optional


# =============================================================================
# BASE EXCEPTION
# =============================================================================

class CallsignError(Exception):
    """
    Base class for all callsign exceptions.

    Never raised directly. Use a concrete subclass.

    Attributes:
        message:  Human-readable description. Always non-empty.
    """

    def __init__(self, message: str) -> None:
        if not isinstance(message, str) or not message:
            raise ValueError(
                "CallsignError: message must be a non-empty string"
            )
        super().__init__(message)
        self.message: str = message

    def __repr__(self) -> str:
        return (
            self.__class__.__name__
            + "(message=" + repr(self.message)
            + ")"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CallsignError):
            return NotImplemented
        return type(self) is type(other) and self.message == other.message

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.message))


# =============================================================================
# CONCRETE EXCEPTIONS
# =============================================================================

class UsageError(CallsignError):
    """
    Raised when the recording DSL is driven incorrectly.

    This covers:
      - An entry call (every / verify) while the recorder is not ANSWERING.
      - A stub/verify-only operation while the recorder is ANSWERING.
      - Rounds that disagree on call count, matcher count or argument count.
      - More matchers declared than arguments passed to the annotated call.
      - Matchers declared but never bound to an argument position.
      - Zero intercepted calls inside the block.

    Message format:
        "<detail>"                 when mode is None
        "<detail>. Mode: <MODE>"   otherwise

    Args:
        detail:  Description of the misuse. Must be non-empty.
        mode:    Name of the recorder mode at the time of the misuse,
                 or None if the mode is not relevant.
    """

    def __init__(self, detail: str, mode: Optional[str] = None) -> None:
        if not isinstance(detail, str) or not detail:
            raise ValueError("UsageError: detail must be a non-empty string")
        message = detail if mode is None else detail + ". Mode: " + mode
        super().__init__(message)
        self.detail: str = detail
        self.mode: Optional[str] = mode


class VerificationError(CallsignError):
    """
    Raised when verification does not produce the expected verdict.

    Message format:
        "Verification failed"                  / "Inverse verification failed"
        "Verification failed, matcher: <m>"    when a matcher is known

    Args:
        matcher:  The first offending InvocationMatcher, or None when the
                  verifier cannot single one out (e.g. length mismatch).
        inverse:  True if the failure is an unexpected match under
                  inverse verification.
        detail:   Optional extra context appended to the message.
    """

    def __init__(
        self,
        matcher: Any = None,
        inverse: bool = False,
        detail:  str = "",
    ) -> None:
        message = "Inverse verification failed" if inverse else "Verification failed"
        if matcher is not None:
            message += ", matcher: " + str(matcher)
        if detail:
            message += " (" + detail + ")"
        super().__init__(message)
        self.matcher: Any = matcher
        self.inverse: bool = inverse
        self.detail: str = detail


# =============================================================================
# MODULE __all__
# =============================================================================

__all__ = [
    "CallsignError",
    "UsageError",
    "VerificationError",
]
