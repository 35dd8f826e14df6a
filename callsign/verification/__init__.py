# callsign/verification/__init__.py
# Verifiers for recorded call histories.

from .verifiers import (
    Ordering,
    OrderedVerifier,
    SequenceVerifier,
    UnorderedVerifier,
    VerificationResult,
    Verifier,
)

__all__ = [
    "Ordering",
    "OrderedVerifier",
    "SequenceVerifier",
    "UnorderedVerifier",
    "VerificationResult",
    "Verifier",
]
