# callsign/utils/constants.py
# Version: 1.0.0
# Single authoritative definition of the recorder tuning constants.
#
# Standard import pattern:
#   from callsign.utils.constants import (
#       N_CALL_ROUNDS,
#       BY_VALUE_TYPES,
#   )


# ---------------------------------------------------------------------------
# SIGNING ROUNDS
# ---------------------------------------------------------------------------
# Number of block executions per every/verify attempt. Each execution draws
# fresh signatures; a literal argument survives all rounds unchanged.
# Gateway(n_call_rounds=...) overrides this per gateway.

N_CALL_ROUNDS: int = 64


# ---------------------------------------------------------------------------
# SIGNATURE VALUE CLASSES
# ---------------------------------------------------------------------------
# Exact types (not subclasses) whose signatures and arguments compare by
# value. Every other value is wrapped in Ref and compared by identity.

BY_VALUE_TYPES: frozenset = frozenset({
    bool,
    int,
    float,
    complex,
    str,
    bytes,
})

SIGNATURE_INT_BITS:     int = 62    # random ints are drawn from [0, 2**62)
SIGNATURE_BYTES_LENGTH: int = 16    # random bytes signature length
