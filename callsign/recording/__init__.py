# callsign/recording/__init__.py
# Call recording and multi-round matcher signing.

from .signing import (
    CallRound,
    SignedCall,
    compile_call_rounds,
    compile_call_site,
)
from .call_recorder import CallRecorder, Mode

__all__ = [
    "CallRecorder",
    "CallRound",
    "Mode",
    "SignedCall",
    "compile_call_rounds",
    "compile_call_site",
]
