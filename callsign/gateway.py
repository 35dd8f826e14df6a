# callsign/gateway.py
# Gateway -- locates the CallRecorder bound to the current execution
# context, the Instantiator and the verifiers.
#
# CONTEXT CONFINEMENT
# -------------------
# Recorder state (mode, buffers, rounds) must never be shared by concurrent
# callers. Recorders live in a ContextVar and carry an owner key
# (thread id, asyncio task id). Entry points call bind_call_recorder(),
# which installs a fresh recorder whenever the context-visible one belongs
# to another thread or task. Intercepted calls resolve the recorder through
# call_recorder, which only checks the thread, so the rounds of a
# synchronous every/verify can run a coroutine block under asyncio.run().

from __future__ import annotations

import asyncio
import contextvars
import threading
from typing import Any, Dict, Optional, Tuple

from callsign.doubles.instantiator import Instantiator
from callsign.recording.call_recorder import CallRecorder
from callsign.utils.constants import N_CALL_ROUNDS
from callsign.verification.verifiers import (
    Ordering,
    OrderedVerifier,
    SequenceVerifier,
    UnorderedVerifier,
    Verifier,
)

_recorder_var: contextvars.ContextVar = contextvars.ContextVar(
    "callsign_call_recorder", default=None,
)


def _owner_key() -> Tuple[int, Optional[int]]:
    try:
        task = asyncio.current_task()
    except RuntimeError:
        task = None
    return threading.get_ident(), None if task is None else id(task)


def _serves(recorder_owner: Tuple[int, Optional[int]], owner: Tuple[int, Optional[int]]) -> bool:
    if recorder_owner == owner:
        return True
    return recorder_owner[1] is None and recorder_owner[0] == owner[0]


class Gateway:
    """
    Entry point to the recorder machinery.

    Args:
        n_call_rounds:  Block executions per every/verify attempt.
        seed:           Optional seed for signature generators of recorders
                        created by this gateway.
    """

    _default: Optional["Gateway"] = None
    _default_lock = threading.Lock()

    def __init__(self, n_call_rounds: int = N_CALL_ROUNDS, seed: Optional[int] = None) -> None:
        if not isinstance(n_call_rounds, int) or n_call_rounds < 1:
            raise ValueError(
                "Gateway: n_call_rounds must be a positive int; got {!r}".format(n_call_rounds)
            )
        self.n_call_rounds: int = n_call_rounds
        self.seed: Optional[int] = seed
        self.instantiator: Instantiator = Instantiator()
        self._verifiers: Dict[Ordering, Verifier] = {
            Ordering.UNORDERED: UnorderedVerifier(),
            Ordering.ORDERED:   OrderedVerifier(),
            Ordering.SEQUENCE:  SequenceVerifier(),
        }

    # -----------------------------------------------------------------------
    # Locator
    # -----------------------------------------------------------------------

    @classmethod
    def locate(cls) -> "Gateway":
        with cls._default_lock:
            if cls._default is None:
                cls._default = Gateway()
            return cls._default

    @classmethod
    def install(cls, gateway: Optional["Gateway"]) -> None:
        """Replace the process-wide gateway. None restores a fresh default."""
        with cls._default_lock:
            cls._default = gateway

    # -----------------------------------------------------------------------
    # Recorders
    # -----------------------------------------------------------------------

    def _new_recorder(self, owner: Any) -> CallRecorder:
        recorder = CallRecorder(self, owner=owner, seed=self.seed)
        _recorder_var.set(recorder)
        return recorder

    def _visible_recorder(self) -> Optional[CallRecorder]:
        recorder = _recorder_var.get()
        if recorder is None or recorder.gateway is not self:
            return None
        return recorder

    @property
    def call_recorder(self) -> CallRecorder:
        """
        Recorder serving the current call. A recorder bound outside any task
        also serves tasks it spawns on the same thread; a task-bound recorder
        serves only its own task.
        """
        recorder = self._visible_recorder()
        owner = _owner_key()
        if recorder is None or not _serves(recorder.owner, owner):
            recorder = self._new_recorder(owner)
        return recorder

    def bind_call_recorder(self) -> CallRecorder:
        """Recorder owned by the current thread and task; created if needed."""
        recorder = self._visible_recorder()
        owner = _owner_key()
        if recorder is None or recorder.owner != owner:
            recorder = self._new_recorder(owner)
        return recorder

    # -----------------------------------------------------------------------
    # Verifiers
    # -----------------------------------------------------------------------

    def verifier(self, ordering: Ordering) -> Verifier:
        return self._verifiers[ordering]


__all__ = ["Gateway"]
