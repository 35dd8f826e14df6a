# callsign/doubles/instance.py
# Double proxies and their per-instance bookkeeping.
#
# A Double intercepts attribute access: every method name resolves to a
# DoubleMethod which, when called, builds an Invocation and hands it to the
# context-bound CallRecorder. The result (or exception) of
# CallRecorder.call() reaches the original caller unchanged.
#
# DoubleState implements the DoubleInstance contract: an append-only
# recorded-call history and an append-only (matcher, answer) list, both
# guarded by one RLock per instance.

from __future__ import annotations

import inspect
import threading
import typing
from typing import Any, Callable, Dict, List, Optional, Tuple

from callsign.core.answers import Answer, ConstantAnswer
from callsign.core.double_instance import DoubleInstance
from callsign.core.exceptions import UsageError
from callsign.core.invocation import Invocation, InvocationMatcher, MethodDescriptor
from callsign.core.matchers import CapturingMatcher
from callsign.core.signatures import UNANNOTATED, any_value, comparison_key

_MethodInfo = Tuple[MethodDescriptor, Optional[inspect.Signature]]


# =============================================================================
# SECTION 1 -- DEFERRED (CONTINUATION-STYLE) METHODS
# =============================================================================

def deferred(func: Callable) -> Callable:
    """
    Mark a spec method whose trailing parameter is a continuation
    (callback) placeholder. Recorded calls always match any() there.
    """
    func.__callsign_deferred__ = True
    return func


# =============================================================================
# SECTION 2 -- SPEC INTROSPECTION
# =============================================================================

def _describe(spec: Optional[type], name: str) -> _MethodInfo:
    if spec is None:
        return MethodDescriptor(name=name), None

    try:
        raw = inspect.getattr_static(spec, name)
    except AttributeError:
        raise AttributeError(
            "{} has no method {!r}".format(spec.__name__, name)
        ) from None

    func = raw.__func__ if isinstance(raw, (staticmethod, classmethod)) else raw
    if not callable(func):
        raise AttributeError(
            "{}.{} is not a method and cannot be doubled".format(spec.__name__, name)
        )

    try:
        signature: Optional[inspect.Signature] = inspect.signature(func)
    except (TypeError, ValueError):
        signature = None
    if signature is not None and not isinstance(raw, staticmethod):
        params = list(signature.parameters.values())[1:]
        signature = signature.replace(parameters=params)

    try:
        hints = typing.get_type_hints(func)
    except (NameError, TypeError, AttributeError):
        hints = dict(getattr(func, "__annotations__", {}))

    descriptor = MethodDescriptor(
        name=name,
        owner=spec,
        return_type=hints.get("return", UNANNOTATED),
        is_async=inspect.iscoroutinefunction(func),
        deferred=bool(getattr(func, "__callsign_deferred__", False)),
    )
    return descriptor, signature


def _normalize_args(
    descriptor: MethodDescriptor,
    signature: Optional[inspect.Signature],
    args: Tuple[Any, ...],
    kwargs: Dict[str, Any],
) -> Tuple[Any, ...]:
    """Bind args/kwargs to the spec class signature and flatten to positional order."""
    if signature is None:
        if kwargs:
            raise UsageError(
                "Keyword arguments to {} need a spec to be ordered".format(descriptor)
            )
        return tuple(args)

    bound = signature.bind(*args, **kwargs)
    bound.apply_defaults()
    ordered: List[Any] = []
    for param in signature.parameters.values():
        value = bound.arguments[param.name]
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            ordered.extend(value)
        elif param.kind is inspect.Parameter.VAR_KEYWORD:
            if value:
                raise UsageError(
                    "Variadic keyword arguments to {} are not supported".format(descriptor)
                )
        else:
            ordered.append(value)
    return tuple(ordered)


def _split_args(
    signature: Optional[inspect.Signature],
    args: Tuple[Any, ...],
) -> Tuple[Tuple[Any, ...], Dict[str, Any]]:
    """Inverse of _normalize_args: keyword-only values go back to kwargs."""
    if signature is None:
        return tuple(args), {}
    params = [
        p for p in signature.parameters.values()
        if p.kind is not inspect.Parameter.VAR_KEYWORD
    ]
    n_fixed = sum(1 for p in params if p.kind is not inspect.Parameter.VAR_POSITIONAL)
    values = iter(args)
    positional: List[Any] = []
    keywords: Dict[str, Any] = {}
    for param in params:
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            positional.extend(next(values) for _ in range(len(args) - n_fixed))
        elif param.kind is inspect.Parameter.KEYWORD_ONLY:
            keywords[param.name] = next(values)
        else:
            positional.append(next(values))
    return tuple(positional), keywords


def child_spec(return_type: Any) -> Optional[type]:
    """Spec for a child double standing in for return_type, or None."""
    if return_type is UNANNOTATED or return_type is typing.Any:
        return None
    target = typing.get_origin(return_type) or return_type
    return target if isinstance(target, type) else None


# =============================================================================
# SECTION 3 -- DOUBLE STATE (DoubleInstance implementation)
# =============================================================================

class DoubleState(DoubleInstance):
    """
    Bookkeeping behind one Double proxy.

    Attributes:
        spec:  class the double stands in for, or None (any method name).
        name:  optional display name.
    """

    kind: str = "mock"

    def __init__(self, spec: Optional[type] = None, name: Optional[str] = None) -> None:
        self.spec = spec
        self.name = name
        self._lock = threading.RLock()
        self._answers: List[Tuple[InvocationMatcher, Answer]] = []
        self._recorded_calls: List[Invocation] = []
        self._children: Dict[Tuple[Any, ...], Any] = {}
        self._methods: Dict[str, _MethodInfo] = {}

    # -----------------------------------------------------------------------
    # Method resolution
    # -----------------------------------------------------------------------

    def method_info(self, name: str) -> _MethodInfo:
        with self._lock:
            info = self._methods.get(name)
            if info is None:
                info = _describe(self.spec, name)
                self._methods[name] = info
            return info

    # -----------------------------------------------------------------------
    # DoubleInstance contract
    # -----------------------------------------------------------------------

    def add_answer(self, matcher: InvocationMatcher, answer: Answer) -> None:
        with self._lock:
            self._answers.append((matcher, answer))

    def find_answer_and_capture(self, invocation: Invocation) -> Answer:
        with self._lock:
            for matcher, answer in self._answers:
                if matcher.match(invocation):
                    _capture(matcher, invocation)
                    return answer
        return ConstantAnswer(self.default_answer(invocation))

    def default_answer(self, invocation: Invocation) -> Any:
        return any_value(
            invocation.method.return_type,
            lambda: self.child_double(invocation),
        )

    def child_double(self, invocation: Invocation) -> Any:
        """Child double for an unmatched call; equal calls share one child."""
        key = (invocation.method,) + tuple(comparison_key(a) for a in invocation.args)
        with self._lock:
            child = self._children.get(key)
            if child is None:
                child = new_double(child_spec(invocation.method.return_type))
                self._children[key] = child
            return child

    def record_call(self, invocation: Invocation) -> None:
        with self._lock:
            self._recorded_calls.append(invocation)

    def matches_any_recorded_call(self, matcher: InvocationMatcher) -> bool:
        with self._lock:
            return any(matcher.match(call) for call in self._recorded_calls)

    def all_recorded_calls(self) -> List[Invocation]:
        with self._lock:
            return list(self._recorded_calls)

    def describe(self) -> str:
        if self.name:
            return self.name
        label = "object" if self.spec is None else self.spec.__name__
        return "{}<{}>()".format(self.kind, label)


class SpyState(DoubleState):
    """DoubleState whose unmatched calls run the real method of spied_obj."""

    kind: str = "spy"

    def __init__(self, spied_obj: Any, name: Optional[str] = None) -> None:
        super().__init__(spec=type(spied_obj), name=name)
        self.spied_obj = spied_obj

    def default_answer(self, invocation: Invocation) -> Any:
        real = getattr(self.spied_obj, invocation.method.name)
        _, signature = self.method_info(invocation.method.name)
        args, kwargs = _split_args(signature, invocation.args)
        return real(*args, **kwargs)


def _capture(matcher: InvocationMatcher, invocation: Invocation) -> None:
    for arg_matcher, arg in zip(matcher.args, invocation.args):
        if isinstance(arg_matcher, CapturingMatcher):
            arg_matcher.capture(arg)


# =============================================================================
# SECTION 4 -- PROXY
# =============================================================================

class Double:
    """
    Test double proxy. All behavior lives in its DoubleState; the proxy
    itself only resolves method names and keeps identity semantics
    (==, hash) of a plain object.
    """

    __slots__ = ("_callsign_state",)

    def __init__(self, state: DoubleState) -> None:
        object.__setattr__(self, "_callsign_state", state)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("__") and name.endswith("__"):
            raise AttributeError(name)
        state = object.__getattribute__(self, "_callsign_state")
        descriptor, signature = state.method_info(name)
        return DoubleMethod(self, state, descriptor, signature)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("cannot set {!r} on a test double".format(name))

    @property
    def __class__(self) -> type:  # type: ignore[override]
        spec = object.__getattribute__(self, "_callsign_state").spec
        return Double if spec is None else spec

    def __repr__(self) -> str:
        return object.__getattribute__(self, "_callsign_state").describe()


class DoubleMethod:
    """Callable bound to one method name of one Double."""

    __slots__ = ("_proxy", "_state", "descriptor", "_signature")

    def __init__(
        self,
        proxy: Double,
        state: DoubleState,
        descriptor: MethodDescriptor,
        signature: Optional[inspect.Signature],
    ) -> None:
        self._proxy = proxy
        self._state = state
        self.descriptor = descriptor
        self._signature = signature

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        from callsign.gateway import Gateway

        invocation = Invocation(
            self_=self._proxy,
            method=self.descriptor,
            args=_normalize_args(self.descriptor, self._signature, args, kwargs),
        )
        recorder = Gateway.locate().call_recorder
        if not self.descriptor.is_async:
            return recorder.call(invocation)
        try:
            outcome = recorder.call(invocation)
        except Exception as exc:
            return _failed(exc)
        return _settled(outcome)

    def __repr__(self) -> str:
        return "<double method {}>".format(self.descriptor)


async def _settled(outcome: Any) -> Any:
    if inspect.isawaitable(outcome):
        return await outcome
    return outcome


async def _failed(exc: Exception) -> Any:
    raise exc


# =============================================================================
# SECTION 5 -- FACTORIES
# =============================================================================

def new_double(spec: Optional[type] = None, name: Optional[str] = None) -> Double:
    return Double(DoubleState(spec=spec, name=name))


def new_spy(spied_obj: Any, name: Optional[str] = None) -> Double:
    return Double(SpyState(spied_obj, name=name))


def is_double(obj: Any) -> bool:
    return type(obj) is Double


def state_of(obj: Any) -> DoubleState:
    """Return the DoubleState behind a Double proxy."""
    if type(obj) is not Double:
        raise UsageError("{!r} is not a test double".format(obj))
    return object.__getattribute__(obj, "_callsign_state")


__all__ = [
    "Double",
    "DoubleMethod",
    "DoubleState",
    "SpyState",
    "child_spec",
    "deferred",
    "is_double",
    "new_double",
    "new_spy",
    "state_of",
]
