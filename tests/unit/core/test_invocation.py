# tests/unit/core/test_invocation.py
# Target: callsign/core/invocation.py

import inspect

from callsign.core.invocation import (
    Invocation,
    InvocationMatcher,
    InvocationMatcherWithCall,
    MethodDescriptor,
    Ref,
    next_timestamp,
)
from callsign.core.matchers import ConstantMatcher, EqMatcher


class Repo:
    def load(self, key: int) -> str:
        return ""


class Other:
    def load(self, key: int) -> str:
        return ""


def _matcher(receiver, method, *args) -> InvocationMatcher:
    return InvocationMatcher(
        self_=EqMatcher(receiver),
        method=EqMatcher(method),
        args=tuple(args),
    )


# =============================================================================
# SECTION 1 -- TIMESTAMPS AND REF
# =============================================================================

class TestTimestamps:

    def test_strictly_increasing(self):
        first = next_timestamp()
        second = next_timestamp()
        assert second > first

    def test_invocations_get_distinct_timestamps(self):
        method = MethodDescriptor("load")
        a = Invocation(self_=object(), method=method, args=())
        b = Invocation(self_=object(), method=method, args=())
        assert b.timestamp > a.timestamp


class TestRef:

    def test_same_object_equal(self):
        value = [1]
        assert Ref(value) == Ref(value)
        assert hash(Ref(value)) == hash(Ref(value))

    def test_equal_but_distinct_objects_differ(self):
        assert Ref([1]) != Ref([1])

    def test_not_equal_to_raw_value(self):
        value = object()
        assert Ref(value) != value

    def test_repr_names_type(self):
        assert repr(Ref([])).startswith("Ref(list@")


# =============================================================================
# SECTION 2 -- METHOD DESCRIPTOR
# =============================================================================

class TestMethodDescriptor:

    def test_equality_by_owner_and_name(self):
        a = MethodDescriptor("load", Repo, return_type=str)
        b = MethodDescriptor("load", Repo, return_type=int, is_async=True)
        assert a == b
        assert hash(a) == hash(b)

    def test_different_owner_differs(self):
        assert MethodDescriptor("load", Repo) != MethodDescriptor("load", Other)

    def test_default_return_type_is_unannotated(self):
        assert MethodDescriptor("load").return_type is inspect.Signature.empty

    def test_str(self):
        assert str(MethodDescriptor("load", Repo)) == "Repo.load()"
        assert str(MethodDescriptor("load")) == "load()"


# =============================================================================
# SECTION 3 -- INVOCATION MATCHER
# =============================================================================

class TestInvocationMatcher:

    def setup_method(self):
        self.receiver = Repo()
        self.method = MethodDescriptor("load", Repo)

    def _call(self, *args, receiver=None, method=None) -> Invocation:
        return Invocation(
            self_=self.receiver if receiver is None else receiver,
            method=self.method if method is None else method,
            args=tuple(args),
        )

    def test_matches_when_all_parts_match(self):
        matcher = _matcher(self.receiver, self.method, EqMatcher(3))
        assert matcher.match(self._call(3))

    def test_rejects_other_argument(self):
        matcher = _matcher(self.receiver, self.method, EqMatcher(3))
        assert not matcher.match(self._call(4))

    def test_rejects_other_receiver(self):
        matcher = _matcher(self.receiver, self.method, ConstantMatcher(True))
        assert not matcher.match(self._call(3, receiver=Repo()))

    def test_rejects_other_method(self):
        matcher = _matcher(self.receiver, self.method, ConstantMatcher(True))
        other = MethodDescriptor("save", Repo)
        assert not matcher.match(self._call(3, method=other))

    def test_rejects_arity_mismatch(self):
        matcher = _matcher(self.receiver, self.method, ConstantMatcher(True))
        assert not matcher.match(self._call())
        assert not matcher.match(self._call(1, 2))

    def test_zero_args(self):
        matcher = _matcher(self.receiver, self.method)
        assert matcher.match(self._call())

    def test_structural_equality(self):
        a = _matcher(self.receiver, self.method, EqMatcher(3), ConstantMatcher(True))
        b = _matcher(self.receiver, self.method, EqMatcher(3), ConstantMatcher(True))
        assert a == b

    def test_str(self):
        matcher = _matcher("repo", self.method, EqMatcher(3), ConstantMatcher(True))
        assert str(matcher) == "'repo'.load(eq(3), any())"

    def test_with_call_carries_returned(self):
        call = self._call(3)
        matcher = _matcher(self.receiver, self.method, EqMatcher(3))
        compiled = InvocationMatcherWithCall(call, matcher, returned="x")
        assert compiled.returned == "x"
        assert compiled.invocation is call
