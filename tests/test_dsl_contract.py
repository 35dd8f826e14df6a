# tests/test_dsl_contract.py
# Version: 1.0.0
# Contract tests for the public stub/verify DSL.
#
# Standard import pattern:
#   from callsign import mock, spy, every, verify

import asyncio
import itertools
import threading
from typing import List

import numpy as np
import pytest

from callsign import (
    UsageError,
    VerificationError,
    captured,
    deferred,
    every,
    every_async,
    mock,
    spy,
    verify,
    verify_async,
    verify_order,
    verify_sequence,
)
from callsign.core.answers import ConstantAnswer
from callsign.core.matchers import ConstantMatcher, EqMatcher, LambdaMatcher
from callsign.dsl import MatcherScope
from callsign.recording.call_recorder import Mode


# ---------------------------------------------------------------------------
# SHARED TYPES
# ---------------------------------------------------------------------------

class Part:
    def weight(self) -> float:
        return 1.0


class Repo:
    def load(self, key: int) -> int:
        return key

    def save(self, key: int, value: str) -> bool:
        return True

    def find(self, name: str, limit: int = 10) -> List[str]:
        return []

    def link(self, a: int, b: str, c: object) -> None:
        return None

    def put(self, a: tuple, b: tuple) -> int:
        return len(a) + len(b)

    def part(self) -> Part:
        return Part()

    async def fetch(self, key: str) -> str:
        return key

    @deferred
    def later(self, key: int, done) -> None:
        return None


class Counter:
    def __init__(self) -> None:
        self.count = 3

    def value(self) -> int:
        return self.count

    def bump(self, by: int) -> int:
        self.count += by
        return self.count


_TOKEN = object()
_IS_EVEN = LambdaMatcher(lambda v: v % 2 == 0)


def _compile(recorder, block, n_rounds: int = 64):
    """Run block through the recorder and return the compiled matchers."""
    recorder.start_verification()
    scope = MatcherScope(recorder)
    for round_n in range(n_rounds):
        recorder.catch_args(round_n, n_rounds)
        block(scope)
    recorder.catch_args(n_rounds, n_rounds)
    compiled = [c.matcher for c in recorder.invocation_matchers]
    recorder.reset()
    return compiled


# ---------------------------------------------------------------------------
# MATCHER COMPILATION
# ---------------------------------------------------------------------------

class TestCompilation:

    def test_literal_only_call_compiles_to_eq_matchers(self, recorder):
        repo = mock(Repo)
        (compiled,) = _compile(recorder, lambda s: repo.save(1, "x"))
        assert compiled.args == (EqMatcher(1), EqMatcher("x"))

    @pytest.mark.parametrize(
        "subset",
        [frozenset(s) for n in range(4) for s in itertools.combinations(range(3), n)],
    )
    def test_matcher_subset_binds_by_position(self, recorder, subset):
        repo = mock(Repo)
        literals = (7, "lit", _TOKEN)
        classes = (int, str, object)

        def block(s):
            args = [
                s.any(classes[n]) if n in subset else literals[n]
                for n in range(3)
            ]
            repo.link(*args)

        (compiled,) = _compile(recorder, block)
        expected = tuple(
            ConstantMatcher(True) if n in subset else EqMatcher(literals[n])
            for n in range(3)
        )
        assert compiled.args == expected

    def test_any_tuple_is_told_apart_from_empty_tuple_literal(self, recorder):
        repo = mock(Repo)
        (compiled,) = _compile(recorder, lambda s: repo.put((), s.any(tuple)))
        assert compiled.args == (EqMatcher(()), ConstantMatcher(True))

    def test_two_attempts_compile_equal(self, recorder):
        repo = mock(Repo)

        def block(s):
            repo.save(s.match(_IS_EVEN, int), "v")
            repo.load(s.any(int))

        assert _compile(recorder, block) == _compile(recorder, block)

    def test_zero_calls_fail(self):
        with pytest.raises(UsageError, match="No calls inside every/verify block"):
            every(lambda s: None)

    def test_varying_call_count_fails(self):
        repo = mock(Repo)
        rounds = itertools.count()

        def block(s):
            if next(rounds) % 2:
                repo.load(1)
            repo.load(2)

        with pytest.raises(UsageError, match="same amount of calls"):
            every(block)

    def test_varying_matcher_count_fails(self):
        repo = mock(Repo)
        rounds = itertools.count()

        def block(s):
            key = s.any(int) if next(rounds) % 2 else 5
            repo.load(key)

        with pytest.raises(UsageError, match="same number of matchers"):
            verify(block)

    def test_matcher_outside_call_position_fails(self):
        repo = mock(Repo)

        def block(s):
            s.any(int)
            repo.load(3)

        with pytest.raises(UsageError, match="Failed to find few matchers by signature"):
            every(block)

    def test_more_matchers_than_arguments_fails(self):
        repo = mock(Repo)

        def block(s):
            s.any(int)
            s.any(int)
            repo.load(s.any(int))

        with pytest.raises(UsageError, match="More matchers than arguments"):
            every(block)


# ---------------------------------------------------------------------------
# STUBBING
# ---------------------------------------------------------------------------

class TestStubbing:

    def test_eq_stub_and_type_default(self):
        repo = mock(Repo)
        every(lambda s: repo.load(s.eq(3))).returns(5)
        assert repo.load(3) == 5
        assert repo.load(4) == 0

    def test_literal_stub(self):
        repo = mock(Repo)
        every(lambda s: repo.save(1, "x")).returns(True)
        assert repo.save(1, "x") is True
        assert repo.save(1, "y") is False

    def test_any_and_match(self):
        repo = mock(Repo)
        every(lambda s: repo.load(s.match(lambda v: v > 100, int))).returns(1)
        every(lambda s: repo.load(s.any(int))).returns(2)
        assert repo.load(101) == 1
        assert repo.load(5) == 2

    def test_match_accepts_matcher_instance(self):
        repo = mock(Repo)
        every(lambda s: repo.load(s.match(_IS_EVEN, int))).returns(9)
        assert repo.load(4) == 9
        assert repo.load(3) == 0

    def test_any_tuple_binds_to_its_own_position(self):
        repo = mock(Repo)
        every(lambda s: repo.put((), s.any(tuple))).returns(5)
        assert repo.put((), (1, 2)) == 5
        assert repo.put((9,), ()) == 0

    def test_two_any_tuple_matchers_in_one_call(self):
        repo = mock(Repo)
        every(lambda s: repo.put(s.any(tuple), s.any(tuple))).returns(7)
        assert repo.put((1,), (2,)) == 7
        assert repo.put((), ()) == 7

    def test_first_registered_answer_wins(self):
        repo = mock(Repo)
        every(lambda s: repo.load(s.any(int))).returns(1)
        every(lambda s: repo.load(s.eq(3))).returns(2)
        assert repo.load(3) == 1

    def test_capture_records_real_argument(self):
        repo = mock(Repo)
        keys: List[int] = []
        every(lambda s: repo.save(s.capture(keys, int), "v")).returns(True)
        repo.save(11, "v")
        repo.save(12, "other")
        repo.save(13, "v")
        assert keys == [11, 13]
        assert captured(keys) == 13

    def test_answer_scope(self):
        repo = mock(Repo)
        seen = []

        def answer(call):
            seen.append((call.self_, call.method.name, call.args, call.n_args))
            seen.append((call.first_arg(), call.second_arg(), call.third_arg(), call.last_arg()))

        every(lambda s: repo.link(s.any(int), s.any(str), s.any())).answers(answer)
        repo.link(1, "b", _TOKEN)
        assert seen == [(repo, "link", (1, "b", _TOKEN), 3), (1, "b", _TOKEN, _TOKEN)]

    def test_answers_with_answer_instance(self):
        repo = mock(Repo)
        every(lambda s: repo.load(s.any(int))).answers(ConstantAnswer(42))
        assert repo.load(0) == 42

    def test_answer_exception_propagates(self):
        repo = mock(Repo)

        def boom(call):
            raise KeyError(call.first_arg())

        every(lambda s: repo.load(s.any(int))).answers(boom)
        with pytest.raises(KeyError):
            repo.load(1)

    def test_keyword_arguments(self):
        repo = mock(Repo)
        every(lambda s: repo.find(name=s.any(str))).returns(["hit"])
        assert repo.find("z") == ["hit"]
        assert repo.find(name="z", limit=10) == ["hit"]
        assert repo.find("z", limit=3) == []

    def test_chained_calls(self):
        repo = mock(Repo)
        every(lambda s: repo.part().weight()).returns(2.5)
        assert repo.part().weight() == 2.5

    def test_unspecced_chained_calls(self):
        service = mock()
        every(lambda s: service.session().user(s.eq("ann"))).returns("admin")
        assert service.session().user("ann") == "admin"

    def test_spy_stub_overrides_real_method(self):
        counter = spy(Counter())
        every(lambda s: counter.bump(s.eq(100))).returns(-1)
        assert counter.bump(100) == -1
        assert counter.bump(1) == 4

    def test_spied_obj_in_answer(self):
        real = Counter()
        counter = spy(real)
        every(lambda s: counter.value()).answers(lambda call: call.spied_obj().value() * 10)
        assert counter.value() == 30

    def test_spied_obj_on_mock_fails(self):
        repo = mock(Repo)
        every(lambda s: repo.load(s.any(int))).answers(lambda call: call.spied_obj())
        with pytest.raises(UsageError, match="only for spies"):
            repo.load(1)


# ---------------------------------------------------------------------------
# VERIFICATION
# ---------------------------------------------------------------------------

class TestVerification:

    def test_unordered_passes(self):
        repo = mock(Repo)
        repo.save(1, "x")
        repo.load(2)
        verify(lambda s: (repo.load(s.any(int)), repo.save(1, s.any(str))))

    def test_unordered_missing_call_names_matcher(self):
        repo = mock(Repo, name="repo")
        repo.load(2)
        with pytest.raises(VerificationError) as info:
            verify(lambda s: (repo.load(2), repo.save(1, "x")))
        assert info.value.message == "Verification failed, matcher: repo.save(eq(1), eq('x'))"

    def test_inverse(self):
        repo = mock(Repo, name="repo")
        repo.load(2)
        verify(lambda s: repo.load(3), inverse=True)
        with pytest.raises(VerificationError) as info:
            verify(lambda s: repo.load(2), inverse=True)
        assert info.value.matcher is not None
        assert info.value.message == "Inverse verification failed, matcher: repo.load(eq(2))"

    def test_sequence_order(self):
        repo = mock(Repo, name="repo")
        repo.load(1)
        repo.save(2, "b")
        verify_sequence(lambda s: (repo.load(1), repo.save(2, "b")))
        with pytest.raises(VerificationError) as info:
            verify_sequence(lambda s: (repo.save(2, "b"), repo.load(1)))
        assert info.value.matcher is not None
        assert info.value.message == "Verification failed, matcher: repo.save(eq(2), eq('b'))"

    def test_sequence_extra_call_names_last_matcher(self):
        repo = mock(Repo, name="repo")
        repo.load(1)
        repo.save(2, "b")
        with pytest.raises(VerificationError) as info:
            verify_sequence(lambda s: repo.load(1))
        assert info.value.matcher is not None
        assert info.value.message == (
            "Verification failed, matcher: repo.load(eq(1)) (expected 1 calls, recorded 2)"
        )

    def test_sequence_missing_call_names_unmatched_matcher(self):
        repo = mock(Repo, name="repo")
        repo.load(1)
        with pytest.raises(VerificationError) as info:
            verify_sequence(lambda s: (repo.load(1), repo.save(2, "b")))
        assert info.value.message == (
            "Verification failed, matcher: repo.save(eq(2), eq('b')) (expected 2 calls, recorded 1)"
        )

    def test_sequence_inverse(self):
        repo = mock(Repo, name="repo")
        repo.load(1)
        verify_sequence(lambda s: repo.load(2), inverse=True)
        with pytest.raises(VerificationError) as info:
            verify_sequence(lambda s: repo.load(1), inverse=True)
        assert info.value.matcher is not None
        assert info.value.message == "Inverse verification failed, matcher: repo.load(eq(1))"

    def test_ordered_is_not_implemented(self):
        repo = mock(Repo)
        repo.load(1)
        with pytest.raises(VerificationError, match="not implemented"):
            verify_order(lambda s: repo.load(1))

    def test_eq_on_double_arguments(self):
        repo = mock(Repo)
        part = mock(Part)
        loose = mock()
        repo.link(1, "a", part)
        verify(lambda s: repo.link(1, "a", s.eq(part)))
        verify(lambda s: repo.link(1, "a", s.eq(loose)), inverse=True)

    def test_eq_on_array_arguments(self):
        repo = mock(Repo)
        repo.link(1, "a", np.array([1, 2]))
        verify(lambda s: repo.link(1, "a", np.array([1, 2])))
        verify(lambda s: repo.link(1, "a", s.eq(np.array([1, 2]))))
        verify(lambda s: repo.link(1, "a", np.array([1, 3])), inverse=True)
        verify(lambda s: repo.link(1, "a", np.array([1, 2, 3])), inverse=True)

    def test_deferred_trailing_argument_matches_anything(self):
        repo = mock(Repo)
        repo.later(1, lambda: None)
        verify(lambda s: repo.later(1, None))
        verify(lambda s: repo.later(2, None), inverse=True)

    def test_verification_does_not_record(self):
        repo = mock(Repo)
        repo.load(1)
        verify(lambda s: repo.load(1))
        verify_sequence(lambda s: repo.load(1))


# ---------------------------------------------------------------------------
# RECOVERY
# ---------------------------------------------------------------------------

class TestRecovery:

    def test_failed_attempt_leaves_recorder_usable(self, recorder):
        repo = mock(Repo)
        with pytest.raises(UsageError):
            every(lambda s: None)
        assert recorder.mode is Mode.ANSWERING
        every(lambda s: repo.load(s.eq(3))).returns(5)
        assert repo.load(3) == 5

    def test_exception_in_block_resets(self, recorder):
        def block(s):
            raise RuntimeError("block failed")

        with pytest.raises(RuntimeError):
            every(block)
        assert recorder.mode is Mode.ANSWERING

    def test_nested_every_is_refused(self, recorder):
        repo = mock(Repo)

        def block(s):
            every(lambda inner: repo.load(1))

        with pytest.raises(UsageError, match="Bad recording sequence"):
            every(block)
        assert recorder.mode is Mode.ANSWERING

    def test_failed_verification_leaves_recorder_usable(self, recorder):
        repo = mock(Repo)
        with pytest.raises(VerificationError):
            verify(lambda s: repo.load(1))
        assert recorder.mode is Mode.ANSWERING
        repo.load(1)
        verify(lambda s: repo.load(1))


# ---------------------------------------------------------------------------
# CONCURRENCY
# ---------------------------------------------------------------------------

class TestConcurrency:

    def test_async_stub_and_verify(self):
        repo = mock(Repo)

        async def scenario():
            (await every_async(lambda s: repo.fetch(s.eq("k")))).returns("v")
            first = await repo.fetch("k")
            other = await repo.fetch("x")
            await verify_async(lambda s: repo.fetch(s.any(str)))
            return first, other

        assert asyncio.run(scenario()) == ("v", "")

    def test_coroutine_block_in_sync_every(self):
        repo = mock(Repo)

        async def block(s):
            await repo.fetch(s.eq("k"))

        every(block).returns("v")
        assert asyncio.run(repo.fetch("k")) == "v"

    def test_async_answer_exception_surfaces_on_await(self):
        repo = mock(Repo)

        def boom(call):
            raise LookupError(call.first_arg())

        every(lambda s: repo.fetch(s.any(str))).answers(boom)
        pending = repo.fetch("k")
        with pytest.raises(LookupError):
            asyncio.run(pending)

    def test_async_spy_awaits_real_method(self):
        repo = spy(Repo())
        assert asyncio.run(repo.fetch("real")) == "real"

    def test_coroutine_block_inside_running_loop_fails(self):
        repo = mock(Repo)

        async def block(s):
            await repo.fetch(s.eq("k"))

        async def scenario():
            with pytest.raises(UsageError, match="every_async"):
                every(block)

        asyncio.run(scenario())

    def test_concurrent_tasks_stub_independently(self):
        async def stub_and_call(key: int):
            repo = mock(Repo)
            (await every_async(lambda s: repo.load(s.eq(key)))).returns(key * 10)
            await asyncio.sleep(0)
            return repo.load(key)

        async def main():
            return await asyncio.gather(*(stub_and_call(k) for k in range(5)))

        assert asyncio.run(main()) == [0, 10, 20, 30, 40]

    def test_threads_stub_independently(self):
        results = {}
        failures = []

        def worker(key: int):
            try:
                repo = mock(Repo)
                every(lambda s: repo.load(s.eq(key))).returns(key + 1000)
                verify(lambda s: repo.load(key), inverse=True)
                results[key] = repo.load(key)
            except Exception as exc:
                failures.append(exc)

        threads = [threading.Thread(target=worker, args=(k,)) for k in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert failures == []
        assert results == {k: k + 1000 for k in range(6)}
