# tests/unit/gateway/test_gateway.py
# Target: callsign/gateway.py

import asyncio
import threading

import pytest

from callsign.core.matchers import ConstantMatcher
from callsign.gateway import Gateway
from callsign.recording.call_recorder import Mode
from callsign.verification.verifiers import (
    Ordering,
    OrderedVerifier,
    SequenceVerifier,
    UnorderedVerifier,
)


class TestConstruction:

    def test_defaults(self):
        gw = Gateway()
        assert gw.n_call_rounds == 64
        assert gw.seed is None

    @pytest.mark.parametrize("bad", [0, -1, 2.5, "64"])
    def test_bad_rounds_raise(self, bad):
        with pytest.raises(ValueError, match="n_call_rounds"):
            Gateway(n_call_rounds=bad)

    def test_verifier_lookup(self):
        gw = Gateway()
        assert isinstance(gw.verifier(Ordering.UNORDERED), UnorderedVerifier)
        assert isinstance(gw.verifier(Ordering.ORDERED), OrderedVerifier)
        assert isinstance(gw.verifier(Ordering.SEQUENCE), SequenceVerifier)


class TestLocator:

    def test_locate_returns_installed(self, gateway):
        assert Gateway.locate() is gateway

    def test_install_none_gives_fresh_default(self, gateway):
        Gateway.install(None)
        fresh = Gateway.locate()
        assert fresh is not gateway
        assert Gateway.locate() is fresh


class TestRecorderConfinement:

    def test_same_thread_reuses_recorder(self, gateway):
        assert gateway.bind_call_recorder() is gateway.bind_call_recorder()
        assert gateway.call_recorder is gateway.bind_call_recorder()

    def test_other_thread_gets_own_recorder(self, gateway):
        mine = gateway.bind_call_recorder()
        mine.start_stubbing()
        seen = []

        def worker():
            recorder = gateway.bind_call_recorder()
            seen.append((recorder, recorder.mode))

        thread = threading.Thread(target=worker)
        thread.start()
        thread.join()
        theirs, mode = seen[0]
        assert theirs is not mine
        assert mode is Mode.ANSWERING
        assert mine.mode is Mode.STUBBING

    def test_tasks_get_own_recorders(self, gateway):
        async def bind():
            await asyncio.sleep(0)
            return gateway.bind_call_recorder()

        async def main():
            return await asyncio.gather(bind(), bind())

        a, b = asyncio.run(main())
        assert a is not b

    def test_thread_recorder_serves_spawned_tasks(self, gateway):
        outer = gateway.bind_call_recorder()

        async def lookup():
            return gateway.call_recorder

        assert asyncio.run(lookup()) is outer

    def test_recorder_of_other_gateway_is_ignored(self, gateway):
        first = gateway.bind_call_recorder()
        other = Gateway()
        assert other.bind_call_recorder() is not first
        assert other.bind_call_recorder().gateway is other

    def test_seed_reaches_recorders(self):
        a = Gateway(seed=5).bind_call_recorder()
        b = Gateway(seed=5).bind_call_recorder()
        a.start_verification()
        b.start_verification()
        assert a.register(ConstantMatcher(True), int) == b.register(ConstantMatcher(True), int)
