# tests/conftest.py
# Shared fixtures. Every test runs against its own seeded Gateway so
# recorder state and signature draws never leak between tests.

import pytest

from callsign.gateway import Gateway


@pytest.fixture(autouse=True)
def gateway():
    """Fresh process-wide Gateway, seeded for reproducible signatures."""
    gw = Gateway(seed=20240501)
    Gateway.install(gw)
    yield gw
    Gateway.install(None)


@pytest.fixture
def recorder(gateway):
    """CallRecorder bound to the current thread."""
    return gateway.bind_call_recorder()
