# usage_example.py
# Minimal usage example for the callsign stub/verify DSL.
# This file is not part of the callsign package. For reference only.

from typing import List, Optional

from callsign import VerificationError, captured, every, mock, verify, verify_sequence


class PriceFeed:
    def quote(self, symbol: str, venue: str) -> float:
        raise NotImplementedError

    def subscribe(self, symbol: str) -> Optional[int]:
        raise NotImplementedError


# Stub
feed = mock(PriceFeed)
every(lambda s: feed.quote(s.any(str), "XNYS")).returns(101.5)
every(lambda s: feed.quote("BTC", s.any(str))).answers(lambda call: len(call.first_arg()) * 1000.0)

symbols: List[str] = []
every(lambda s: feed.subscribe(s.capture(symbols, str))).returns(7)

# Exercise
print(f"AAPL@XNYS: {feed.quote('AAPL', 'XNYS')}")
print(f"BTC@CB:    {feed.quote('BTC', 'CB')}")
print(f"ETH@CB:    {feed.quote('ETH', 'CB')}")
print(f"subscribe: {feed.subscribe('ETH')}")

# Verify
verify(lambda s: feed.quote(s.eq("BTC"), s.any(str)))
print(f"captured:  {captured(symbols)}")

try:
    verify_sequence(lambda s: feed.subscribe("ETH"))
except VerificationError as exc:
    print(f"sequence:  {exc.message}")

# Expected output:
# AAPL@XNYS: 101.5
# BTC@CB:    3000.0
# ETH@CB:    0.0
# subscribe: 7
# captured:  ETH
# sequence:  Verification failed, matcher: mock<PriceFeed>().subscribe(eq('ETH')) (expected 1 calls, recorded 4)
