"""
Tests for the advisory inactivity timeout.
"""

import pytest

from cipherbid.core.acl import CapabilityGrantManager
from cipherbid.core.auction import BidEvaluator, TimeoutFinalizer
from cipherbid.core.clock import ManualClock
from cipherbid.core.config import INACTIVITY_WINDOW
from cipherbid.core.registry import AuctionRegistry
from cipherbid.engine import EncryptedInput, FheType, MockEngine
from cipherbid.errors import AccessDenied, NotFound


CORE = "0x" + "c0" * 20
ALICE = "0x" + "a1" * 20
BOB = "0x" + "b0" * 20
T0 = 1_700_000_000


@pytest.fixture
def clock():
    return ManualClock(now=T0)


@pytest.fixture
def engine():
    return MockEngine(operator=CORE)


@pytest.fixture
def registry(engine, clock):
    registry = AuctionRegistry(engine, CapabilityGrantManager(engine), core_address=CORE, clock=clock)
    registry.create_auction("Widget", 100)
    return registry


@pytest.fixture
def finalizer(registry, engine, clock):
    return TimeoutFinalizer(registry, engine, registry.grants, clock=clock)


def ended(finalizer, engine, caller=ALICE, auction_id=1):
    return engine.request_decrypt(finalizer.check_ended(auction_id, caller), caller)


class TestCheckEnded:
    """Tests for the ended flag."""

    def test_default_window(self, finalizer):
        assert finalizer.window == INACTIVITY_WINDOW == 600

    def test_fresh_auction_not_ended(self, finalizer, engine):
        assert ended(finalizer, engine) is False

    def test_boundary_is_inclusive(self, finalizer, engine, clock):
        clock.set(T0 + INACTIVITY_WINDOW - 1)
        assert ended(finalizer, engine) is False
        clock.set(T0 + INACTIVITY_WINDOW)
        assert ended(finalizer, engine) is True

    def test_result_granted_to_caller_only(self, finalizer, engine, registry):
        result = finalizer.check_ended(1, ALICE)
        assert result.fhe_type == FheType.EBOOL
        assert registry.grants.is_granted(result, ALICE)
        with pytest.raises(AccessDenied):
            engine.request_decrypt(result, BOB)

    def test_recomputed_each_call(self, finalizer, engine, clock):
        first = finalizer.check_ended(1, ALICE)
        second = finalizer.check_ended(1, ALICE)
        assert first != second

        clock.set(T0 + 10_000)
        assert ended(finalizer, engine) is True
        clock.set(T0 + 1)
        assert ended(finalizer, engine) is False

    def test_does_not_modify_record(self, finalizer, registry, clock):
        before = registry.require(1)
        clock.set(T0 + 10_000)
        finalizer.check_ended(1, ALICE)
        assert registry.require(1) == before

    def test_unknown_auction(self, finalizer):
        with pytest.raises(NotFound):
            finalizer.check_ended(999, ALICE)

    def test_custom_window(self, registry, engine, clock):
        finalizer = TimeoutFinalizer(registry, engine, registry.grants, clock=clock, window=30)
        clock.set(T0 + 30)
        assert ended(finalizer, engine) is True

    @pytest.mark.parametrize("window", [0, -5])
    def test_invalid_window(self, registry, engine, window):
        with pytest.raises(ValueError):
            TimeoutFinalizer(registry, engine, registry.grants, window=window)


class TestLeaderResetsTimer:
    """Tests for the interaction with bids."""

    def test_new_leader_restarts_window(self, finalizer, registry, engine, clock):
        evaluator = BidEvaluator(registry, engine, registry.grants, core_address=CORE, clock=clock)
        clock.set(T0 + 500)
        bundle = EncryptedInput(engine, CORE, BOB).add32(200).encrypt()
        evaluator.bid(1, bundle.handles[0], bundle.input_proof, caller=BOB)

        clock.set(T0 + 700)
        assert ended(finalizer, engine) is False
        clock.set(T0 + 1100)
        assert ended(finalizer, engine) is True

    def test_losing_bid_does_not_restart_window(self, finalizer, registry, engine, clock):
        evaluator = BidEvaluator(registry, engine, registry.grants, core_address=CORE, clock=clock)
        clock.set(T0 + 500)
        bundle = EncryptedInput(engine, CORE, BOB).add32(50).encrypt()
        evaluator.bid(1, bundle.handles[0], bundle.input_proof, caller=BOB)

        clock.set(T0 + 600)
        assert ended(finalizer, engine) is True
