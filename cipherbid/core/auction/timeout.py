"""
Timeout Finalizer - Encrypted "ended" flag, recomputed on every call.

ended = (last_bid_time + window) <= now

The check is advisory. Nothing transitions an auction to a closed state
and bids are still evaluated after the window has elapsed.
"""

from cipherbid.core.acl.grant_manager import CapabilityGrantManager
from cipherbid.core.clock import Clock, system_clock
from cipherbid.core.config import INACTIVITY_WINDOW
from cipherbid.core.registry.auction_registry import AuctionRegistry
from cipherbid.engine.base import EncryptedEngine
from cipherbid.engine.handles import FheType, Handle
from cipherbid.utils.logger import get_logger

logger = get_logger("timeout")


class TimeoutFinalizer:
    """Derives the encrypted inactivity flag for an auction."""

    def __init__(
        self,
        registry: AuctionRegistry,
        engine: EncryptedEngine,
        grants: CapabilityGrantManager,
        clock: Clock = system_clock,
        window: int = INACTIVITY_WINDOW,
    ):
        if window <= 0:
            raise ValueError(f"window must be positive, got {window}")
        self.registry = registry
        self.engine = engine
        self.grants = grants
        self.clock = clock
        self.window = window

    def check_ended(self, auction_id: int, caller: str) -> Handle:
        """
        Compute whether the inactivity window has elapsed.

        Args:
            auction_id: Target auction
            caller: Principal granted on the result

        Returns:
            Encrypted boolean, decryptable by caller

        Raises:
            NotFound: If the auction does not exist
        """
        auction = self.registry.require(auction_id)

        with self.engine.transient_scope():
            window = self.engine.encrypt(self.window, FheType.EUINT64)
            deadline = self.engine.add(auction.last_bid_time, window)
            now = self.engine.encrypt(self.clock(), FheType.EUINT64)
            ended = self.engine.compare_less_or_equal(deadline, now)

            self.grants.grant(ended, caller)

        logger.debug(f"Ended flag computed for auction {auction_id} by {caller}")
        return ended


__all__ = ["TimeoutFinalizer"]
