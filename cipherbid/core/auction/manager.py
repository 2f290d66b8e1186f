"""
Encrypted Auction Manager - Caller-facing operation surface.

This module combines:
- AuctionRegistry for records and creation
- CapabilityGrantManager for decryption rights
- BidEvaluator for oblivious leader updates
- TimeoutFinalizer for the advisory ended flag
- EventLog for notifications

The manager has no threads or locks. The host is expected to serialize
calls; each call either commits fully or raises with no state change.
"""

from typing import Optional

from cipherbid.crypto import generate_keypair, normalize_address
from cipherbid.core.acl.grant_manager import CapabilityGrantManager
from cipherbid.core.auction.bid_evaluator import BidEvaluator
from cipherbid.core.auction.timeout import TimeoutFinalizer
from cipherbid.core.clock import Clock, system_clock
from cipherbid.core.config import AuctionConfig
from cipherbid.core.events import EventHandler, EventLog
from cipherbid.core.registry.auction_registry import AuctionInfo, AuctionRegistry
from cipherbid.engine.base import EncryptedEngine
from cipherbid.engine.handles import Handle
from cipherbid.engine.mock import MockEngine
from cipherbid.utils.logger import get_logger

logger = get_logger("manager")

# chain_state key for the orchestrator's own address
META_CORE_ADDRESS = "core_address"


class EncryptedAuctionManager:
    """
    Unified manager for sealed-bid auctions over an encrypted engine.

    Attributes:
        address: Identity of the orchestrator (the principal that must be
            granted on every handle it reads again)
    """

    def __init__(
        self,
        engine: Optional[EncryptedEngine] = None,
        config: Optional[AuctionConfig] = None,
        address: Optional[str] = None,
        clock: Clock = system_clock,
        storage_manager=None,
    ):
        """
        Initialize the manager.

        Args:
            engine: Encrypted-arithmetic engine. Defaults to a MockEngine.
            config: Process-wide configuration
            address: Orchestrator identity. Loaded from storage or generated.
            clock: Time source
            storage_manager: Persistence manager. None = in-memory only.
        """
        self.config = config or AuctionConfig()
        self.storage_manager = storage_manager
        self.address = self._resolve_address(address)
        self.engine = engine or MockEngine(storage_manager=storage_manager)
        self.clock = clock
        self.events = EventLog()

        self.grants = CapabilityGrantManager(self.engine, storage_manager=storage_manager)
        self.registry = AuctionRegistry(
            engine=self.engine,
            grants=self.grants,
            core_address=self.address,
            clock=clock,
            events=self.events,
            storage_manager=storage_manager,
        )
        self.evaluator = BidEvaluator(
            registry=self.registry,
            engine=self.engine,
            grants=self.grants,
            core_address=self.address,
            clock=clock,
            events=self.events,
        )
        self.finalizer = TimeoutFinalizer(
            registry=self.registry,
            engine=self.engine,
            grants=self.grants,
            clock=clock,
            window=self.config.inactivity_window,
        )

        logger.info(f"EncryptedAuctionManager initialized at {self.address}")

    def _resolve_address(self, address: Optional[str]) -> str:
        stored = self.storage_manager.get_meta(META_CORE_ADDRESS) if self.storage_manager else None

        if address is not None:
            address = normalize_address(address)
            if stored and stored != address:
                raise ValueError(f"Storage belongs to orchestrator {stored}, not {address}")
        else:
            address = stored or generate_keypair().address

        if self.storage_manager and not stored:
            self.storage_manager.set_meta(META_CORE_ADDRESS, address)
        return address

    # =========================================================================
    # Operations
    # =========================================================================

    def create_auction(self, name: str, start_price: int) -> int:
        """Create an auction. See AuctionRegistry.create_auction."""
        return self.registry.create_auction(name, start_price)

    def bid(self, auction_id: int, external_handle, proof: bytes, caller: str) -> Handle:
        """Submit an encrypted bid. See BidEvaluator.bid."""
        return self.evaluator.bid(auction_id, external_handle, proof, caller)

    def check_ended(self, auction_id: int, caller: str) -> Handle:
        """Compute the encrypted ended flag. See TimeoutFinalizer.check_ended."""
        return self.finalizer.check_ended(auction_id, caller)

    # =========================================================================
    # Queries
    # =========================================================================

    def get_auction_info(self, auction_id: int) -> AuctionInfo:
        return self.registry.get_auction_info(auction_id)

    def get_encrypted_highest_bid(self, auction_id: int) -> Handle:
        return self.registry.get_encrypted_highest_bid(auction_id)

    def get_encrypted_highest_bidder(self, auction_id: int) -> Handle:
        return self.registry.get_encrypted_highest_bidder(auction_id)

    def get_encrypted_last_bid_time(self, auction_id: int) -> Handle:
        return self.registry.get_encrypted_last_bid_time(auction_id)

    def auction_count(self) -> int:
        return self.registry.auction_count()

    # =========================================================================
    # Notifications
    # =========================================================================

    def subscribe(self, handler: EventHandler) -> None:
        self.events.subscribe(handler)

    def stats(self) -> dict:
        return {
            "address": self.address,
            "auctions": self.registry.auction_count(),
            "events": len(self.events),
            "inactivity_window": self.finalizer.window,
            **self.grants.stats(),
        }


__all__ = ["EncryptedAuctionManager", "META_CORE_ADDRESS"]
