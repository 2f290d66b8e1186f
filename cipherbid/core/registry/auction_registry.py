"""
Auction Registry - Owner of auction records and the id counter.

This module provides:
- The Auction record (one per id, replaced whole, never deleted)
- Auction creation: id allocation, initial encryption, core grants
- Read-only queries that never grant anything

Ids are dense and strictly increasing from 1. There is no auction 0.
"""

from dataclasses import dataclass, replace
from typing import Dict, Optional

from cipherbid.crypto import ZERO_ADDRESS, normalize_address
from cipherbid.core.acl.grant_manager import CapabilityGrantManager, GrantBatch
from cipherbid.core.clock import Clock, system_clock
from cipherbid.core.events import AuctionCreated, EventLog
from cipherbid.engine.base import EncryptedEngine
from cipherbid.engine.handles import FheType, Handle
from cipherbid.errors import NotFound
from cipherbid.utils.logger import get_logger
from cipherbid.utils.validation import MAX_AUCTION_ID, validate_start_price

logger = get_logger("registry")


# =============================================================================
# Data Structures
# =============================================================================


@dataclass(frozen=True)
class Auction:
    """
    A sealed-bid auction.

    Attributes:
        auction_id: Sequential identifier starting at 1
        name: Public label
        created_at: Orchestrator time at creation (public)
        start_price: Encrypted uint32, never replaced
        highest_bid: Encrypted uint32 leader value
        highest_bidder: Encrypted address of the leader
        last_bid_time: Encrypted uint64 time the leader was accepted
        exists: Existence marker, always True once created
    """
    auction_id: int
    name: str
    created_at: int
    start_price: Handle
    highest_bid: Handle
    highest_bidder: Handle
    last_bid_time: Handle
    exists: bool = True

    def with_leader(
        self,
        highest_bid: Handle,
        highest_bidder: Handle,
        last_bid_time: Handle,
    ) -> "Auction":
        """New record with all three leader fields replaced together."""
        return replace(
            self,
            highest_bid=highest_bid,
            highest_bidder=highest_bidder,
            last_bid_time=last_bid_time,
        )

    def to_row(self) -> tuple:
        return (
            self.auction_id,
            self.name,
            self.created_at,
            self.start_price.handle_id,
            self.highest_bid.handle_id,
            self.highest_bidder.handle_id,
            self.last_bid_time.handle_id,
        )

    @classmethod
    def from_row(cls, row: tuple) -> "Auction":
        auction_id, name, created_at, start, bid, bidder, last = row
        return cls(
            auction_id=auction_id,
            name=name,
            created_at=created_at,
            start_price=Handle(bytes(start)),
            highest_bid=Handle(bytes(bid)),
            highest_bidder=Handle(bytes(bidder)),
            last_bid_time=Handle(bytes(last)),
        )


@dataclass(frozen=True)
class AuctionInfo:
    """Public facts about an auction."""
    name: str
    created_at: int


# =============================================================================
# Auction Registry
# =============================================================================


class AuctionRegistry:
    """
    Explicitly owned store of auctions.

    Every record change is a whole-record replace, persisted (when storage
    is attached) in the same transaction as the grants it requires.
    """

    def __init__(
        self,
        engine: EncryptedEngine,
        grants: CapabilityGrantManager,
        core_address: str,
        clock: Clock = system_clock,
        events: Optional[EventLog] = None,
        storage_manager=None,
    ):
        """
        Initialize the registry.

        Args:
            engine: Encrypted-arithmetic engine
            grants: Capability grant manager
            core_address: Identity of the orchestrator itself
            clock: Time source for created_at / initial bid time
            events: Notification sink
            storage_manager: Persistence manager. None = in-memory only.
        """
        self.engine = engine
        self.grants = grants
        self.core_address = normalize_address(core_address)
        self.clock = clock
        self.events = events if events is not None else EventLog()
        self.storage_manager = storage_manager

        self._auctions: Dict[int, Auction] = {}
        self._next_id = 1

        if storage_manager:
            self._load_from_storage()

    def _load_from_storage(self) -> None:
        for row in self.storage_manager.load_auctions():
            auction = Auction.from_row(row)
            self._auctions[auction.auction_id] = auction

        stored_next = self.storage_manager.get_next_auction_id()
        if stored_next is not None:
            self._next_id = stored_next
        elif self._auctions:
            self._next_id = max(self._auctions) + 1

        logger.info(f"Loaded {len(self._auctions)} auctions (next id {self._next_id})")

    # =========================================================================
    # Creation
    # =========================================================================

    def create_auction(self, name: str, start_price: int) -> int:
        """
        Create an auction and return its id.

        Args:
            name: Public label (any string, including empty)
            start_price: Plaintext uint32 opening price

        Returns:
            The new auction id

        Raises:
            ValueError: If start_price is not a uint32
            OverflowError: If the id space is exhausted
        """
        if not isinstance(name, str):
            raise ValueError(f"name must be str, got {type(name).__name__}")
        valid, err = validate_start_price(start_price)
        if not valid:
            raise ValueError(err)
        if self._next_id > MAX_AUCTION_ID:
            raise OverflowError("Auction id space exhausted")

        auction_id = self._next_id
        now = self.clock()

        with self.engine.transient_scope():
            encrypted_start = self.engine.encrypt(start_price, FheType.EUINT32)
            no_bidder = self.engine.encrypt(ZERO_ADDRESS, FheType.EADDRESS)
            created_time = self.engine.encrypt(now, FheType.EUINT64)

            auction = Auction(
                auction_id=auction_id,
                name=name,
                created_at=now,
                start_price=encrypted_start,
                highest_bid=encrypted_start,
                highest_bidder=no_bidder,
                last_bid_time=created_time,
            )

            batch = self.grants.batch().add_all(
                [auction.start_price, auction.highest_bid, auction.highest_bidder, auction.last_bid_time],
                self.core_address,
            )
            self._store(auction, batch, creating=True)

        logger.info(f"Auction {auction_id} created: '{name}'")
        self.events.emit(AuctionCreated(auction_id=auction_id, name=name))
        return auction_id

    # =========================================================================
    # Record replacement
    # =========================================================================

    def _store(self, auction: Auction, batch: GrantBatch, creating: bool) -> None:
        if self.storage_manager:
            if creating:
                self.storage_manager.persist_auction_creation(
                    auction.to_row(), batch.pairs(), next_auction_id=auction.auction_id + 1
                )
            else:
                self.storage_manager.persist_auction_update(auction.to_row(), batch.pairs())

        self._auctions[auction.auction_id] = auction
        if creating:
            self._next_id = auction.auction_id + 1
        batch.commit()

    def replace(self, auction: Auction, batch: GrantBatch) -> None:
        """
        Swap in a new version of an existing record with its grants.

        Raises:
            NotFound: If the auction does not exist
        """
        self.require(auction.auction_id)
        self._store(auction, batch, creating=False)

    # =========================================================================
    # Lookup
    # =========================================================================

    def exists(self, auction_id: int) -> bool:
        auction = self._auctions.get(auction_id)
        return auction is not None and auction.exists

    def require(self, auction_id: int) -> Auction:
        """
        Get an auction or fail.

        Raises:
            NotFound: If no record exists for auction_id
        """
        auction = self._auctions.get(auction_id)
        if auction is None or not auction.exists:
            raise NotFound(auction_id)
        return auction

    def get_auction_info(self, auction_id: int) -> AuctionInfo:
        auction = self.require(auction_id)
        return AuctionInfo(name=auction.name, created_at=auction.created_at)

    def get_encrypted_highest_bid(self, auction_id: int) -> Handle:
        return self.require(auction_id).highest_bid

    def get_encrypted_highest_bidder(self, auction_id: int) -> Handle:
        return self.require(auction_id).highest_bidder

    def get_encrypted_last_bid_time(self, auction_id: int) -> Handle:
        return self.require(auction_id).last_bid_time

    def auction_count(self) -> int:
        """Number of auctions created so far (equals the highest id)."""
        return self._next_id - 1

    def __len__(self) -> int:
        return len(self._auctions)


# =============================================================================
# Module Exports
# =============================================================================

__all__ = [
    "Auction",
    "AuctionInfo",
    "AuctionRegistry",
]
