"""
Bid Evaluation - Oblivious leader update for one bid submission.

Flow:
1. Import the caller's ciphertext (fails closed on a bad proof)
2. is_highest = bid > current leader, as an encrypted boolean
3. Three selects gated by the same is_highest: value, bidder, time
4. Replace the record with all three new handles at once
5. Re-grant the core on the new handles; grant the caller on is_highest
   and on the updated leader fields
6. Emit BidSubmitted (no value data)

The plaintext truth of is_highest is never inspected here. Both outcomes
run exactly the same sequence of engine calls; ties keep the incumbent
because the comparison is strict.
"""

from typing import Union

from cipherbid.crypto import normalize_address
from cipherbid.core.acl.grant_manager import CapabilityGrantManager
from cipherbid.core.clock import Clock, system_clock
from cipherbid.core.events import BidSubmitted, EventLog
from cipherbid.core.registry.auction_registry import AuctionRegistry
from cipherbid.engine.base import EncryptedEngine
from cipherbid.engine.handles import FheType, Handle
from cipherbid.errors import ImportRejected
from cipherbid.utils.logger import get_logger
from cipherbid.utils.validation import validate_external_handle, validate_proof

logger = get_logger("bid")


class BidEvaluator:
    """Runs the bid state machine against the registry."""

    def __init__(
        self,
        registry: AuctionRegistry,
        engine: EncryptedEngine,
        grants: CapabilityGrantManager,
        core_address: str,
        clock: Clock = system_clock,
        events: EventLog = None,
    ):
        self.registry = registry
        self.engine = engine
        self.grants = grants
        self.core_address = normalize_address(core_address)
        self.clock = clock
        self.events = events if events is not None else registry.events

    def bid(
        self,
        auction_id: int,
        external_handle: Union[bytes, Handle],
        proof: bytes,
        caller: str,
    ) -> Handle:
        """
        Evaluate an encrypted bid.

        Args:
            auction_id: Target auction
            external_handle: Caller's input ciphertext handle
            proof: Input proof binding the handle to (core, caller)
            caller: Bidder address

        Returns:
            Encrypted boolean: whether this bid became the leader

        Raises:
            NotFound: If the auction does not exist
            ImportRejected: If the engine rejects the input or it is not EUINT32
        """
        caller = normalize_address(caller)
        auction = self.registry.require(auction_id)

        if isinstance(external_handle, Handle):
            external_handle = external_handle.handle_id
        for valid, err in (validate_external_handle(external_handle), validate_proof(proof)):
            if not valid:
                raise ImportRejected(err)

        with self.engine.transient_scope():
            encrypted_bid = self.engine.import_external(
                external_handle,
                proof,
                contract=self.core_address,
                user=caller,
                expected_type=FheType.EUINT32,
            )

            is_highest = self.engine.compare_greater(encrypted_bid, auction.highest_bid)

            new_highest_bid = self.engine.oblivious_select(
                is_highest, encrypted_bid, auction.highest_bid
            )
            new_highest_bidder = self.engine.oblivious_select(
                is_highest,
                self.engine.encrypt(caller, FheType.EADDRESS),
                auction.highest_bidder,
            )
            new_last_bid_time = self.engine.oblivious_select(
                is_highest,
                self.engine.encrypt(self.clock(), FheType.EUINT64),
                auction.last_bid_time,
            )

            updated = auction.with_leader(new_highest_bid, new_highest_bidder, new_last_bid_time)
            leader_fields = [new_highest_bid, new_highest_bidder, new_last_bid_time]

            batch = (
                self.grants.batch()
                .add_all(leader_fields, self.core_address)
                .add(is_highest, caller)
                .add_all(leader_fields, caller)
            )
            self.registry.replace(updated, batch)

        logger.debug(f"Bid from {caller} evaluated on auction {auction_id}")
        self.events.emit(BidSubmitted(auction_id=auction_id, bidder=caller))
        return is_highest


__all__ = ["BidEvaluator"]
