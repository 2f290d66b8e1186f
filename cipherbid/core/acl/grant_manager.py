"""
Capability Grant Manager - Who may decrypt which ciphertext.

Keeps an explicit side table from handle identity to the set of principals
authorized on it, and forwards each new grant to the engine.

Rules:
- Grants are keyed by handle identity. A handle that replaces another
  starts with no grants; every mutation path must re-grant explicitly.
- Every handle the core must read again is granted to the core itself as
  soon as it is produced.
- Every handle returned to a caller is granted to that caller before the
  producing operation completes.
- Grants are idempotent and never revoked.
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Set, Tuple

from cipherbid.crypto import normalize_address
from cipherbid.engine.base import EncryptedEngine
from cipherbid.engine.handles import Handle
from cipherbid.errors import UnknownHandle
from cipherbid.utils.logger import get_logger

logger = get_logger("acl")


@dataclass
class GrantBatch:
    """
    Grants staged by one operation.

    The owning operation persists `pairs()` together with its record
    replacement, then calls `commit()`.
    """
    manager: "CapabilityGrantManager"
    entries: List[Tuple[Handle, str]] = field(default_factory=list)

    def add(self, handle: Handle, *principals: str) -> "GrantBatch":
        for principal in principals:
            self.entries.append((handle, normalize_address(principal)))
        return self

    def add_all(self, handles: List[Handle], principal: str) -> "GrantBatch":
        for handle in handles:
            self.add(handle, principal)
        return self

    def pairs(self) -> List[Tuple[bytes, str]]:
        """New (handle_id, principal) pairs, deduplicated, in staging order."""
        seen: Set[Tuple[bytes, str]] = set()
        pending = []
        for handle, principal in self.entries:
            key = (handle.handle_id, principal)
            if key in seen or self.manager.is_granted(handle, principal):
                continue
            seen.add(key)
            pending.append(key)
        return pending

    def commit(self) -> int:
        """Apply the staged grants. Returns the number of new grants."""
        return sum(self.manager._apply(handle, principal) for handle, principal in self.entries)


class CapabilityGrantManager:
    """
    Side table of capability grants.

    Attributes:
        engine: Engine that enforces the grants at decryption time
        storage_manager: Optional persistence for standalone grants
    """

    def __init__(self, engine: EncryptedEngine, storage_manager=None):
        self.engine = engine
        self.storage_manager = storage_manager

        # handle_id -> principals
        self._grants: Dict[bytes, Set[str]] = {}

        if storage_manager:
            for handle_id, principal in storage_manager.load_grants():
                self._grants.setdefault(handle_id, set()).add(principal)
            logger.debug(f"Loaded grants for {len(self._grants)} handles")
            self._resync_engine()

    def _resync_engine(self) -> int:
        """
        Re-send stored grants the engine does not hold.

        A grant row is written with its record before the engine sees it,
        so an interrupted operation can leave the engine behind the table.
        """
        resent = 0
        for handle_id, principals in self._grants.items():
            handle = Handle(handle_id)
            for principal in sorted(principals):
                if self.engine.is_granted(handle, principal):
                    continue
                try:
                    self.engine.grant_capability(handle, principal)
                except UnknownHandle:
                    logger.warning(f"Stored grant for {principal} on unknown handle {handle.short()}")
                    continue
                resent += 1

        if resent:
            logger.info(f"Re-sent {resent} grants missing from the engine")
        return resent

    # =========================================================================
    # Granting
    # =========================================================================

    def _apply(self, handle: Handle, principal: str) -> bool:
        granted = self._grants.setdefault(handle.handle_id, set())
        if principal in granted:
            return False

        self.engine.grant_capability(handle, principal)
        granted.add(principal)
        logger.debug(f"Granted {principal} on {handle.short()}")
        return True

    def grant(self, handle: Handle, principal: str) -> bool:
        """
        Authorize principal on handle.

        Returns:
            True if the grant is new, False if it already existed
        """
        principal = normalize_address(principal)
        if self.is_granted(handle, principal):
            return False

        if self.storage_manager:
            self.storage_manager.persist_grants([(handle.handle_id, principal)])
        return self._apply(handle, principal)

    def batch(self) -> GrantBatch:
        """Start staging grants for one operation."""
        return GrantBatch(manager=self)

    # =========================================================================
    # Queries
    # =========================================================================

    def is_granted(self, handle: Handle, principal: str) -> bool:
        return normalize_address(principal) in self._grants.get(handle.handle_id, ())

    def principals_for(self, handle: Handle) -> FrozenSet[str]:
        """All principals authorized on handle."""
        return frozenset(self._grants.get(handle.handle_id, ()))

    def stats(self) -> dict:
        return {
            "handles": len(self._grants),
            "grants": sum(len(p) for p in self._grants.values()),
        }


__all__ = ["CapabilityGrantManager", "GrantBatch"]
