from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from cipherbid.core.storage.sqlite_adapter import AuctionRow, SQLiteAdapter
from cipherbid.utils.logger import get_logger

logger = get_logger("storage.manager")

META_NEXT_AUCTION_ID = "next_auction_id"


class StorageManager:
    """
    Manages persistent storage for the orchestrator.

    Coordinates data persistence using SQLite adapter.
    Handles:
    - Registry state (auction records, id counter)
    - Capability grants issued by the core
    - Mock engine ciphertexts and ACL (local development)
    """

    def __init__(self, data_dir: Path, db_name: str = "cipherbid.db"):
        self.data_dir = Path(data_dir)
        self.db_path = self.data_dir / db_name
        self.adapter = SQLiteAdapter(self.db_path)

        logger.info(f"StorageManager initialized at {self.db_path}")

    def close(self):
        self.adapter.close()

    # =========================================================================
    # Metadata
    # =========================================================================

    def set_meta(self, key: str, value: str):
        self.adapter.set_chain_meta(key, value)

    def get_meta(self, key: str) -> Optional[str]:
        return self.adapter.get_chain_meta(key)

    # =========================================================================
    # Registry
    # =========================================================================

    def get_next_auction_id(self) -> Optional[int]:
        """Stored id counter, or None on a fresh database."""
        value = self.adapter.get_chain_meta(META_NEXT_AUCTION_ID)
        return int(value) if value is not None else None

    def load_auctions(self) -> List[AuctionRow]:
        return self.adapter.get_all_auctions()

    def persist_auction_creation(
        self,
        row: AuctionRow,
        grants: Iterable[Tuple[bytes, str]],
        next_auction_id: int,
    ):
        """Atomically persist a new auction, its grants and the counter."""
        self.adapter.persist_auction_update(row, grants, next_auction_id=next_auction_id)

    def persist_auction_update(self, row: AuctionRow, grants: Iterable[Tuple[bytes, str]]):
        """Atomically persist a replaced auction record and its grants."""
        self.adapter.persist_auction_update(row, grants)

    # =========================================================================
    # Grants
    # =========================================================================

    def persist_grants(self, grants: Iterable[Tuple[bytes, str]]):
        self.adapter.save_grants(grants)

    def load_grants(self) -> List[Tuple[bytes, str]]:
        return self.adapter.get_all_grants()

    # =========================================================================
    # Mock Engine
    # =========================================================================

    def save_ciphertext(self, handle: bytes, fhe_type: int, value: int):
        self.adapter.save_ciphertext(handle, fhe_type, value)

    def load_ciphertexts(self) -> List[Tuple[bytes, int, int]]:
        return self.adapter.get_all_ciphertexts()

    def save_engine_grant(self, handle: bytes, principal: str):
        self.adapter.save_engine_grant(handle, principal)

    def load_engine_grants(self) -> List[Tuple[bytes, str]]:
        return self.adapter.get_all_engine_grants()
