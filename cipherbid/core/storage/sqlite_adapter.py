import sqlite3
import threading
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from cipherbid.utils.logger import get_logger

logger = get_logger("storage.sqlite")

# (auction_id, name, created_at, start_price, highest_bid, highest_bidder, last_bid_time)
AuctionRow = Tuple[int, str, int, bytes, bytes, bytes, bytes]


class SQLiteAdapter:
    """
    SQLite backend for persistent storage.

    Provides:
    1. Registry state: auction records and the id counter.
    2. Capability grants issued by the orchestrator.
    3. Ciphertext and ACL tables for the local mock engine.
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._conn_local = threading.local()

        if not db_path.parent.exists():
            db_path.parent.mkdir(parents=True, exist_ok=True)

        self._init_schema()

    def _get_conn(self) -> sqlite3.Connection:
        """Get or create connection for current thread."""
        if not hasattr(self._conn_local, "conn"):
            self._conn_local.conn = sqlite3.connect(
                self.db_path,
                timeout=30.0,
                check_same_thread=False
            )
            self._conn_local.conn.row_factory = sqlite3.Row
            self._conn_local.conn.execute("PRAGMA journal_mode=WAL;")
            self._conn_local.conn.execute("PRAGMA synchronous=NORMAL;")
        return self._conn_local.conn

    def close(self):
        if hasattr(self._conn_local, "conn"):
            self._conn_local.conn.close()
            del self._conn_local.conn

    def _init_schema(self):
        """Initialize database schema."""
        conn = self._get_conn()
        with conn:
            # 1. Metadata (id counter, engine keys)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS chain_state (
                    key TEXT PRIMARY KEY,
                    value TEXT
                )
            """)

            # 2. Auction records. Rows are only ever replaced whole.
            conn.execute("""
                CREATE TABLE IF NOT EXISTS auctions (
                    auction_id INTEGER PRIMARY KEY,
                    name TEXT NOT NULL,
                    created_at INTEGER NOT NULL,
                    start_price BLOB NOT NULL,
                    highest_bid BLOB NOT NULL,
                    highest_bidder BLOB NOT NULL,
                    last_bid_time BLOB NOT NULL
                )
            """)

            # 3. Orchestrator capability grants (never revoked)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS grants (
                    handle BLOB NOT NULL,
                    principal TEXT NOT NULL,
                    PRIMARY KEY (handle, principal)
                )
            """)

            # 4. Mock engine state. Values are TEXT because eaddress
            # plaintexts exceed SQLite's 64-bit integers.
            conn.execute("""
                CREATE TABLE IF NOT EXISTS ciphertexts (
                    handle BLOB PRIMARY KEY,
                    fhe_type INTEGER NOT NULL,
                    value TEXT NOT NULL,
                    seq INTEGER NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS engine_acl (
                    handle BLOB NOT NULL,
                    principal TEXT NOT NULL,
                    PRIMARY KEY (handle, principal)
                )
            """)

    # =========================================================================
    # Chain State Operations
    # =========================================================================

    def set_chain_meta(self, key: str, value: str):
        conn = self._get_conn()
        with conn:
            conn.execute("INSERT OR REPLACE INTO chain_state (key, value) VALUES (?, ?)", (key, value))

    def get_chain_meta(self, key: str) -> Optional[str]:
        conn = self._get_conn()
        cursor = conn.execute("SELECT value FROM chain_state WHERE key = ?", (key,))
        row = cursor.fetchone()
        return row['value'] if row else None

    # =========================================================================
    # Registry Operations
    # =========================================================================

    def get_all_auctions(self) -> List[AuctionRow]:
        """Get all auction rows ordered by id."""
        conn = self._get_conn()
        cursor = conn.execute("""
            SELECT auction_id, name, created_at, start_price,
                   highest_bid, highest_bidder, last_bid_time
            FROM auctions ORDER BY auction_id ASC
        """)
        return [tuple(row) for row in cursor]

    def persist_auction_update(
        self,
        row: AuctionRow,
        grants: Iterable[Tuple[bytes, str]],
        next_auction_id: Optional[int] = None,
    ):
        """
        Atomically replace an auction row together with its new grants.

        Args:
            row: Full auction record
            grants: (handle, principal) pairs issued by the same operation
            next_auction_id: New counter value (creation only)
        """
        conn = self._get_conn()
        with conn:
            conn.execute(
                """INSERT OR REPLACE INTO auctions
                   (auction_id, name, created_at, start_price, highest_bid, highest_bidder, last_bid_time)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                row
            )
            conn.executemany(
                "INSERT OR IGNORE INTO grants (handle, principal) VALUES (?, ?)",
                list(grants)
            )
            if next_auction_id is not None:
                conn.execute(
                    "INSERT OR REPLACE INTO chain_state (key, value) VALUES (?, ?)",
                    ("next_auction_id", str(next_auction_id))
                )

    # =========================================================================
    # Grant Operations
    # =========================================================================

    def save_grants(self, grants: Iterable[Tuple[bytes, str]]):
        conn = self._get_conn()
        with conn:
            conn.executemany(
                "INSERT OR IGNORE INTO grants (handle, principal) VALUES (?, ?)",
                list(grants)
            )

    def get_all_grants(self) -> List[Tuple[bytes, str]]:
        conn = self._get_conn()
        cursor = conn.execute("SELECT handle, principal FROM grants")
        return [(row['handle'], row['principal']) for row in cursor]

    # =========================================================================
    # Mock Engine Operations
    # =========================================================================

    def save_ciphertext(self, handle: bytes, fhe_type: int, value: int):
        conn = self._get_conn()
        with conn:
            conn.execute(
                """INSERT OR REPLACE INTO ciphertexts (handle, fhe_type, value, seq)
                   VALUES (?, ?, ?, (SELECT COUNT(*) FROM ciphertexts))""",
                (handle, fhe_type, str(value))
            )

    def get_all_ciphertexts(self) -> List[Tuple[bytes, int, int]]:
        conn = self._get_conn()
        cursor = conn.execute("SELECT handle, fhe_type, value FROM ciphertexts ORDER BY seq ASC")
        return [(row['handle'], row['fhe_type'], int(row['value'])) for row in cursor]

    def save_engine_grant(self, handle: bytes, principal: str):
        conn = self._get_conn()
        with conn:
            conn.execute(
                "INSERT OR IGNORE INTO engine_acl (handle, principal) VALUES (?, ?)",
                (handle, principal)
            )

    def get_all_engine_grants(self) -> List[Tuple[bytes, str]]:
        conn = self._get_conn()
        cursor = conn.execute("SELECT handle, principal FROM engine_acl")
        return [(row['handle'], row['principal']) for row in cursor]
