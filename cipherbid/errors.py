"""
Error taxonomy for Cipherbid.

Core errors (surfaced to callers, terminal for the operation):
- NotFound: the referenced auction id has no record
- ImportRejected: the engine refused a caller-submitted ciphertext

Engine errors are raised by engine implementations and sit outside the
core taxonomy.
"""

from typing import Optional


class AuctionError(Exception):
    """Base class for core auction errors."""


class NotFound(AuctionError):
    """Referenced auction id does not exist."""

    def __init__(self, auction_id: int):
        self.auction_id = auction_id
        super().__init__(f"Auction {auction_id} not found")


class ImportRejected(AuctionError):
    """External ciphertext failed its well-formedness proof."""

    def __init__(self, reason: str = "", handle: Optional[bytes] = None):
        self.reason = reason
        self.handle = handle
        message = "Encrypted input rejected"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class EngineError(Exception):
    """Base class for encrypted-arithmetic engine failures."""


class UnknownHandle(EngineError):
    """Handle was never produced by this engine."""

    def __init__(self, handle_id: bytes):
        self.handle_id = handle_id
        super().__init__(f"Unknown ciphertext handle 0x{handle_id.hex()[:16]}...")


class AccessDenied(EngineError):
    """Principal holds no capability grant for the handle."""

    def __init__(self, handle_id: bytes, principal: str):
        self.handle_id = handle_id
        self.principal = principal
        super().__init__(
            f"{principal} is not allowed on handle 0x{handle_id.hex()[:16]}..."
        )


__all__ = [
    "AuctionError",
    "NotFound",
    "ImportRejected",
    "EngineError",
    "UnknownHandle",
    "AccessDenied",
]
