"""
Cipherbid Auction Registry Module.

Owns auction records and the id counter.
"""

from cipherbid.core.registry.auction_registry import (
    Auction,
    AuctionInfo,
    AuctionRegistry,
)

__all__ = [
    "Auction",
    "AuctionInfo",
    "AuctionRegistry",
]
