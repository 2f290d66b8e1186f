"""
Cipherbid Auction Module.

This module provides the sealed-bid auction operations:
- Oblivious bid evaluation
- Advisory inactivity timeout
- Unified manager (caller-facing surface)
"""

from cipherbid.core.auction.bid_evaluator import BidEvaluator
from cipherbid.core.auction.timeout import TimeoutFinalizer
from cipherbid.core.auction.manager import EncryptedAuctionManager

__all__ = [
    "BidEvaluator",
    "TimeoutFinalizer",
    "EncryptedAuctionManager",
]
