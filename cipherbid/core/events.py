"""
Notifications emitted by the auction core.

Events carry public facts only: ids, names and principal addresses.
No event ever carries a value, encrypted or otherwise.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional, Type, Union

from cipherbid.utils.logger import get_logger

logger = get_logger("events")


@dataclass(frozen=True)
class AuctionCreated:
    auction_id: int
    name: str


@dataclass(frozen=True)
class BidSubmitted:
    """Emitted for every bid accepted for evaluation, leader or not."""
    auction_id: int
    bidder: str


Event = Union[AuctionCreated, BidSubmitted]
EventHandler = Callable[[Event], None]


class EventLog:
    """
    Append-only record of emitted events with subscriber callbacks.

    Handlers run synchronously in subscription order once the emitting
    operation has committed. A failing handler is logged and skipped; it
    cannot undo the operation or starve later handlers.
    """

    def __init__(self):
        self.events: List[Event] = []
        self._handlers: List[EventHandler] = []

    def subscribe(self, handler: EventHandler) -> None:
        """Register a callback for every subsequent event."""
        self._handlers.append(handler)

    def emit(self, event: Event) -> None:
        self.events.append(event)
        logger.debug(f"Event {type(event).__name__}: auction {event.auction_id}")
        for handler in self._handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Event handler error: {e}")

    def of_type(self, event_type: Type[Event], auction_id: Optional[int] = None) -> List[Event]:
        """Events of one type, optionally for a single auction."""
        return [
            e for e in self.events
            if isinstance(e, event_type) and (auction_id is None or e.auction_id == auction_id)
        ]

    def __len__(self) -> int:
        return len(self.events)


__all__ = ["AuctionCreated", "BidSubmitted", "Event", "EventHandler", "EventLog"]
