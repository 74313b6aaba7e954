"""Round events.

Events are the only channel from the engine to presentation and analytics.
The engine hands each one to a single sink callable, synchronously and in
order; ``EventEmitter`` can serve as that sink and fan events out further.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime
from decimal import Decimal
from enum import Enum, auto
from typing import Any, Callable, ClassVar

from blackjack_engine.cards import Card
from blackjack_engine.hand import HandOutcome


class EventType(Enum):
    """Types of round events."""

    # Betting
    BET_PLACED = auto()

    # Shoe
    SHOE_CUT_CARD_REACHED = auto()
    SHOE_RESHUFFLED = auto()

    # Dealing
    CARD_DEALT = auto()
    INITIAL_DEAL_COMPLETE = auto()
    BLACKJACK_DETECTED = auto()

    # Insurance
    INSURANCE_OFFERED = auto()
    INSURANCE_PLACED = auto()
    INSURANCE_DECLINED = auto()
    INSURANCE_RESULT = auto()
    DEALER_PEEKED = auto()

    # Player turn
    PLAYER_TURN_STARTED = auto()
    PLAYER_HIT = auto()
    PLAYER_STOOD = auto()
    PLAYER_BUSTED = auto()
    PLAYER_DOUBLED_DOWN = auto()
    PLAYER_SPLIT = auto()
    PLAYER_SURRENDERED = auto()

    # Dealer turn
    DEALER_TURN_STARTED = auto()
    DEALER_HOLE_CARD_REVEALED = auto()
    DEALER_HIT = auto()
    DEALER_BUSTED = auto()
    DEALER_STOOD = auto()

    # Resolution
    HAND_RESOLVED = auto()
    ROUND_COMPLETE = auto()


@dataclass(frozen=True)
class GameEvent:
    """
    Immutable round event.

    Subclasses carry a typed payload and set ``event_type``. The timestamp is
    informational and does not take part in equality.
    """

    event_type: ClassVar[EventType]

    timestamp: datetime = field(default_factory=datetime.now, compare=False, kw_only=True)

    @property
    def data(self) -> dict[str, Any]:
        """Payload fields as a dict."""
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name != "timestamp"}

    def __str__(self) -> str:
        return f"{self.event_type.name}: {self.data}"


@dataclass(frozen=True)
class BetPlaced(GameEvent):
    event_type: ClassVar[EventType] = EventType.BET_PLACED

    player_name: str
    amount: Decimal


@dataclass(frozen=True)
class ShoeCutCardReached(GameEvent):
    event_type: ClassVar[EventType] = EventType.SHOE_CUT_CARD_REACHED

    cards_remaining: int
    cut_card_threshold: int


@dataclass(frozen=True)
class ShoeReshuffled(GameEvent):
    event_type: ClassVar[EventType] = EventType.SHOE_RESHUFFLED

    deck_count: int
    cards_remaining: int
    cut_card_threshold: int


@dataclass(frozen=True)
class CardDealt(GameEvent):
    """A card dealt to a hand. ``face_down`` marks the hole card; the card is still included."""

    event_type: ClassVar[EventType] = EventType.CARD_DEALT

    card: Card
    recipient: str
    hand_index: int
    face_down: bool


@dataclass(frozen=True)
class InitialDealComplete(GameEvent):
    event_type: ClassVar[EventType] = EventType.INITIAL_DEAL_COMPLETE


@dataclass(frozen=True)
class BlackjackDetected(GameEvent):
    event_type: ClassVar[EventType] = EventType.BLACKJACK_DETECTED

    who: str


@dataclass(frozen=True)
class InsuranceOffered(GameEvent):
    event_type: ClassVar[EventType] = EventType.INSURANCE_OFFERED

    player_name: str
    max_insurance_bet: Decimal


@dataclass(frozen=True)
class InsurancePlaced(GameEvent):
    event_type: ClassVar[EventType] = EventType.INSURANCE_PLACED

    player_name: str
    amount: Decimal


@dataclass(frozen=True)
class InsuranceDeclined(GameEvent):
    event_type: ClassVar[EventType] = EventType.INSURANCE_DECLINED

    player_name: str


@dataclass(frozen=True)
class InsuranceResult(GameEvent):
    """Settled insurance side bet; ``payout`` is signed."""

    event_type: ClassVar[EventType] = EventType.INSURANCE_RESULT

    player_name: str
    won: bool
    payout: Decimal


@dataclass(frozen=True)
class DealerPeeked(GameEvent):
    event_type: ClassVar[EventType] = EventType.DEALER_PEEKED

    has_blackjack: bool


@dataclass(frozen=True)
class PlayerTurnStarted(GameEvent):
    event_type: ClassVar[EventType] = EventType.PLAYER_TURN_STARTED

    player_name: str
    hand_index: int


@dataclass(frozen=True)
class PlayerHit(GameEvent):
    event_type: ClassVar[EventType] = EventType.PLAYER_HIT

    player_name: str
    card: Card
    hand_index: int


@dataclass(frozen=True)
class PlayerStood(GameEvent):
    event_type: ClassVar[EventType] = EventType.PLAYER_STOOD

    player_name: str
    hand_index: int


@dataclass(frozen=True)
class PlayerBusted(GameEvent):
    event_type: ClassVar[EventType] = EventType.PLAYER_BUSTED

    player_name: str
    hand_index: int


@dataclass(frozen=True)
class PlayerDoubledDown(GameEvent):
    event_type: ClassVar[EventType] = EventType.PLAYER_DOUBLED_DOWN

    player_name: str
    card: Card
    hand_index: int
    new_bet: Decimal


@dataclass(frozen=True)
class PlayerSplit(GameEvent):
    event_type: ClassVar[EventType] = EventType.PLAYER_SPLIT

    player_name: str
    original_hand_index: int
    new_hand_index: int
    split_card: Card


@dataclass(frozen=True)
class PlayerSurrendered(GameEvent):
    event_type: ClassVar[EventType] = EventType.PLAYER_SURRENDERED

    player_name: str
    hand_index: int


@dataclass(frozen=True)
class DealerTurnStarted(GameEvent):
    event_type: ClassVar[EventType] = EventType.DEALER_TURN_STARTED


@dataclass(frozen=True)
class DealerHoleCardRevealed(GameEvent):
    event_type: ClassVar[EventType] = EventType.DEALER_HOLE_CARD_REVEALED

    card: Card


@dataclass(frozen=True)
class DealerHit(GameEvent):
    event_type: ClassVar[EventType] = EventType.DEALER_HIT

    card: Card


@dataclass(frozen=True)
class DealerBusted(GameEvent):
    event_type: ClassVar[EventType] = EventType.DEALER_BUSTED

    hand_value: int


@dataclass(frozen=True)
class DealerStood(GameEvent):
    event_type: ClassVar[EventType] = EventType.DEALER_STOOD

    hand_value: int


@dataclass(frozen=True)
class HandResolved(GameEvent):
    """One settled player hand; ``payout`` is signed (negative for a loss)."""

    event_type: ClassVar[EventType] = EventType.HAND_RESOLVED

    player_name: str
    hand_index: int
    outcome: HandOutcome
    payout: Decimal


@dataclass(frozen=True)
class RoundComplete(GameEvent):
    event_type: ClassVar[EventType] = EventType.ROUND_COMPLETE

    net_payout: Decimal
    bankroll: Decimal


# Type alias for the engine's single event sink and for emitter handlers
EventSink = Callable[[GameEvent], None]
EventHandler = EventSink


class EventEmitter:
    """
    Simple event emitter for round events.

    ``emit`` is a valid round sink; subscribers can listen to one event type
    or to all events.
    """

    def __init__(self) -> None:
        """Initialize the event emitter."""
        self._handlers: dict[EventType | None, list[EventHandler]] = {}
        self._event_history: list[GameEvent] = []

    def subscribe(
        self,
        handler: EventHandler,
        event_type: EventType | None = None,
    ) -> None:
        """
        Subscribe to events.

        Args:
            handler: Function to call when event occurs
            event_type: Specific event type to subscribe to, or None for all events
        """
        self._handlers.setdefault(event_type, []).append(handler)

    def unsubscribe(
        self,
        handler: EventHandler,
        event_type: EventType | None = None,
    ) -> bool:
        """
        Unsubscribe from events.

        Args:
            handler: Handler to remove
            event_type: Event type it was subscribed to

        Returns:
            True if the handler was subscribed
        """
        handlers = self._handlers.get(event_type, [])
        if handler not in handlers:
            return False
        handlers.remove(handler)
        return True

    def emit(self, event: GameEvent) -> None:
        """
        Emit an event to all subscribers.

        Type-specific handlers run before catch-all handlers. A handler that
        raises stops delivery and the exception propagates to the caller.

        Args:
            event: The event to emit
        """
        self._event_history.append(event)

        # Call type-specific handlers
        for handler in list(self._handlers.get(event.event_type, [])):
            handler(event)

        # Call catch-all handlers
        for handler in list(self._handlers.get(None, [])):
            handler(event)

    __call__ = emit

    @property
    def history(self) -> list[GameEvent]:
        """Return the event history."""
        return self._event_history.copy()

    def clear_history(self) -> None:
        """Clear the event history."""
        self._event_history.clear()
