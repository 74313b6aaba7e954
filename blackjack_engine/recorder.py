"""Per-round analytics derived from the event stream."""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from typing import Callable

from blackjack_engine.cards import Card, Rank
from blackjack_engine.game.events import (
    BetPlaced,
    CardDealt,
    DealerBusted,
    DealerHit,
    DealerHoleCardRevealed,
    EventEmitter,
    EventType,
    GameEvent,
    HandResolved,
    InsuranceResult,
    PlayerBusted,
    PlayerDoubledDown,
    PlayerHit,
    PlayerSplit,
    PlayerStood,
    PlayerSurrendered,
    RoundComplete,
)
from blackjack_engine.hand import Hand, HandOutcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CardSeen:
    """A card that left the shoe; ``face_down`` is cleared once the hole card is shown."""

    recipient: str
    hand_index: int
    card: Card
    face_down: bool = False


@dataclass(frozen=True)
class HandResult:
    hand_index: int
    outcome: HandOutcome
    payout: Decimal
    busted: bool


@dataclass(frozen=True)
class Decision:
    """One player action with the context it was taken in."""

    hand_index: int
    player_value: int
    is_soft: bool
    dealer_up_card: str
    action: str
    outcome: HandOutcome | None = None
    payout: Decimal | None = None


@dataclass(frozen=True)
class RoundSummary:
    played_at: datetime
    bet: Decimal
    net_payout: Decimal
    insurance_payout: Decimal
    dealer_busted: bool
    hand_results: list[HandResult] = field(default_factory=list)
    cards_seen: list[CardSeen] = field(default_factory=list)
    decisions: list[Decision] = field(default_factory=list)


def up_card_label(card: Card) -> str:
    """Strategy-chart label for a dealer up-card: 'A', 'T' or the pip value."""
    if card.rank == Rank.ACE:
        return "A"
    if card.is_ten_value:
        return "T"
    return str(card.rank.value)


class RoundRecorder:
    """
    Event subscriber that builds a ``RoundSummary`` for every completed round.

    Summaries are kept in memory and handed to ``on_summary`` when given;
    storage is the callback's business. Its exceptions are not caught here.
    """

    def __init__(
        self,
        emitter: EventEmitter,
        on_summary: Callable[[RoundSummary], None] | None = None,
        dealer_name: str = "Dealer",
    ) -> None:
        """
        Initialize the recorder and subscribe to ``emitter``.

        Args:
            emitter: Event emitter the round publishes to
            on_summary: Called with each finished summary
            dealer_name: Recipient name the dealer's cards are dealt under;
                must match the round's dealer (``Table.attach_recorder`` does this)
        """
        self._emitter = emitter
        self._on_summary = on_summary
        self._dealer_name = dealer_name
        self.summaries: list[RoundSummary] = []

        self._handlers: dict[EventType, Callable[[GameEvent], None]] = {
            EventType.BET_PLACED: self._on_bet_placed,
            EventType.CARD_DEALT: self._on_card_dealt,
            EventType.PLAYER_HIT: self._on_player_hit,
            EventType.PLAYER_STOOD: self._on_player_stood,
            EventType.PLAYER_DOUBLED_DOWN: self._on_player_doubled_down,
            EventType.PLAYER_SPLIT: self._on_player_split,
            EventType.PLAYER_SURRENDERED: self._on_player_surrendered,
            EventType.PLAYER_BUSTED: self._on_player_busted,
            EventType.DEALER_HIT: self._on_dealer_hit,
            EventType.DEALER_HOLE_CARD_REVEALED: self._on_hole_card_revealed,
            EventType.DEALER_BUSTED: self._on_dealer_busted,
            EventType.INSURANCE_RESULT: self._on_insurance_result,
            EventType.HAND_RESOLVED: self._on_hand_resolved,
            EventType.ROUND_COMPLETE: self._on_round_complete,
        }
        for event_type, handler in self._handlers.items():
            emitter.subscribe(handler, event_type)

        self._round_open = False
        self._reset()

    def close(self) -> None:
        """Stop listening to the emitter."""
        for event_type, handler in self._handlers.items():
            self._emitter.unsubscribe(handler, event_type)

    def _reset(self) -> None:
        self._played_at = datetime.now()
        self._bet = Decimal("0")
        self._insurance_payout = Decimal("0")
        self._dealer_busted = False
        self._dealer_up_card = "?"
        self._player_hands: dict[int, Hand] = {}
        self._busted_hands: set[int] = set()
        self._cards_seen: list[CardSeen] = []
        self._hand_results: list[HandResult] = []
        self._decisions: list[Decision] = []

    # Event handlers

    def _on_bet_placed(self, event: BetPlaced) -> None:
        self._reset()
        self._round_open = True
        self._bet = event.amount

    def _on_card_dealt(self, event: CardDealt) -> None:
        if not self._round_open:
            return
        self._cards_seen.append(
            CardSeen(event.recipient, event.hand_index, event.card, event.face_down)
        )
        if event.recipient == self._dealer_name:
            if not event.face_down and self._dealer_up_card == "?":
                self._dealer_up_card = up_card_label(event.card)
        else:
            self._player_hand(event.hand_index).add_card(event.card)

    def _on_player_hit(self, event: PlayerHit) -> None:
        if not self._round_open:
            return
        self._capture_decision(event.hand_index, "hit")
        self._player_card(event.player_name, event.hand_index, event.card)

    def _on_player_stood(self, event: PlayerStood) -> None:
        if self._round_open:
            self._capture_decision(event.hand_index, "stand")

    def _on_player_doubled_down(self, event: PlayerDoubledDown) -> None:
        if not self._round_open:
            return
        self._capture_decision(event.hand_index, "double")
        self._player_card(event.player_name, event.hand_index, event.card)

    def _on_player_split(self, event: PlayerSplit) -> None:
        if not self._round_open:
            return
        self._capture_decision(event.original_hand_index, "split")
        original = self._player_hand(event.original_hand_index)
        if original.num_cards > 1:
            original.remove_at(1)
        self._player_hand(event.new_hand_index).add_card(event.split_card)

    def _on_player_surrendered(self, event: PlayerSurrendered) -> None:
        if self._round_open:
            self._capture_decision(event.hand_index, "surrender")

    def _on_player_busted(self, event: PlayerBusted) -> None:
        if self._round_open:
            self._busted_hands.add(event.hand_index)

    def _on_dealer_hit(self, event: DealerHit) -> None:
        if self._round_open:
            self._cards_seen.append(CardSeen(self._dealer_name, 0, event.card))

    def _on_hole_card_revealed(self, event: DealerHoleCardRevealed) -> None:
        if not self._round_open:
            return
        for i in range(len(self._cards_seen) - 1, -1, -1):
            seen = self._cards_seen[i]
            if seen.recipient == self._dealer_name and seen.face_down and seen.card == event.card:
                self._cards_seen[i] = replace(seen, face_down=False)
                return
        self._cards_seen.append(CardSeen(self._dealer_name, 0, event.card))

    def _on_dealer_busted(self, event: DealerBusted) -> None:
        if self._round_open:
            self._dealer_busted = True

    def _on_insurance_result(self, event: InsuranceResult) -> None:
        if self._round_open:
            self._insurance_payout += event.payout

    def _on_hand_resolved(self, event: HandResolved) -> None:
        if not self._round_open:
            return
        self._hand_results.append(
            HandResult(
                event.hand_index,
                event.outcome,
                event.payout,
                event.hand_index in self._busted_hands,
            )
        )
        self._decisions = [
            replace(d, outcome=event.outcome, payout=event.payout)
            if d.hand_index == event.hand_index and d.outcome is None
            else d
            for d in self._decisions
        ]

    def _on_round_complete(self, event: RoundComplete) -> None:
        if not self._round_open:
            return
        self._round_open = False

        summary = RoundSummary(
            played_at=self._played_at,
            bet=self._bet,
            net_payout=sum((r.payout for r in self._hand_results), self._insurance_payout),
            insurance_payout=self._insurance_payout,
            dealer_busted=self._dealer_busted,
            hand_results=list(self._hand_results),
            cards_seen=list(self._cards_seen),
            decisions=list(self._decisions),
        )
        self.summaries.append(summary)
        logger.debug(
            "Recorded round: bet %s, net %s, %d hand(s)",
            summary.bet,
            summary.net_payout,
            len(summary.hand_results),
        )

        if self._on_summary is not None:
            self._on_summary(summary)

    # Helpers

    def _player_hand(self, index: int) -> Hand:
        return self._player_hands.setdefault(index, Hand())

    def _player_card(self, player_name: str, hand_index: int, card: Card) -> None:
        self._player_hand(hand_index).add_card(card)
        self._cards_seen.append(CardSeen(player_name, hand_index, card))

    def _capture_decision(self, hand_index: int, action: str) -> None:
        hand = self._player_hands.get(hand_index)
        if hand is None:
            return
        self._decisions.append(
            Decision(
                hand_index=hand_index,
                player_value=hand.value,
                is_soft=hand.is_soft,
                dealer_up_card=self._dealer_up_card,
                action=action,
            )
        )
