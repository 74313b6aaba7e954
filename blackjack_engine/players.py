"""Player bankroll holder."""

from dataclasses import dataclass, field
from decimal import Decimal

from blackjack_engine.cards import Card
from blackjack_engine.hand import Hand


@dataclass
class Player:
    """A named player with a bankroll and the hands dealt to them this round.

    The bankroll is only ever changed through ``apply_payout``.
    """

    name: str = "Player"
    bankroll: Decimal = Decimal("1000")
    hands: list[Hand] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.bankroll = Decimal(str(self.bankroll))

    def create_hand(self) -> int:
        """Open a new empty hand and return its index."""
        self.hands.append(Hand())
        return len(self.hands) - 1

    def add_card_to_hand(self, hand_index: int, card: Card) -> None:
        self.hands[hand_index].add_card(card)

    def clear_hands(self) -> None:
        self.hands.clear()

    def apply_payout(self, amount: Decimal) -> Decimal:
        """Add a signed payout to the bankroll and return the new balance."""
        self.bankroll += Decimal(str(amount))
        return self.bankroll
