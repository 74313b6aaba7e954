"""Dealer's fixed drawing policy."""

from typing import Callable

from blackjack_engine.cards import Card, Shoe
from blackjack_engine.hand import Hand

DEALER_STANDS_ON = 17


def dealer_should_hit(hand: Hand, hits_soft_17: bool) -> bool:
    """Hit below 17, and on soft 17 when the table plays H17."""
    value = hand.value
    if value < DEALER_STANDS_ON:
        return True
    if value == DEALER_STANDS_ON and hand.is_soft and hits_soft_17:
        return True
    return False


class Dealer:
    """The house hand and the policy that plays it out."""

    def __init__(self, name: str = "Dealer", hits_soft_17: bool = False) -> None:
        self.name = name
        self.hits_soft_17 = hits_soft_17
        self.hand = Hand()

    @property
    def up_card(self) -> Card | None:
        return self.hand.cards[0] if self.hand.cards else None

    @property
    def hole_card(self) -> Card | None:
        return self.hand.cards[1] if len(self.hand.cards) > 1 else None

    def clear_hand(self) -> None:
        self.hand.clear()

    def play_hand(
        self,
        shoe: Shoe,
        on_hit: Callable[[Card], None] | None = None,
    ) -> None:
        """
        Draw until the policy says stand.

        Args:
            shoe: Shoe to draw from
            on_hit: Called with each drawn card before the next decision
        """
        while dealer_should_hit(self.hand, self.hits_soft_17):
            card = shoe.draw()
            self.hand.add_card(card)
            if on_hit is not None:
                on_hit(card)
