"""Hand evaluation for blackjack."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator

from blackjack_engine.cards import Card

BUST_THRESHOLD = 21
ACE_DEMOTION = 10  # difference between an Ace counted as 11 and as 1


class HandOutcome(Enum):
    """How a player hand settled against the dealer."""

    WIN = "win"
    LOSE = "lose"
    PUSH = "push"
    BLACKJACK = "blackjack"
    SURRENDER = "surrender"


@dataclass
class Hand:
    """An ordered collection of cards with value calculation.

    Nothing is cached: every property is recomputed from ``cards``.
    """

    cards: list[Card] = field(default_factory=list)

    def add_card(self, card: Card) -> None:
        """Add a card to the hand."""
        self.cards.append(card)

    def remove_at(self, index: int) -> Card:
        """Remove and return the card at index (used when splitting)."""
        if not 0 <= index < len(self.cards):
            raise IndexError(f"No card at index {index} in a hand of {len(self.cards)}")
        return self.cards.pop(index)

    def clear(self) -> None:
        """Remove all cards from the hand."""
        self.cards.clear()

    def _evaluate(self) -> tuple[int, int]:
        """Return (best total, number of Aces still counted as 11)."""
        total = 0
        soft_aces = 0

        for card in self.cards:
            if card.is_ace:
                soft_aces += 1
            total += card.value

        # Demote aces from 11 to 1 one at a time
        while total > BUST_THRESHOLD and soft_aces > 0:
            total -= ACE_DEMOTION
            soft_aces -= 1

        return total, soft_aces

    @property
    def value(self) -> int:
        """
        Calculate the best hand value.

        Returns the highest value that doesn't bust, or the lowest bust value.
        """
        return self._evaluate()[0]

    @property
    def is_soft(self) -> bool:
        """True if an Ace is currently counted as 11."""
        return self._evaluate()[1] > 0

    @property
    def is_hard(self) -> bool:
        return not self.is_soft

    @property
    def is_blackjack(self) -> bool:
        """Two cards totalling 21.

        Whether it pays as a natural depends on the round (no split yet).
        """
        return len(self.cards) == 2 and self.value == BUST_THRESHOLD

    @property
    def is_busted(self) -> bool:
        return self.value > BUST_THRESHOLD

    @property
    def is_pair(self) -> bool:
        """Check if the hand is two cards of the same rank."""
        return (
            len(self.cards) == 2
            and self.cards[0].rank == self.cards[1].rank
        )

    @property
    def num_cards(self) -> int:
        return len(self.cards)

    def __len__(self) -> int:
        return len(self.cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(self.cards)

    def __str__(self) -> str:
        cards_str = " ".join(str(card) for card in self.cards)
        value_str = f"({self.value})"
        if self.is_soft:
            value_str = f"(soft {self.value})"
        if self.is_blackjack:
            value_str = "(BLACKJACK)"
        if self.is_busted:
            value_str = "(BUST)"
        return f"{cards_str} {value_str}"

    def __repr__(self) -> str:
        return f"Hand({self.cards!r}, value={self.value})"


def resolve_hand(
    player_hand: Hand,
    dealer_hand: Hand,
    natural_eligible: bool = True,
) -> HandOutcome:
    """
    Compare a finished player hand with the dealer's hand.

    Precedence: player natural beats a dealer without one, a dealer natural
    beats any other hand, two naturals push, then busts, then totals.

    Args:
        player_hand: The player's hand
        dealer_hand: The dealer's final hand
        natural_eligible: False once the round has had a split; a two-card
            21 then counts as an ordinary 21 and pays 1:1

    Returns:
        The hand outcome (never SURRENDER; surrender is decided by the round)
    """
    player_natural = natural_eligible and player_hand.is_blackjack
    dealer_natural = dealer_hand.is_blackjack

    if player_natural and not dealer_natural:
        return HandOutcome.BLACKJACK
    if dealer_natural and not player_natural:
        return HandOutcome.LOSE
    if player_natural and dealer_natural:
        return HandOutcome.PUSH

    if player_hand.is_busted:
        return HandOutcome.LOSE
    if dealer_hand.is_busted:
        return HandOutcome.WIN

    if player_hand.value > dealer_hand.value:
        return HandOutcome.WIN
    if player_hand.value < dealer_hand.value:
        return HandOutcome.LOSE
    return HandOutcome.PUSH
