"""Card values and the multi-deck shoe."""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from enum import Enum, auto
from random import Random
from typing import TYPE_CHECKING, Iterable, Iterator

if TYPE_CHECKING:
    from blackjack_engine.rules import RuleSet

logger = logging.getLogger(__name__)

CARDS_PER_DECK = 52
MIN_DECKS = 1
MAX_DECKS = 1000


class Suit(Enum):
    """Card suits."""

    CLUBS = auto()
    DIAMONDS = auto()
    HEARTS = auto()
    SPADES = auto()

    def __str__(self) -> str:
        symbols = {
            Suit.CLUBS: "♣",
            Suit.DIAMONDS: "♦",
            Suit.HEARTS: "♥",
            Suit.SPADES: "♠",
        }
        return symbols[self]


class Rank(Enum):
    """Card ranks with blackjack values."""

    TWO = 2
    THREE = 3
    FOUR = 4
    FIVE = 5
    SIX = 6
    SEVEN = 7
    EIGHT = 8
    NINE = 9
    TEN = 10
    JACK = 11
    QUEEN = 12
    KING = 13
    ACE = 14

    def __str__(self) -> str:
        if self.value <= 10:
            return str(self.value)
        return {
            Rank.JACK: "J",
            Rank.QUEEN: "Q",
            Rank.KING: "K",
            Rank.ACE: "A",
        }[self]

    @property
    def blackjack_value(self) -> int:
        """Return the blackjack point value (Ace = 11, face cards = 10)."""
        if self.value <= 10:
            return self.value
        if self == Rank.ACE:
            return 11
        return 10

    @property
    def is_ace(self) -> bool:
        return self == Rank.ACE

    @property
    def is_ten_value(self) -> bool:
        return self.blackjack_value == 10


_RANK_CODES = {
    "2": Rank.TWO,
    "3": Rank.THREE,
    "4": Rank.FOUR,
    "5": Rank.FIVE,
    "6": Rank.SIX,
    "7": Rank.SEVEN,
    "8": Rank.EIGHT,
    "9": Rank.NINE,
    "10": Rank.TEN,
    "T": Rank.TEN,
    "J": Rank.JACK,
    "Q": Rank.QUEEN,
    "K": Rank.KING,
    "A": Rank.ACE,
}

_SUIT_CODES = {
    "C": Suit.CLUBS,
    "♣": Suit.CLUBS,
    "D": Suit.DIAMONDS,
    "♦": Suit.DIAMONDS,
    "H": Suit.HEARTS,
    "♥": Suit.HEARTS,
    "S": Suit.SPADES,
    "♠": Suit.SPADES,
}


@dataclass(frozen=True, slots=True)
class Card:
    """Immutable playing card."""

    rank: Rank
    suit: Suit

    def __str__(self) -> str:
        return f"{self.rank}{self.suit}"

    def __repr__(self) -> str:
        return f"Card({self.rank.name}, {self.suit.name})"

    @property
    def value(self) -> int:
        """Return the blackjack point value (Aces count 11 here; Hand demotes them)."""
        return self.rank.blackjack_value

    @property
    def is_ace(self) -> bool:
        return self.rank.is_ace

    @property
    def is_ten_value(self) -> bool:
        return self.rank.is_ten_value

    @classmethod
    def from_string(cls, s: str) -> "Card":
        """Create a card from a string like '2♣', 'AS', 'Kh' or '10D'."""
        s = s.strip().upper()
        if len(s) < 2:
            raise ValueError(f"Invalid card string: {s}")

        rank_str = s[:-1]
        suit_str = s[-1]

        if rank_str not in _RANK_CODES:
            raise ValueError(f"Invalid rank: {rank_str}")
        if suit_str not in _SUIT_CODES:
            raise ValueError(f"Invalid suit: {suit_str}")

        return cls(_RANK_CODES[rank_str], _SUIT_CODES[suit_str])


class ShuffleMode(Enum):
    """Source of randomness for shuffling the shoe."""

    SEEDED = "seeded"
    CRYPTOGRAPHIC = "cryptographic"


def cut_card_threshold(total_cards: int, penetration_percent: int) -> int:
    """Cards left in the shoe when the cut card comes out.

    ceil(total * (100 - penetration) / 100), in integer arithmetic.
    """
    if not 1 <= penetration_percent <= 100:
        raise ValueError("Penetration percent must be between 1 and 100")
    return -(-total_cards * (100 - penetration_percent) // 100)


def build_cards(num_decks: int) -> list[Card]:
    """Return an unshuffled pool of num_decks full decks."""
    return [
        Card(rank, suit)
        for _ in range(num_decks)
        for suit in Suit
        for rank in Rank
    ]


class Shoe:
    """A multi-deck shoe with a cut card."""

    def __init__(
        self,
        num_decks: int = 6,
        penetration_percent: int = 75,
        shuffle_mode: ShuffleMode = ShuffleMode.SEEDED,
        rng: Random | None = None,
    ) -> None:
        """
        Initialize and shuffle a shoe of multiple decks.

        Args:
            num_decks: Number of decks in the shoe (1-1000)
            penetration_percent: Percentage of the shoe dealt before the cut card (1-100)
            shuffle_mode: SEEDED uses ``rng`` (or a fresh Random); CRYPTOGRAPHIC
                uses the operating system's secure generator and ignores ``rng``
            rng: Random number generator for reproducible shuffles
        """
        if not MIN_DECKS <= num_decks <= MAX_DECKS:
            raise ValueError(f"Shoe must have between {MIN_DECKS} and {MAX_DECKS} decks")
        if not 1 <= penetration_percent <= 100:
            raise ValueError("Penetration percent must be between 1 and 100")

        self._num_decks = num_decks
        self._penetration_percent = penetration_percent
        self._shuffle_mode = shuffle_mode
        if shuffle_mode is ShuffleMode.CRYPTOGRAPHIC:
            self._rng: Random = secrets.SystemRandom()
        else:
            self._rng = rng or Random()
        self._cards: list[Card] = []
        self.reset()

    @classmethod
    def from_rules(cls, rules: "RuleSet", rng: Random | None = None) -> "Shoe":
        """Build a shoe from the deck, penetration and shuffle settings of a rule set."""
        return cls(
            num_decks=rules.num_decks,
            penetration_percent=rules.penetration_percent,
            shuffle_mode=rules.shuffle_mode,
            rng=rng,
        )

    def reset(self) -> None:
        """Rebuild the full pool and shuffle it."""
        self._cards = build_cards(self._num_decks)
        self.shuffle()

    def shuffle(self) -> None:
        """Fisher-Yates shuffle of the cards currently in the shoe."""
        self._rng.shuffle(self._cards)

    def draw(self) -> Card:
        """Draw the top card, rebuilding the shoe first if it is empty."""
        if not self._cards:
            logger.debug("Shoe exhausted mid-round, rebuilding %d decks", self._num_decks)
            self.reset()
        return self._cards.pop()

    def reshuffle_if_cut_card_reached(self) -> bool:
        """Rebuild and reshuffle if the cut card has been reached.

        Called once per round before dealing. Returns True if a reshuffle happened.
        """
        if not self.is_cut_card_reached:
            return False
        logger.debug(
            "Cut card reached with %d cards left (threshold %d), reshuffling",
            len(self._cards),
            self.cut_card_threshold,
        )
        self.reset()
        return True

    def stack(self, cards: Iterable[Card]) -> None:
        """Place cards on top of the shoe; the first card given is drawn first.

        Used for scenario setup and dev tools.
        """
        self._cards.extend(reversed(list(cards)))

    @property
    def is_cut_card_reached(self) -> bool:
        return len(self._cards) <= self.cut_card_threshold

    @property
    def cut_card_threshold(self) -> int:
        return cut_card_threshold(self.total_cards, self._penetration_percent)

    @property
    def cards_remaining(self) -> int:
        return len(self._cards)

    @property
    def cards_dealt(self) -> int:
        return max(self.total_cards - len(self._cards), 0)

    @property
    def total_cards(self) -> int:
        """Return the number of cards in a full shoe."""
        return self._num_decks * CARDS_PER_DECK

    @property
    def num_decks(self) -> int:
        return self._num_decks

    @property
    def penetration_percent(self) -> int:
        return self._penetration_percent

    @property
    def shuffle_mode(self) -> ShuffleMode:
        return self._shuffle_mode

    def __len__(self) -> int:
        return len(self._cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(self._cards)
