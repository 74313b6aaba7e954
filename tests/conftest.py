"""Pytest fixtures for blackjack engine tests."""

import pytest
from decimal import Decimal
from random import Random

from blackjack_engine.cards import Card, Shoe, Rank, Suit
from blackjack_engine.dealer import Dealer
from blackjack_engine.game import EventEmitter, GameRound
from blackjack_engine.hand import Hand
from blackjack_engine.players import Player
from blackjack_engine.rules import RuleSet


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return Random(42)


@pytest.fixture
def shoe(rng):
    """A shuffled 6-deck shoe."""
    return Shoe(num_decks=6, penetration_percent=75, rng=rng)


@pytest.fixture
def empty_hand():
    """An empty player hand."""
    return Hand()


@pytest.fixture
def blackjack_hand():
    """A natural blackjack hand."""
    hand = Hand()
    hand.add_card(Card(Rank.ACE, Suit.SPADES))
    hand.add_card(Card(Rank.KING, Suit.HEARTS))
    return hand


@pytest.fixture
def soft_17_hand():
    """A soft 17 hand (A-6)."""
    hand = Hand()
    hand.add_card(Card(Rank.ACE, Suit.SPADES))
    hand.add_card(Card(Rank.SIX, Suit.HEARTS))
    return hand


@pytest.fixture
def hard_16_hand():
    """A hard 16 hand (10-6)."""
    hand = Hand()
    hand.add_card(Card(Rank.TEN, Suit.SPADES))
    hand.add_card(Card(Rank.SIX, Suit.HEARTS))
    return hand


@pytest.fixture
def pair_8s_hand():
    """A pair of 8s hand."""
    hand = Hand()
    hand.add_card(Card(Rank.EIGHT, Suit.SPADES))
    hand.add_card(Card(Rank.EIGHT, Suit.HEARTS))
    return hand


@pytest.fixture
def bust_hand():
    """A busted hand."""
    hand = Hand()
    hand.add_card(Card(Rank.TEN, Suit.SPADES))
    hand.add_card(Card(Rank.SIX, Suit.HEARTS))
    hand.add_card(Card(Rank.KING, Suit.CLUBS))
    return hand


@pytest.fixture
def rules():
    """Default ruleset."""
    return RuleSet()


@pytest.fixture
def vegas_strip_rules():
    """Vegas Strip rules."""
    return RuleSet.vegas_strip()


@pytest.fixture
def emitter():
    """Event emitter recording the round's history."""
    return EventEmitter()


@pytest.fixture
def make_round(emitter):
    """
    Factory for rounds dealt from a stacked shoe.

    Cards are given in draw order as card strings, e.g. "TD 7C 6S KD": player,
    dealer up-card, player, dealer hole card, then any later draws. The bet is
    placed and the cards dealt unless ``bet`` is None.
    """

    def _make(
        cards: str,
        rules: RuleSet | None = None,
        bankroll: str | int = "1000",
        bet: str | int | None = "10",
    ) -> GameRound:
        rules = rules or RuleSet.standard()
        shoe = Shoe.from_rules(rules, Random(42))
        shoe.stack(Card.from_string(c) for c in cards.split())
        game = GameRound(
            shoe=shoe,
            player=Player(bankroll=Decimal(str(bankroll))),
            dealer=Dealer(),
            rules=rules,
            publish=emitter.emit,
        )
        if bet is not None:
            game.place_bet(bet)
            game.deal()
        return game

    return _make
