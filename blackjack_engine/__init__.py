"""Blackjack round engine - UI-agnostic, no I/O."""

from blackjack_engine.cards import Card, Rank, Shoe, ShuffleMode, Suit
from blackjack_engine.hand import Hand, HandOutcome
from blackjack_engine.rules import RuleSet
from blackjack_engine.dealer import Dealer
from blackjack_engine.players import Player
from blackjack_engine.game import EventEmitter, GameRound, RoundPhase
from blackjack_engine.table import Table

__all__ = [
    "Card",
    "Rank",
    "Shoe",
    "ShuffleMode",
    "Suit",
    "Hand",
    "HandOutcome",
    "RuleSet",
    "Dealer",
    "Player",
    "EventEmitter",
    "GameRound",
    "RoundPhase",
    "Table",
]
