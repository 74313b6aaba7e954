"""Round engine, phases and events."""

from blackjack_engine.game.events import EventEmitter, EventSink, EventType, GameEvent
from blackjack_engine.game.state import RoundPhase
from blackjack_engine.game.engine import GameRound

__all__ = [
    "EventEmitter",
    "EventSink",
    "EventType",
    "GameEvent",
    "RoundPhase",
    "GameRound",
]
