"""Tests for round phases and their transitions."""

import pytest

from blackjack_engine.game import GameRound, RoundPhase
from blackjack_engine.game.state import VALID_TRANSITIONS, is_valid_transition


def test_machine_matches_transition_table():
    """Every transition the engine's state machine can make is a valid phase transition."""
    machine_edges = set()
    for transition in GameRound.TRANSITIONS:
        sources = transition["source"]
        if isinstance(sources, str):
            sources = [sources]
        for source in sources:
            machine_edges.add((RoundPhase[source.upper()], RoundPhase[transition["dest"].upper()]))

    table_edges = {(src, dest) for src, dests in VALID_TRANSITIONS.items() for dest in dests}
    assert machine_edges == table_edges


@pytest.mark.parametrize(
    "source, dest, expected",
    [
        (RoundPhase.BETTING, RoundPhase.DEALING, True),
        (RoundPhase.DEALING, RoundPhase.RESOLUTION, True),
        (RoundPhase.INSURANCE, RoundPhase.DEALER_TURN, False),
        (RoundPhase.COMPLETE, RoundPhase.BETTING, False),
    ],
)
def test_is_valid_transition(source, dest, expected):
    assert is_valid_transition(source, dest) is expected


def test_phase_str():
    assert str(RoundPhase.PLAYER_TURN) == "Player Turn"
