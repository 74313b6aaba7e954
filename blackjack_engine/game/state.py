"""Round phase enumeration."""

from enum import Enum, auto


class RoundPhase(Enum):
    """
    Round state machine phases.

    Flow: BETTING → DEALING → (INSURANCE) → PLAYER_TURN → DEALER_TURN → RESOLUTION → COMPLETE
    """

    # Waiting for the wager
    BETTING = auto()

    # Bet accepted, cards not yet dealt
    DEALING = auto()

    # Dealer shows an Ace; waiting for the insurance decision
    INSURANCE = auto()

    # Player acting on one of their hands
    PLAYER_TURN = auto()

    # Dealer plays
    DEALER_TURN = auto()

    # Settling every hand
    RESOLUTION = auto()

    # Round finished; a new round needs a new engine
    COMPLETE = auto()

    def __str__(self) -> str:
        return self.name.replace("_", " ").title()


# Valid phase transitions
VALID_TRANSITIONS: dict[RoundPhase, list[RoundPhase]] = {
    RoundPhase.BETTING: [RoundPhase.DEALING],
    RoundPhase.DEALING: [
        RoundPhase.INSURANCE,
        RoundPhase.PLAYER_TURN,
        RoundPhase.RESOLUTION,  # naturals or dealer blackjack
    ],
    RoundPhase.INSURANCE: [RoundPhase.PLAYER_TURN, RoundPhase.RESOLUTION],
    RoundPhase.PLAYER_TURN: [RoundPhase.DEALER_TURN, RoundPhase.RESOLUTION],
    RoundPhase.DEALER_TURN: [RoundPhase.RESOLUTION],
    RoundPhase.RESOLUTION: [RoundPhase.COMPLETE],
    RoundPhase.COMPLETE: [],  # Terminal state
}


def is_valid_transition(from_phase: RoundPhase, to_phase: RoundPhase) -> bool:
    """
    Check if a phase transition is valid.

    Args:
        from_phase: Current phase
        to_phase: Desired phase

    Returns:
        True if the transition is allowed
    """
    return to_phase in VALID_TRANSITIONS.get(from_phase, [])
