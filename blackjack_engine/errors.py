"""Exception taxonomy for rules validation and round operations.

Every error here is a caller programming error; the engine raises before
mutating any state and never retries.
"""


class BlackjackError(Exception):
    """Base class for all engine errors."""


class RulesValidationError(BlackjackError, ValueError):
    """A rule value is out of range or inconsistent with another rule."""


class RoundError(BlackjackError):
    """An operation on a round was rejected."""


class PhaseError(RoundError):
    """An operation was called outside the phase that allows it."""

    def __init__(self, operation: str, phase: object) -> None:
        self.operation = operation
        self.phase = phase
        super().__init__(f"Cannot {operation} in phase {phase}")


class IneligibleActionError(RoundError):
    """The phase is right but the action's eligibility rule does not hold."""

    def __init__(self, action: str, reason: str) -> None:
        self.action = action
        self.reason = reason
        super().__init__(f"Cannot {action}: {reason}")


class InvalidBetError(RoundError, ValueError):
    """A bet amount is negative, non-finite, outside the table limits or unaffordable."""


class EventSinkError(RoundError):
    """The event sink raised while an operation was publishing events.

    The operation itself completed; the first sink exception is chained as
    ``__cause__``.
    """
