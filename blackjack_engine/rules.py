"""Blackjack table rules.

A ``RuleSet`` is validated once at construction and never mutated; a rule
change produces a new value via ``with_changes``.
"""

import dataclasses
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Literal, Mapping

from blackjack_engine.cards import MAX_DECKS, MIN_DECKS, ShuffleMode
from blackjack_engine.errors import RulesValidationError

logger = logging.getLogger(__name__)

INSURANCE_PAYOUT = Decimal("2")  # insurance pays 2:1
MIN_SPLITS = 1
MAX_SPLITS = 10

DoubleOn = Literal["any", "9-11", "10-11"]
Surrender = Literal["none", "early", "late"]
PlayMode = Literal["wagered", "free_play"]

_DOUBLE_ON_TOTALS: dict[str, frozenset[int] | None] = {
    "any": None,
    "9-11": frozenset({9, 10, 11}),
    "10-11": frozenset({10, 11}),
}
_SURRENDER_RULES = ("none", "early", "late")
_PLAY_MODES = ("wagered", "free_play")

# Named payouts shown in settings screens
_PAYOUT_NAMES = {
    Decimal("1.5"): "3:2",
    Decimal("1.2"): "6:5",
}


def _to_decimal(name: str, value: Any) -> Decimal:
    """Coerce a money/ratio value to a finite Decimal."""
    if isinstance(value, bool):
        raise RulesValidationError(f"{name} must be a number, got {value!r}")
    if isinstance(value, float):
        value = str(value)
    try:
        result = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise RulesValidationError(f"{name} must be a number, got {value!r}") from None
    if not result.is_finite():
        raise RulesValidationError(f"{name} must be finite, got {value!r}")
    return result


@dataclass(frozen=True)
class RuleSet:
    """
    Blackjack table rules configuration.

    Every player-visible casino variation lives here.
    """

    # Shoe
    num_decks: int = 6
    penetration_percent: int = 75  # share of the shoe dealt before the cut card
    shuffle_mode: ShuffleMode = ShuffleMode.SEEDED

    # Money
    starting_bankroll: Decimal = Decimal("1000")
    min_bet: Decimal = Decimal("5")
    max_bet: Decimal = Decimal("500")
    play_mode: PlayMode = "wagered"

    # Dealer rules
    dealer_hits_soft_17: bool = False  # H17 vs S17

    # Blackjack payout (3:2 = 1.5, 6:5 = 1.2)
    blackjack_payout: Decimal = Decimal("1.5")

    # Double down rules
    double_after_split: bool = True  # DAS
    double_on: DoubleOn = "any"

    # Split rules
    resplit_aces: bool = False  # RSA
    max_splits: int = 3  # splits allowed per round

    # Surrender rules; early and late cannot both be on
    surrender: Surrender = "late"

    def __post_init__(self) -> None:
        """Coerce money fields to Decimal and validate every rule."""
        for name in ("starting_bankroll", "min_bet", "max_bet", "blackjack_payout"):
            object.__setattr__(self, name, _to_decimal(name, getattr(self, name)))
        if not isinstance(self.shuffle_mode, ShuffleMode):
            try:
                object.__setattr__(self, "shuffle_mode", ShuffleMode(self.shuffle_mode))
            except ValueError:
                raise RulesValidationError(
                    f"Unknown shuffle mode: {self.shuffle_mode!r}"
                ) from None
        for name in ("num_decks", "penetration_percent", "max_splits"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise RulesValidationError(f"{name} must be an integer, got {value!r}")

        if not MIN_DECKS <= self.num_decks <= MAX_DECKS:
            raise RulesValidationError(
                f"num_decks must be between {MIN_DECKS} and {MAX_DECKS}, got {self.num_decks}"
            )
        if not 1 <= self.penetration_percent <= 100:
            raise RulesValidationError(
                f"penetration_percent must be between 1 and 100, got {self.penetration_percent}"
            )
        if self.starting_bankroll < 0:
            raise RulesValidationError("starting_bankroll cannot be negative")
        if self.blackjack_payout <= 0:
            raise RulesValidationError("blackjack_payout must be positive")
        if not MIN_SPLITS <= self.max_splits <= MAX_SPLITS:
            raise RulesValidationError(
                f"max_splits must be between {MIN_SPLITS} and {MAX_SPLITS}, got {self.max_splits}"
            )
        if self.min_bet < 0:
            raise RulesValidationError("min_bet cannot be negative")
        if self.max_bet < self.min_bet:
            raise RulesValidationError(
                f"max_bet ({self.max_bet}) must be >= min_bet ({self.min_bet})"
            )
        if self.double_on not in _DOUBLE_ON_TOTALS:
            raise RulesValidationError(f"Unknown double_on rule: {self.double_on!r}")
        if self.surrender not in _SURRENDER_RULES:
            raise RulesValidationError(f"Unknown surrender rule: {self.surrender!r}")
        if self.play_mode not in _PLAY_MODES:
            raise RulesValidationError(f"Unknown play mode: {self.play_mode!r}")

    @property
    def allow_early_surrender(self) -> bool:
        return self.surrender == "early"

    @property
    def allow_late_surrender(self) -> bool:
        return self.surrender == "late"

    @property
    def is_free_play(self) -> bool:
        return self.play_mode == "free_play"

    def allows_double_on(self, total: int) -> bool:
        """Check the double-down total restriction for a two-card total."""
        totals = _DOUBLE_ON_TOTALS[self.double_on]
        return totals is None or total in totals

    def with_changes(self, **changes: Any) -> "RuleSet":
        """Return a new, re-validated rule set with some rules changed."""
        return dataclasses.replace(self, **changes)

    @classmethod
    def standard(cls) -> "RuleSet":
        """House defaults: 6 decks, S17, 3:2, DAS, late surrender, $5-$500."""
        return cls()

    @classmethod
    def vegas_strip(cls) -> "RuleSet":
        """Standard Vegas Strip rules."""
        return cls(
            num_decks=6,
            dealer_hits_soft_17=False,
            blackjack_payout=Decimal("1.5"),
            double_after_split=True,
            double_on="any",
            resplit_aces=False,
            surrender="late",
        )

    @classmethod
    def downtown_vegas(cls) -> "RuleSet":
        """Downtown Las Vegas rules (typically H17)."""
        return cls(
            num_decks=6,
            dealer_hits_soft_17=True,
            blackjack_payout=Decimal("1.5"),
            double_after_split=True,
            double_on="any",
            resplit_aces=False,
            surrender="late",
        )

    @classmethod
    def single_deck(cls) -> "RuleSet":
        """Single deck rules."""
        return cls(
            num_decks=1,
            dealer_hits_soft_17=True,
            blackjack_payout=Decimal("1.5"),
            double_after_split=False,
            double_on="10-11",
            resplit_aces=False,
            surrender="none",
        )

    @classmethod
    def atlantic_city(cls) -> "RuleSet":
        """Atlantic City rules."""
        return cls(
            num_decks=8,
            dealer_hits_soft_17=False,
            blackjack_payout=Decimal("1.5"),
            double_after_split=True,
            double_on="any",
            resplit_aces=False,
            surrender="late",
        )

    def to_settings(self) -> dict[str, str]:
        """Serialize every rule to the text form used by settings storage."""
        return {
            "num_decks": str(self.num_decks),
            "penetration_percent": str(self.penetration_percent),
            "shuffle_mode": self.shuffle_mode.value,
            "starting_bankroll": str(self.starting_bankroll),
            "min_bet": str(self.min_bet),
            "max_bet": str(self.max_bet),
            "play_mode": self.play_mode,
            "dealer_hits_soft_17": str(self.dealer_hits_soft_17),
            "blackjack_payout": format_payout(self.blackjack_payout),
            "double_after_split": str(self.double_after_split),
            "double_on": self.double_on,
            "resplit_aces": str(self.resplit_aces),
            "max_splits": str(self.max_splits),
            "surrender": self.surrender,
        }

    @classmethod
    def from_settings(
        cls,
        settings: Mapping[str, str],
        base: "RuleSet | None" = None,
    ) -> "RuleSet":
        """
        Build rules from stored settings text.

        Keys are case-insensitive and unknown keys are ignored. A value that
        does not parse keeps the base rule; deck count, split count and
        penetration are clamped into range. Both are logged as warnings.

        Args:
            settings: Mapping of setting name to text value
            base: Rules to start from (defaults to ``standard()``)

        Raises:
            RulesValidationError: If the parsed values are inconsistent
                (e.g. max bet below min bet)
        """
        rules = base or cls.standard()
        normalized = {key.strip().lower(): value for key, value in settings.items()}
        changes: dict[str, Any] = {}

        for name, parser in _SETTING_PARSERS.items():
            if name not in normalized:
                continue
            raw = normalized[name]
            try:
                changes[name] = parser(name, raw)
            except (ValueError, ArithmeticError):
                logger.warning("Ignoring unparseable setting %s=%r", name, raw)

        return rules.with_changes(**changes)


def format_payout(payout: Decimal) -> str:
    """Render a payout multiplier, using 3:2 / 6:5 where they apply."""
    return _PAYOUT_NAMES.get(payout, str(payout))


def parse_payout(text: str) -> Decimal:
    """Parse '3:2', '6:5', any 'a:b' ratio, or a plain decimal multiplier."""
    text = text.strip()
    if ":" in text:
        numerator, denominator = text.split(":", 1)
        return Decimal(numerator.strip()) / Decimal(denominator.strip())
    return Decimal(text)


def _parse_bool(name: str, text: str) -> bool:
    lowered = text.strip().lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    raise ValueError(f"{name}: expected True or False, got {text!r}")


def _clamped_int(low: int, high: int):
    def parse(name: str, text: str) -> int:
        value = int(text.strip())
        clamped = min(max(value, low), high)
        if clamped != value:
            logger.warning("Clamping setting %s=%d into [%d, %d]", name, value, low, high)
        return clamped

    return parse


def _parse_decimal(name: str, text: str) -> Decimal:
    value = Decimal(text.strip())
    if not value.is_finite():
        raise ValueError(f"{name}: {text!r} is not finite")
    return value


def _parse_payout(name: str, text: str) -> Decimal:
    value = parse_payout(text)
    if not value.is_finite() or value <= 0:
        raise ValueError(f"{name}: {text!r} is not a positive payout")
    return value


def _choice(options: Mapping[str, str]):
    def parse(name: str, text: str) -> str:
        key = text.strip().lower()
        if key not in options:
            raise ValueError(f"{name}: unknown value {text!r}")
        return options[key]

    return parse


def _parse_shuffle_mode(name: str, text: str) -> ShuffleMode:
    return ShuffleMode(text.strip().lower())


_SETTING_PARSERS = {
    "num_decks": _clamped_int(MIN_DECKS, MAX_DECKS),
    "penetration_percent": _clamped_int(1, 100),
    "shuffle_mode": _parse_shuffle_mode,
    "starting_bankroll": _parse_decimal,
    "min_bet": _parse_decimal,
    "max_bet": _parse_decimal,
    "play_mode": _choice({
        "wagered": "wagered",
        "betting": "wagered",
        "free_play": "free_play",
        "freeplay": "free_play",
    }),
    "dealer_hits_soft_17": _parse_bool,
    "blackjack_payout": _parse_payout,
    "double_after_split": _parse_bool,
    "double_on": _choice({
        "any": "any",
        "anytwocards": "any",
        "9-11": "9-11",
        "ninetoeleven": "9-11",
        "10-11": "10-11",
        "tentoeleven": "10-11",
    }),
    "resplit_aces": _parse_bool,
    "max_splits": _clamped_int(MIN_SPLITS, MAX_SPLITS),
    "surrender": _choice({"none": "none", "early": "early", "late": "late"}),
}
