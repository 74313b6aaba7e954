"""Configuration management with environment variable support."""

import logging
import os
from dataclasses import dataclass, field

from blackjack_engine.rules import RuleSet


def _parse_seed() -> int | None:
    """Parse BLACKJACK_SHUFFLE_SEED environment variable."""
    seed = os.getenv("BLACKJACK_SHUFFLE_SEED", "").strip()
    return int(seed) if seed else None


@dataclass(frozen=True)
class EngineConfig:
    """Engine configuration."""

    log_level: str = field(
        default_factory=lambda: os.getenv("BLACKJACK_LOG_LEVEL", "INFO").upper()
    )
    shuffle_seed: int | None = field(default_factory=_parse_seed)
    player_name: str = field(
        default_factory=lambda: os.getenv("BLACKJACK_PLAYER_NAME", "Player")
    )
    dealer_name: str = "Dealer"
    rules: RuleSet = field(default_factory=RuleSet.standard)


def setup_logging(level: str | None = None) -> None:
    """Configure root logging for applications embedding the engine."""
    logging.basicConfig(
        level=level or config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# Global configuration instance
config = EngineConfig()
