"""Table session: the long-lived owner of shoe, bankroll and rules."""

import logging
from random import Random
from typing import Callable

from blackjack_engine.cards import Shoe
from blackjack_engine.config import EngineConfig, config
from blackjack_engine.dealer import Dealer
from blackjack_engine.errors import PhaseError
from blackjack_engine.game.engine import GameRound
from blackjack_engine.game.events import EventEmitter
from blackjack_engine.game.state import RoundPhase
from blackjack_engine.players import Player
from blackjack_engine.recorder import RoundRecorder, RoundSummary
from blackjack_engine.rules import RuleSet

logger = logging.getLogger(__name__)


class Table:
    """
    One seat at one table.

    Builds a fresh ``GameRound`` per round and lends it the shoe, player and
    dealer. Nothing here is shared with another table.
    """

    def __init__(
        self,
        rules: RuleSet | None = None,
        player_name: str = "Player",
        dealer_name: str = "Dealer",
        rng: Random | None = None,
    ) -> None:
        """
        Initialize a table.

        Args:
            rules: Table rules (defaults to standard rules)
            player_name: Name used on the player's events
            dealer_name: Name used on the dealer's events
            rng: Random number generator for seeded shuffles
        """
        self._rules = rules or RuleSet.standard()
        self._rng = rng
        self.shoe = Shoe.from_rules(self._rules, rng)
        self.player = Player(name=player_name, bankroll=self._rules.starting_bankroll)
        self.dealer = Dealer(name=dealer_name, hits_soft_17=self._rules.dealer_hits_soft_17)
        self.events = EventEmitter()
        self._round: GameRound | None = None
        self._rounds_played = 0

    @classmethod
    def from_config(cls, engine_config: EngineConfig | None = None) -> "Table":
        """Build a table from environment-driven engine configuration."""
        engine_config = engine_config or config
        rng = Random(engine_config.shuffle_seed) if engine_config.shuffle_seed is not None else None
        return cls(
            rules=engine_config.rules,
            player_name=engine_config.player_name,
            dealer_name=engine_config.dealer_name,
            rng=rng,
        )

    @property
    def rules(self) -> RuleSet:
        return self._rules

    @property
    def current_round(self) -> GameRound | None:
        return self._round

    @property
    def rounds_played(self) -> int:
        """Rounds started at this table."""
        return self._rounds_played

    @property
    def round_in_progress(self) -> bool:
        return self._round is not None and self._round.phase != RoundPhase.COMPLETE

    def start_round(self) -> GameRound:
        """
        Start the next round.

        The event history is cleared, so it only ever holds the current round.

        Raises:
            PhaseError: If the current round has not completed
        """
        self._require_between_rounds("start a new round")
        self.events.clear_history()

        self._round = GameRound(
            shoe=self.shoe,
            player=self.player,
            dealer=self.dealer,
            rules=self._rules,
            publish=self.events.emit,
        )
        self._rounds_played += 1
        logger.debug("Started round %d for %s", self._rounds_played, self.player.name)
        return self._round

    def replace_rules(self, rules: RuleSet) -> None:
        """
        Swap in new rules between rounds.

        The shoe is rebuilt only when its deck, penetration or shuffle settings change.

        Raises:
            PhaseError: If a round is in progress
        """
        self._require_between_rounds("change rules")

        old = self._rules
        self._rules = rules
        self.dealer.hits_soft_17 = rules.dealer_hits_soft_17

        if (
            old.num_decks != rules.num_decks
            or old.penetration_percent != rules.penetration_percent
            or old.shuffle_mode != rules.shuffle_mode
        ):
            logger.info(
                "Shoe settings changed, rebuilding %d-deck shoe", rules.num_decks
            )
            self.shoe = Shoe.from_rules(rules, self._rng)

    def attach_recorder(
        self, on_summary: Callable[[RoundSummary], None] | None = None
    ) -> RoundRecorder:
        """Subscribe a recorder that knows this table's dealer by name."""
        return RoundRecorder(self.events, on_summary=on_summary, dealer_name=self.dealer.name)

    def _require_between_rounds(self, action: str) -> None:
        if self._round is not None and self._round.phase != RoundPhase.COMPLETE:
            raise PhaseError(action, self._round.phase)
