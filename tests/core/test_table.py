"""Tests for the table session."""

from decimal import Decimal
from random import Random

import pytest

from blackjack_engine.cards import Card, ShuffleMode
from blackjack_engine.config import EngineConfig
from blackjack_engine.errors import PhaseError
from blackjack_engine.game import RoundPhase
from blackjack_engine.game.events import EventType
from blackjack_engine.recorder import up_card_label
from blackjack_engine.rules import RuleSet
from blackjack_engine.table import Table


def play_out(game) -> None:
    """Finish a round by declining insurance and standing on every hand."""
    if game.phase == RoundPhase.INSURANCE:
        game.decline_insurance()
    while game.phase == RoundPhase.PLAYER_TURN:
        game.stand()


class TestTable:
    def test_bankroll_from_rules(self):
        table = Table(RuleSet(starting_bankroll=250))
        assert table.player.bankroll == Decimal("250")

    def test_rounds_share_the_shoe_and_bankroll(self):
        table = Table(rng=Random(42))
        for _ in range(5):
            game = table.start_round()
            game.place_bet(10)
            game.deal()
            play_out(game)
            assert game.phase == RoundPhase.COMPLETE

        assert table.rounds_played == 5
        assert table.shoe.cards_dealt > 0

    def test_subscribers_see_every_round(self):
        table = Table(rng=Random(42))
        completed = []
        table.events.subscribe(completed.append, EventType.ROUND_COMPLETE)
        for _ in range(5):
            game = table.start_round()
            game.place_bet(10)
            game.deal()
            play_out(game)

        assert len(completed) == 5
        assert completed[-1].bankroll == table.player.bankroll

    def test_cannot_start_while_round_in_progress(self):
        table = Table(rng=Random(42))
        game = table.start_round()
        game.place_bet(10)
        assert table.round_in_progress
        with pytest.raises(PhaseError):
            table.start_round()

    def test_replace_rules_keeps_shoe_when_unchanged(self):
        table = Table(rng=Random(42))
        shoe = table.shoe
        table.replace_rules(table.rules.with_changes(dealer_hits_soft_17=True))
        assert table.shoe is shoe
        assert table.dealer.hits_soft_17

    def test_replace_rules_rebuilds_shoe(self):
        table = Table(rng=Random(42))
        table.replace_rules(RuleSet(num_decks=2, shuffle_mode=ShuffleMode.CRYPTOGRAPHIC))
        assert table.shoe.total_cards == 104
        assert table.shoe.shuffle_mode is ShuffleMode.CRYPTOGRAPHIC

    def test_replace_rules_during_round(self):
        table = Table(rng=Random(42))
        table.start_round().place_bet(10)
        with pytest.raises(PhaseError):
            table.replace_rules(RuleSet.single_deck())

    def test_from_config(self):
        engine_config = EngineConfig(
            shuffle_seed=7,
            player_name="Ada",
            rules=RuleSet.single_deck(),
        )
        first = Table.from_config(engine_config)
        second = Table.from_config(engine_config)

        assert first.player.name == "Ada"
        assert first.shoe.num_decks == 1
        assert list(first.shoe) == list(second.shoe)

    def test_history_holds_only_the_current_round(self):
        table = Table(rng=Random(42))
        for _ in range(20):
            game = table.start_round()
            game.place_bet(10)
            game.deal()
            play_out(game)

            history = table.events.history
            assert history[0].event_type == EventType.BET_PLACED
            assert [e.event_type for e in history].count(EventType.ROUND_COMPLETE) == 1

        table.start_round()
        assert table.events.history == []

    def test_attached_recorder_uses_table_dealer_name(self):
        table = Table(dealer_name="House", rng=Random(42))
        recorder = table.attach_recorder()
        game = table.start_round()
        table.shoe.stack(Card.from_string(c) for c in "TD 6S 7C KD 5H".split())
        game.place_bet(10)
        game.deal()
        game.stand()

        [summary] = recorder.summaries
        assert [seen.recipient for seen in summary.cards_seen] == [
            "Player", "House", "Player", "House", "House",
        ]
        assert not any(seen.face_down for seen in summary.cards_seen)
        assert summary.decisions[0].dealer_up_card == up_card_label(Card.from_string("6S"))
