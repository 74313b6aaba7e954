"""Tests for Card and Shoe classes."""

import pytest
from random import Random

from blackjack_engine.cards import Card, Shoe, ShuffleMode, Rank, Suit, cut_card_threshold
from blackjack_engine.rules import RuleSet


class TestCard:
    """Tests for the Card class."""

    def test_card_immutability(self):
        card = Card(Rank.ACE, Suit.SPADES)
        with pytest.raises(AttributeError):
            card.rank = Rank.KING

    def test_card_value(self):
        """Test card blackjack values."""
        assert Card(Rank.TWO, Suit.HEARTS).value == 2
        assert Card(Rank.TEN, Suit.HEARTS).value == 10
        assert Card(Rank.JACK, Suit.HEARTS).value == 10
        assert Card(Rank.KING, Suit.HEARTS).value == 10
        assert Card(Rank.ACE, Suit.HEARTS).value == 11

    def test_card_is_ten_value(self):
        assert Card(Rank.TEN, Suit.SPADES).is_ten_value
        assert Card(Rank.QUEEN, Suit.SPADES).is_ten_value
        assert not Card(Rank.NINE, Suit.SPADES).is_ten_value
        assert not Card(Rank.ACE, Suit.SPADES).is_ten_value

    def test_card_from_string(self):
        """Test creating cards from strings."""
        assert Card.from_string("AS") == Card(Rank.ACE, Suit.SPADES)
        assert Card.from_string("10D") == Card(Rank.TEN, Suit.DIAMONDS)
        assert Card.from_string("TD") == Card(Rank.TEN, Suit.DIAMONDS)
        assert Card.from_string("kh") == Card(Rank.KING, Suit.HEARTS)
        assert Card.from_string("A♠") == Card(Rank.ACE, Suit.SPADES)

    @pytest.mark.parametrize("text", ["", "A", "1S", "AX", "11H"])
    def test_card_from_string_invalid(self, text):
        with pytest.raises(ValueError):
            Card.from_string(text)

    def test_card_hash(self):
        """Test that cards can be used in sets/dicts."""
        cards = {Card(Rank.ACE, Suit.SPADES), Card(Rank.ACE, Suit.SPADES)}
        assert len(cards) == 1


class TestShoe:
    """Tests for the Shoe class."""

    def test_shoe_creation(self):
        """Test creating a shoe with multiple decks."""
        shoe = Shoe(num_decks=6)
        assert len(shoe) == 312
        assert shoe.total_cards == 312
        assert shoe.num_decks == 6
        assert shoe.cards_dealt == 0

    def test_shoe_has_every_card_per_deck(self):
        shoe = Shoe(num_decks=2)
        cards = list(shoe)
        assert len(set(cards)) == 52
        assert all(cards.count(card) == 2 for card in set(cards))

    @pytest.mark.parametrize("num_decks", [0, 1001])
    def test_shoe_invalid_decks_raises(self, num_decks):
        with pytest.raises(ValueError):
            Shoe(num_decks=num_decks)

    @pytest.mark.parametrize("penetration", [0, 101])
    def test_shoe_invalid_penetration_raises(self, penetration):
        with pytest.raises(ValueError):
            Shoe(num_decks=6, penetration_percent=penetration)

    def test_shoe_seeded_shuffle_is_reproducible(self):
        shoe1 = Shoe(num_decks=1, rng=Random(7))
        shoe2 = Shoe(num_decks=1, rng=Random(7))
        assert list(shoe1) == list(shoe2)

    def test_cryptographic_mode_ignores_rng(self):
        shoe = Shoe(num_decks=1, shuffle_mode=ShuffleMode.CRYPTOGRAPHIC, rng=Random(7))
        assert shoe.shuffle_mode is ShuffleMode.CRYPTOGRAPHIC
        assert len(shoe) == 52

    def test_shoe_draw(self, shoe):
        card = shoe.draw()
        assert isinstance(card, Card)
        assert len(shoe) == 311
        assert shoe.cards_dealt == 1

    def test_draw_from_empty_shoe_rebuilds(self):
        shoe = Shoe(num_decks=1, rng=Random(1))
        for _ in range(52):
            shoe.draw()
        assert shoe.cards_remaining == 0

        card = shoe.draw()
        assert isinstance(card, Card)
        assert shoe.cards_remaining == 51

    def test_largest_shoe(self):
        shoe = Shoe(num_decks=1000, rng=Random(1))
        assert shoe.total_cards == 52_000
        assert shoe.cards_remaining == 52_000

    def test_cut_card_threshold(self):
        assert cut_card_threshold(52, 75) == 13
        assert cut_card_threshold(312, 75) == 78
        assert cut_card_threshold(52, 100) == 0
        # ceil(52 * 0.33) = 18
        assert cut_card_threshold(52, 67) == 18

    def test_cut_card_reached_after_penetration(self):
        """One deck at 75%: cut card at 13 remaining, reached after the 39th draw."""
        shoe = Shoe(num_decks=1, penetration_percent=75, rng=Random(3))
        assert shoe.cut_card_threshold == 13

        for _ in range(38):
            shoe.draw()
        assert not shoe.is_cut_card_reached

        shoe.draw()
        assert shoe.is_cut_card_reached

        shoe.draw()
        assert shoe.cards_dealt == 40
        assert shoe.reshuffle_if_cut_card_reached()
        assert shoe.cards_remaining == 52

    def test_reshuffle_not_needed(self, shoe):
        shoe.draw()
        assert not shoe.reshuffle_if_cut_card_reached()
        assert shoe.cards_remaining == 311

    def test_stack_draws_in_given_order(self, shoe):
        stacked = [Card.from_string(c) for c in ["AS", "KH", "2C"]]
        shoe.stack(stacked)
        assert [shoe.draw() for _ in range(3)] == stacked

    def test_from_rules(self):
        rules = RuleSet(num_decks=2, penetration_percent=50)
        shoe = Shoe.from_rules(rules, Random(1))
        assert shoe.total_cards == 104
        assert shoe.penetration_percent == 50
        assert shoe.cut_card_threshold == 52
