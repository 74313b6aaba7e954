"""Tests for the dealer's drawing policy."""

from random import Random

import pytest

from blackjack_engine.cards import Card, Shoe
from blackjack_engine.dealer import Dealer, dealer_should_hit
from blackjack_engine.hand import Hand


def make_hand(*codes: str) -> Hand:
    return Hand([Card.from_string(code) for code in codes])


class TestDealerShouldHit:
    @pytest.mark.parametrize(
        "codes, hits_soft_17, expected",
        [
            (("TS", "6H"), False, True),
            (("TS", "7H"), False, False),
            (("TS", "7H"), True, False),
            (("AS", "6H"), False, False),
            (("AS", "6H"), True, True),
            (("AS", "7H"), True, False),
            (("AS", "5H", "AC"), True, True),
            (("TS", "5H", "AC", "AD"), True, False),
        ],
    )
    def test_policy(self, codes, hits_soft_17, expected):
        assert dealer_should_hit(make_hand(*codes), hits_soft_17) is expected


class TestDealer:
    def test_up_and_hole_card(self):
        dealer = Dealer()
        assert dealer.up_card is None
        assert dealer.hole_card is None

        dealer.hand.add_card(Card.from_string("6S"))
        dealer.hand.add_card(Card.from_string("KD"))
        assert dealer.up_card == Card.from_string("6S")
        assert dealer.hole_card == Card.from_string("KD")

    def test_play_hand_reports_each_draw(self):
        shoe = Shoe(num_decks=1, rng=Random(1))
        shoe.stack(Card.from_string(c) for c in ["2C", "3D", "9H"])
        dealer = Dealer()
        dealer.hand.add_card(Card.from_string("6S"))
        dealer.hand.add_card(Card.from_string("4D"))

        drawn = []
        dealer.play_hand(shoe, on_hit=drawn.append)

        # 10 -> 12 -> 15 -> 24
        assert drawn == [Card.from_string(c) for c in ["2C", "3D", "9H"]]
        assert dealer.hand.is_busted

    def test_soft_17_policy(self):
        shoe = Shoe(num_decks=1, rng=Random(1))
        shoe.stack([Card.from_string("3C")])

        stands = Dealer(hits_soft_17=False)
        stands.hand.add_card(Card.from_string("AS"))
        stands.hand.add_card(Card.from_string("6D"))
        stands.play_hand(shoe)
        assert stands.hand.num_cards == 2

        hits = Dealer(hits_soft_17=True)
        hits.hand.add_card(Card.from_string("AS"))
        hits.hand.add_card(Card.from_string("6D"))
        hits.play_hand(shoe)
        assert hits.hand.value == 20

    def test_clear_hand(self):
        dealer = Dealer()
        dealer.hand.add_card(Card.from_string("6S"))
        dealer.clear_hand()
        assert dealer.hand.num_cards == 0
