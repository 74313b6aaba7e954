"""Round engine: one round of blackjack as a state machine."""

import functools
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, TypeVar, cast

from transitions import Machine

from blackjack_engine.cards import Card, Shoe
from blackjack_engine.dealer import Dealer
from blackjack_engine.errors import (
    EventSinkError,
    IneligibleActionError,
    InvalidBetError,
    PhaseError,
)
from blackjack_engine.game.events import (
    BetPlaced,
    BlackjackDetected,
    CardDealt,
    DealerBusted,
    DealerHit,
    DealerHoleCardRevealed,
    DealerPeeked,
    DealerStood,
    DealerTurnStarted,
    EventSink,
    GameEvent,
    HandResolved,
    InitialDealComplete,
    InsuranceDeclined,
    InsuranceOffered,
    InsurancePlaced,
    InsuranceResult,
    PlayerBusted,
    PlayerDoubledDown,
    PlayerHit,
    PlayerSplit,
    PlayerStood,
    PlayerSurrendered,
    PlayerTurnStarted,
    RoundComplete,
    ShoeCutCardReached,
    ShoeReshuffled,
)
from blackjack_engine.game.state import RoundPhase
from blackjack_engine.hand import Hand, HandOutcome, resolve_hand
from blackjack_engine.players import Player
from blackjack_engine.rules import INSURANCE_PAYOUT, RuleSet

logger = logging.getLogger(__name__)

_F = TypeVar("_F", bound=Callable[..., Any])

ZERO = Decimal("0")


def _round_operation(method: _F) -> _F:
    """Raise EventSinkError after a public operation if the sink failed during it."""

    @functools.wraps(method)
    def wrapper(self: "GameRound", *args: Any, **kwargs: Any) -> Any:
        result = method(self, *args, **kwargs)
        self._raise_sink_errors()
        return result

    return wrapper  # type: ignore[return-value]


class GameRound:
    """
    One round of blackjack, from bet to payout.

    The engine is synchronous: every public operation validates phase and
    eligibility first, raising before any state changes, then runs to
    completion and publishes its events, in order, through ``publish``.
    Construct a new instance for every round.
    """

    # State machine states
    STATES = [p.name.lower() for p in RoundPhase]

    # State machine transitions
    TRANSITIONS = [
        {"trigger": "accept_bet", "source": "betting", "dest": "dealing"},
        {"trigger": "offer_insurance", "source": "dealing", "dest": "insurance"},
        {"trigger": "begin_player_turn", "source": ["dealing", "insurance"], "dest": "player_turn"},
        {"trigger": "begin_dealer_turn", "source": "player_turn", "dest": "dealer_turn"},
        {
            "trigger": "begin_resolution",
            "source": ["dealing", "insurance", "player_turn", "dealer_turn"],
            "dest": "resolution",
        },
        {"trigger": "complete_round", "source": "resolution", "dest": "complete"},
    ]

    def __init__(
        self,
        shoe: Shoe,
        player: Player,
        dealer: Dealer,
        rules: RuleSet,
        publish: EventSink,
    ) -> None:
        """
        Initialize a round.

        Args:
            shoe: Shoe to deal from (borrowed for the round)
            player: Bankroll holder; only payouts change the bankroll
            dealer: Dealer whose hand is cleared at the deal
            rules: Table rules for this round
            publish: Sink receiving every event of the round, in order
        """
        self._shoe = shoe
        self._player = player
        self._dealer = dealer
        self._rules = rules
        self._sink = publish
        self._dealer.hits_soft_17 = rules.dealer_hits_soft_17

        self._bets: dict[int, Decimal] = {}
        self._insurance_bet = ZERO
        self._insurance_taken = False
        self._insurance_settled = False
        self._insurance_payout = ZERO
        self._current_hand_index = 0
        self._split_count = 0
        self._split_ace_hands: set[int] = set()
        self._peek_pending = False
        self._peek_completed = False
        self._hole_card_revealed = False
        self._surrendered = False
        self._sink_errors: list[Exception] = []

        # Initialize state machine
        self.machine = Machine(
            model=self,
            states=self.STATES,
            transitions=self.TRANSITIONS,
            initial="betting",
            auto_transitions=False,
            model_attribute="_machine_state",
            after_state_change="_log_phase_change",
        )

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def phase(self) -> RoundPhase:
        """Get current round phase as enum."""
        return RoundPhase[self._machine_state.upper()]  # type: ignore[attr-defined]

    @property
    def rules(self) -> RuleSet:
        return self._rules

    @property
    def player(self) -> Player:
        return self._player

    @property
    def dealer(self) -> Dealer:
        return self._dealer

    @property
    def hands(self) -> list[Hand]:
        return list(self._player.hands)

    @property
    def dealer_hand(self) -> Hand:
        return self._dealer.hand

    @property
    def current_hand_index(self) -> int:
        return self._current_hand_index

    @property
    def current_hand(self) -> Hand | None:
        """Get the hand being played, if any."""
        if 0 <= self._current_hand_index < len(self._player.hands):
            return self._player.hands[self._current_hand_index]
        return None

    @property
    def bets(self) -> dict[int, Decimal]:
        """Committed bet per hand index."""
        return dict(self._bets)

    @property
    def insurance_bet(self) -> Decimal:
        return self._insurance_bet

    @property
    def split_count(self) -> int:
        return self._split_count

    @property
    def split_ace_hands(self) -> frozenset[int]:
        """Hand indices limited to split-ace rules (stand, or resplit when allowed)."""
        return frozenset(self._split_ace_hands)

    @property
    def peek_pending(self) -> bool:
        """A ten-value up-card peek that the next player action will resolve."""
        return self._peek_pending

    @property
    def peek_completed(self) -> bool:
        return self._peek_completed

    @property
    def available_funds(self) -> Decimal:
        """Bankroll not yet committed to a bet or open insurance stake this round."""
        committed = sum(self._bets.values(), ZERO)
        if self._insurance_taken and not self._insurance_settled:
            committed += self._insurance_bet
        return self._player.bankroll - committed

    # ------------------------------------------------------------------
    # Betting and dealing
    # ------------------------------------------------------------------

    @_round_operation
    def place_bet(self, amount: Decimal | int | str) -> None:
        """
        Place the round's wager on hand 0.

        Args:
            amount: Bet amount; must be zero in free-play mode

        Raises:
            PhaseError: If the round is past betting
            InvalidBetError: If the amount is invalid for the table or bankroll
        """
        self._require_phase(RoundPhase.BETTING, "place bet")
        bet = self._validate_bet(amount)

        self._bets[0] = bet
        self._publish(BetPlaced(self._player.name, bet))
        self.accept_bet()  # Trigger state transition

    def _validate_bet(self, amount: Any) -> Decimal:
        if isinstance(amount, bool):
            raise InvalidBetError(f"Bet must be a number, got {amount!r}")
        try:
            bet = Decimal(str(amount)) if isinstance(amount, float) else Decimal(amount)
        except (InvalidOperation, TypeError, ValueError):
            raise InvalidBetError(f"Bet must be a number, got {amount!r}") from None

        if not bet.is_finite():
            raise InvalidBetError(f"Bet must be finite, got {amount!r}")
        if bet < 0:
            raise InvalidBetError(f"Bet cannot be negative, got {bet}")

        if self._rules.is_free_play:
            if bet != 0:
                raise InvalidBetError("Free play rounds take no wager")
            return bet

        if bet == 0:
            raise InvalidBetError("Wagered rounds need a positive bet")
        if bet < self._rules.min_bet or bet > self._rules.max_bet:
            raise InvalidBetError(
                f"Bet must be between {self._rules.min_bet} and {self._rules.max_bet}"
            )
        if bet > self._player.bankroll:
            raise InvalidBetError(
                f"Bet of {bet} exceeds bankroll of {self._player.bankroll}"
            )
        return bet

    @_round_operation
    def deal(self) -> None:
        """
        Deal the opening cards and route the round.

        Player, dealer, player, dealer (hole card face down). An Ace up-card
        offers insurance; a ten-value up-card arms the dealer peek; naturals
        settle immediately once the dealer cannot have blackjack.
        """
        self._require_phase(RoundPhase.DEALING, "deal")

        self._check_cut_card()

        self._player.clear_hands()
        self._dealer.clear_hand()
        self._player.create_hand()

        self._deal_to_player(0)
        self._deal_to_dealer(face_down=False)
        self._deal_to_player(0)
        self._deal_to_dealer(face_down=True)

        self._publish(InitialDealComplete())

        up_card = cast(Card, self._dealer.up_card)
        player_natural = self._player.hands[0].is_blackjack

        if up_card.is_ace:
            self.offer_insurance()
            self._publish(InsuranceOffered(self._player.name, self._insurance_stake()))
            return

        if up_card.is_ten_value:
            self._peek_pending = True
            # Natural: no player decision, peek now
            if player_natural and self._resolve_pending_peek():
                return

        if player_natural:
            self._publish(BlackjackDetected(self._player.name))
            self._finish_round()
            return

        self._start_player_turn()

    def _check_cut_card(self) -> None:
        if not self._shoe.is_cut_card_reached:
            return
        self._publish(
            ShoeCutCardReached(self._shoe.cards_remaining, self._shoe.cut_card_threshold)
        )
        self._shoe.reshuffle_if_cut_card_reached()
        self._publish(
            ShoeReshuffled(
                self._shoe.num_decks,
                self._shoe.cards_remaining,
                self._shoe.cut_card_threshold,
            )
        )

    def _deal_to_player(self, hand_index: int) -> Card:
        card = self._shoe.draw()
        self._player.add_card_to_hand(hand_index, card)
        self._publish(CardDealt(card, self._player.name, hand_index, False))
        return card

    def _deal_to_dealer(self, face_down: bool) -> Card:
        card = self._shoe.draw()
        self._dealer.hand.add_card(card)
        self._publish(CardDealt(card, self._dealer.name, 0, face_down))
        return card

    # ------------------------------------------------------------------
    # Insurance and the dealer peek
    # ------------------------------------------------------------------

    def _insurance_stake(self) -> Decimal:
        return self._bets[0] / 2

    @property
    def can_insure(self) -> bool:
        """Check if insurance can be afforded right now."""
        if self.phase != RoundPhase.INSURANCE:
            return False
        return self.available_funds >= self._insurance_stake()

    @_round_operation
    def place_insurance(self) -> None:
        """
        Take insurance for half the main bet, then let the dealer peek.

        Declined automatically when the stake cannot be covered by available funds.
        """
        self._require_phase(RoundPhase.INSURANCE, "place insurance")

        stake = self._insurance_stake()
        if self.available_funds < stake:
            logger.info(
                "Insurance of %s declined for %s: only %s available",
                stake,
                self._player.name,
                self.available_funds,
            )
            self._publish(InsuranceDeclined(self._player.name))
        else:
            self._insurance_bet = stake
            self._insurance_taken = True
            self._publish(InsurancePlaced(self._player.name, stake))

        self._complete_insurance_decision()

    @_round_operation
    def decline_insurance(self) -> None:
        """Decline insurance, then let the dealer peek."""
        self._require_phase(RoundPhase.INSURANCE, "decline insurance")

        self._publish(InsuranceDeclined(self._player.name))
        self._complete_insurance_decision()

    def _complete_insurance_decision(self) -> None:
        """Peek under the Ace, settle insurance and continue or resolve."""
        self._peek_completed = True
        dealer_bj = self._dealer.hand.is_blackjack
        self._publish(DealerPeeked(dealer_bj))

        if dealer_bj:
            self._reveal_hole_card()
            self._publish(BlackjackDetected(self._dealer.name))
            self._settle_insurance(won=True)
            if self._player.hands[0].is_blackjack:
                self._publish(BlackjackDetected(self._player.name))
            self._finish_round()
            return

        self._settle_insurance(won=False)

        if self._player.hands[0].is_blackjack:
            self._publish(BlackjackDetected(self._player.name))
            self._finish_round()
            return

        self._start_player_turn()

    def _settle_insurance(self, won: bool) -> None:
        if not self._insurance_taken:
            return
        if won:
            payout = self._insurance_bet * INSURANCE_PAYOUT
        else:
            payout = -self._insurance_bet
        self._player.apply_payout(payout)
        self._insurance_payout = payout
        self._insurance_settled = True
        self._publish(InsuranceResult(self._player.name, won, payout))

    def _resolve_pending_peek(self) -> bool:
        """
        Peek under a ten-value up-card.

        Returns:
            True if the dealer had blackjack and the round has been resolved
        """
        self._peek_pending = False
        self._peek_completed = True
        dealer_bj = self._dealer.hand.is_blackjack
        self._publish(DealerPeeked(dealer_bj))

        if not dealer_bj:
            return False

        self._reveal_hole_card()
        self._publish(BlackjackDetected(self._dealer.name))
        if self._split_count == 0 and self._player.hands[0].is_blackjack:
            self._publish(BlackjackDetected(self._player.name))
        self._finish_round()
        return True

    def _peek_before_action(self) -> bool:
        """Resolve an armed peek ahead of the first player action.

        Returns True if the round ended instead.
        """
        if not self._peek_pending:
            return False
        return self._resolve_pending_peek()

    # ------------------------------------------------------------------
    # Player actions
    # ------------------------------------------------------------------

    @_round_operation
    def hit(self) -> None:
        """Player takes another card on the current hand."""
        self._require_phase(RoundPhase.PLAYER_TURN, "hit")
        self._require_eligible("hit", self._hit_blocker())
        if self._peek_before_action():
            return

        index = self._current_hand_index
        card = self._shoe.draw()
        self._player.add_card_to_hand(index, card)
        self._publish(PlayerHit(self._player.name, card, index))

        if self._player.hands[index].is_busted:
            self._publish(PlayerBusted(self._player.name, index))
            self._advance_to_next_hand()

    @_round_operation
    def stand(self) -> None:
        """Player keeps the current hand."""
        self._require_phase(RoundPhase.PLAYER_TURN, "stand")
        if self._peek_before_action():
            return

        self._publish(PlayerStood(self._player.name, self._current_hand_index))
        self._advance_to_next_hand()

    @_round_operation
    def double_down(self) -> None:
        """Double the current bet, take exactly one card and finish the hand."""
        self._require_phase(RoundPhase.PLAYER_TURN, "double down")
        self._require_eligible("double down", self._double_down_blocker())
        if self._peek_before_action():
            return

        index = self._current_hand_index
        self._bets[index] *= 2
        card = self._shoe.draw()
        self._player.add_card_to_hand(index, card)
        self._publish(
            PlayerDoubledDown(self._player.name, card, index, self._bets[index])
        )

        if self._player.hands[index].is_busted:
            self._publish(PlayerBusted(self._player.name, index))

        self._advance_to_next_hand()

    @_round_operation
    def split(self) -> None:
        """
        Split the current pair into two hands.

        The second card opens a new hand with a copy of the bet and each hand
        gets one fresh card. Split Aces are restricted to standing or, when
        the table allows it, resplitting.
        """
        self._require_phase(RoundPhase.PLAYER_TURN, "split")
        self._require_eligible("split", self._split_blocker())
        if self._peek_before_action():
            return

        index = self._current_hand_index
        split_card = self._player.hands[index].remove_at(1)
        new_index = self._player.create_hand()
        self._player.add_card_to_hand(new_index, split_card)
        self._bets[new_index] = self._bets[index]
        self._split_count += 1

        self._publish(PlayerSplit(self._player.name, index, new_index, split_card))

        self._deal_to_player(index)
        self._deal_to_player(new_index)

        if split_card.is_ace:
            self._split_ace_hands.update((index, new_index))

        self._start_hand_turn(index)

    @_round_operation
    def surrender(self) -> None:
        """
        Give up hand 0 for half its bet.

        Early surrender is taken before the dealer peeks (including during the
        insurance offer). Late surrender is honoured only after the peek; if
        the peek is still armed it runs first and a dealer blackjack ends the
        round without the surrender.
        """
        if self.phase not in (RoundPhase.INSURANCE, RoundPhase.PLAYER_TURN):
            raise PhaseError("surrender", self.phase)
        self._require_eligible("surrender", self._surrender_blocker())

        if self._rules.allow_late_surrender and self._peek_before_action():
            return

        self._surrendered = True
        self._publish(PlayerSurrendered(self._player.name, 0))
        self._finish_round()

    # ------------------------------------------------------------------
    # Eligibility
    # ------------------------------------------------------------------

    @property
    def can_hit(self) -> bool:
        """Check if hitting is allowed."""
        return self.phase == RoundPhase.PLAYER_TURN and self._hit_blocker() is None

    @property
    def can_stand(self) -> bool:
        """Check if standing is allowed."""
        return self.phase == RoundPhase.PLAYER_TURN

    @property
    def can_double_down(self) -> bool:
        """Check if doubling down is allowed."""
        return self.phase == RoundPhase.PLAYER_TURN and self._double_down_blocker() is None

    @property
    def can_split(self) -> bool:
        """Check if splitting is allowed."""
        return self.phase == RoundPhase.PLAYER_TURN and self._split_blocker() is None

    @property
    def can_surrender(self) -> bool:
        """
        Check if surrender is allowed.

        Under late surrender this can be True while the peek is still armed;
        a dealer blackjack found by that peek ends the round instead.
        """
        return (
            self.phase in (RoundPhase.INSURANCE, RoundPhase.PLAYER_TURN)
            and self._surrender_blocker() is None
        )

    def _hit_blocker(self) -> str | None:
        hand = self._player.hands[self._current_hand_index]
        if self._current_hand_index in self._split_ace_hands:
            return "split aces cannot take another card"
        if hand.is_busted:
            return "hand is busted"
        return None

    def _double_down_blocker(self) -> str | None:
        index = self._current_hand_index
        hand = self._player.hands[index]
        bet = self._bets[index]
        if hand.num_cards != 2:
            return "can only double on the first two cards"
        if index in self._split_ace_hands:
            return "split aces cannot be doubled"
        if not self._rules.allows_double_on(hand.value):
            return f"doubling is restricted to totals {self._rules.double_on}"
        if bet * 2 > self._rules.max_bet:
            return "doubling would exceed the table maximum"
        if self._split_count > 0 and not self._rules.double_after_split:
            return "doubling after a split is not allowed"
        if self.available_funds < bet:
            return "insufficient funds to double"
        return None

    def _split_blocker(self) -> str | None:
        hand = self._player.hands[self._current_hand_index]
        if not hand.is_pair:
            return "hand is not a pair"
        if self._split_count >= self._rules.max_splits:
            return "maximum splits reached"
        if hand.cards[0].is_ace and self._split_count > 0 and not self._rules.resplit_aces:
            return "resplitting aces is not allowed"
        if self.available_funds < self._bets[self._current_hand_index]:
            return "insufficient funds to split"
        return None

    def _surrender_blocker(self) -> str | None:
        if self._rules.surrender == "none":
            return "surrender is not offered at this table"
        if self._split_count > 0:
            return "cannot surrender after splitting"
        if self._current_hand_index != 0:
            return "only the first hand can be surrendered"
        hand = self._player.hands[0]
        if hand.num_cards != 2:
            return "can only surrender the first two cards"
        if hand.is_blackjack:
            return "a natural cannot be surrendered"
        if self._rules.allow_early_surrender:
            if self._peek_completed:
                return "early surrender must be taken before the dealer peeks"
            return None
        if self.phase == RoundPhase.INSURANCE:
            return "late surrender is only offered after the dealer peeks"
        return None

    # ------------------------------------------------------------------
    # Turn flow
    # ------------------------------------------------------------------

    def _start_player_turn(self) -> None:
        self.begin_player_turn()
        self._start_hand_turn(0)

    def _start_hand_turn(self, index: int) -> None:
        """Announce a hand's turn; split aces with no resplit left stand at once."""
        self._publish(PlayerTurnStarted(self._player.name, index))
        if index in self._split_ace_hands and self._split_blocker() is not None:
            self._publish(PlayerStood(self._player.name, index))
            self._advance_to_next_hand()

    def _advance_to_next_hand(self) -> None:
        """Move to the next hand or on to the dealer."""
        self._current_hand_index += 1

        if self._current_hand_index < len(self._player.hands):
            self._start_hand_turn(self._current_hand_index)
            return

        if any(not hand.is_busted for hand in self._player.hands):
            self._play_dealer_turn()
        else:
            self._finish_round()

    def _play_dealer_turn(self) -> None:
        """Dealer reveals the hole card and draws to the house policy."""
        self.begin_dealer_turn()
        self._publish(DealerTurnStarted())
        self._reveal_hole_card()

        self._dealer.play_hand(self._shoe, on_hit=lambda card: self._publish(DealerHit(card)))

        dealer_hand = self._dealer.hand
        if dealer_hand.is_busted:
            self._publish(DealerBusted(dealer_hand.value))
        else:
            self._publish(DealerStood(dealer_hand.value))

        self._finish_round()

    def _reveal_hole_card(self) -> None:
        if self._hole_card_revealed:
            return
        hole_card = self._dealer.hole_card
        if hole_card is None:
            return
        self._hole_card_revealed = True
        self._publish(DealerHoleCardRevealed(hole_card))

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def _finish_round(self) -> None:
        """Settle every hand against the dealer and complete the round."""
        self.begin_resolution()
        self._reveal_hole_card()

        net = self._insurance_payout
        natural_eligible = self._split_count == 0

        for index, hand in enumerate(self._player.hands):
            bet = self._bets[index]
            if self._surrendered:
                outcome = HandOutcome.SURRENDER
            else:
                outcome = resolve_hand(hand, self._dealer.hand, natural_eligible)
            payout = self._payout_for(outcome, bet)

            self._player.apply_payout(payout)
            net += payout
            self._publish(HandResolved(self._player.name, index, outcome, payout))

        self.complete_round()
        self._publish(RoundComplete(net, self._player.bankroll))

    def _payout_for(self, outcome: HandOutcome, bet: Decimal) -> Decimal:
        if outcome == HandOutcome.BLACKJACK:
            return bet * self._rules.blackjack_payout
        if outcome == HandOutcome.WIN:
            return bet
        if outcome == HandOutcome.LOSE:
            return -bet
        if outcome == HandOutcome.SURRENDER:
            return -bet / 2
        return ZERO

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def _require_phase(self, phase: RoundPhase, operation: str) -> None:
        if self.phase != phase:
            raise PhaseError(operation, self.phase)

    def _require_eligible(self, action: str, blocker: str | None) -> None:
        if blocker is not None:
            raise IneligibleActionError(action, blocker)

    def _publish(self, event: GameEvent) -> None:
        """Hand one event to the sink; sink failures never unwind round state."""
        try:
            self._sink(event)
        except Exception as exc:
            logger.exception("Event sink failed on %s", event.event_type.name)
            self._sink_errors.append(exc)

    def _raise_sink_errors(self) -> None:
        if not self._sink_errors:
            return
        errors, self._sink_errors = self._sink_errors, []
        raise EventSinkError(
            f"Event sink raised {len(errors)} time(s); the round state is intact"
        ) from errors[0]

    def _log_phase_change(self) -> None:
        logger.debug("Round for %s entered phase %s", self._player.name, self.phase)
