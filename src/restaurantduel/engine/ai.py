from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from .actions import (
    Action,
    AdvanceRoundAction,
    CoinFlipAction,
    CompleteTurnAction,
    FaceOffAction,
    MulliganAction,
    PlayCardAction,
    RestaurantChoice,
    SelectRestaurantAction,
    StartRoundAction,
)
from .match import MatchState, Seat, step
from .types import Card, CardCatalog, EventCard, MealCard, RestaurantCard, StaffCard, StarEffect, SupportCard

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AISpec:
    """AI tuning parameters.

    difficulty:
      0 = easy
      1 = normal (easy and normal share the base ordering)
      2 = hard (plays star-effect cards first depending on the star race)
    """

    difficulty: int = 1
    max_plays: int = 4
    max_meals: int = 3
    mulligan_cap: int = 3


def decide_mulligan(hand: Sequence[str], catalog: CardCatalog, spec: AISpec | None = None) -> list[str]:
    """Send back weak meals (value <= 2) and self-targeted events."""
    spec = spec or AISpec()
    out: list[str] = []
    for card_id in hand:
        if len(out) >= spec.mulligan_cap:
            break
        card = catalog.require(card_id)
        if isinstance(card, MealCard) and card.value <= 2:
            out.append(card_id)
        elif isinstance(card, EventCard) and card.target == "self":
            out.append(card_id)
    return out


def choose_restaurant(seat: Seat, catalog: CardCatalog) -> RestaurantChoice:
    top = catalog.require(seat.restaurant_deck[0])
    bottom = catalog.require(seat.restaurant_deck[-1])
    assert isinstance(top, RestaurantCard) and isinstance(bottom, RestaurantCard)
    return "bottom" if bottom.base_score > top.base_score else "top"


def _preferred_star_effect(state: MatchState, seat: int) -> StarEffect:
    me = state.seats[seat].stars
    them = state.seats[state.opponent(seat)].stars
    return "remove_star" if me < them else "gain_star"


def _meal_discard(state: MatchState, seat: int, meal: MealCard) -> tuple[bool, str | None]:
    """Whether to attach `meal`, and which attached meal to drop for it."""
    s = state.seats[seat]
    if len(s.board.attached_meals) < state.config.max_attached_meals:
        return True, None
    attached = [state.catalog.require(cid) for cid in s.board.attached_meals]
    weakest = min(attached, key=lambda c: c.value if isinstance(c, MealCard) else 0)
    assert isinstance(weakest, MealCard)
    if meal.value > weakest.value:
        return True, weakest.id
    return False, None


class _TurnRunner:
    def __init__(self, state: MatchState, seat: int, spec: AISpec) -> None:
        self.state = state
        self.seat = seat
        self.spec = spec
        self.plays = 0
        self.meals = 0
        self.used_kinds: set[str] = set()
        self.played: list[PlayCardAction] = []

    @property
    def full(self) -> bool:
        return self.plays >= self.spec.max_plays

    def hand_cards(self) -> list[Card]:
        return [self.state.catalog.require(cid) for cid in self.state.seats[self.seat].hand]

    def try_play(self, card: Card) -> bool:
        if self.full:
            return False
        discard: str | None = None
        if isinstance(card, MealCard):
            if self.meals >= self.spec.max_meals:
                return False
            attach, discard = _meal_discard(self.state, self.seat, card)
            if not attach:
                return False
        elif card.kind in self.used_kinds:
            return False
        action = PlayCardAction(seat=self.seat, card_id=card.id, meal_to_discard=discard)
        res = step(self.state, action)
        if not res.ok:
            return False
        self.state = res.state
        self.played.append(action)
        self.plays += 1
        if isinstance(card, MealCard):
            self.meals += 1
        else:
            self.used_kinds.add(card.kind)
        return True

    def play_star_cards(self, effect: StarEffect) -> None:
        for card in self.hand_cards():
            if isinstance(card, (SupportCard, EventCard)) and card.star_effect == effect:
                self.try_play(card)

    def play_base_order(self) -> None:
        meals = sorted((c for c in self.hand_cards() if isinstance(c, MealCard)), key=lambda c: -c.value)
        for meal in meals:
            if self.meals >= self.spec.max_meals or self.full:
                break
            self.try_play(meal)

        for kind in (StaffCard, SupportCard):
            for card in self.hand_cards():
                if isinstance(card, kind) and self.try_play(card):
                    break

        if self.state.seats[self.seat].event_played_this_round:
            return
        events = [c for c in self.hand_cards() if isinstance(c, EventCard)]
        events.sort(key=lambda e: 0 if e.target == "opponent" else 1)
        for event in events:
            if self.try_play(event):
                break


def _run_turn(state: MatchState, seat: int, spec: AISpec) -> _TurnRunner:
    runner = _TurnRunner(state, seat, spec)
    if spec.difficulty >= 2:
        runner.play_star_cards(_preferred_star_effect(state, seat))
    runner.play_base_order()
    return runner


def plan_turn(state: MatchState, seat: int, spec: AISpec | None = None) -> list[PlayCardAction]:
    """The plays the AI would make this turn, in order. `state` is not touched."""
    if state.active_seat != seat:
        return []
    return _run_turn(state, seat, spec or AISpec()).played


def execute_turn(state: MatchState, seat: int, spec: AISpec | None = None) -> MatchState:
    """Play the AI seat's turn and complete it.

    Returns the state unchanged when it is not this seat's turn.
    """
    spec = spec or AISpec()
    if state.active_seat != seat:
        return state
    runner = _run_turn(state, seat, spec)
    logger.debug("AI seat %s played %s cards", seat, runner.plays)
    res = step(runner.state, CompleteTurnAction(seat=seat))
    return res.state


ai_take_turn = execute_turn


def _next_setup_action(state: MatchState, seat: int) -> Action | None:
    s = state.seats[seat]
    if state.phase == "RESTAURANT_SELECTION" and s.restaurant_card_id is None:
        return SelectRestaurantAction(seat=seat, choice=choose_restaurant(s, state.catalog))
    if state.phase == "MULLIGAN" and not s.ready:
        return MulliganAction(seat=seat, card_ids=tuple(decide_mulligan(s.hand, state.catalog)))
    return None


def play_match(
    state: MatchState, specs: Sequence[AISpec | None] = (None, None), max_rounds: int = 50
) -> MatchState:
    """Drive a match where both seats are AI-controlled until it ends or `max_rounds` pass."""
    while state.winner is None and state.current_round <= max_rounds:
        phase = state.phase
        if phase in ("RESTAURANT_SELECTION", "MULLIGAN"):
            for seat in (0, 1):
                action = _next_setup_action(state, seat)
                if action is not None:
                    state = step(state, action).state
        elif phase == "COIN_FLIP":
            state = step(state, CoinFlipAction()).state
        elif phase == "ROUND_START":
            if state.current_round >= max_rounds:
                break
            state = step(state, StartRoundAction()).state
        elif phase == "TURN":
            seat = state.active_seat
            assert seat is not None
            state = execute_turn(state, seat, specs[seat])
        elif phase == "FACE_OFF":
            state = step(state, FaceOffAction()).state
        elif phase == "ROUND_END":
            state = step(state, AdvanceRoundAction()).state
        else:
            raise RuntimeError(f"Cannot auto-play from phase {phase}.")
    return state
