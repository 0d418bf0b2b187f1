from __future__ import annotations

from dataclasses import replace

from restaurantduel.engine.actions import CoinFlipAction, MulliganAction, SelectRestaurantAction, StartRoundAction
from restaurantduel.engine.ai import (
    AISpec,
    choose_restaurant,
    decide_mulligan,
    execute_turn,
    plan_turn,
    play_match,
)
from restaurantduel.engine.match import MatchState, SeatConfig, new_match, step
from restaurantduel.engine.types import CardCatalog, SupportCard


def _turn_state(catalog, deck) -> MatchState:
    state = new_match(catalog, [SeatConfig("a", "A", deck, True), SeatConfig("b", "B", deck, True)], seed=3)
    for action in (
        SelectRestaurantAction(0, "top"),
        SelectRestaurantAction(1, "top"),
        MulliganAction(0),
        MulliganAction(1),
        CoinFlipAction("heads"),
        StartRoundAction(),
    ):
        state = step(state, action).state
    assert state.phase == "TURN"
    return state


def _set_seat(state: MatchState, index: int, **changes) -> MatchState:
    seats = list(state.seats)
    seats[index] = replace(seats[index], **changes)
    return replace(state, seats=(seats[0], seats[1]))


def test_mulligan_sends_back_weak_meals_and_self_events(mini_catalog) -> None:
    assert decide_mulligan(("meal_2", "meal_5", "event_party", "event_fire"), mini_catalog) == ["meal_2", "event_party"]
    capped = decide_mulligan(("meal_2", "meal_2", "event_party", "meal_2", "meal_5"), mini_catalog)
    assert capped == ["meal_2", "meal_2", "event_party"]
    assert decide_mulligan(("meal_6",), mini_catalog) == []


def test_choose_restaurant_prefers_higher_base(catalog, content) -> None:
    deck = content.load_starter_decks()["bistro_classics"].deck
    state = new_match(catalog, [SeatConfig("a", "A", deck), SeatConfig("b", "B", deck)], seed=1)
    seat = replace(state.seats[0], restaurant_deck=("restaurant_004", "restaurant_003", "restaurant_001"))
    assert choose_restaurant(seat, catalog) == "bottom"
    seat = replace(seat, restaurant_deck=("restaurant_001", "restaurant_003", "restaurant_004"))
    assert choose_restaurant(seat, catalog) == "top"


def test_execute_turn_plays_meals_then_staff(mini_catalog, mini_deck) -> None:
    state = _turn_state(mini_catalog, mini_deck)
    state = _set_seat(
        state,
        0,
        hand=("meal_2", "meal_5", "meal_3", "meal_6", "staff_service", "event_fire", "event_party"),
    )
    state = execute_turn(state, 0)
    s0 = state.seats[0]
    assert s0.board.attached_meals == ("meal_6", "meal_5", "meal_3")
    assert s0.board.played_staff == ("staff_service",)
    assert s0.board.played_events == ()
    assert s0.influence == 0
    assert s0.turn_complete
    assert state.active_seat == 1


def test_execute_turn_prefers_opponent_event(mini_catalog, mini_deck) -> None:
    state = _turn_state(mini_catalog, mini_deck)
    state = _set_seat(state, 0, hand=("event_party", "event_fire"))
    state = execute_turn(state, 0)
    assert state.seats[0].board.played_events == ("event_fire",)


def test_execute_turn_rechecks_influence(mini_catalog, mini_deck) -> None:
    state = _turn_state(mini_catalog, mini_deck)
    state = _set_seat(state, 0, influence=2, hand=("meal_pricey", "meal_3", "staff_service"))
    state = execute_turn(state, 0)
    s0 = state.seats[0]
    assert s0.board.attached_meals == ("meal_3",)
    assert s0.board.played_staff == ()
    assert "meal_pricey" in s0.hand


def test_execute_turn_swaps_weakest_meal(mini_catalog, mini_deck) -> None:
    state = _turn_state(mini_catalog, mini_deck)
    board = replace(state.seats[0].board, attached_meals=("meal_3", "meal_2", "meal_4"))
    state = _set_seat(state, 0, board=board, hand=("meal_6", "meal_2"))
    state = execute_turn(state, 0)
    s0 = state.seats[0]
    assert s0.board.attached_meals == ("meal_3", "meal_4", "meal_6")
    assert "meal_2" in s0.hand


def test_execute_turn_outside_own_turn_is_noop(mini_catalog, mini_deck) -> None:
    state = _turn_state(mini_catalog, mini_deck)
    assert execute_turn(state, 1) is state
    assert plan_turn(state, 1) == []


def test_plan_turn_does_not_touch_state(mini_catalog, mini_deck) -> None:
    state = _turn_state(mini_catalog, mini_deck)
    state = _set_seat(state, 0, hand=("meal_5", "support_vip"))
    plan = plan_turn(state, 0)
    assert [a.card_id for a in plan] == ["meal_5", "support_vip"]
    assert state.seats[0].hand == ("meal_5", "support_vip")


def test_hard_ai_plays_star_cards_first(mini_catalog, mini_deck) -> None:
    cards = dict(mini_catalog.cards)
    cards["support_critic"] = SupportCard("support_critic", "Critic", "", ability="critic", duration="instant", star_effect="gain_star")
    catalog = CardCatalog(cards=cards)
    state = _turn_state(catalog, mini_deck)
    state = _set_seat(state, 0, hand=("support_vip", "support_critic"))

    normal = plan_turn(state, 0, AISpec(difficulty=1))
    hard = plan_turn(state, 0, AISpec(difficulty=2))
    assert [a.card_id for a in normal] == ["support_vip"]
    assert [a.card_id for a in hard] == ["support_critic"]


def test_ai_vs_ai_match_finishes(catalog, content) -> None:
    decks = content.load_starter_decks()
    seats = [
        SeatConfig("a", "Bistro", decks["bistro_classics"].deck, True),
        SeatConfig("b", "Street", decks["street_eats"].deck, True),
    ]
    state = play_match(new_match(catalog, seats, seed=2024), max_rounds=50)
    assert (state.winner is not None) == (state.phase == "GAME_END")
    assert all(0 <= s.stars <= 5 for s in state.seats)
    if state.winner is not None:
        assert state.seats[state.winner].stars == 5
