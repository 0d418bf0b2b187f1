from __future__ import annotations

import pytest

from restaurantduel.engine.errors import CatalogIntegrityError
from restaurantduel.engine.scoring import (
    BoardState,
    ScoringContext,
    calculate_archetype_bonus,
    calculate_score,
    compare_scores,
    score_face_off,
)
from restaurantduel.engine.types import (
    AbilityCondition,
    ArchetypeDefinition,
    CardCatalog,
    ChefCard,
    EventCard,
    RestaurantCard,
    StaffCard,
    SupportCard,
)


def _with(catalog: CardCatalog, *cards, archetypes=None) -> CardCatalog:
    merged = dict(catalog.cards)
    merged.update({c.id: c for c in cards})
    return CardCatalog(cards=merged, archetypes=archetypes if archetypes is not None else catalog.archetypes)


def _board(**kw) -> BoardState:
    kw.setdefault("chef_card_id", "chef_plain")
    kw.setdefault("restaurant_card_id", "rest_plain")
    return BoardState(**kw)


def test_plain_board_totals_all_eight_terms(mini_catalog) -> None:
    result = calculate_score(_board(attached_meals=("meal_3", "meal_5")), mini_catalog)
    assert result.base_score == 10
    assert result.meal_points == 8
    assert result.chef_bonus == 5
    assert result.staff_modifiers == 0
    assert result.support_modifiers == 0
    assert result.restaurant_bonus == 0
    assert result.event_modifiers == 0
    assert result.archetype_bonus == 0
    assert result.total_score == 23
    assert "Meal cards: +8" in result.breakdown


def test_calculate_score_is_pure(mini_catalog) -> None:
    board = _board(attached_meals=("meal_3", "meal_6"), played_staff=("staff_service",))
    first = calculate_score(board, mini_catalog)
    second = calculate_score(board, mini_catalog)
    assert first == second
    assert board == _board(attached_meals=("meal_3", "meal_6"), played_staff=("staff_service",))


def test_unknown_card_fails_fast(mini_catalog) -> None:
    with pytest.raises(CatalogIntegrityError):
        calculate_score(_board(attached_meals=("meal_404",)), mini_catalog)


def test_wrong_kind_in_zone_fails_fast(mini_catalog) -> None:
    with pytest.raises(CatalogIntegrityError):
        calculate_score(_board(attached_meals=("staff_service",)), mini_catalog)


def test_perfectionist_and_presentation(mini_catalog) -> None:
    cat = _with(
        mini_catalog,
        ChefCard("chef_perfect", "P", "", base_value=5, ability="perfectionist", starting_influence=3, star_bonus_influence=1),
        ChefCard("chef_present", "S", "", base_value=4, ability="presentation", starting_influence=3, star_bonus_influence=1),
    )
    perfect = calculate_score(_board(chef_card_id="chef_perfect", attached_meals=("meal_2", "meal_3")), cat)
    assert perfect.chef_bonus == 5 + 4
    present = calculate_score(_board(chef_card_id="chef_present"), cat)
    assert present.chef_bonus == 5


def test_staff_modifiers(mini_catalog) -> None:
    cat = _with(
        mini_catalog,
        StaffCard("staff_sous", "Sous", "", ability="support", modifier=0, influence_cost=2),
        StaffCard("staff_somm", "Somm", "", ability="pairing", modifier=1, influence_cost=2),
        StaffCard("staff_host", "Host", "", ability="welcome", modifier=0, influence_cost=2),
    )
    board = _board(
        attached_meals=("meal_3", "meal_4"),
        played_staff=("staff_service", "staff_sous", "staff_somm", "staff_host"),
    )
    # service 1 x 2 meals, support defaults to 2, pairing 1, welcome nothing
    assert calculate_score(board, cat).staff_modifiers == 2 + 2 + 1


def test_opponent_inspect_blocks_staff_and_efficiency_penalizes(mini_catalog) -> None:
    cat = _with(
        mini_catalog,
        EventCard("event_inspect", "Inspect", "", effect="inspect", target="opponent", influence_cost=2),
        StaffCard("staff_line", "Line", "", ability="efficiency", modifier=-1, influence_cost=2),
    )
    mine = _board(attached_meals=("meal_3",), played_staff=("staff_service",))
    theirs = _board(played_staff=("staff_line",), played_events=("event_inspect",))
    result = calculate_score(mine, cat, ScoringContext(opponent_board=theirs))
    assert result.staff_modifiers == -1
    assert any("blocked" in line for line in result.breakdown)


def test_support_modifiers(mini_catalog) -> None:
    cat = _with(
        mini_catalog,
        SupportCard("support_quality", "Q", "", ability="quality", duration="round"),
        SupportCard("support_upgrade", "U", "", ability="upgrade", duration="permanent"),
    )
    board = _board(
        attached_meals=("meal_2", "meal_3"),
        played_support=("support_quality", "support_upgrade", "support_vip"),
    )
    assert calculate_score(board, cat).support_modifiers == 4 + 3 + 1


def test_meal_doubling_applies_once(mini_catalog) -> None:
    cat = _with(
        mini_catalog,
        SupportCard("support_special", "Special", "", ability="special", duration="instant"),
        ChefCard("chef_innov", "I", "", base_value=4, ability="innovation", starting_influence=4, star_bonus_influence=1),
    )
    both = calculate_score(
        _board(
            chef_card_id="chef_innov",
            attached_meals=("meal_3", "meal_5"),
            played_support=("support_special", "support_special"),
        ),
        cat,
    )
    assert both.support_modifiers == 5
    assert both.chef_bonus == 4

    chef_only = calculate_score(_board(chef_card_id="chef_innov", attached_meals=("meal_3", "meal_5")), cat)
    assert chef_only.chef_bonus == 4 + 5


def test_event_modifiers(mini_catalog) -> None:
    cat = _with(
        mini_catalog,
        EventCard("event_fest", "Festival", "", effect="festival", target="both", influence_cost=2),
    )
    mine = _board(played_events=("event_party",))
    theirs = _board(played_events=("event_fire",))
    assert calculate_score(mine, cat, ScoringContext(opponent_board=theirs)).event_modifiers == 5 - 3

    fest = _board(played_events=("event_fest",))
    # own festival +2, opponent's festival also reaches this board
    assert calculate_score(fest, cat, ScoringContext(opponent_board=fest)).event_modifiers == 4
    assert calculate_score(_board(), cat, ScoringContext(opponent_board=fest)).event_modifiers == 2


def test_restaurant_condition_and_required_stars(mini_catalog) -> None:
    cat = _with(
        mini_catalog,
        RestaurantCard(
            "rest_bistro", "Bistro", "", base_score=10, ability="elegance",
            ability_condition=AbilityCondition("attached_meals_at_least", value=3, bonus=5),
        ),
        RestaurantCard(
            "rest_late", "Late", "", base_score=5, ability="nightowl",
            ability_condition=AbilityCondition("round_at_least", value=3, bonus=7),
            required_stars=2,
        ),
    )
    three = _board(restaurant_card_id="rest_bistro", attached_meals=("meal_2", "meal_3", "meal_4"))
    two = _board(restaurant_card_id="rest_bistro", attached_meals=("meal_2", "meal_3"))
    assert calculate_score(three, cat).restaurant_bonus == 5
    assert calculate_score(two, cat).restaurant_bonus == 0

    late = _board(restaurant_card_id="rest_late")
    assert calculate_score(late, cat, ScoringContext(current_round=3, stars=1)).restaurant_bonus == 0
    assert calculate_score(late, cat, ScoringContext(current_round=3, stars=2)).restaurant_bonus == 7
    assert calculate_score(late, cat, ScoringContext(current_round=2, stars=2)).restaurant_bonus == 0


def test_face_off_uses_opponent_preliminary_score(mini_catalog) -> None:
    cat = _with(
        mini_catalog,
        RestaurantCard(
            "rest_underdog", "Underdog", "", base_score=1, ability="tradition",
            ability_condition=AbilityCondition("opponent_score_higher", bonus=6),
        ),
    )
    s0, s1 = score_face_off(
        (_board(restaurant_card_id="rest_underdog"), _board()),
        cat,
        current_round=1,
        stars=(0, 0),
    )
    assert s0.total_score == 5 + 1 + 6
    assert s1.total_score == 15


def test_no_chef_archetypes_means_no_bonus() -> None:
    archetypes = {"a": ArchetypeDefinition("a", "A", "#000000", "", synergies=("a",))}
    assert calculate_archetype_bonus([], "a", ["a", "a", "a"], archetypes) == 0


def test_synergy_match_plus_restaurant_synergy() -> None:
    archetypes = {"a": ArchetypeDefinition("a", "A", "#000000", "", synergies=("b",))}
    assert calculate_archetype_bonus(["a"], "b", ["b"], archetypes) == 3


def test_defined_restaurant_archetype_adds_direct_match() -> None:
    archetypes = {
        "a": ArchetypeDefinition("a", "A", "#000000", "", synergies=("b",)),
        "b": ArchetypeDefinition("b", "B", "#111111", "", synergies=()),
    }
    assert calculate_archetype_bonus(["a"], "b", ["b"], archetypes) == 4


def test_archetype_double_counting_is_kept() -> None:
    archetypes = {"a": ArchetypeDefinition("a", "A", "#000000", "", synergies=("a",))}
    # once as a synergy match, once as a direct chef match
    assert calculate_archetype_bonus(["a"], None, ["a"], archetypes) == 1 + 2


def test_archetype_bonus_flows_into_total(catalog) -> None:
    # Chef Marcus (dinner, celebrity) at Ocean Breeze (dinner) with Truffle Pasta (dinner)
    board = BoardState(chef_card_id="chef_005", restaurant_card_id="restaurant_003", attached_meals=("meal_002",))
    result = calculate_score(board, catalog)
    # dinner: direct card +2; celebrity: nothing; restaurant dinner: direct card +1
    assert result.archetype_bonus == 3


def test_compare_scores() -> None:
    assert compare_scores(10, 3) == 0
    assert compare_scores(3, 10) == 1
    assert compare_scores(7, 7) is None
