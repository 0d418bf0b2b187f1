"""Deterministic scoring for a seat's board.

Everything here is a pure function of the board(s) and the catalog. Nothing
is cached between calls, so previews can call `calculate_score` freely.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import TypeVar

from .errors import CatalogIntegrityError
from .types import (
    AbilityCondition,
    ArchetypeDefinition,
    CardCatalog,
    ChefCard,
    EventCard,
    MealCard,
    RestaurantCard,
    StaffCard,
    SupportCard,
    card_archetype,
)

# Flat score deltas for events, keyed by effect tag.
SELF_EVENT_SCORES: dict[str, int] = {"celebrity": 5, "festival": 2}
OPPONENT_EVENT_SCORES: dict[str, int] = {"disrupt": -3, "outage": -2, "festival": 2}


@dataclass(frozen=True)
class BoardState:
    chef_card_id: str
    restaurant_card_id: str | None = None
    attached_meals: tuple[str, ...] = ()
    played_staff: tuple[str, ...] = ()
    played_support: tuple[str, ...] = ()
    played_events: tuple[str, ...] = ()
    play_order: tuple[str, ...] = ()


@dataclass(frozen=True)
class ScoringContext:
    opponent_board: BoardState | None = None
    current_round: int = 0
    stars: int = 0
    opponent_score: int | None = None


@dataclass(frozen=True)
class BoardStats:
    attached_meal_count: int
    staff_count: int
    event_count: int
    types_played_count: int
    current_round: int
    own_score: int
    opponent_score: int | None
    opponent_staff_count: int
    opponent_event_count: int
    stars: int


@dataclass(frozen=True)
class ScoreResult:
    base_score: int
    meal_points: int
    staff_modifiers: int
    support_modifiers: int
    restaurant_bonus: int
    chef_bonus: int
    event_modifiers: int
    archetype_bonus: int
    total_score: int
    breakdown: tuple[str, ...]


_C = TypeVar("_C")


def _resolve(catalog: CardCatalog, card_id: str, expected: type[_C]) -> _C:
    card = catalog.require(card_id)
    if not isinstance(card, expected):
        raise CatalogIntegrityError(card_id, f"Card {card_id} is a {card.kind} card, expected {expected.__name__}.")
    return card


def _signed(n: int) -> str:
    return f"+{n}" if n >= 0 else str(n)


def board_stats(board: BoardState, context: ScoringContext, own_score: int = 0) -> BoardStats:
    kinds = set()
    if board.attached_meals:
        kinds.add("meal")
    if board.played_staff:
        kinds.add("staff")
    if board.played_support:
        kinds.add("support")
    if board.played_events:
        kinds.add("event")
    opp = context.opponent_board
    return BoardStats(
        attached_meal_count=len(board.attached_meals),
        staff_count=len(board.played_staff),
        event_count=len(board.played_events),
        types_played_count=len(kinds),
        current_round=context.current_round,
        own_score=own_score,
        opponent_score=context.opponent_score,
        opponent_staff_count=len(opp.played_staff) if opp else 0,
        opponent_event_count=len(opp.played_events) if opp else 0,
        stars=context.stars,
    )


def evaluate_condition(condition: AbilityCondition, stats: BoardStats) -> bool:
    p = condition.predicate
    if p == "always":
        return True
    if p == "attached_meals_at_least":
        return stats.attached_meal_count >= condition.value
    if p == "attached_meals_exactly":
        return stats.attached_meal_count == condition.value
    if p == "no_staff":
        return stats.staff_count == 0
    if p == "staff_more_than_opponent":
        return stats.staff_count > stats.opponent_staff_count
    if p == "types_played_at_least":
        return stats.types_played_count >= condition.value
    if p == "round_at_least":
        return stats.current_round >= condition.value
    if p == "no_events":
        return stats.event_count == 0
    if p == "opponent_score_higher":
        return stats.opponent_score is not None and stats.opponent_score > stats.own_score
    if p == "opponent_played_event":
        return stats.opponent_event_count > 0
    return False


def calculate_archetype_bonus(
    chef_archetypes: Sequence[str],
    restaurant_archetype: str | None,
    card_archetypes: Sequence[str],
    archetypes: Mapping[str, ArchetypeDefinition],
) -> int:
    """Synergy points for a board.

    For each chef archetype:
      +1 per card whose archetype is one of the chef archetype's synergies
      +2 per synergy that equals the restaurant archetype
      +2 per card whose archetype equals the chef archetype
    For the restaurant archetype (if defined):
      +1 per card whose archetype is one of its synergies
      +1 per card whose archetype equals it

    A card can score both as a synergy match and as a direct chef match.
    """
    if not chef_archetypes:
        return 0

    bonus = 0
    for chef_archetype in chef_archetypes:
        definition = archetypes.get(chef_archetype)
        if definition is None:
            continue
        for synergy in definition.synergies:
            bonus += sum(1 for a in card_archetypes if a == synergy)
            if restaurant_archetype == synergy:
                bonus += 2
        bonus += 2 * sum(1 for a in card_archetypes if a == chef_archetype)

    if restaurant_archetype:
        restaurant_def = archetypes.get(restaurant_archetype)
        if restaurant_def is not None:
            for synergy in restaurant_def.synergies:
                bonus += sum(1 for a in card_archetypes if a == synergy)
            bonus += sum(1 for a in card_archetypes if a == restaurant_archetype)

    return bonus


def calculate_score(
    board: BoardState, catalog: CardCatalog, context: ScoringContext | None = None
) -> ScoreResult:
    ctx = context or ScoringContext()
    opp = ctx.opponent_board
    breakdown: list[str] = []

    chef = _resolve(catalog, board.chef_card_id, ChefCard)
    restaurant = (
        _resolve(catalog, board.restaurant_card_id, RestaurantCard) if board.restaurant_card_id else None
    )
    meals = [_resolve(catalog, cid, MealCard) for cid in board.attached_meals]
    staff = [_resolve(catalog, cid, StaffCard) for cid in board.played_staff]
    supports = [_resolve(catalog, cid, SupportCard) for cid in board.played_support]
    events = [_resolve(catalog, cid, EventCard) for cid in board.played_events]
    opp_staff = [_resolve(catalog, cid, StaffCard) for cid in opp.played_staff] if opp else []
    opp_events = [_resolve(catalog, cid, EventCard) for cid in opp.played_events] if opp else []
    meal_count = len(meals)
    best_meal = max((m.value for m in meals), default=0)

    base_score = 0
    if restaurant is not None:
        base_score = restaurant.base_score
        breakdown.append(f"Restaurant base score: {base_score}")

    chef_bonus = chef.base_value
    breakdown.append(f"Chef base value: +{chef.base_value}")
    if chef.ability == "perfectionist" and meal_count:
        chef_bonus += 2 * meal_count
        breakdown.append(f"Chef ability (perfectionist): +{2 * meal_count}")
    elif chef.ability == "presentation":
        chef_bonus += 1
        breakdown.append("Chef ability (presentation): +1")

    meal_points = sum(m.value for m in meals)
    if meal_points:
        breakdown.append(f"Meal cards: +{meal_points}")

    staff_modifiers = 0
    inspector = next(
        (e for e in opp_events if e.effect == "inspect" and e.target in ("opponent", "both")), None
    )
    if inspector is not None and staff:
        breakdown.append(f"{inspector.name}: Staff abilities blocked")
    else:
        for s in staff:
            if s.ability == "service":
                bonus = meal_count * (s.modifier or 1)
                breakdown.append(f"{s.name}: +{bonus} to all Meals")
            elif s.ability == "support":
                bonus = s.modifier or 2
                breakdown.append(f"{s.name}: +{bonus} to one Meal")
            elif s.ability in ("pairing", "cocktails"):
                bonus = s.modifier or 1
                breakdown.append(f"{s.name}: +{bonus} to Restaurant base")
            else:
                continue
            staff_modifiers += bonus
    for s in opp_staff:
        if s.ability == "efficiency":
            penalty = s.modifier or -1
            staff_modifiers += penalty
            breakdown.append(f"Opponent {s.name}: {_signed(penalty)}")

    support_modifiers = 0
    doubled = False
    for sup in supports:
        if sup.ability == "quality":
            bonus = 2 * meal_count
            support_modifiers += bonus
            breakdown.append(f"{sup.name}: +{bonus} to all Meals")
        elif sup.ability == "upgrade":
            support_modifiers += 3
            breakdown.append(f"{sup.name}: +3 to Restaurant base")
        elif sup.ability == "vip":
            support_modifiers += 1
            breakdown.append(f"{sup.name}: +1 to Restaurant base")
        elif sup.ability == "special" and not doubled and meal_count:
            doubled = True
            support_modifiers += best_meal
            breakdown.append(f"{sup.name}: doubled best Meal (+{best_meal})")
    if chef.ability == "innovation" and not doubled and meal_count:
        doubled = True
        chef_bonus += best_meal
        breakdown.append(f"Chef ability (innovation): doubled best Meal (+{best_meal})")

    event_modifiers = 0
    for e in events:
        delta = SELF_EVENT_SCORES.get(e.effect, 0) if e.target in ("self", "both") else 0
        if delta:
            event_modifiers += delta
            breakdown.append(f"{e.name}: {_signed(delta)}")
    for e in opp_events:
        delta = OPPONENT_EVENT_SCORES.get(e.effect, 0) if e.target in ("opponent", "both") else 0
        if delta:
            event_modifiers += delta
            breakdown.append(f"Opponent {e.name}: {_signed(delta)}")

    card_archetypes = [a for a in map(card_archetype, [*meals, *staff]) if a]
    archetype_bonus = calculate_archetype_bonus(
        chef.archetypes,
        restaurant.primary_archetype if restaurant else None,
        card_archetypes,
        catalog.archetypes,
    )
    if archetype_bonus:
        breakdown.append(f"Archetype synergy: +{archetype_bonus}")

    subtotal = (
        base_score
        + meal_points
        + staff_modifiers
        + support_modifiers
        + chef_bonus
        + event_modifiers
        + archetype_bonus
    )

    restaurant_bonus = 0
    if restaurant is not None and ctx.stars >= restaurant.required_stars:
        stats = board_stats(board, ctx, own_score=subtotal)
        if evaluate_condition(restaurant.ability_condition, stats):
            restaurant_bonus = restaurant.ability_condition.bonus
            if restaurant_bonus:
                breakdown.append(f"Restaurant ability ({restaurant.ability}): +{restaurant_bonus}")

    total = subtotal + restaurant_bonus
    return ScoreResult(
        base_score=base_score,
        meal_points=meal_points,
        staff_modifiers=staff_modifiers,
        support_modifiers=support_modifiers,
        restaurant_bonus=restaurant_bonus,
        chef_bonus=chef_bonus,
        event_modifiers=event_modifiers,
        archetype_bonus=archetype_bonus,
        total_score=total,
        breakdown=tuple(breakdown),
    )


def score_face_off(
    boards: tuple[BoardState, BoardState],
    catalog: CardCatalog,
    *,
    current_round: int,
    stars: tuple[int, int],
) -> tuple[ScoreResult, ScoreResult]:
    """Score both seats against each other.

    Conditions that look at the opponent's score use the opponent's
    preliminary total (computed without any opponent score).
    """
    prelim = [
        calculate_score(
            boards[i],
            catalog,
            ScoringContext(opponent_board=boards[1 - i], current_round=current_round, stars=stars[i]),
        ).total_score
        for i in (0, 1)
    ]
    s0, s1 = (
        calculate_score(
            boards[i],
            catalog,
            ScoringContext(
                opponent_board=boards[1 - i],
                current_round=current_round,
                stars=stars[i],
                opponent_score=prelim[1 - i],
            ),
        )
        for i in (0, 1)
    )
    return s0, s1


def compare_scores(score0: int, score1: int) -> int | None:
    """Index of the higher score, or None on a tie."""
    if score0 > score1:
        return 0
    if score1 > score0:
        return 1
    return None
