from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Literal

from .errors import CatalogIntegrityError

CardKind = Literal["chef", "restaurant", "meal", "staff", "support", "event"]
MAIN_DECK_KINDS: tuple[CardKind, ...] = ("meal", "staff", "support", "event")

SupportDuration = Literal["instant", "round", "permanent"]
EventTarget = Literal["self", "opponent", "both"]
StarEffect = Literal["gain_star", "remove_star"]

ConditionPredicate = Literal[
    "always",
    "attached_meals_at_least",
    "attached_meals_exactly",
    "no_staff",
    "staff_more_than_opponent",
    "types_played_at_least",
    "round_at_least",
    "no_events",
    "opponent_score_higher",
    "opponent_played_event",
]


@dataclass(frozen=True)
class AbilityCondition:
    """Typed restaurant predicate. `value` is the predicate's threshold, `bonus` the payout."""

    predicate: ConditionPredicate
    value: int = 0
    bonus: int = 0


@dataclass(frozen=True)
class ChefCard:
    id: str
    name: str
    description: str
    base_value: int
    ability: str
    starting_influence: int
    star_bonus_influence: int
    primary_archetype: str | None = None
    secondary_archetype: str | None = None
    star_effect: StarEffect | None = None
    kind: Literal["chef"] = "chef"

    @property
    def archetypes(self) -> tuple[str, ...]:
        return tuple(a for a in (self.primary_archetype, self.secondary_archetype) if a)


@dataclass(frozen=True)
class RestaurantCard:
    id: str
    name: str
    description: str
    base_score: int
    ability: str
    ability_condition: AbilityCondition
    primary_archetype: str | None = None
    required_stars: int = 0
    kind: Literal["restaurant"] = "restaurant"


@dataclass(frozen=True)
class MealCard:
    id: str
    name: str
    description: str
    value: int
    influence_cost: int
    meal_archetype: str | None = None
    effect: str | None = None
    kind: Literal["meal"] = "meal"


@dataclass(frozen=True)
class StaffCard:
    id: str
    name: str
    description: str
    ability: str
    modifier: int
    influence_cost: int
    staff_archetype: str | None = None
    kind: Literal["staff"] = "staff"


@dataclass(frozen=True)
class SupportCard:
    id: str
    name: str
    description: str
    ability: str
    duration: SupportDuration
    star_effect: StarEffect | None = None
    kind: Literal["support"] = "support"

    @property
    def influence_cost(self) -> int:
        return 0


@dataclass(frozen=True)
class EventCard:
    id: str
    name: str
    description: str
    effect: str
    target: EventTarget
    influence_cost: int
    star_effect: StarEffect | None = None
    kind: Literal["event"] = "event"


Card = ChefCard | RestaurantCard | MealCard | StaffCard | SupportCard | EventCard


def influence_cost(card: Card) -> int:
    if isinstance(card, (ChefCard, RestaurantCard)):
        return 0
    return card.influence_cost


def card_archetype(card: Card) -> str | None:
    """The single archetype a played card contributes to synergy counting."""
    if isinstance(card, MealCard):
        return card.meal_archetype
    if isinstance(card, StaffCard):
        return card.staff_archetype
    if isinstance(card, RestaurantCard):
        return card.primary_archetype
    if isinstance(card, ChefCard):
        return card.primary_archetype
    return None


@dataclass(frozen=True)
class ArchetypeDefinition:
    name: str
    display_name: str
    color: str
    description: str
    synergies: tuple[str, ...] = ()


@dataclass(frozen=True)
class CardCatalog:
    """Immutable card catalog handed to a match at creation time."""

    cards: Mapping[str, Card]
    archetypes: Mapping[str, ArchetypeDefinition] = field(default_factory=dict)

    def get(self, card_id: str) -> Card | None:
        return self.cards.get(card_id)

    def require(self, card_id: str) -> Card:
        card = self.cards.get(card_id)
        if card is None:
            raise CatalogIntegrityError(card_id)
        return card

    def by_kind(self, kind: CardKind) -> list[Card]:
        return [c for c in self.cards.values() if c.kind == kind]

    def archetype(self, name: str) -> ArchetypeDefinition | None:
        return self.archetypes.get(name)
