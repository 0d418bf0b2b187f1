from __future__ import annotations

import pytest

from restaurantduel.engine.deck import PlayerDeck
from restaurantduel.engine.types import (
    AbilityCondition,
    CardCatalog,
    ChefCard,
    EventCard,
    MealCard,
    RestaurantCard,
    StaffCard,
    SupportCard,
)
from restaurantduel.paths import get_paths
from restaurantduel.services.content import ContentService

ALWAYS_ZERO = AbilityCondition(predicate="always", bonus=0)

MINI_MAIN_IDS = (
    "meal_2",
    "meal_3",
    "meal_4",
    "meal_5",
    "meal_6",
    "meal_pricey",
    "staff_service",
    "support_vip",
    "event_fire",
    "event_party",
)


def _mini_catalog() -> CardCatalog:
    cards = [
        ChefCard("chef_plain", "Plain Chef", "", base_value=5, ability="none", starting_influence=5, star_bonus_influence=1),
        ChefCard("chef_speed", "Speedy Chef", "", base_value=3, ability="speed", starting_influence=5, star_bonus_influence=0),
        RestaurantCard("rest_plain", "Plain Room", "", base_score=10, ability="none", ability_condition=ALWAYS_ZERO),
        RestaurantCard("rest_two", "Second Room", "", base_score=10, ability="none", ability_condition=ALWAYS_ZERO),
        RestaurantCard("rest_three", "Third Room", "", base_score=10, ability="none", ability_condition=ALWAYS_ZERO),
        MealCard("meal_2", "Two", "", value=2, influence_cost=1),
        MealCard("meal_3", "Three", "", value=3, influence_cost=1),
        MealCard("meal_4", "Four", "", value=4, influence_cost=1),
        MealCard("meal_5", "Five", "", value=5, influence_cost=1),
        MealCard("meal_6", "Six", "", value=6, influence_cost=1),
        MealCard("meal_pricey", "Pricey", "", value=4, influence_cost=3),
        StaffCard("staff_service", "Waiter", "", ability="service", modifier=1, influence_cost=2),
        SupportCard("support_vip", "VIP", "", ability="vip", duration="round"),
        EventCard("event_fire", "Fire", "", effect="disrupt", target="opponent", influence_cost=1),
        EventCard("event_party", "Party", "", effect="celebrity", target="self", influence_cost=1),
    ]
    return CardCatalog(cards={c.id: c for c in cards})


def _mini_deck(chef: str = "chef_plain") -> PlayerDeck:
    return PlayerDeck(
        main_deck=tuple(cid for cid in MINI_MAIN_IDS for _ in range(3)),
        chef_card_id=chef,
        restaurant_card_ids=("rest_plain", "rest_two", "rest_three"),
    )


@pytest.fixture
def mini_catalog() -> CardCatalog:
    return _mini_catalog()


@pytest.fixture
def mini_deck() -> PlayerDeck:
    return _mini_deck()


@pytest.fixture
def speed_deck() -> PlayerDeck:
    return _mini_deck("chef_speed")


@pytest.fixture(scope="session")
def content() -> ContentService:
    paths = get_paths()
    return ContentService(paths.data_dir, paths.schema_dir)


@pytest.fixture(scope="session")
def catalog(content: ContentService) -> CardCatalog:
    return content.load_catalog()
