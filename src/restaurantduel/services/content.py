from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from jsonschema import Draft202012Validator

from restaurantduel.engine.deck import PlayerDeck, validate_player_deck
from restaurantduel.engine.types import (
    AbilityCondition,
    ArchetypeDefinition,
    Card,
    CardCatalog,
    ChefCard,
    EventCard,
    MealCard,
    RestaurantCard,
    StaffCard,
    SupportCard,
)

logger = logging.getLogger(__name__)


class ContentError(RuntimeError):
    pass


def _load_json(path: Path) -> object:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ContentError(f"Missing content file: {path}") from e
    except json.JSONDecodeError as e:
        raise ContentError(f"Invalid JSON in {path}: {e}") from e


def _load_schema(path: Path) -> object:
    return _load_json(path)


def validate_json(instance: object, schema: object, *, context: str) -> None:
    validator = Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(instance), key=lambda e: [str(p) for p in e.path])
    if errors:
        lines = [f"Schema validation failed for {context}:"]
        for err in errors[:10]:
            loc = "/".join(str(p) for p in err.absolute_path)
            lines.append(f"- {loc}: {err.message}")
        raise ContentError("\n".join(lines))


def _require_str(obj: Mapping[str, object], key: str) -> str:
    v = obj.get(key)
    if not isinstance(v, str):
        raise ContentError(f"Expected string for {key}")
    return v


def _require_int(obj: Mapping[str, object], key: str) -> int:
    v = obj.get(key)
    if not isinstance(v, int):
        raise ContentError(f"Expected int for {key}")
    return v


def _require_list(obj: Mapping[str, object], key: str) -> list[object]:
    v = obj.get(key)
    if not isinstance(v, list):
        raise ContentError(f"Expected list for {key}")
    return v


def _optional_str(obj: Mapping[str, object], key: str) -> str | None:
    v = obj.get(key)
    if v is None:
        return None
    if not isinstance(v, str):
        raise ContentError(f"Expected string for {key}")
    return v


def _parse_condition(raw: object) -> AbilityCondition:
    if not isinstance(raw, dict):
        raise ContentError("ability_condition must be an object")
    return AbilityCondition(
        predicate=_require_str(raw, "predicate"),  # type: ignore[arg-type]  # schema restricts values
        value=int(raw.get("value", 0)),
        bonus=int(raw.get("bonus", 0)),
    )


def _parse_card(raw: Mapping[str, object]) -> Card:
    card_id = _require_str(raw, "id")
    name = _require_str(raw, "name")
    description = _require_str(raw, "description")
    kind = _require_str(raw, "kind")
    if kind == "chef":
        return ChefCard(
            id=card_id,
            name=name,
            description=description,
            base_value=_require_int(raw, "base_value"),
            ability=_require_str(raw, "ability"),
            starting_influence=_require_int(raw, "starting_influence"),
            star_bonus_influence=_require_int(raw, "star_bonus_influence"),
            primary_archetype=_optional_str(raw, "primary_archetype"),
            secondary_archetype=_optional_str(raw, "secondary_archetype"),
            star_effect=_optional_str(raw, "star_effect"),  # type: ignore[arg-type]
        )
    if kind == "restaurant":
        return RestaurantCard(
            id=card_id,
            name=name,
            description=description,
            base_score=_require_int(raw, "base_score"),
            ability=_require_str(raw, "ability"),
            ability_condition=_parse_condition(raw.get("ability_condition")),
            primary_archetype=_optional_str(raw, "primary_archetype"),
            required_stars=int(raw.get("required_stars", 0)),
        )
    if kind == "meal":
        return MealCard(
            id=card_id,
            name=name,
            description=description,
            value=_require_int(raw, "value"),
            influence_cost=_require_int(raw, "influence_cost"),
            meal_archetype=_optional_str(raw, "meal_archetype"),
            effect=_optional_str(raw, "effect"),
        )
    if kind == "staff":
        return StaffCard(
            id=card_id,
            name=name,
            description=description,
            ability=_require_str(raw, "ability"),
            modifier=_require_int(raw, "modifier"),
            influence_cost=_require_int(raw, "influence_cost"),
            staff_archetype=_optional_str(raw, "staff_archetype"),
        )
    if kind == "support":
        return SupportCard(
            id=card_id,
            name=name,
            description=description,
            ability=_require_str(raw, "ability"),
            duration=_require_str(raw, "duration"),  # type: ignore[arg-type]
            star_effect=_optional_str(raw, "star_effect"),  # type: ignore[arg-type]
        )
    if kind == "event":
        return EventCard(
            id=card_id,
            name=name,
            description=description,
            effect=_require_str(raw, "effect"),
            target=_require_str(raw, "target"),  # type: ignore[arg-type]
            influence_cost=_require_int(raw, "influence_cost"),
            star_effect=_optional_str(raw, "star_effect"),  # type: ignore[arg-type]
        )
    raise ContentError(f"Unknown card kind: {kind}")


def _parse_archetype(raw: Mapping[str, object]) -> ArchetypeDefinition:
    synergies = [s for s in _require_list(raw, "synergies") if isinstance(s, str)]
    return ArchetypeDefinition(
        name=_require_str(raw, "name"),
        display_name=_require_str(raw, "display_name"),
        color=_require_str(raw, "color"),
        description=_require_str(raw, "description"),
        synergies=tuple(synergies),
    )


@dataclass(frozen=True)
class StarterDeck:
    id: str
    name: str
    deck: PlayerDeck


class ContentService:
    def __init__(self, data_dir: Path, schema_dir: Path) -> None:
        self._data_dir = data_dir
        self._schema_dir = schema_dir

    def load_catalog(self) -> CardCatalog:
        cards_path = self._data_dir / "cards.json"
        schema = _load_schema(self._schema_dir / "cards.schema.json")
        raw = _load_json(cards_path)
        validate_json(raw, schema, context=str(cards_path))

        if not isinstance(raw, dict):
            raise ContentError("cards.json must be an object")

        archetypes: dict[str, ArchetypeDefinition] = {}
        for item in _require_list(raw, "archetypes"):
            if not isinstance(item, dict):
                continue
            arch = _parse_archetype(item)
            archetypes[arch.name] = arch

        cards: dict[str, Card] = {}
        for item in _require_list(raw, "cards"):
            if not isinstance(item, dict):
                continue
            card = _parse_card(item)
            if card.id in cards:
                raise ContentError(f"Duplicate card id: {card.id}")
            cards[card.id] = card

        # Archetype references must resolve
        for card in cards.values():
            for name in _referenced_archetypes(card):
                if name not in archetypes:
                    raise ContentError(f"Card {card.id} references unknown archetype {name}")
        for arch in archetypes.values():
            for name in arch.synergies:
                if name not in archetypes:
                    raise ContentError(f"Archetype {arch.name} has unknown synergy {name}")

        logger.debug("loaded %s cards, %s archetypes from %s", len(cards), len(archetypes), cards_path)
        return CardCatalog(cards=cards, archetypes=archetypes)

    def load_starter_decks(self) -> dict[str, StarterDeck]:
        path = self._data_dir / "decks.json"
        schema = _load_schema(self._schema_dir / "decks.schema.json")
        raw = _load_json(path)
        validate_json(raw, schema, context=str(path))
        if not isinstance(raw, dict):
            raise ContentError("decks.json must be an object")

        out: dict[str, StarterDeck] = {}
        for d in _require_list(raw, "decks"):
            if not isinstance(d, dict):
                continue
            main: list[str] = []
            for entry in _require_list(d, "main_deck"):
                if not isinstance(entry, dict):
                    continue
                main.extend([_require_str(entry, "card_id")] * _require_int(entry, "count"))
            restaurants = [r for r in _require_list(d, "restaurant_card_ids") if isinstance(r, str)]
            deck = PlayerDeck(
                main_deck=tuple(main),
                chef_card_id=_require_str(d, "chef_card_id"),
                restaurant_card_ids=tuple(restaurants),
            )
            sd = StarterDeck(id=_require_str(d, "id"), name=_require_str(d, "name"), deck=deck)
            out[sd.id] = sd
        return out

    def validate_all(self) -> None:
        # Load is validation (schema + parse); starter decks must also be legal
        catalog = self.load_catalog()
        for sd in self.load_starter_decks().values():
            result = validate_player_deck(sd.deck, catalog)
            if not result.is_valid:
                raise ContentError(f"Starter deck {sd.id} is invalid: " + "; ".join(result.errors))


def _referenced_archetypes(card: Card) -> list[str]:
    if isinstance(card, ChefCard):
        return list(card.archetypes)
    if isinstance(card, RestaurantCard):
        return [card.primary_archetype] if card.primary_archetype else []
    if isinstance(card, MealCard):
        return [card.meal_archetype] if card.meal_archetype else []
    if isinstance(card, StaffCard):
        return [card.staff_archetype] if card.staff_archetype else []
    return []
