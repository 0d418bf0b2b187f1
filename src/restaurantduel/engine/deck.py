from __future__ import annotations

import random
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field

from .errors import ValidationError
from .types import MAIN_DECK_KINDS, CardCatalog

MAIN_DECK_SIZE = 30
MAX_COPIES = 3
RESTAURANT_COUNT = 3


@dataclass(frozen=True)
class PlayerDeck:
    main_deck: tuple[str, ...]
    chef_card_id: str
    restaurant_card_ids: tuple[str, ...]


@dataclass(frozen=True)
class DeckValidationResult:
    is_valid: bool
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class DeckStats:
    total_cards: int
    kind_counts: dict[str, int] = field(default_factory=dict)
    card_counts: dict[str, int] = field(default_factory=dict)

    def count(self, kind: str) -> int:
        return self.kind_counts.get(kind, 0)


def get_deck_stats(deck: Sequence[str], catalog: CardCatalog) -> DeckStats:
    kind_counts: dict[str, int] = {}
    for card_id in deck:
        card = catalog.get(card_id)
        if card is None:
            continue
        kind_counts[card.kind] = kind_counts.get(card.kind, 0) + 1
    return DeckStats(total_cards=len(deck), kind_counts=kind_counts, card_counts=dict(Counter(deck)))


def validate_main_deck(deck: Sequence[str], catalog: CardCatalog) -> DeckValidationResult:
    """Check the 30-card main deck.

    Rules:
      - exactly 30 cards
      - no id more than 3 times
      - only Meal/Staff/Support/Event cards (Chef and Restaurant live outside the main deck)
      - every id resolves in the catalog
    """
    errors: list[str] = []
    warnings: list[str] = []

    if len(deck) != MAIN_DECK_SIZE:
        errors.append(f"Main deck must have exactly {MAIN_DECK_SIZE} cards, but has {len(deck)}.")

    unknown = sorted({cid for cid in deck if catalog.get(cid) is None})
    if unknown:
        errors.append(f"Unknown card ids: {', '.join(unknown)}.")

    for card_id, count in sorted(Counter(deck).items()):
        if count > MAX_COPIES:
            errors.append(f"Card {card_id} appears {count} times, maximum is {MAX_COPIES}.")

    for card_id in sorted(set(deck)):
        card = catalog.get(card_id)
        if card is not None and card.kind not in MAIN_DECK_KINDS:
            errors.append(f"Card {card_id} is a {card.kind} card and cannot be in the main deck.")

    stats = get_deck_stats(deck, catalog)
    if deck and stats.count("meal") == 0:
        warnings.append("Main deck has no Meal cards.")

    return DeckValidationResult(is_valid=not errors, errors=tuple(errors), warnings=tuple(warnings))


def validate_player_deck(player_deck: PlayerDeck, catalog: CardCatalog) -> DeckValidationResult:
    base = validate_main_deck(player_deck.main_deck, catalog)
    errors = list(base.errors)

    chef = catalog.get(player_deck.chef_card_id)
    if chef is None:
        errors.append(f"Chef card {player_deck.chef_card_id} does not exist.")
    elif chef.kind != "chef":
        errors.append(f"Card {chef.id} is not a Chef card.")

    restaurants = player_deck.restaurant_card_ids
    if len(restaurants) != RESTAURANT_COUNT:
        errors.append(
            f"Deck must have exactly {RESTAURANT_COUNT} Restaurant cards, but has {len(restaurants)}."
        )
    for rid in restaurants:
        card = catalog.get(rid)
        if card is None:
            errors.append(f"Restaurant card {rid} does not exist.")
        elif card.kind != "restaurant":
            errors.append(f"Card {rid} is not a Restaurant card.")
    if len(set(restaurants)) != len(restaurants):
        errors.append("Restaurant cards must be unique.")

    return DeckValidationResult(is_valid=not errors, errors=tuple(errors), warnings=base.warnings)


def ensure_valid_deck(player_deck: PlayerDeck, catalog: CardCatalog) -> None:
    result = validate_player_deck(player_deck, catalog)
    if not result.is_valid:
        raise ValidationError(result.errors)


def shuffle_cards(rng: random.Random, card_ids: Sequence[str]) -> list[str]:
    """Fisher-Yates shuffle driven by the injected RNG. Returns a new list."""
    items = list(card_ids)
    for i in range(len(items) - 1, 0, -1):
        j = rng.randint(0, i)
        items[i], items[j] = items[j], items[i]
    return items


def draw_cards(pile: Sequence[str], count: int) -> tuple[tuple[str, ...], tuple[str, ...]]:
    """Take `count` cards from the front of the pile. Returns (drawn, remaining)."""
    count = max(0, min(count, len(pile)))
    return tuple(pile[:count]), tuple(pile[count:])
