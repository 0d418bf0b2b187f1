from __future__ import annotations

import logging
import random
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from typing import Literal

from .actions import (
    Action,
    AdvanceRoundAction,
    CoinFlipAction,
    CoinResult,
    CompleteTurnAction,
    FaceOffAction,
    MulliganAction,
    PlayCardAction,
    RemoveCardAction,
    ReorderCardAction,
    RestaurantChoice,
    RevealNextPairAction,
    SelectRestaurantAction,
    StartRoundAction,
    TargetKind,
)
from .deck import PlayerDeck, draw_cards, ensure_valid_deck, shuffle_cards
from .errors import CatalogIntegrityError, IllegalActionError
from .scoring import BoardState, ScoreResult, compare_scores, score_face_off
from .types import CardCatalog, ChefCard, influence_cost

logger = logging.getLogger(__name__)

Phase = Literal[
    "LOBBY",
    "DECK_BUILDING",
    "RESTAURANT_SELECTION",
    "MULLIGAN",
    "COIN_FLIP",
    "ROUND_START",
    "TURN",
    "FACE_OFF",
    "ROUND_END",
    "GAME_END",
]

Event = dict[str, object]


@dataclass(frozen=True)
class MatchConfig:
    starting_hand: int = 5
    draw_per_round: int = 1
    max_attached_meals: int = 3
    stars_to_win: int = 5


@dataclass(frozen=True)
class SeatConfig:
    id: str
    name: str
    deck: PlayerDeck
    is_ai: bool = False


@dataclass(frozen=True)
class Seat:
    id: str
    name: str
    chef_card_id: str
    draw_pile: tuple[str, ...]
    hand: tuple[str, ...]
    restaurant_deck: tuple[str, ...]
    board: BoardState
    is_ai: bool = False
    discard_pile: tuple[str, ...] = ()
    restaurant_card_id: str | None = None
    restaurant_revealed: bool = False
    stars: int = 0
    influence: int = 0
    max_influence: int = 0
    ready: bool = False
    turn_complete: bool = False
    event_played_this_round: bool = False


@dataclass(frozen=True)
class FaceoffState:
    reveal_order: tuple[tuple[str, ...], tuple[str, ...]]
    current_reveal_index: int = 0
    revealed_cards: tuple[tuple[str, ...], tuple[str, ...]] = ((), ())

    @property
    def reveal_length(self) -> int:
        return max(len(self.reveal_order[0]), len(self.reveal_order[1]))

    @property
    def complete(self) -> bool:
        return self.current_reveal_index >= self.reveal_length


@dataclass(frozen=True)
class MatchState:
    catalog: CardCatalog
    config: MatchConfig
    seed: int
    rng_state: tuple[object, ...]
    seats: tuple[Seat, Seat]
    phase: Phase = "RESTAURANT_SELECTION"
    current_round: int = 0
    first_seat: int | None = None
    winner: int | None = None
    coin_flip_result: CoinResult | None = None
    faceoff: FaceoffState | None = None
    last_scores: tuple[ScoreResult, ScoreResult] | None = None
    action_log: tuple[Action, ...] = ()
    event_log: tuple[Event, ...] = ()

    def opponent(self, seat: int) -> int:
        return 1 - seat

    @property
    def active_seat(self) -> int | None:
        """The seat allowed to act during TURN: first seat until it completes, then the other."""
        if self.phase != "TURN":
            return None
        first = self.first_seat if self.first_seat is not None else 0
        for i in (first, 1 - first):
            if not self.seats[i].turn_complete:
                return i
        return None


@dataclass(frozen=True)
class StepResult:
    ok: bool
    state: MatchState
    events: list[Event]
    error: str | None = None


# ---------------------------------------------------------------------------
# Helpers


def _rng(state: MatchState) -> random.Random:
    rng = random.Random()
    rng.setstate(state.rng_state)  # type: ignore[arg-type]
    return rng


def _set_seat(state: MatchState, index: int, seat: Seat) -> MatchState:
    seats = list(state.seats)
    seats[index] = seat
    return replace(state, seats=(seats[0], seats[1]))


def _emit(state: MatchState, *events: Event) -> MatchState:
    return replace(state, event_log=state.event_log + events)


def _remove_one(items: tuple[str, ...], card_id: str) -> tuple[str, ...]:
    idx = len(items) - 1 - items[::-1].index(card_id)
    return items[:idx] + items[idx + 1 :]


def _check_seat_index(seat: int) -> None:
    if seat not in (0, 1):
        raise IllegalActionError(f"Unknown seat {seat}.")


def _require_phase(state: MatchState, *phases: Phase) -> None:
    if state.phase not in phases:
        raise IllegalActionError(f"Action not allowed during {state.phase}.")


def _require_acting(state: MatchState, seat: int) -> Seat:
    _check_seat_index(seat)
    _require_phase(state, "TURN")
    if state.active_seat != seat:
        raise IllegalActionError("Not your turn.")
    return state.seats[seat]


def _chef(catalog: CardCatalog, chef_id: str) -> ChefCard:
    card = catalog.require(chef_id)
    if not isinstance(card, ChefCard):
        raise CatalogIntegrityError(chef_id, f"Card {chef_id} is not a Chef card.")
    return card


def calculate_max_influence(catalog: CardCatalog, chef_card_id: str, stars: int) -> int:
    chef = _chef(catalog, chef_card_id)
    return chef.starting_influence + chef.star_bonus_influence * stars


# ---------------------------------------------------------------------------
# Setup


def new_match(
    catalog: CardCatalog,
    seats: Sequence[SeatConfig],
    seed: int,
    config: MatchConfig | None = None,
    rng: random.Random | None = None,
) -> MatchState:
    """Create a match: validate decks, shuffle, deal opening hands.

    Pass `rng` to drive the shuffles from an external stream; otherwise the
    match RNG is seeded from `seed`.
    """
    cfg = config or MatchConfig()
    if len(seats) != 2:
        raise ValueError("A match needs exactly two seats.")
    for sc in seats:
        ensure_valid_deck(sc.deck, catalog)

    rng = rng or random.Random(seed)
    built: list[Seat] = []
    events: list[Event] = []
    for i, sc in enumerate(seats):
        pile = shuffle_cards(rng, sc.deck.main_deck)
        restaurant_deck = shuffle_cards(rng, sc.deck.restaurant_card_ids)
        hand, remaining = draw_cards(pile, cfg.starting_hand)
        max_influence = calculate_max_influence(catalog, sc.deck.chef_card_id, 0)
        built.append(
            Seat(
                id=sc.id,
                name=sc.name,
                is_ai=sc.is_ai,
                chef_card_id=sc.deck.chef_card_id,
                draw_pile=remaining,
                hand=hand,
                restaurant_deck=tuple(restaurant_deck),
                board=BoardState(chef_card_id=sc.deck.chef_card_id),
                influence=max_influence,
                max_influence=max_influence,
            )
        )
        events.append({"type": "HAND_DRAWN", "seat": i, "count": len(hand)})

    state = MatchState(
        catalog=catalog,
        config=cfg,
        seed=seed,
        rng_state=rng.getstate(),
        seats=(built[0], built[1]),
        phase="RESTAURANT_SELECTION",
        event_log=(
            {"type": "MATCH_STARTED", "seed": seed, "seats": [s.id for s in built]},
            *events,
        ),
    )
    logger.debug("match created seed=%s seats=%s", seed, [s.id for s in built])
    return state


def select_restaurant(state: MatchState, seat: int, choice: RestaurantChoice) -> MatchState:
    _check_seat_index(seat)
    _require_phase(state, "RESTAURANT_SELECTION")
    s = state.seats[seat]
    if s.restaurant_card_id is not None:
        raise IllegalActionError("Restaurant already selected.")
    if not s.restaurant_deck:
        raise IllegalActionError("No restaurants available.")
    if choice == "top":
        restaurant_id = s.restaurant_deck[0]
    elif choice == "bottom":
        restaurant_id = s.restaurant_deck[-1]
    else:
        raise IllegalActionError(f"Unknown restaurant choice: {choice}.")

    s = replace(s, restaurant_card_id=restaurant_id, board=replace(s.board, restaurant_card_id=restaurant_id))
    state = _set_seat(state, seat, s)
    state = _emit(state, {"type": "RESTAURANT_SELECTED", "seat": seat, "card_id": restaurant_id})
    if all(x.restaurant_card_id is not None for x in state.seats):
        state = replace(state, phase="MULLIGAN")
    return state


def reveal_restaurants(state: MatchState) -> MatchState:
    seats = tuple(replace(s, restaurant_revealed=True) for s in state.seats)
    state = replace(state, seats=(seats[0], seats[1]))
    return _emit(
        state,
        {"type": "RESTAURANTS_REVEALED", "restaurants": [s.restaurant_card_id for s in state.seats]},
    )


def perform_mulligan(state: MatchState, seat: int, card_ids: Iterable[str]) -> MatchState:
    """Shuffle `card_ids` back into the draw pile and draw as many replacements.

    Any number of cards may be sent back; only the AI policy limits itself.
    """
    _check_seat_index(seat)
    _require_phase(state, "MULLIGAN")
    s = state.seats[seat]
    if s.ready:
        raise IllegalActionError("Mulligan already taken.")
    discards = tuple(card_ids)
    have = Counter(s.hand)
    for cid, n in Counter(discards).items():
        if have[cid] < n:
            raise IllegalActionError(f"Card {cid} is not in hand.")

    if discards:
        hand = s.hand
        for cid in discards:
            hand = _remove_one(hand, cid)
        rng = _rng(state)
        pile = shuffle_cards(rng, s.draw_pile + discards)
        drawn, remaining = draw_cards(pile, len(discards))
        s = replace(s, hand=hand + drawn, draw_pile=remaining)
        state = replace(state, rng_state=rng.getstate())
    s = replace(s, ready=True)
    state = _set_seat(state, seat, s)
    state = _emit(state, {"type": "MULLIGAN", "seat": seat, "count": len(discards)})

    if all(x.ready for x in state.seats):
        state = reveal_restaurants(state)
        state = replace(state, phase="COIN_FLIP")
    return state


def set_first_seat(state: MatchState, result: CoinResult) -> MatchState:
    _require_phase(state, "COIN_FLIP")
    if result not in ("heads", "tails"):
        raise IllegalActionError(f"Unknown coin result: {result}.")
    first = 0 if result == "heads" else 1
    state = replace(state, coin_flip_result=result, first_seat=first, phase="ROUND_START")
    return _emit(state, {"type": "COIN_FLIPPED", "result": result, "first_seat": first})


def flip_coin(state: MatchState) -> MatchState:
    _require_phase(state, "COIN_FLIP")
    rng = _rng(state)
    result: CoinResult = "heads" if rng.random() < 0.5 else "tails"
    return set_first_seat(replace(state, rng_state=rng.getstate()), result)


# ---------------------------------------------------------------------------
# Rounds


def _seat_for_new_round(state: MatchState, s: Seat) -> Seat:
    board = s.board
    discarded = board.played_staff + board.played_support + board.played_events
    max_influence = calculate_max_influence(state.catalog, s.chef_card_id, s.stars)
    draws = state.config.draw_per_round
    if _chef(state.catalog, s.chef_card_id).ability == "speed":
        draws += 1
    drawn, remaining = draw_cards(s.draw_pile, draws)
    return replace(
        s,
        board=replace(board, played_staff=(), played_support=(), played_events=(), play_order=()),
        discard_pile=s.discard_pile + discarded,
        hand=s.hand + drawn,
        draw_pile=remaining,
        max_influence=max_influence,
        influence=max_influence,
        turn_complete=False,
        event_played_this_round=False,
    )


def start_round(state: MatchState) -> MatchState:
    """Begin the next round. Attached meals stay on the board; everything else played is cleared."""
    _require_phase(state, "ROUND_START", "ROUND_END")
    if state.winner is not None:
        raise IllegalActionError("Match already ended.")
    s0 = _seat_for_new_round(state, state.seats[0])
    s1 = _seat_for_new_round(state, state.seats[1])
    new_round = state.current_round + 1
    state = replace(
        state,
        seats=(s0, s1),
        current_round=new_round,
        phase="TURN",
        faceoff=None,
    )
    return _emit(
        state,
        {
            "type": "ROUND_STARTED",
            "round": new_round,
            "influence": [s0.max_influence, s1.max_influence],
        },
    )


def play_card(
    state: MatchState,
    seat: int,
    card_id: str,
    target_kind: TargetKind | None = None,
    meal_to_discard: str | None = None,
) -> MatchState:
    s = _require_acting(state, seat)
    if card_id not in s.hand:
        raise IllegalActionError("Card not in hand.")
    card = state.catalog.require(card_id)
    if card.kind in ("chef", "restaurant"):
        raise IllegalActionError(f"{card.name} cannot be played from hand.")
    if target_kind is not None and target_kind != card.kind:
        raise IllegalActionError(f"{card.name} cannot be played as {target_kind}.")
    if card.kind == "event" and s.event_played_this_round:
        raise IllegalActionError("Only one Event card may be played per round.")
    cost = influence_cost(card)
    if cost > s.influence:
        raise IllegalActionError("Not enough influence.")

    board = s.board
    discard_pile = s.discard_pile
    events: list[Event] = []
    if card.kind == "meal":
        attached = board.attached_meals
        if len(attached) >= state.config.max_attached_meals:
            if meal_to_discard is None:
                raise IllegalActionError("Restaurant already has 3 Meals attached; choose one to discard.")
            if meal_to_discard not in attached:
                raise IllegalActionError("That Meal is not attached to your restaurant.")
            attached = _remove_one(attached, meal_to_discard)
            discard_pile = discard_pile + (meal_to_discard,)
            events.append({"type": "MEAL_DISCARDED", "seat": seat, "card_id": meal_to_discard})
        board = replace(board, attached_meals=attached + (card_id,))
    elif card.kind == "staff":
        board = replace(board, played_staff=board.played_staff + (card_id,), play_order=board.play_order + (card_id,))
    elif card.kind == "support":
        board = replace(
            board, played_support=board.played_support + (card_id,), play_order=board.play_order + (card_id,)
        )
    else:
        board = replace(
            board, played_events=board.played_events + (card_id,), play_order=board.play_order + (card_id,)
        )

    s = replace(
        s,
        hand=_remove_one(s.hand, card_id),
        influence=s.influence - cost,
        board=board,
        discard_pile=discard_pile,
        event_played_this_round=s.event_played_this_round or card.kind == "event",
    )
    state = _set_seat(state, seat, s)
    return _emit(state, {"type": "CARD_PLAYED", "seat": seat, "card_id": card_id, "cost": cost}, *events)


def remove_card_from_play(state: MatchState, seat: int, card_id: str) -> MatchState:
    """Undo a Staff/Support/Event play made this turn: back to hand, cost refunded."""
    s = _require_acting(state, seat)
    board = s.board
    if card_id not in board.play_order:
        raise IllegalActionError("Only Staff, Support and Event cards played this turn can be returned.")
    card = state.catalog.require(card_id)
    if card.kind == "staff":
        board = replace(board, played_staff=_remove_one(board.played_staff, card_id))
    elif card.kind == "support":
        board = replace(board, played_support=_remove_one(board.played_support, card_id))
    else:
        board = replace(board, played_events=_remove_one(board.played_events, card_id))
    board = replace(board, play_order=_remove_one(board.play_order, card_id))

    s = replace(
        s,
        hand=s.hand + (card_id,),
        influence=s.influence + influence_cost(card),
        board=board,
        event_played_this_round=bool(board.played_events),
    )
    state = _set_seat(state, seat, s)
    return _emit(state, {"type": "CARD_RETURNED", "seat": seat, "card_id": card_id})


def reorder_played_card(state: MatchState, seat: int, from_index: int, to_index: int) -> MatchState:
    s = _require_acting(state, seat)
    order = list(s.board.play_order)
    if not (0 <= from_index < len(order)) or not (0 <= to_index < len(order)):
        raise IllegalActionError("Invalid play position.")
    order.insert(to_index, order.pop(from_index))
    s = replace(s, board=replace(s.board, play_order=tuple(order)))
    state = _set_seat(state, seat, s)
    return _emit(state, {"type": "CARD_REORDERED", "seat": seat, "from": from_index, "to": to_index})


def complete_turn(state: MatchState, seat: int) -> MatchState:
    s = _require_acting(state, seat)
    state = _set_seat(state, seat, replace(s, turn_complete=True))
    state = _emit(state, {"type": "TURN_COMPLETED", "seat": seat})
    if all(x.turn_complete for x in state.seats):
        faceoff = FaceoffState(reveal_order=(state.seats[0].board.play_order, state.seats[1].board.play_order))
        state = replace(state, phase="FACE_OFF", faceoff=faceoff)
        state = _emit(state, {"type": "FACE_OFF_STARTED", "round": state.current_round})
    return state


# ---------------------------------------------------------------------------
# Face-off


def reveal_next_card_pair(state: MatchState) -> MatchState:
    """Reveal the next card of each seat's reveal order. No-op once everything is shown."""
    _require_phase(state, "FACE_OFF")
    fo = state.faceoff
    assert fo is not None
    if fo.complete:
        return state
    idx = fo.current_reveal_index
    revealed = list(fo.revealed_cards)
    pair: list[str | None] = [None, None]
    for i in (0, 1):
        if idx < len(fo.reveal_order[i]):
            pair[i] = fo.reveal_order[i][idx]
            revealed[i] = revealed[i] + (fo.reveal_order[i][idx],)
    fo = replace(fo, current_reveal_index=idx + 1, revealed_cards=(revealed[0], revealed[1]))
    state = replace(state, faceoff=fo)
    return _emit(state, {"type": "CARDS_REVEALED", "index": idx, "cards": pair})


def perform_face_off(state: MatchState) -> MatchState:
    """Score both boards and award the round's star on a strict score difference."""
    _require_phase(state, "FACE_OFF")
    fo = state.faceoff
    assert fo is not None
    fo = replace(fo, current_reveal_index=fo.reveal_length, revealed_cards=fo.reveal_order)

    s0, s1 = state.seats
    scores = score_face_off(
        (s0.board, s1.board),
        state.catalog,
        current_round=state.current_round,
        stars=(s0.stars, s1.stars),
    )
    round_winner = compare_scores(scores[0].total_score, scores[1].total_score)

    seats = [s0, s1]
    if round_winner is not None:
        w = seats[round_winner]
        seats[round_winner] = replace(w, stars=min(w.stars + 1, state.config.stars_to_win))

    winner: int | None = None
    phase: Phase = "ROUND_END"
    if round_winner is not None and seats[round_winner].stars >= state.config.stars_to_win:
        winner = round_winner
        phase = "GAME_END"

    state = replace(
        state,
        seats=(seats[0], seats[1]),
        faceoff=fo,
        last_scores=scores,
        winner=winner,
        phase=phase,
    )
    logger.info(
        "round %s face-off: %s vs %s -> %s",
        state.current_round,
        scores[0].total_score,
        scores[1].total_score,
        "tie" if round_winner is None else f"seat {round_winner}",
    )
    state = _emit(
        state,
        {
            "type": "FACE_OFF_RESOLVED",
            "round": state.current_round,
            "scores": [scores[0].total_score, scores[1].total_score],
            "round_winner": round_winner,
            "stars": [seats[0].stars, seats[1].stars],
        },
    )
    if winner is not None:
        state = _emit(state, {"type": "GAME_ENDED", "winner": winner})
    return state


def advance_to_next_round(state: MatchState) -> MatchState:
    if state.winner is not None:
        return state
    _require_phase(state, "ROUND_END")
    return replace(state, phase="ROUND_START", faceoff=None)


def reset_turn_status(state: MatchState) -> MatchState:
    if state.winner is not None:
        return state
    seats = tuple(replace(s, turn_complete=False) for s in state.seats)
    return replace(state, seats=(seats[0], seats[1]))


# ---------------------------------------------------------------------------
# Dispatch


def _apply(state: MatchState, action: Action) -> MatchState:
    if isinstance(action, SelectRestaurantAction):
        return select_restaurant(state, action.seat, action.choice)
    if isinstance(action, MulliganAction):
        return perform_mulligan(state, action.seat, action.card_ids)
    if isinstance(action, CoinFlipAction):
        if action.result is None:
            return flip_coin(state)
        return set_first_seat(state, action.result)
    if isinstance(action, StartRoundAction):
        return start_round(state)
    if isinstance(action, PlayCardAction):
        return play_card(state, action.seat, action.card_id, action.target_kind, action.meal_to_discard)
    if isinstance(action, RemoveCardAction):
        return remove_card_from_play(state, action.seat, action.card_id)
    if isinstance(action, ReorderCardAction):
        return reorder_played_card(state, action.seat, action.from_index, action.to_index)
    if isinstance(action, CompleteTurnAction):
        return complete_turn(state, action.seat)
    if isinstance(action, RevealNextPairAction):
        return reveal_next_card_pair(state)
    if isinstance(action, FaceOffAction):
        return perform_face_off(state)
    if isinstance(action, AdvanceRoundAction):
        return advance_to_next_round(state)
    raise IllegalActionError("Unknown action.")


def step(state: MatchState, action: Action) -> StepResult:
    """Apply a single action and return the resulting state.

    `state` is never modified. A rejected action yields `ok=False` together
    with the very same state object. Catalog errors propagate.
    """
    if state.winner is not None:
        return StepResult(ok=False, state=state, events=[], error="Match already ended.")
    try:
        new_state = _apply(state, action)
    except IllegalActionError as e:
        logger.debug("rejected %s: %s", action, e)
        return StepResult(ok=False, state=state, events=[], error=str(e))

    new_state = replace(new_state, action_log=state.action_log + (action,))
    events = list(new_state.event_log[len(state.event_log) :])
    logger.debug("applied %s -> phase %s", type(action).__name__, new_state.phase)
    return StepResult(ok=True, state=new_state, events=events)


def replay(
    catalog: CardCatalog,
    seats: Sequence[SeatConfig],
    seed: int,
    actions: Iterable[Action],
    config: MatchConfig | None = None,
) -> MatchState:
    state = new_match(catalog, seats, seed=seed, config=config)
    for a in actions:
        state = step(state, a).state
        if state.winner is not None:
            break
    return state
