from __future__ import annotations

from collections.abc import Mapping

from .actions import (
    Action,
    AdvanceRoundAction,
    CoinFlipAction,
    CompleteTurnAction,
    FaceOffAction,
    MulliganAction,
    PlayCardAction,
    RemoveCardAction,
    ReorderCardAction,
    RevealNextPairAction,
    SelectRestaurantAction,
    StartRoundAction,
)
from .errors import IllegalActionError
from .match import FaceoffState, MatchState, Seat
from .scoring import ScoreResult

HIDDEN = "hidden"


def action_to_dict(a: Action) -> dict[str, object]:
    if isinstance(a, SelectRestaurantAction):
        return {"type": "select_restaurant", "seat": a.seat, "choice": a.choice}
    if isinstance(a, MulliganAction):
        return {"type": "mulligan", "seat": a.seat, "card_ids": list(a.card_ids)}
    if isinstance(a, CoinFlipAction):
        return {"type": "coin_flip", "result": a.result}
    if isinstance(a, StartRoundAction):
        return {"type": "start_round"}
    if isinstance(a, PlayCardAction):
        return {
            "type": "play",
            "seat": a.seat,
            "card_id": a.card_id,
            "target_kind": a.target_kind,
            "meal_to_discard": a.meal_to_discard,
        }
    if isinstance(a, RemoveCardAction):
        return {"type": "remove", "seat": a.seat, "card_id": a.card_id}
    if isinstance(a, ReorderCardAction):
        return {"type": "reorder", "seat": a.seat, "from_index": a.from_index, "to_index": a.to_index}
    if isinstance(a, CompleteTurnAction):
        return {"type": "complete_turn", "seat": a.seat}
    if isinstance(a, RevealNextPairAction):
        return {"type": "reveal_next"}
    if isinstance(a, FaceOffAction):
        return {"type": "face_off"}
    if isinstance(a, AdvanceRoundAction):
        return {"type": "advance_round"}
    # should be unreachable
    return {"type": "unknown"}


def _int(d: Mapping[str, object], key: str) -> int:
    v = d.get(key)
    if not isinstance(v, int) or isinstance(v, bool):
        raise IllegalActionError(f"Expected int for {key}")
    return v


def _str(d: Mapping[str, object], key: str) -> str:
    v = d.get(key)
    if not isinstance(v, str):
        raise IllegalActionError(f"Expected string for {key}")
    return v


def _opt_str(d: Mapping[str, object], key: str) -> str | None:
    v = d.get(key)
    if v is None:
        return None
    if not isinstance(v, str):
        raise IllegalActionError(f"Expected string for {key}")
    return v


def action_from_dict(d: Mapping[str, object]) -> Action:
    """Parse an inbound action message. Malformed messages are rejected as illegal actions."""
    t = d.get("type")
    if t == "select_restaurant":
        return SelectRestaurantAction(seat=_int(d, "seat"), choice=_str(d, "choice"))  # type: ignore[arg-type]
    if t == "mulligan":
        raw = d.get("card_ids", [])
        if not isinstance(raw, list) or not all(isinstance(x, str) for x in raw):
            raise IllegalActionError("card_ids must be a list of strings")
        return MulliganAction(seat=_int(d, "seat"), card_ids=tuple(raw))
    if t == "coin_flip":
        return CoinFlipAction(result=_opt_str(d, "result"))  # type: ignore[arg-type]
    if t == "start_round":
        return StartRoundAction()
    if t == "play":
        return PlayCardAction(
            seat=_int(d, "seat"),
            card_id=_str(d, "card_id"),
            target_kind=_opt_str(d, "target_kind"),  # type: ignore[arg-type]
            meal_to_discard=_opt_str(d, "meal_to_discard"),
        )
    if t == "remove":
        return RemoveCardAction(seat=_int(d, "seat"), card_id=_str(d, "card_id"))
    if t == "reorder":
        return ReorderCardAction(seat=_int(d, "seat"), from_index=_int(d, "from_index"), to_index=_int(d, "to_index"))
    if t == "complete_turn":
        return CompleteTurnAction(seat=_int(d, "seat"))
    if t == "reveal_next":
        return RevealNextPairAction()
    if t == "face_off":
        return FaceOffAction()
    if t == "advance_round":
        return AdvanceRoundAction()
    raise IllegalActionError(f"Unknown action type: {t}")


def score_to_dict(s: ScoreResult) -> dict[str, object]:
    return {
        "base_score": s.base_score,
        "meal_points": s.meal_points,
        "staff_modifiers": s.staff_modifiers,
        "support_modifiers": s.support_modifiers,
        "restaurant_bonus": s.restaurant_bonus,
        "chef_bonus": s.chef_bonus,
        "event_modifiers": s.event_modifiers,
        "archetype_bonus": s.archetype_bonus,
        "total_score": s.total_score,
        "breakdown": list(s.breakdown),
    }


def _shown_count(state: MatchState, seat: int) -> int:
    """How many leading entries of the seat's play order are face up."""
    if state.phase == "TURN":
        return 0
    fo = state.faceoff
    if fo is None:
        return len(state.seats[seat].board.play_order)
    return min(fo.current_reveal_index, len(fo.reveal_order[seat]))


def _redact_zone(zone: tuple[str, ...], shown: tuple[str, ...]) -> list[str]:
    # The n-th copy of a card is face up once n copies of it are face up.
    budget: dict[str, int] = {}
    for cid in shown:
        budget[cid] = budget.get(cid, 0) + 1
    out = []
    for cid in zone:
        if budget.get(cid, 0) > 0:
            budget[cid] -= 1
            out.append(cid)
        else:
            out.append(HIDDEN)
    return out


def _seat_to_dict(s: Seat, *, hidden: bool, shown_count: int) -> dict[str, object]:
    board = s.board
    played: dict[str, object] = {
        "played_staff": list(board.played_staff),
        "played_support": list(board.played_support),
        "played_events": list(board.played_events),
        "play_order": list(board.play_order),
    }
    if hidden:
        shown = board.play_order[:shown_count]
        played = {
            "played_staff": _redact_zone(board.played_staff, shown),
            "played_support": _redact_zone(board.played_support, shown),
            "played_events": _redact_zone(board.played_events, shown),
            "play_order": [cid if k < shown_count else HIDDEN for k, cid in enumerate(board.play_order)],
        }
    restaurant = s.restaurant_card_id
    if hidden and not s.restaurant_revealed and restaurant is not None:
        restaurant = HIDDEN
    return {
        "id": s.id,
        "name": s.name,
        "is_ai": s.is_ai,
        "chef_card_id": s.chef_card_id,
        "restaurant_card_id": restaurant,
        "restaurant_revealed": s.restaurant_revealed,
        "hand": [HIDDEN] * len(s.hand) if hidden else list(s.hand),
        "draw_pile": len(s.draw_pile) if hidden else list(s.draw_pile),
        "discard_pile": list(s.discard_pile),
        "attached_meals": list(board.attached_meals),
        **played,
        "stars": s.stars,
        "influence": s.influence,
        "max_influence": s.max_influence,
        "ready": s.ready,
        "turn_complete": s.turn_complete,
        "event_played_this_round": s.event_played_this_round,
    }


def _faceoff_to_dict(fo: FaceoffState | None, *, viewer: int | None) -> dict[str, object] | None:
    if fo is None:
        return None
    order = [list(o) for o in fo.reveal_order]
    if viewer is not None:
        other = 1 - viewer
        order[other] = [cid if k < fo.current_reveal_index else HIDDEN for k, cid in enumerate(order[other])]
    return {
        "reveal_order": order,
        "current_reveal_index": fo.current_reveal_index,
        "revealed_cards": [list(r) for r in fo.revealed_cards],
    }


def _log_entry(a: Action, viewer: int | None) -> dict[str, object]:
    d = action_to_dict(a)
    if viewer is None or d.get("seat", viewer) == viewer:
        return d
    # Card choices of the other seat never appear in its log entries.
    if "card_ids" in d:
        d["card_ids"] = [HIDDEN] * len(d["card_ids"])  # type: ignore[arg-type]
    for key in ("card_id", "target_kind", "meal_to_discard"):
        if d.get(key) is not None:
            d[key] = HIDDEN
    return d


def snapshot(state: MatchState, viewer: int | None = None) -> dict[str, object]:
    """Return a JSON-serializable snapshot of the match.

    With `viewer` set, the opponent's hand, draw pile, unrevealed restaurant and
    unrevealed played cards are redacted, as are the card ids in its log entries.
    Played cards are revealed by position, one reveal step at a time.
    """
    seats = []
    for i, s in enumerate(state.seats):
        hidden = viewer is not None and i != viewer
        seats.append(_seat_to_dict(s, hidden=hidden, shown_count=_shown_count(state, i)))
    return {
        "seed": state.seed,
        "phase": state.phase,
        "current_round": state.current_round,
        "first_seat": state.first_seat,
        "active_seat": state.active_seat,
        "winner": state.winner,
        "coin_flip_result": state.coin_flip_result,
        "seats": seats,
        "faceoff": _faceoff_to_dict(state.faceoff, viewer=viewer),
        "last_scores": [score_to_dict(s) for s in state.last_scores] if state.last_scores else None,
        "action_log": [_log_entry(a, viewer) for a in state.action_log],
    }
