from __future__ import annotations

import json
import threading
from pathlib import Path

import pytest

from restaurantduel.engine.actions import (
    CoinFlipAction,
    CompleteTurnAction,
    FaceOffAction,
    MulliganAction,
    SelectRestaurantAction,
    StartRoundAction,
)
from restaurantduel.engine.deck import PlayerDeck
from restaurantduel.engine.errors import ValidationError
from restaurantduel.engine.match import SeatConfig
from restaurantduel.services.coordinator import MatchRegistry
from restaurantduel.services.telemetry import TelemetryService


def _seats(deck, ai=(False, False)):
    return [SeatConfig("p0", "Zero", deck, ai[0]), SeatConfig("p1", "One", deck, ai[1])]


def test_concurrent_submits_apply_once(mini_catalog, mini_deck) -> None:
    registry = MatchRegistry(mini_catalog)
    room = registry.create(_seats(mini_deck), seed=4)

    results = []
    barrier = threading.Barrier(8)

    def submit() -> None:
        barrier.wait()
        results.append(room.submit(SelectRestaurantAction(seat=0, choice="top")))

    threads = [threading.Thread(target=submit) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sum(1 for r in results if r.ok) == 1
    assert len(room.state.action_log) == 1


def test_registry_rooms_are_independent(mini_catalog, mini_deck) -> None:
    registry = MatchRegistry(mini_catalog)
    a = registry.create(_seats(mini_deck), seed=1)
    b = registry.create(_seats(mini_deck), seed=2)
    assert a.match_id != b.match_id
    assert len(registry) == 2

    a.submit(SelectRestaurantAction(seat=0, choice="top"))
    assert b.state.seats[0].restaurant_card_id is None
    assert registry.get(a.match_id) is a

    registry.close(a.match_id)
    assert registry.get(a.match_id) is None


def test_invalid_deck_creates_no_room(mini_catalog, mini_deck) -> None:
    registry = MatchRegistry(mini_catalog)
    bad = PlayerDeck(mini_deck.main_deck[:5], "chef_plain", mini_deck.restaurant_card_ids)
    with pytest.raises(ValidationError):
        registry.create(_seats(bad), seed=1)
    assert len(registry) == 0


def test_ai_turns_and_telemetry(mini_catalog, mini_deck, tmp_path: Path) -> None:
    telemetry = TelemetryService(tmp_path / "telemetry.jsonl")
    registry = MatchRegistry(mini_catalog, telemetry=telemetry)
    room = registry.create(_seats(mini_deck, ai=(False, True)), seed=6)

    for action in (
        SelectRestaurantAction(seat=0, choice="top"),
        SelectRestaurantAction(seat=1, choice="top"),
        MulliganAction(seat=0),
        MulliganAction(seat=1),
        CoinFlipAction(result="tails"),
        StartRoundAction(),
    ):
        assert room.submit(action).ok

    state = room.run_ai_turns()
    assert state.seats[1].turn_complete
    assert state.active_seat == 0
    # human seat stops the loop
    assert room.run_ai_turns().active_seat == 0

    view = room.snapshot(viewer=0)
    assert view["active_seat"] == 0

    lines = [json.loads(x) for x in (tmp_path / "telemetry.jsonl").read_text(encoding="utf-8").splitlines()]
    assert lines[0]["type"] == "match_started"
    assert lines[0]["payload"]["match_id"] == room.match_id

    assert room.submit(CompleteTurnAction(seat=0)).ok
    assert room.submit(FaceOffAction()).ok
    lines = [json.loads(x) for x in (tmp_path / "telemetry.jsonl").read_text(encoding="utf-8").splitlines()]
    assert lines[-1]["type"] == "face_off"
