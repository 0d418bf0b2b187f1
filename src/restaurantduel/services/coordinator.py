"""Per-match serialization for hosts.

The engine is a pure reducer; a host that takes actions from several threads
(network handlers, an AI worker) must apply them one at a time per match.
`MatchRoom` owns one lock and the current state of one match. Rooms share
nothing mutable, so different matches proceed independently.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence

from restaurantduel.engine.actions import Action
from restaurantduel.engine.ai import AISpec, execute_turn
from restaurantduel.engine.match import MatchConfig, MatchState, SeatConfig, StepResult, new_match, step
from restaurantduel.engine.serialize import snapshot
from restaurantduel.engine.types import CardCatalog
from restaurantduel.services.telemetry import TelemetryService

logger = logging.getLogger(__name__)


class MatchRoom:
    def __init__(
        self,
        match_id: str,
        state: MatchState,
        telemetry: TelemetryService | None = None,
        ai_specs: Sequence[AISpec | None] = (None, None),
    ) -> None:
        self.match_id = match_id
        self._state = state
        self._lock = threading.Lock()
        self._telemetry = telemetry
        self._ai_specs = tuple(ai_specs)
        if telemetry is not None:
            telemetry.match_started(match_id, state)

    @property
    def state(self) -> MatchState:
        with self._lock:
            return self._state

    def snapshot(self, viewer: int | None = None) -> dict[str, object]:
        return snapshot(self.state, viewer=viewer)

    def submit(self, action: Action) -> StepResult:
        with self._lock:
            res = step(self._state, action)
            if res.ok:
                self._commit(res.state)
            else:
                logger.debug("room %s rejected %s: %s", self.match_id, action, res.error)
            return res

    def run_ai_turns(self) -> MatchState:
        """Play every AI seat whose turn it currently is."""
        with self._lock:
            state = self._state
            while state.phase == "TURN" and state.active_seat is not None:
                seat = state.active_seat
                if not state.seats[seat].is_ai:
                    break
                state = execute_turn(state, seat, self._ai_specs[seat])
            self._commit(state)
            return state

    def _commit(self, state: MatchState) -> None:
        prev = self._state
        self._state = state
        if self._telemetry is None:
            return
        if state.last_scores is not None and state.last_scores is not prev.last_scores:
            self._telemetry.face_off(self.match_id, state)
        if state.winner is not None and prev.winner is None:
            self._telemetry.match_ended(self.match_id, state)


class MatchRegistry:
    def __init__(self, catalog: CardCatalog, telemetry: TelemetryService | None = None) -> None:
        self._catalog = catalog
        self._telemetry = telemetry
        self._rooms: dict[str, MatchRoom] = {}
        self._lock = threading.Lock()
        self._next_id = 1

    def create(
        self,
        seats: Sequence[SeatConfig],
        seed: int,
        config: MatchConfig | None = None,
        ai_specs: Sequence[AISpec | None] = (None, None),
    ) -> MatchRoom:
        # Deck validation happens before a room id is spent
        state = new_match(self._catalog, seats, seed=seed, config=config)
        with self._lock:
            match_id = f"m{self._next_id}"
            self._next_id += 1
            room = MatchRoom(match_id, state, telemetry=self._telemetry, ai_specs=ai_specs)
            self._rooms[match_id] = room
        logger.info("created match %s seed=%s", match_id, seed)
        return room

    def get(self, match_id: str) -> MatchRoom | None:
        with self._lock:
            return self._rooms.get(match_id)

    def close(self, match_id: str) -> None:
        with self._lock:
            self._rooms.pop(match_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._rooms)
