from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Mapping

from restaurantduel.engine.match import MatchState


@dataclass
class TelemetryService:
    path: Path

    def log(self, event_type: str, payload: Mapping[str, object]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        rec = {
            "ts": datetime.now(tz=timezone.utc).isoformat(),
            "type": event_type,
            "payload": dict(payload),
        }
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(rec, ensure_ascii=False) + "\n")

    def match_started(self, match_id: str, state: MatchState) -> None:
        self.log(
            "match_started",
            {
                "match_id": match_id,
                "seed": state.seed,
                "seats": [s.id for s in state.seats],
                "chefs": [s.chef_card_id for s in state.seats],
            },
        )

    def face_off(self, match_id: str, state: MatchState) -> None:
        if state.last_scores is None:
            return
        self.log(
            "face_off",
            {
                "match_id": match_id,
                "round": state.current_round,
                "scores": [s.total_score for s in state.last_scores],
                "stars": [s.stars for s in state.seats],
            },
        )

    def match_ended(self, match_id: str, state: MatchState) -> None:
        self.log(
            "match_ended",
            {
                "match_id": match_id,
                "winner": state.winner,
                "rounds": state.current_round,
                "stars": [s.stars for s in state.seats],
            },
        )
