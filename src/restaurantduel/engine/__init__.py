"""Deterministic, headless rules engine for Restaurant Duel.

IMPORTANT: This package performs no I/O. Content loading lives in services.
"""

from .actions import (
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
from .deck import PlayerDeck, validate_main_deck, validate_player_deck
from .errors import CatalogIntegrityError, EngineError, IllegalActionError, ValidationError
from .match import MatchConfig, MatchState, SeatConfig, new_match, replay, step
from .scoring import BoardState, ScoreResult, calculate_score
from .types import CardCatalog, CardKind

__all__ = [
    "AdvanceRoundAction",
    "BoardState",
    "CardCatalog",
    "CardKind",
    "CatalogIntegrityError",
    "CoinFlipAction",
    "CompleteTurnAction",
    "EngineError",
    "FaceOffAction",
    "IllegalActionError",
    "MatchConfig",
    "MatchState",
    "MulliganAction",
    "PlayCardAction",
    "PlayerDeck",
    "RemoveCardAction",
    "ReorderCardAction",
    "RevealNextPairAction",
    "ScoreResult",
    "SeatConfig",
    "SelectRestaurantAction",
    "StartRoundAction",
    "ValidationError",
    "calculate_score",
    "new_match",
    "replay",
    "step",
    "validate_main_deck",
    "validate_player_deck",
]
