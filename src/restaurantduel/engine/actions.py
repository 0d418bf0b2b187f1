from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

RestaurantChoice = Literal["top", "bottom"]
CoinResult = Literal["heads", "tails"]
TargetKind = Literal["meal", "staff", "support", "event"]


@dataclass(frozen=True)
class SelectRestaurantAction:
    seat: int
    choice: RestaurantChoice


@dataclass(frozen=True)
class MulliganAction:
    seat: int
    card_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class CoinFlipAction:
    """`result=None` lets the match RNG flip the coin."""

    result: CoinResult | None = None


@dataclass(frozen=True)
class StartRoundAction:
    pass


@dataclass(frozen=True)
class PlayCardAction:
    seat: int
    card_id: str
    target_kind: TargetKind | None = None
    meal_to_discard: str | None = None


@dataclass(frozen=True)
class RemoveCardAction:
    seat: int
    card_id: str


@dataclass(frozen=True)
class ReorderCardAction:
    seat: int
    from_index: int
    to_index: int


@dataclass(frozen=True)
class CompleteTurnAction:
    seat: int


@dataclass(frozen=True)
class RevealNextPairAction:
    pass


@dataclass(frozen=True)
class FaceOffAction:
    pass


@dataclass(frozen=True)
class AdvanceRoundAction:
    pass


Action = (
    SelectRestaurantAction
    | MulliganAction
    | CoinFlipAction
    | StartRoundAction
    | PlayCardAction
    | RemoveCardAction
    | ReorderCardAction
    | CompleteTurnAction
    | RevealNextPairAction
    | FaceOffAction
    | AdvanceRoundAction
)
