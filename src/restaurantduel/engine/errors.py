from __future__ import annotations

from collections.abc import Sequence


class EngineError(RuntimeError):
    pass


class ValidationError(EngineError):
    """A deck failed its legality checks. Raised before a match exists."""

    def __init__(self, errors: Sequence[str]) -> None:
        self.errors = tuple(errors)
        super().__init__("; ".join(self.errors) or "Invalid deck.")


class IllegalActionError(EngineError):
    """An action was rejected. The match state is left untouched."""


class CatalogIntegrityError(EngineError):
    """A card id could not be resolved by the catalog."""

    def __init__(self, card_id: str, message: str | None = None) -> None:
        self.card_id = card_id
        super().__init__(message or f"Unknown card id: {card_id}")
