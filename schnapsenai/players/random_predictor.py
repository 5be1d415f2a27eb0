"""Offline predictor that picks a random card from the believed hand."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Mapping

from schnapsenai.domain.cards import DECK, FAILURE_TOKEN
from schnapsenai.domain.state import CardKnowledge


@dataclass
class RandomPredictor:
    """Predictor that answers uniformly from cards believed to be in hand.

    It does not know the legal move set, so its answer may still be rejected
    and replaced by the decision engine's fallback.
    """

    name: str = "random"
    seed: int | None = None
    kind: str = "random"
    _rng: random.Random = field(init=False)

    def __post_init__(self) -> None:
        """Initialize the RNG."""
        self._rng = random.Random(self.seed)

    def predict(self, payload: Mapping[str, object]) -> str:
        """Return a random in-hand card key, or the failure token if none is known."""
        in_hand = [
            card.key for card in DECK if payload.get(card.key) == int(CardKnowledge.IN_OWN_HAND)
        ]
        if not in_hand:
            return FAILURE_TOKEN
        return self._rng.choice(in_hand)
