"""Predictor protocol definitions for runtime use."""

from __future__ import annotations

from typing import Mapping, Protocol


class Predictor(Protocol):
    """Move predictor consulted by the decision engine."""

    name: str

    def predict(self, payload: Mapping[str, object]) -> str:
        """Return a card token (e.g. "Hearts_J") for a serialized belief state."""
