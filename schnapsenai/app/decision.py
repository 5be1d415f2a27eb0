"""Decision engine: predictor answer, legality check, random fallback."""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass

from schnapsenai.app.legal_actions import ensure_legal
from schnapsenai.domain.cards import Card, parse_card_token
from schnapsenai.domain.errors import (
    IllegalMoveError,
    InvalidCard,
    InvalidState,
    PredictionServiceError,
)
from schnapsenai.domain.state import BeliefState
from schnapsenai.interfaces import Predictor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Decision:
    """Outcome of one decision: the card and whether the fallback chose it."""

    card: Card
    fallback: bool
    reason: str | None = None


class DecisionEngine:
    """Turn a belief state into a card that is guaranteed to be legal.

    The predictor is called exactly once per decision. Any failure (transport
    error, timeout, unparseable answer, or a card outside the legal set) is
    answered with a uniformly random legal card.
    """

    def __init__(
        self,
        predictor: Predictor,
        seed: int | None = None,
        timeout: float | None = None,
    ) -> None:
        """Initialize the engine with a predictor, an optional RNG seed and call budget."""
        self._predictor = predictor
        self._timeout = timeout
        self._rng = random.Random(seed)
        self.fallback_count = 0

    async def decide(self, state: BeliefState, legal: list[Card]) -> Card:
        """Return a legal card for the current belief state."""
        decision = await self.decide_with_reason(state, legal)
        return decision.card

    async def decide_with_reason(self, state: BeliefState, legal: list[Card]) -> Decision:
        """Return the chosen card along with how it was chosen."""
        if not legal:
            raise InvalidState("Decision requested with an empty legal move set")
        payload = state.to_payload()
        try:
            token = await self._call_predictor(payload)
            card = ensure_legal(parse_card_token(token), legal)
        except (PredictionServiceError, InvalidCard, IllegalMoveError) as exc:
            return self._fallback(legal, reason=f"{type(exc).__name__}: {exc}")
        return Decision(card=card, fallback=False)

    async def _call_predictor(self, payload: dict[str, object]) -> str:
        # The predictor is synchronous; keep it off the event loop.
        call = asyncio.to_thread(self._predictor.predict, payload)
        try:
            return await asyncio.wait_for(call, timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            raise PredictionServiceError(
                f"Predictor did not answer within {self._timeout}s"
            ) from exc
        except PredictionServiceError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise PredictionServiceError(f"Predictor failed: {type(exc).__name__}: {exc}") from exc

    def random_legal(self, legal: list[Card]) -> Card:
        """Return a uniformly random member of the legal set."""
        if not legal:
            raise InvalidState("No legal cards available")
        return self._rng.choice(legal)

    def _fallback(self, legal: list[Card], reason: str) -> Decision:
        card = self.random_legal(legal)
        self.fallback_count += 1
        logger.warning(
            "Predictor %s unusable (%s); falling back to random legal card %s",
            self._predictor.name,
            reason,
            card.key,
        )
        return Decision(card=card, fallback=True, reason=reason)
