"""Belief state: what the agent currently knows about its match."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Iterable

from .cards import DECK, DECK_SIZE, NO_CARD, Card, Suit, card_index
from .errors import InvalidState


class CardKnowledge(IntEnum):
    """Per-card knowledge; values double as the prediction service encoding."""

    UNKNOWN = 0
    IN_OWN_HAND = 1
    RESOLVED = 2


class UnavailablePolicy(str, Enum):
    """What a "card unavailable" event does to the belief state."""

    IGNORE = "ignore"
    RESOLVE = "resolve"


def _unknown_cards() -> list[CardKnowledge]:
    return [CardKnowledge.UNKNOWN] * DECK_SIZE


@dataclass
class BeliefState:
    skill_level: int = 0
    knowledge: list[CardKnowledge] = field(default_factory=_unknown_cards)
    trump_suit: Suit | None = None
    last_opponent_card: Card | None = None
    follow_suit: bool = False
    own_points: int = 0
    opponent_points: int = 0

    def __post_init__(self) -> None:
        if len(self.knowledge) != DECK_SIZE:
            raise InvalidState(f"Belief state needs {DECK_SIZE} card entries")
        if self.own_points < 0 or self.opponent_points < 0:
            raise InvalidState("Points cannot be negative")

    def knowledge_of(self, card: Card) -> CardKnowledge:
        return self.knowledge[card_index(card)]

    def cards_in(self, knowledge: CardKnowledge) -> tuple[Card, ...]:
        return tuple(card for card, value in zip(DECK, self.knowledge) if value == knowledge)

    def mark_available(self, card: Card) -> bool:
        """Record that a card is now held by this agent."""
        return self._advance(card, CardKnowledge.IN_OWN_HAND)

    def mark_unavailable(self, card: Card, policy: UnavailablePolicy) -> bool:
        """Apply the configured policy for a card leaving the agent's options."""
        if policy == UnavailablePolicy.RESOLVE:
            return self._advance(card, CardKnowledge.RESOLVED)
        return False

    def resolve(self, cards: Iterable[Card]) -> int:
        """Mark cards as played or otherwise out of play; return how many changed."""
        return sum(1 for card in cards if self._advance(card, CardKnowledge.RESOLVED))

    def set_trump(self, suit: Suit | None) -> None:
        if suit is not None:
            self.trump_suit = suit

    def record_play(self, card: Card, by_opponent: bool) -> None:
        if by_opponent:
            self.last_opponent_card = card

    def clear_opponent_card(self) -> None:
        self.last_opponent_card = None

    def close_talon(self) -> None:
        self.follow_suit = True

    def update_points(self, points: int, is_self: bool) -> bool:
        """Update a running point total; totals never decrease within a round."""
        current = self.own_points if is_self else self.opponent_points
        if points < current:
            return False
        if is_self:
            self.own_points = points
        else:
            self.opponent_points = points
        return True

    def reset(self) -> None:
        """Reinitialize for a new round, keeping the session's skill level."""
        self.knowledge = _unknown_cards()
        self.trump_suit = None
        self.last_opponent_card = None
        self.follow_suit = False
        self.own_points = 0
        self.opponent_points = 0

    def to_payload(self) -> dict[str, object]:
        """Serialize into the prediction service request body."""
        payload: dict[str, object] = {
            card.key: int(value) for card, value in zip(DECK, self.knowledge)
        }
        payload["trump_suit"] = self.trump_suit.value if self.trump_suit else NO_CARD
        payload["played_card_by_opponent"] = (
            self.last_opponent_card.key if self.last_opponent_card else NO_CARD
        )
        payload["follow_suit"] = self.follow_suit
        payload["my_points"] = self.own_points
        payload["opponent_points"] = self.opponent_points
        payload["ki_level"] = self.skill_level
        return payload

    def _advance(self, card: Card, target: CardKnowledge) -> bool:
        index = card_index(card)
        # Knowledge only moves forward: unknown -> in own hand -> resolved.
        if self.knowledge[index] >= target:
            return False
        self.knowledge[index] = target
        return True
