from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from .cards import Card, card_from_native
from .errors import InvalidCard


class AnnounceKind(str, Enum):
    TWENTY = "Twenty"
    FORTY = "Forty"

    @property
    def points(self) -> int:
        return 40 if self is AnnounceKind.FORTY else 20


@dataclass(frozen=True)
class Announcement:
    kind: AnnounceKind
    cards: tuple[Card, Card]

    def __post_init__(self) -> None:
        if len(self.cards) != 2:
            raise InvalidCard("Announcement requires exactly two cards")
        if self.cards[0].suit != self.cards[1].suit:
            raise InvalidCard("Announcement cards must share a suit")

    @property
    def first_card(self) -> Card:
        return self.cards[0]

    @staticmethod
    def from_native(payload: Mapping[str, Any]) -> "Announcement":
        if not isinstance(payload, Mapping):
            raise InvalidCard(f"Announcement payload must be a mapping, got {payload!r}")
        try:
            kind = AnnounceKind(payload.get("announce_type"))
        except ValueError as exc:
            raise InvalidCard(f"Unknown announce type: {payload.get('announce_type')!r}") from exc
        raw_cards = payload.get("cards")
        if not isinstance(raw_cards, (list, tuple)) or len(raw_cards) != 2:
            raise InvalidCard("Announcement requires exactly two cards")
        first, second = (card_from_native(item) for item in raw_cards)
        return Announcement(kind=kind, cards=(first, second))


class ActionKind(str, Enum):
    PLAY_CARD = "play_card"
    ANNOUNCE_20 = "announce_20"
    ANNOUNCE_40 = "announce_40"
    SWAP_TRUMP = "swap_trump"
    DRAW_CARD = "draw_card"


@dataclass(frozen=True)
class Action:
    kind: ActionKind
    card: Card | None = None
    cards: tuple[Card, ...] = ()

    def __post_init__(self) -> None:
        if self.kind in (ActionKind.PLAY_CARD, ActionKind.SWAP_TRUMP):
            if self.card is None or self.cards:
                raise ValueError(f"{self.kind.value} action requires a single card")
        elif self.kind == ActionKind.ANNOUNCE_20:
            if self.card is not None or len(self.cards) != 2:
                raise ValueError("announce_20 action requires two cards")
        elif self.kind in (ActionKind.ANNOUNCE_40, ActionKind.DRAW_CARD):
            if self.card is not None or self.cards:
                raise ValueError(f"{self.kind.value} action takes no cards")
        else:
            raise ValueError("Unknown action kind")

    @staticmethod
    def announce(announcement: Announcement) -> "Action":
        if announcement.kind == AnnounceKind.FORTY:
            return Action(ActionKind.ANNOUNCE_40)
        return Action(ActionKind.ANNOUNCE_20, cards=announcement.cards)
