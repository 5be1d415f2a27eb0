"""Protocol event names and payload extraction.

Payload shapes belong to the protocol library; this module only pulls out
what the session needs (card identity, acting participant, point totals,
card lists) and translates cards into the canonical vocabulary.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping

from schnapsenai.domain.actions import Announcement
from schnapsenai.domain.cards import Card, Suit, card_from_native, suit_from_native
from schnapsenai.domain.errors import InvalidCard


class EventName(str, Enum):
    ALLOW_ANNOUNCE = "self:allow_announce"
    ALLOW_PLAY_CARD = "self:allow_play_card"
    ALLOW_DRAW_CARD = "self:allow_draw_card"
    TRUMP_CHANGE_POSSIBLE = "self:trump_change_possible"
    TRUMP_CHANGE_IMPOSSIBLE = "self:trump_change_impossible"
    ALLOW_SWAP_TRUMP = "self:allow_swap_trump"
    CARD_AVAILABLE = "self:card_available"
    CARD_UNAVAILABLE = "self:card_unavailable"
    TRUMP_CHANGE = "trump_change"
    PLAY_CARD = "play_card"
    TRICK = "trick"
    SCORE = "score"
    CLOSE_TALON = "close_talon"
    DECK_CARD_COUNT = "deck_card_count"
    FINISHED_DISTRIBUTION = "finished_distribution"
    ROUND_RESULT = "round_result"
    FINAL_RESULT = "final_result"
    RESET = "reset"
    TIMEOUT = "timeout"
    ERROR = "error"
    DISCONNECT = "disconnect"


def _unwrap(payload: Any) -> Any:
    # Some protocol versions wrap event bodies as {"data": ...}.
    if isinstance(payload, Mapping) and "data" in payload and len(payload) <= 2:
        return payload["data"]
    return payload


def event_card(payload: Any) -> Card:
    """Return the card carried by an event (bare card or {"card": ...})."""
    body = _unwrap(payload)
    if isinstance(body, Mapping) and "card" in body:
        body = body["card"]
    return card_from_native(body)


def event_cards(payload: Any) -> list[Card]:
    """Return the card list of a trick or announcement payload."""
    body = _unwrap(payload)
    if isinstance(body, Mapping):
        body = body.get("cards", [])
    if not isinstance(body, (list, tuple)):
        raise InvalidCard(f"Expected a card list, got {body!r}")
    return [card_from_native(item) for item in body]


def event_user_id(payload: Any) -> str | None:
    body = _unwrap(payload)
    if isinstance(body, Mapping):
        user_id = body.get("user_id")
        if user_id is not None:
            return str(user_id)
    return None


def event_points(payload: Any) -> int:
    body = _unwrap(payload)
    points = body.get("points") if isinstance(body, Mapping) else None
    if isinstance(points, bool) or not isinstance(points, int):
        raise ValueError(f"Score payload has no integer points: {payload!r}")
    return points


def event_trump_suit(payload: Any) -> Suit | None:
    """Return the new trump suit, or None when the event carries none."""
    body = _unwrap(payload)
    if body is None:
        return None
    if isinstance(body, str):
        return suit_from_native(body)
    if isinstance(body, Mapping):
        if "suit" in body and "value" not in body:
            suit = body["suit"]
            return None if suit is None else suit_from_native(suit)
        for key in ("trump", "card"):
            if key in body:
                return event_trump_suit(body[key])
        if "suit" in body:
            return card_from_native(body).suit
    raise InvalidCard(f"Unrecognized trump payload: {payload!r}")


def event_deck_count(payload: Any) -> int:
    body = _unwrap(payload)
    count = body.get("count") if isinstance(body, Mapping) else body
    if isinstance(count, bool) or not isinstance(count, int) or count < 0:
        raise ValueError(f"Invalid deck card count: {payload!r}")
    return count


def native_announcements(items: Any) -> list[Announcement]:
    """Translate the connection's announceable list, skipping malformed entries."""
    announcements: list[Announcement] = []
    for item in items or []:
        try:
            announcements.append(Announcement.from_native(item))
        except InvalidCard:
            continue
    return announcements
