"""Legal move helpers for the application layer."""

from __future__ import annotations

import logging
from typing import Iterable

from schnapsenai.domain.actions import Announcement
from schnapsenai.domain.cards import Card, card_from_native
from schnapsenai.domain.errors import IllegalMoveError, InvalidCard
from schnapsenai.interfaces import MatchConnection
from schnapsenai.protocol.events import native_announcements

logger = logging.getLogger(__name__)


def legal_cards(connection: MatchConnection) -> list[Card]:
    """Return the cards the server currently allows this agent to play."""
    cards: list[Card] = []
    for item in connection.cards_playable or []:
        try:
            card = card_from_native(item)
        except InvalidCard:
            logger.warning("Skipping unparseable playable card: %r", item)
            continue
        if card not in cards:
            cards.append(card)
    return cards


def announceable(connection: MatchConnection) -> list[Announcement]:
    """Return the announcements the server currently allows."""
    return native_announcements(connection.announceable)


def ensure_legal(card: Card, legal: Iterable[Card]) -> Card:
    """Return the card if it is an exact suit-and-rank member of the legal set."""
    if card not in set(legal):
        raise IllegalMoveError(f"{card.key} is not currently playable")
    return card


def stock_exhausted(connection: MatchConnection) -> bool:
    """Return True when no undealt cards remain in the talon."""
    return connection.deck_card_count == 0
