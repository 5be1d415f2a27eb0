"""Card definitions and vocabulary translation for Schnapsen."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from .errors import InvalidCard

NO_CARD = "No_Card"
FAILURE_TOKEN = "[ilegal values]"


class Suit(str, Enum):
    HEARTS = "Hearts"
    ACORNS = "Acorns"
    LEAVES = "Leaves"
    BELLS = "Bells"


class Rank(str, Enum):
    JACK = "Jack"
    QUEEN = "Queen"
    KING = "King"
    TEN = "Ten"
    ACE = "Ace"

    @property
    def letter(self) -> str:
        return self.value[0]

    @property
    def points(self) -> int:
        return _RANK_POINTS[self]


_RANK_POINTS = {
    Rank.JACK: 2,
    Rank.QUEEN: 3,
    Rank.KING: 4,
    Rank.TEN: 10,
    Rank.ACE: 11,
}

SUIT_ORDER = (Suit.HEARTS, Suit.ACORNS, Suit.LEAVES, Suit.BELLS)
RANK_ORDER = (Rank.JACK, Rank.QUEEN, Rank.KING, Rank.TEN, Rank.ACE)

# Protocol (French-suited) names on the left, canonical names on the right.
_NATIVE_TO_SUIT = {
    "Hearts": Suit.HEARTS,
    "Diamonds": Suit.BELLS,
    "Spades": Suit.LEAVES,
    "Clubs": Suit.ACORNS,
}
_SUIT_TO_NATIVE = {suit: native for native, suit in _NATIVE_TO_SUIT.items()}
_LETTER_TO_RANK = {rank.letter: rank for rank in RANK_ORDER}


@dataclass(frozen=True)
class Card:
    suit: Suit
    rank: Rank

    def __post_init__(self) -> None:
        if not isinstance(self.suit, Suit):
            raise InvalidCard(f"Invalid suit: {self.suit!r}")
        if not isinstance(self.rank, Rank):
            raise InvalidCard(f"Invalid rank: {self.rank!r}")

    @property
    def key(self) -> str:
        """Return the canonical key used by the prediction service."""
        return f"{self.suit.value}_{self.rank.letter}"

    @property
    def index(self) -> int:
        return card_index(self)

    def __str__(self) -> str:
        return self.key


DECK: tuple[Card, ...] = tuple(Card(suit, rank) for suit in SUIT_ORDER for rank in RANK_ORDER)
DECK_SIZE = len(DECK)


def card_index(card: Card) -> int:
    """Return the fixed deck position of a card (0-19)."""
    return SUIT_ORDER.index(card.suit) * len(RANK_ORDER) + RANK_ORDER.index(card.rank)


def card_at(index: int) -> Card:
    """Return the card stored at a deck position."""
    if not 0 <= index < DECK_SIZE:
        raise IndexError(f"Card index out of range: {index}")
    return DECK[index]


def suit_from_native(name: object) -> Suit:
    """Translate a protocol suit name into a canonical suit."""
    if isinstance(name, str):
        if name in _NATIVE_TO_SUIT:
            return _NATIVE_TO_SUIT[name]
        try:
            return Suit(name)
        except ValueError:
            pass
    raise InvalidCard(f"Unknown suit: {name!r}")


def suit_to_native(suit: Suit) -> str:
    return _SUIT_TO_NATIVE[suit]


def rank_from_native(name: object) -> Rank:
    if isinstance(name, str):
        try:
            return Rank(name)
        except ValueError:
            pass
        if name in _LETTER_TO_RANK:
            return _LETTER_TO_RANK[name]
    raise InvalidCard(f"Unknown rank: {name!r}")


def card_from_native(payload: Mapping[str, Any]) -> Card:
    """Build a card from a protocol payload like {"suit": "Spades", "value": "Ace"}."""
    if not isinstance(payload, Mapping):
        raise InvalidCard(f"Card payload must be a mapping, got {payload!r}")
    return Card(suit_from_native(payload.get("suit")), rank_from_native(payload.get("value")))


def card_to_native(card: Card) -> dict[str, str]:
    """Serialize a card for protocol commands."""
    return {"suit": suit_to_native(card.suit), "value": card.rank.value}


def parse_card_token(token: object) -> Card:
    """Parse a predictor token such as "Hearts_J" (quotes allowed)."""
    if not isinstance(token, str):
        raise InvalidCard(f"Card token must be a string, got {token!r}")
    cleaned = token.strip().replace('"', "")
    suit_name, sep, letter = cleaned.partition("_")
    if not sep or letter not in _LETTER_TO_RANK:
        raise InvalidCard(f"Unparseable card token: {token!r}")
    try:
        suit = Suit(suit_name)
    except ValueError as exc:
        raise InvalidCard(f"Unparseable card token: {token!r}") from exc
    return Card(suit, _LETTER_TO_RANK[letter])
