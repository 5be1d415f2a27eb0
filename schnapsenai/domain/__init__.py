from .actions import Action, ActionKind, AnnounceKind, Announcement
from .cards import (
    DECK,
    DECK_SIZE,
    FAILURE_TOKEN,
    NO_CARD,
    Card,
    Rank,
    Suit,
    card_from_native,
    card_index,
    card_to_native,
    parse_card_token,
)
from .errors import (
    ConnectionLostError,
    IllegalMoveError,
    InvalidCard,
    InvalidState,
    PredictionServiceError,
    SchnapsenAIError,
    TaskMismatchError,
)
from .modes import DEFAULT_MODE_POLICIES, ModePolicy
from .state import BeliefState, CardKnowledge, UnavailablePolicy
from .task import AgentProfile, MatchAddress, Task

__all__ = [
    "Action",
    "ActionKind",
    "AnnounceKind",
    "Announcement",
    "Card",
    "Rank",
    "Suit",
    "DECK",
    "DECK_SIZE",
    "FAILURE_TOKEN",
    "NO_CARD",
    "card_from_native",
    "card_index",
    "card_to_native",
    "parse_card_token",
    "BeliefState",
    "CardKnowledge",
    "UnavailablePolicy",
    "ModePolicy",
    "DEFAULT_MODE_POLICIES",
    "AgentProfile",
    "MatchAddress",
    "Task",
    "SchnapsenAIError",
    "TaskMismatchError",
    "PredictionServiceError",
    "IllegalMoveError",
    "ConnectionLostError",
    "InvalidState",
    "InvalidCard",
]
