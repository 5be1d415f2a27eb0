"""Shared interface definitions for the agent's external collaborators."""

from __future__ import annotations

from typing import Any, AsyncIterator, Callable, Mapping, Protocol

from schnapsenai.domain.task import MatchAddress
from schnapsenai.players.base import Predictor

NativeCard = Mapping[str, Any]
EventListener = Callable[[str, Any], None]


class MatchConnection(Protocol):
    """Live game-protocol session for one match.

    Cards and announcements are exposed in the protocol's native vocabulary;
    translation happens in the session. Legality is enforced server-side.
    """

    user_id: str | None
    cards_playable: list[NativeCard]
    announceable: list[Mapping[str, Any]]
    deck_card_count: int | None

    def add_listener(self, listener: EventListener) -> None:
        """Deliver every inbound event, in emission order, to the listener."""

    async def connect(self) -> None:
        """Open the connection."""

    async def close(self) -> None:
        """Release the connection."""

    async def play_card(self, card: NativeCard) -> None:
        """Play a card."""

    async def announce_20(self, cards: list[NativeCard]) -> None:
        """Declare a 20 announcement with the given pair."""

    async def announce_40(self) -> None:
        """Declare the 40 announcement."""

    async def swap_trump(self, card: NativeCard) -> None:
        """Swap the given card for the face-up trump card."""

    async def draw_card(self) -> None:
        """Draw from the talon."""


ConnectionFactory = Callable[[MatchAddress], MatchConnection]


class BrokerMessage(Protocol):
    """Single delivery from the task channel."""

    body: bytes

    async def ack(self) -> None:
        """Acknowledge the message so no other consumer receives it."""

    async def nack(self, requeue: bool = True) -> None:
        """Reject the message, optionally making it eligible for redelivery."""


class TaskSource(Protocol):
    """Stream of task channel deliveries."""

    def __aiter__(self) -> AsyncIterator[BrokerMessage]:
        """Iterate over deliveries until the source is closed."""


class RegistrationSink(Protocol):
    """Registration channel for publishing agent identities."""

    async def publish(self, payload: Mapping[str, object]) -> None:
        """Publish one registration message; no acknowledgement is expected."""


class TaskBroker(TaskSource, RegistrationSink, Protocol):
    """Message broker carrying both the task and the registration channel."""

    async def connect(self) -> None:
        """Open the broker connection."""

    async def close(self) -> None:
        """Release the broker connection."""


__all__ = [
    "BrokerMessage",
    "ConnectionFactory",
    "EventListener",
    "MatchConnection",
    "NativeCard",
    "Predictor",
    "RegistrationSink",
    "TaskBroker",
    "TaskSource",
]
