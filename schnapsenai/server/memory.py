from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Mapping

from schnapsenai.domain.errors import ConnectionLostError
from schnapsenai.domain.task import MatchAddress
from schnapsenai.interfaces import EventListener, NativeCard


@dataclass(frozen=True)
class SentCommand:
    name: str
    payload: Any = None


class InMemoryMatchConnection:
    """Match connection that records commands and lets callers emit events.

    Used for local simulations and tests; a deployment plugs in the real
    protocol client through a connection factory.
    """

    def __init__(self, address: MatchAddress, user_id: str | None = "agent") -> None:
        self.address = address
        self.user_id = user_id
        self.cards_playable: list[NativeCard] = []
        self.announceable: list[Mapping[str, Any]] = []
        self.deck_card_count: int | None = None
        self.commands: list[SentCommand] = []
        self.connected = False
        self.closed = False
        self.fail_commands = False
        self._listeners: list[EventListener] = []

    def add_listener(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    def emit(self, name: str, payload: Any = None) -> None:
        """Deliver an event to every listener, in registration order."""
        for listener in list(self._listeners):
            listener(name, payload)

    async def connect(self) -> None:
        if self.closed:
            raise ConnectionLostError("Connection already closed")
        self.connected = True

    async def close(self) -> None:
        self.connected = False
        self.closed = True

    async def play_card(self, card: NativeCard) -> None:
        self._record("playCard", dict(card))

    async def announce_20(self, cards: list[NativeCard]) -> None:
        self._record("announce20", [dict(card) for card in cards])

    async def announce_40(self) -> None:
        self._record("announce40")

    async def swap_trump(self, card: NativeCard) -> None:
        self._record("swapTrump", dict(card))

    async def draw_card(self) -> None:
        self._record("drawCard")

    def commands_named(self, name: str) -> list[SentCommand]:
        return [command for command in self.commands if command.name == name]

    def _record(self, name: str, payload: Any = None) -> None:
        if self.fail_commands or self.closed:
            raise ConnectionLostError(f"Cannot send {name}: connection lost")
        self.commands.append(SentCommand(name=name, payload=payload))


@dataclass
class QueuedMessage:
    """Task channel delivery with ack/nack bookkeeping."""

    body: bytes
    redelivered: bool = False
    acked: bool = False
    rejected: bool = False
    requeued: bool = False

    @staticmethod
    def from_payload(payload: Mapping[str, Any]) -> "QueuedMessage":
        return QueuedMessage(body=json.dumps(dict(payload)).encode("utf-8"))

    @property
    def settled(self) -> bool:
        return self.acked or self.rejected

    async def ack(self) -> None:
        if self.settled:
            raise RuntimeError("Message already settled")
        self.acked = True

    async def nack(self, requeue: bool = True) -> None:
        if self.settled:
            raise RuntimeError("Message already settled")
        self.rejected = True
        self.requeued = requeue


class _QueueDelivery(QueuedMessage):
    queue: "InMemoryTaskQueue"

    async def nack(self, requeue: bool = True) -> None:
        await super().nack(requeue)
        if requeue:
            self.queue.put_back(self.body)


class InMemoryTaskQueue:
    """Non-durable task channel with at-least-once redelivery on nack."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[tuple[bytes, bool] | None] = asyncio.Queue()
        self.delivered = 0

    def publish(self, payload: Mapping[str, Any] | bytes) -> None:
        body = payload if isinstance(payload, bytes) else json.dumps(dict(payload)).encode("utf-8")
        self._queue.put_nowait((body, False))

    def put_back(self, body: bytes) -> None:
        self._queue.put_nowait((body, True))

    def close(self) -> None:
        """Stop iteration once the messages published so far are consumed."""
        self._queue.put_nowait(None)

    async def __aiter__(self) -> AsyncIterator[QueuedMessage]:
        while True:
            item = await self._queue.get()
            if item is None:
                return
            body, redelivered = item
            delivery = _QueueDelivery(body=body, redelivered=redelivered)
            delivery.queue = self
            self.delivered += 1
            yield delivery


@dataclass
class InMemoryRegistrationChannel:
    """Registration channel that keeps every published message."""

    messages: list[dict[str, object]] = field(default_factory=list)

    async def publish(self, payload: Mapping[str, object]) -> None:
        self.messages.append(dict(payload))


class InMemoryBroker:
    """Task queue and registration channel behind one broker connection."""

    def __init__(self) -> None:
        self.tasks = InMemoryTaskQueue()
        self.registrations = InMemoryRegistrationChannel()
        self.connected = False

    async def connect(self) -> None:
        self.connected = True

    async def close(self) -> None:
        self.connected = False

    async def publish(self, payload: Mapping[str, object]) -> None:
        if not self.connected:
            raise ConnectionLostError("Broker is not connected")
        await self.registrations.publish(payload)

    def __aiter__(self) -> AsyncIterator[QueuedMessage]:
        return self.tasks.__aiter__()
