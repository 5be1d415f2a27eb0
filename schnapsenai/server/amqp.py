"""AMQP transport for task assignments and identity registrations."""

from __future__ import annotations

import json
import logging
from typing import AsyncIterator, Mapping

import aio_pika
from aio_pika.abc import AbstractChannel, AbstractIncomingMessage, AbstractRobustConnection

from schnapsenai.domain.errors import ConnectionLostError

logger = logging.getLogger(__name__)

TASK_QUEUE = "ai-task-generate-request"


class AmqpDelivery:
    """Task channel delivery backed by an incoming AMQP message."""

    def __init__(self, message: AbstractIncomingMessage) -> None:
        self._message = message
        self.body = message.body

    @property
    def redelivered(self) -> bool:
        return bool(self._message.redelivered)

    async def ack(self) -> None:
        await self._message.ack()

    async def nack(self, requeue: bool = True) -> None:
        await self._message.nack(requeue=requeue)


class AmqpBroker:
    """Consume the task queue and publish registrations over one connection.

    Both queues are declared non-durable. Registrations are only published
    when a registration queue name is configured.
    """

    def __init__(
        self,
        url: str,
        task_queue: str = TASK_QUEUE,
        registration_queue: str = "",
        prefetch_count: int = 10,
    ) -> None:
        if not url:
            raise ValueError("AMQP URL is required")
        if not task_queue:
            raise ValueError("Task queue name is required")
        self.url = url
        self.task_queue = task_queue
        self.registration_queue = registration_queue
        self.prefetch_count = prefetch_count
        self._connection: AbstractRobustConnection | None = None
        self._channel: AbstractChannel | None = None

    @property
    def connected(self) -> bool:
        return self._channel is not None

    async def connect(self) -> None:
        if self._connection is not None:
            return
        self._connection = await aio_pika.connect_robust(self.url)
        self._channel = await self._connection.channel()
        await self._channel.set_qos(prefetch_count=self.prefetch_count)
        logger.info("Connected to task broker; consuming %s", self.task_queue)

    async def close(self) -> None:
        connection = self._connection
        self._connection = None
        self._channel = None
        if connection is not None:
            await connection.close()
            logger.info("Task broker connection closed")

    async def publish(self, payload: Mapping[str, object]) -> None:
        """Publish one registration message to the registration queue."""
        if not self.registration_queue:
            logger.debug("No registration queue configured; skipping %s", payload)
            return
        channel = self._require_channel()
        await channel.declare_queue(self.registration_queue, durable=False)
        message = aio_pika.Message(
            body=json.dumps(dict(payload)).encode("utf-8"),
            content_type="application/json",
        )
        await channel.default_exchange.publish(message, routing_key=self.registration_queue)

    async def __aiter__(self) -> AsyncIterator[AmqpDelivery]:
        channel = self._require_channel()
        queue = await channel.declare_queue(self.task_queue, durable=False)
        async with queue.iterator() as messages:
            async for message in messages:
                yield AmqpDelivery(message)

    def _require_channel(self) -> AbstractChannel:
        if self._channel is None:
            raise ConnectionLostError("Task broker is not connected")
        return self._channel
