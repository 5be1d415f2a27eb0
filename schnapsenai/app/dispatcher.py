"""Task dispatcher: turn broker assignments into running match sessions."""

from __future__ import annotations

import asyncio
import json
import logging
from enum import Enum
from typing import Any, Callable, Mapping

from schnapsenai.app.decision import DecisionEngine
from schnapsenai.app.recovery import ErrorRecovery
from schnapsenai.app.scheduler import SleepFn
from schnapsenai.app.session import MatchSession
from schnapsenai.domain.errors import TaskMismatchError
from schnapsenai.domain.state import BeliefState
from schnapsenai.domain.task import Task
from schnapsenai.interfaces import BrokerMessage, ConnectionFactory, RegistrationSink, TaskSource
from schnapsenai.ops.spec import AgentSpec

logger = logging.getLogger(__name__)

EngineFactory = Callable[[Task], DecisionEngine]


class DispatchOutcome(str, Enum):
    ACCEPTED = "accepted"
    DUPLICATE = "duplicate"
    REJECTED = "rejected"
    MALFORMED = "malformed"
    FAILED = "failed"


def decode_task(body: bytes | str | Mapping[str, Any]) -> Task:
    """Decode a task channel message body into a Task."""
    if isinstance(body, Mapping):
        return Task.from_mapping(body)
    text = body.decode("utf-8") if isinstance(body, bytes) else body
    data = json.loads(text)
    if not isinstance(data, Mapping):
        raise ValueError("Task message must be a JSON object")
    return Task.from_mapping(data)


class TaskDispatcher:
    """Consume task messages and run one independent session per accepted task."""

    def __init__(
        self,
        spec: AgentSpec,
        connection_factory: ConnectionFactory,
        engine_factory: EngineFactory,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        """Initialize the dispatcher with its spec and collaborator factories."""
        self._spec = spec
        self._connection_factory = connection_factory
        self._engine_factory = engine_factory
        self._sleep = sleep
        self._sessions: dict[str, MatchSession] = {}
        self._runners: dict[str, asyncio.Task[None]] = {}

    @property
    def spec(self) -> AgentSpec:
        return self._spec

    def sessions(self) -> list[MatchSession]:
        """Return the currently running sessions."""
        return list(self._sessions.values())

    def get_session(self, match_id: str) -> MatchSession:
        if match_id not in self._sessions:
            raise KeyError(f"Unknown match id: {match_id}")
        return self._sessions[match_id]

    async def consume(self, message: BrokerMessage) -> DispatchOutcome:
        """Accept or reject one task message.

        Rejection happens before any side effect, so a redelivered duplicate
        can be rejected again safely.
        """
        try:
            task = decode_task(message.body)
        except ValueError as exc:
            logger.warning("Dropping malformed task message: %s", exc)
            await message.nack(requeue=False)
            return DispatchOutcome.MALFORMED
        try:
            self._check_supported(task)
        except TaskMismatchError as exc:
            logger.debug("Rejecting task for %s: %s", task.read, exc)
            await message.nack(requeue=True)
            return DispatchOutcome.REJECTED
        await message.ack()
        if task.read in self._sessions:
            logger.info("Task for match %s already running; ignoring redelivery", task.read)
            return DispatchOutcome.DUPLICATE
        try:
            session = self._create_session(task)
        except Exception:  # noqa: BLE001
            logger.exception("Could not start session for match %s", task.read)
            return DispatchOutcome.FAILED
        self._start(session)
        logger.info(
            "Accepted task: %s plays %s/%s in match %s",
            task.ai_id,
            task.game,
            task.mode,
            task.read,
        )
        return DispatchOutcome.ACCEPTED

    async def run(self, source: TaskSource) -> None:
        """Consume the task source until it is exhausted."""
        async for message in source:
            try:
                await self.consume(message)
            except Exception:  # noqa: BLE001
                logger.exception("Unexpected failure while consuming a task message")

    async def publish_registrations(self, sink: RegistrationSink) -> int:
        """Publish one registration message per identity and mode."""
        count = 0
        for profile in self._spec.profiles():
            await sink.publish(profile.to_message())
            count += 1
        logger.info("Published %s agent registrations", count)
        return count

    async def join(self) -> None:
        """Wait until every running session has finished."""
        while self._runners:
            await asyncio.gather(*list(self._runners.values()), return_exceptions=True)

    async def shutdown(self) -> None:
        """Close all sessions and wait for them to finish."""
        for session in list(self._sessions.values()):
            await session.close()
        await self.join()

    def skill_level_for(self, task: Task) -> int:
        """Map the task's identity to a skill level."""
        skill = self._spec.skill_for(task.ai_id)
        if skill is not None:
            return skill
        if task.ai_level is not None:
            return task.ai_level
        return self._spec.default_skill_level

    def _check_supported(self, task: Task) -> None:
        if not self._spec.supports(task.game, task.mode, task.ai_id):
            raise TaskMismatchError(
                f"{task.game}/{task.mode} is not served by {task.ai_id or 'this agent'}"
            )

    def _create_session(self, task: Task) -> MatchSession:
        belief = BeliefState(skill_level=self.skill_level_for(task))
        connection = self._connection_factory(task.match_address())
        return MatchSession(
            task=task,
            connection=connection,
            engine=self._engine_factory(task),
            belief=belief,
            policy=self._spec.policy_for(task.mode),
            timings=self._spec.timings,
            recovery=ErrorRecovery(replay_cap=self._spec.replay_cap),
            sleep=self._sleep,
        )

    def _start(self, session: MatchSession) -> None:
        match_id = session.match_id
        self._sessions[match_id] = session
        runner = asyncio.get_running_loop().create_task(self._run_session(session))
        self._runners[match_id] = runner

    async def _run_session(self, session: MatchSession) -> None:
        try:
            await session.run()
        except Exception:  # noqa: BLE001
            logger.exception("Session for match %s crashed", session.match_id)
        finally:
            self._sessions.pop(session.match_id, None)
            self._runners.pop(session.match_id, None)
