"""FastAPI endpoints for the agent service."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from typing import AsyncIterator

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from schnapsenai import __version__
from schnapsenai.app.dispatcher import DispatchOutcome, TaskDispatcher, decode_task
from schnapsenai.interfaces import TaskBroker
from schnapsenai.server.memory import QueuedMessage

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Pydantic response models
# ---------------------------------------------------------------------------


class ProfileView(BaseModel):
    game: str
    mode: str
    elo: int
    display_name: str


class SessionView(BaseModel):
    match_id: str
    ai_id: str
    mode: str
    phase: str
    skill_level: int
    own_points: int
    opponent_points: int
    actions_sent: int
    fallbacks: int


class TaskResponse(BaseModel):
    outcome: str
    match_id: str | None = None


_STATUS_BY_OUTCOME = {
    DispatchOutcome.ACCEPTED: 202,
    DispatchOutcome.DUPLICATE: 202,
    DispatchOutcome.REJECTED: 409,
    DispatchOutcome.MALFORMED: 400,
    DispatchOutcome.FAILED: 400,
}

# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app(dispatcher: TaskDispatcher, broker: TaskBroker | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    With a broker, startup connects it, publishes the agent registrations and
    consumes the task queue in the background until shutdown. Without one,
    tasks arrive only through ``POST /api/tasks``.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        consumer: asyncio.Task[None] | None = None
        if broker is not None:
            await broker.connect()
            await dispatcher.publish_registrations(broker)
            consumer = asyncio.create_task(dispatcher.run(broker))
            consumer.add_done_callback(_report_consumer_exit)
        try:
            yield
        finally:
            if consumer is not None and not consumer.done():
                consumer.cancel()
                with suppress(asyncio.CancelledError):
                    await consumer
            await dispatcher.shutdown()
            if broker is not None:
                await broker.close()

    app = FastAPI(title="Schnapsen AI Agent", version=__version__, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.dispatcher = dispatcher

    @app.get("/api/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/api/profiles", response_model=list[ProfileView])
    def list_profiles() -> list[ProfileView]:
        return [ProfileView(**profile.to_message()) for profile in dispatcher.spec.profiles()]

    @app.get("/api/sessions", response_model=list[SessionView])
    def list_sessions() -> list[SessionView]:
        return [SessionView(**session.summary()) for session in dispatcher.sessions()]

    @app.get("/api/sessions/{match_id}", response_model=SessionView)
    def get_session(match_id: str) -> SessionView:
        try:
            session = dispatcher.get_session(match_id)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return SessionView(**session.summary())

    @app.post("/api/tasks", response_model=TaskResponse, status_code=202)
    async def submit_task(request: Request) -> TaskResponse:
        message = QueuedMessage(body=await request.body())
        outcome = await dispatcher.consume(message)
        status = _STATUS_BY_OUTCOME[outcome]
        if status != 202:
            raise HTTPException(status_code=status, detail=outcome.value)
        return TaskResponse(outcome=outcome.value, match_id=_read_id(message.body))

    return app


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _report_consumer_exit(task: asyncio.Task[None]) -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.error("Task queue consumer stopped: %s", error, exc_info=error)
    else:
        logger.warning("Task queue consumer finished; no further broker tasks will arrive")


def _read_id(body: bytes) -> str | None:
    """Return the match read id of an accepted task body."""
    try:
        return decode_task(body).read
    except ValueError:
        return None
