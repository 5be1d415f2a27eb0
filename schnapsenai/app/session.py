"""Match session: reacts to protocol events for one match.

Belief updates are applied synchronously, in event order, as events arrive.
Anything that talks back to the server goes through the session's
``ActionScheduler`` after a fixed delay, so the server has finished its own
state transition before the agent acts. Delayed actions can interleave with
newly delivered events; ``suspend_play`` and ``card_committed`` keep the
announce-then-play and play-once-per-turn guarantees across those
interleavings.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Callable, Mapping

from schnapsenai.app.decision import DecisionEngine
from schnapsenai.app.legal_actions import announceable, legal_cards, stock_exhausted
from schnapsenai.app.recovery import ErrorRecovery
from schnapsenai.app.scheduler import ActionScheduler, SleepFn
from schnapsenai.domain.actions import Action, ActionKind
from schnapsenai.domain.cards import Card, card_to_native
from schnapsenai.domain.errors import ConnectionLostError
from schnapsenai.domain.modes import ModePolicy
from schnapsenai.domain.state import BeliefState
from schnapsenai.domain.task import Task
from schnapsenai.interfaces import MatchConnection
from schnapsenai.protocol.events import (
    EventName,
    event_card,
    event_cards,
    event_deck_count,
    event_points,
    event_trump_suit,
    event_user_id,
)

logger = logging.getLogger(__name__)


class SessionPhase(str, Enum):
    IDLE = "idle"
    AWAITING_ANNOUNCE_DECISION = "awaiting_announce_decision"
    AWAITING_TRUMP_SWAP_DECISION = "awaiting_trump_swap_decision"
    AWAITING_PLAY_DECISION = "awaiting_play_decision"
    ERROR = "error"
    TERMINAL = "terminal"


class SwapPhase(str, Enum):
    IDLE = "idle"
    ELIGIBLE = "eligible"
    AUTHORIZED = "authorized"


class SwapSignal(str, Enum):
    POSSIBLE = "possible"
    IMPOSSIBLE = "impossible"
    AUTHORIZED = "authorized"
    COMPLETED = "completed"


@dataclass
class TrumpSwap:
    """Eligibility/authorization handshake for swapping the trump card."""

    phase: SwapPhase = SwapPhase.IDLE
    card: Card | None = None

    def transition(self, signal: SwapSignal, card: Card | None = None) -> Card | None:
        """Apply a signal; return the card to swap once authorization lands."""
        if signal == SwapSignal.POSSIBLE:
            self.phase = SwapPhase.ELIGIBLE
            self.card = card
            return None
        if signal == SwapSignal.AUTHORIZED:
            if self.phase != SwapPhase.ELIGIBLE or self.card is None:
                return None
            self.phase = SwapPhase.AUTHORIZED
            return self.card
        # Withdrawn eligibility and a completed swap both end the handshake.
        self.phase = SwapPhase.IDLE
        self.card = None
        return None


@dataclass(frozen=True)
class SessionTimings:
    """Delays (seconds) inserted before actions to avoid racing the server."""

    announce_delay: float = 0.5
    announce_play_delay: float = 1.0
    swap_delay: float = 0.5
    play_delay: float = 0.75
    draw_delay: float = 0.5
    recovery_delay: float = 0.3

    def __post_init__(self) -> None:
        for item in fields(self):
            if getattr(self, item.name) < 0:
                raise ValueError(f"SessionTimings.{item.name} cannot be negative")

    @staticmethod
    def immediate() -> "SessionTimings":
        """Return timings without any delay."""
        return SessionTimings(0.0, 0.0, 0.0, 0.0, 0.0, 0.0)

    @staticmethod
    def from_mapping(data: Mapping[str, Any]) -> "SessionTimings":
        known = {item.name for item in fields(SessionTimings)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown timing keys: {sorted(unknown)}")
        return SessionTimings(**{key: float(value) for key, value in data.items()})


class MatchSession:
    """Drive one match: track beliefs, decide, validate, and recover."""

    def __init__(
        self,
        task: Task,
        connection: MatchConnection,
        engine: DecisionEngine,
        belief: BeliefState,
        policy: ModePolicy,
        timings: SessionTimings | None = None,
        recovery: ErrorRecovery | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.task = task
        self.match_id = task.read
        self.connection = connection
        self.engine = engine
        self.belief = belief
        self.policy = policy
        self.timings = timings or SessionTimings()
        self.recovery = recovery or ErrorRecovery()
        self.scheduler = ActionScheduler(label=self.match_id, sleep=sleep)
        self.swap = TrumpSwap()
        self.phase = SessionPhase.IDLE
        self.suspend_play = False
        self.card_committed = False
        self.sent: list[Action] = []
        self._sleep = sleep
        self._closed = asyncio.Event()
        self._handlers: dict[str, Callable[[Any], None]] = {
            EventName.ALLOW_ANNOUNCE.value: self._on_allow_announce,
            EventName.ALLOW_PLAY_CARD.value: self._on_allow_play_card,
            EventName.ALLOW_DRAW_CARD.value: self._on_allow_draw_card,
            EventName.TRUMP_CHANGE_POSSIBLE.value: self._on_trump_change_possible,
            EventName.TRUMP_CHANGE_IMPOSSIBLE.value: self._on_trump_change_impossible,
            EventName.ALLOW_SWAP_TRUMP.value: self._on_allow_swap_trump,
            EventName.CARD_AVAILABLE.value: self._on_card_available,
            EventName.CARD_UNAVAILABLE.value: self._on_card_unavailable,
            EventName.TRUMP_CHANGE.value: self._on_trump_change,
            EventName.PLAY_CARD.value: self._on_play_card,
            EventName.TRICK.value: self._on_trick,
            EventName.SCORE.value: self._on_score,
            EventName.CLOSE_TALON.value: self._on_close_talon,
            EventName.DECK_CARD_COUNT.value: self._on_deck_card_count,
            EventName.FINISHED_DISTRIBUTION.value: self._on_finished_distribution,
            EventName.ROUND_RESULT.value: self._on_round_result,
            EventName.FINAL_RESULT.value: self._on_final_result,
            EventName.RESET.value: self._on_reset,
            EventName.TIMEOUT.value: self._on_timeout,
            EventName.ERROR.value: self._on_error,
            EventName.DISCONNECT.value: self._on_disconnect,
        }

    # -- lifecycle -------------------------------------------------------------

    @property
    def finished(self) -> bool:
        return self.phase in (SessionPhase.TERMINAL, SessionPhase.ERROR)

    async def run(self) -> SessionPhase:
        """Connect, process events until the match ends, and release the connection."""
        self.connection.add_listener(self.handle_event)
        try:
            try:
                await self.connection.connect()
            except ConnectionLostError as exc:
                self._finish(SessionPhase.ERROR, f"connect failed: {exc}")
                return self.phase
            except Exception as exc:
                self._finish(SessionPhase.ERROR, f"connect failed: {exc}")
                raise
            logger.info(
                "[%s] session started as %s (mode=%s, skill=%s)",
                self.match_id,
                self.task.ai_id,
                self.policy.name,
                self.belief.skill_level,
            )
            await self._closed.wait()
        finally:
            self.scheduler.cancel_all()
            await self.connection.close()
        logger.info("[%s] session ended in phase %s", self.match_id, self.phase.value)
        return self.phase

    async def close(self) -> None:
        """Stop the session from outside (e.g. process shutdown)."""
        self._finish(SessionPhase.TERMINAL, "closed by owner")

    async def idle(self) -> None:
        """Wait until every pending delayed action has run."""
        await self.scheduler.idle()

    def handle_event(self, name: str, payload: Any = None) -> None:
        """Apply one inbound protocol event."""
        if self.finished:
            logger.debug("[%s] ignoring %s after session end", self.match_id, name)
            return
        handler = self._handlers.get(name)
        if handler is None:
            logger.debug("[%s] ignoring unknown event %s", self.match_id, name)
            return
        try:
            handler(payload)
        except ValueError as exc:
            logger.warning("[%s] malformed %s payload: %s", self.match_id, name, exc)

    def summary(self) -> dict[str, object]:
        return {
            "match_id": self.match_id,
            "ai_id": self.task.ai_id,
            "mode": self.policy.name,
            "phase": self.phase.value,
            "skill_level": self.belief.skill_level,
            "own_points": self.belief.own_points,
            "opponent_points": self.belief.opponent_points,
            "actions_sent": len(self.sent),
            "fallbacks": self.engine.fallback_count,
        }

    # -- decision events -------------------------------------------------------

    def _on_allow_announce(self, payload: Any) -> None:
        if not self.policy.announce_enabled:
            logger.debug("[%s] announcements disabled for %s", self.match_id, self.policy.name)
            return
        self.phase = SessionPhase.AWAITING_ANNOUNCE_DECISION
        self.suspend_play = True
        self.scheduler.schedule("announce", self.timings.announce_delay, self._announce)

    async def _announce(self) -> None:
        superseded = False
        try:
            if self.card_committed:
                logger.info("[%s] declining announcement: card already committed", self.match_id)
                return
            options = announceable(self.connection)
            if not options:
                logger.info("[%s] declining announcement: nothing announceable", self.match_id)
                return
            announcement = options[0]
            if not await self._send(Action.announce(announcement)):
                return
            await self._pause(self.timings.announce_play_delay)
            self.card_committed = True
            await self._send(Action(ActionKind.PLAY_CARD, card=announcement.first_card))
        except asyncio.CancelledError:
            # The task that replaced this one owns suspend_play now.
            superseded = True
            raise
        finally:
            if not superseded:
                self.suspend_play = False
                if self.phase == SessionPhase.AWAITING_ANNOUNCE_DECISION:
                    self.phase = SessionPhase.IDLE

    def _on_allow_play_card(self, payload: Any) -> None:
        self.phase = SessionPhase.AWAITING_PLAY_DECISION
        self.card_committed = False
        self.scheduler.schedule("play", self.timings.play_delay, self._play)

    async def _play(self) -> None:
        if self.suspend_play:
            logger.debug("[%s] play deferred to in-flight announcement", self.match_id)
            return
        if self.card_committed:
            logger.debug("[%s] card already committed this turn", self.match_id)
            return
        legal = legal_cards(self.connection)
        if not legal:
            logger.warning("[%s] play permitted but no playable cards reported", self.match_id)
            return
        self.card_committed = True
        if stock_exhausted(self.connection):
            self.belief.close_talon()
        card = await self.engine.decide(self.belief, legal)
        if await self._send(Action(ActionKind.PLAY_CARD, card=card)):
            if self.phase == SessionPhase.AWAITING_PLAY_DECISION:
                self.phase = SessionPhase.IDLE

    def _on_allow_draw_card(self, payload: Any) -> None:
        if not self.policy.draw_phase:
            logger.debug("[%s] no draw phase in %s", self.match_id, self.policy.name)
            return
        self.scheduler.schedule("draw", self.timings.draw_delay, self._draw)

    async def _draw(self) -> None:
        await self._send(Action(ActionKind.DRAW_CARD))

    def _on_trump_change_possible(self, payload: Any) -> None:
        self.swap.transition(SwapSignal.POSSIBLE, event_card(payload))
        self.phase = SessionPhase.AWAITING_TRUMP_SWAP_DECISION

    def _on_trump_change_impossible(self, payload: Any) -> None:
        self.swap.transition(SwapSignal.IMPOSSIBLE)
        if self.phase == SessionPhase.AWAITING_TRUMP_SWAP_DECISION:
            self.phase = SessionPhase.IDLE

    def _on_allow_swap_trump(self, payload: Any) -> None:
        card = self.swap.transition(SwapSignal.AUTHORIZED)
        if card is None:
            logger.debug("[%s] swap authorized without eligibility; ignoring", self.match_id)
            return
        self.scheduler.schedule("swap", self.timings.swap_delay, self._swap_trump)

    async def _swap_trump(self) -> None:
        card = self.swap.card
        if self.swap.phase != SwapPhase.AUTHORIZED or card is None:
            return
        self.belief.resolve([card])
        await self._send(Action(ActionKind.SWAP_TRUMP, card=card))
        self.swap.transition(SwapSignal.COMPLETED)
        if self.phase == SessionPhase.AWAITING_TRUMP_SWAP_DECISION:
            self.phase = SessionPhase.IDLE

    # -- belief events ---------------------------------------------------------

    def _on_card_available(self, payload: Any) -> None:
        self.belief.mark_available(event_card(payload))

    def _on_card_unavailable(self, payload: Any) -> None:
        self.belief.mark_unavailable(event_card(payload), self.policy.unavailable_policy)

    def _on_trump_change(self, payload: Any) -> None:
        self.belief.set_trump(event_trump_suit(payload))

    def _on_play_card(self, payload: Any) -> None:
        card = event_card(payload)
        user_id = event_user_id(payload)
        self.belief.record_play(card, by_opponent=user_id != self.connection.user_id)

    def _on_trick(self, payload: Any) -> None:
        self.belief.resolve(event_cards(payload))
        self.belief.clear_opponent_card()

    def _on_score(self, payload: Any) -> None:
        points = event_points(payload)
        is_self = event_user_id(payload) == self.connection.user_id
        if not self.belief.update_points(points, is_self=is_self):
            logger.warning(
                "[%s] ignoring decreasing score %s for %s",
                self.match_id,
                points,
                "self" if is_self else "opponent",
            )

    def _on_close_talon(self, payload: Any) -> None:
        self.belief.close_talon()

    def _on_deck_card_count(self, payload: Any) -> None:
        if event_deck_count(payload) == 0:
            self.belief.close_talon()

    def _on_finished_distribution(self, payload: Any) -> None:
        logger.debug("[%s] cards distributed", self.match_id)

    # -- round boundaries, errors, termination -----------------------------------

    def _on_round_result(self, payload: Any) -> None:
        if self.policy.multi_round:
            self._start_new_round("round result")
        else:
            self._finish(SessionPhase.TERMINAL, "round result")

    def _on_reset(self, payload: Any) -> None:
        self._start_new_round("reset")

    def _on_final_result(self, payload: Any) -> None:
        self._finish(SessionPhase.TERMINAL, "final result")

    def _on_timeout(self, payload: Any) -> None:
        logger.warning("[%s] timeout notice: %r", self.match_id, payload)

    def _on_error(self, payload: Any) -> None:
        logger.warning("[%s] protocol error: %r", self.match_id, payload)
        if not self.recovery.acquire():
            logger.error(
                "[%s] recovery already used (%s errors since reset); not acting",
                self.match_id,
                self.recovery.errors_seen,
            )
            return
        # A play still waiting on the predictor would race the recovery card.
        self.scheduler.cancel("play")
        self.scheduler.schedule("recovery", self.timings.recovery_delay, self._recover)

    async def _recover(self) -> None:
        legal = legal_cards(self.connection)
        if not legal:
            logger.warning("[%s] recovery skipped: no playable cards", self.match_id)
            return
        card = self.engine.random_legal(legal)
        logger.info("[%s] recovering with random legal card %s", self.match_id, card.key)
        self.card_committed = True
        await self._send(Action(ActionKind.PLAY_CARD, card=card))

    def _on_disconnect(self, payload: Any) -> None:
        self._finish(SessionPhase.ERROR, f"disconnected: {payload!r}")

    def _start_new_round(self, reason: str) -> None:
        logger.info("[%s] new round (%s)", self.match_id, reason)
        self.belief.reset()
        self.recovery.reset()
        self.swap.transition(SwapSignal.COMPLETED)
        self.suspend_play = False
        self.card_committed = False
        self.phase = SessionPhase.IDLE

    def _finish(self, phase: SessionPhase, reason: str) -> None:
        if self.finished:
            return
        self.phase = phase
        cancelled = self.scheduler.cancel_all()
        log = logger.error if phase == SessionPhase.ERROR else logger.info
        log(
            "[%s] session %s: %s (%s pending actions cancelled)",
            self.match_id,
            phase.value,
            reason,
            cancelled,
        )
        self._closed.set()

    # -- commands --------------------------------------------------------------

    async def _pause(self, delay: float) -> None:
        if delay > 0:
            await self._sleep(delay)
        else:
            await asyncio.sleep(0)

    async def _send(self, action: Action) -> bool:
        """Issue a protocol command; return False if the connection is gone."""
        try:
            if action.kind == ActionKind.PLAY_CARD and action.card is not None:
                await self.connection.play_card(card_to_native(action.card))
            elif action.kind == ActionKind.ANNOUNCE_20:
                await self.connection.announce_20([card_to_native(card) for card in action.cards])
            elif action.kind == ActionKind.ANNOUNCE_40:
                await self.connection.announce_40()
            elif action.kind == ActionKind.SWAP_TRUMP and action.card is not None:
                await self.connection.swap_trump(card_to_native(action.card))
            elif action.kind == ActionKind.DRAW_CARD:
                await self.connection.draw_card()
        except ConnectionLostError as exc:
            self._finish(SessionPhase.ERROR, f"{action.kind.value} failed: {exc}")
            return False
        self.sent.append(action)
        logger.info("[%s] sent %s %s", self.match_id, action.kind.value, action.card or "")
        return True
