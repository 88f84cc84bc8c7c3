import asyncio
import logging
from typing import Optional, Protocol

import numpy as np

from aviator_predictor.domain.messages import message_text
from aviator_predictor.domain.round_rules import (
    DECOY_INTERVAL_SECONDS,
    REVEAL_DURATION_SECONDS,
    draw_decoy_value,
    draw_final_value,
    format_multiplier,
    is_rare_value,
)
from aviator_predictor.errors import ErrorKind, UpstreamError
from aviator_predictor.models.dc_models import (
    RoundPhase,
    RoundResult,
    RoundSnapshot,
    SessionMode,
)
from aviator_predictor.models.gateway_models import UsageResponseModel
from aviator_predictor.player_session import PlayerSession, RoundState
from aviator_predictor.reveal_scheduler import TimerScheduler

LISTENER_QUEUE_SIZE = 100


class QuotaConsumer(Protocol):
    async def consume_one(self, identity: str) -> UsageResponseModel: ...


class RoundTiming:
    def __init__(
        self,
        reveal_seconds: float = REVEAL_DURATION_SECONDS,
        decoy_interval_seconds: float = DECOY_INTERVAL_SECONDS,
    ):
        self.reveal_seconds = reveal_seconds
        self.decoy_interval_seconds = decoy_interval_seconds


class RoundEngine:
    """Quota-gated round lifecycle: idle -> in_progress -> complete -> idle."""

    def __init__(
        self,
        usage_tracker: QuotaConsumer,
        scheduler: TimerScheduler,
        rng: Optional[np.random.Generator] = None,
        timing: Optional[RoundTiming] = None,
    ):
        self.usage_tracker = usage_tracker
        self.scheduler = scheduler
        self.rng: np.random.Generator = rng if rng is not None else np.random.default_rng()
        self.timing: RoundTiming = timing or RoundTiming()

    def snapshot(self, session: PlayerSession) -> RoundSnapshot:
        round_state = session.round
        return RoundSnapshot(
            session_id=session.session_id,
            phase=round_state.phase,
            display_value=round_state.display_value,
            final_value=round_state.final_value,
            is_rare=round_state.is_rare,
            predictions_left=session.predictions_left,
            mode=session_mode(session),
        )

    async def start_round(self, session: PlayerSession) -> RoundResult:
        """Consume one prediction and start the timed reveal

        Args:
            session (PlayerSession): Logged in session

        Returns:
            RoundResult: accepted result with the in-progress snapshot, or the
                reason the round was refused
        """
        round_state = session.round
        if session.closed:
            return self._refused(session, ErrorKind.not_found, "sessionNotFound")
        if round_state.phase == RoundPhase.in_progress:
            return self._refused(session, ErrorKind.state_conflict, "roundAlreadyInProgress")
        if round_state.phase == RoundPhase.complete:
            return self._refused(session, ErrorKind.state_conflict, "roundNotComplete")
        if session.predictions_left <= 0:
            return self._refused(session, ErrorKind.quota_exceeded, "limitReached")

        # Claimed before awaiting the tracker so an interleaved call is refused
        round_state.phase = RoundPhase.in_progress
        round_state.done = asyncio.Event()
        try:
            usage: UsageResponseModel = await self.usage_tracker.consume_one(session.identity)
        except UpstreamError as e:
            logging.error(f"Usage tracker unavailable for {session.identity!r}: {e}")
            self._release_claim(round_state)
            return self._refused(session, ErrorKind.upstream_error, "unexpectedErrorOccurred")

        if not usage.success:
            logging.warning(f"Usage refused for {session.identity!r}: {usage.message}")
            self._release_claim(round_state)
            return RoundResult(
                accepted=False,
                error=ErrorKind.upstream_error,
                message_key="couldNotUsePrediction",
                message=usage.message or message_text("couldNotUsePrediction"),
                round=self.snapshot(session),
            )

        if session.closed:
            # Logged out while the tracker call was pending
            self._release_claim(round_state)
            return self._refused(session, ErrorKind.not_found, "sessionNotFound")

        session.predictions_left -= 1
        round_state.reset()
        round_state.phase = RoundPhase.in_progress
        round_state.generation += 1
        generation = round_state.generation
        round_state.ticker = self.scheduler.call_every(
            self.timing.decoy_interval_seconds, self._publish_decoy, session, generation
        )
        round_state.finisher = self.scheduler.call_later(
            self.timing.reveal_seconds, self._finish_round, session, generation
        )
        logging.info(
            f"Round {generation} started for {session.identity!r}, "
            f"{session.predictions_left} predictions left"
        )
        self._publish(session, "round_started")
        return RoundResult(accepted=True, round=self.snapshot(session))

    def advance_to_next_round(self, session: PlayerSession) -> RoundResult:
        round_state = session.round
        if round_state.phase != RoundPhase.complete:
            return self._refused(session, ErrorKind.state_conflict, "roundNotComplete")
        round_state.reset()
        self._publish(session, "round_reset")
        return RoundResult(accepted=True, round=self.snapshot(session))

    async def wait_for_outcome(self, session: PlayerSession) -> RoundSnapshot:
        """Wait until the current round is complete. Returns at once when no round is running."""
        round_state = session.round
        if round_state.phase == RoundPhase.in_progress and round_state.done is not None:
            await round_state.done.wait()
        return self.snapshot(session)

    def teardown(self, session: PlayerSession) -> None:
        """Cancel every timer of the session and close its event streams."""
        session.closed = True
        round_state = session.round
        round_state.cancel_timers()
        if round_state.phase == RoundPhase.in_progress:
            round_state.reset()
        if round_state.done is not None:
            round_state.done.set()
        for queue in list(session.listeners):
            self._put(queue, None)
        session.listeners.clear()

    def subscribe(self, session: PlayerSession) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=LISTENER_QUEUE_SIZE)
        session.listeners.append(queue)
        return queue

    def unsubscribe(self, session: PlayerSession, queue: asyncio.Queue) -> None:
        if queue in session.listeners:
            session.listeners.remove(queue)

    async def _publish_decoy(self, session: PlayerSession, generation: int) -> None:
        round_state = session.round
        if not self._is_current(session, generation):
            return
        round_state.display_value = format_multiplier(draw_decoy_value(self.rng))
        self._publish(session, "decoy_update")

    async def _finish_round(self, session: PlayerSession, generation: int) -> None:
        round_state = session.round
        if not self._is_current(session, generation):
            return
        round_state.cancel_timers()
        final_value = draw_final_value(self.rng)
        round_state.final_value = final_value
        round_state.is_rare = is_rare_value(final_value)
        round_state.display_value = format_multiplier(final_value)
        round_state.phase = RoundPhase.complete
        if round_state.done is not None:
            round_state.done.set()
        logging.info(f"Round {generation} for {session.identity!r} complete: {round_state.display_value}")
        self._publish(session, "round_complete")

    def _is_current(self, session: PlayerSession, generation: int) -> bool:
        round_state = session.round
        return (
            not session.closed
            and round_state.generation == generation
            and round_state.phase == RoundPhase.in_progress
        )

    @staticmethod
    def _release_claim(round_state: RoundState) -> None:
        """Undo the claim of a round that never started and wake pending outcome waiters."""
        round_state.phase = RoundPhase.idle
        if round_state.done is not None:
            round_state.done.set()

    def _publish(self, session: PlayerSession, event: str) -> None:
        if not session.listeners:
            return
        message = (event, self.snapshot(session))
        for queue in list(session.listeners):
            self._put(queue, message)

    @staticmethod
    def _put(queue: asyncio.Queue, message) -> None:
        if queue.full():
            # Slow consumer: keep the newest state
            queue.get_nowait()
        queue.put_nowait(message)

    def _refused(self, session: PlayerSession, error: ErrorKind, message_key: str) -> RoundResult:
        return RoundResult(
            accepted=False,
            error=error,
            message_key=message_key,
            message=message_text(message_key),
            round=self.snapshot(session),
        )


def session_mode(session: PlayerSession) -> SessionMode:
    if session.predictions_left <= 0 and session.round.phase != RoundPhase.in_progress:
        return SessionMode.limit_reached
    return SessionMode.allowed
