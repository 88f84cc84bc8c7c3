"""
Round engine lifecycle: quota consumption, two-phase reveal, state conflicts
and timer cleanup.
"""
import asyncio

import numpy as np
import pytest

from aviator_predictor.errors import ErrorKind, UpstreamError
from aviator_predictor.models.dc_models import RoundPhase, SessionMode
from aviator_predictor.models.gateway_models import UsageResponseModel
from aviator_predictor.player_session import PlayerSession
from aviator_predictor.round_engine import RoundEngine, RoundTiming


class TestStartRound:
    @pytest.mark.asyncio
    async def test_start_consumes_one_prediction(self, round_engine, usage_tracker):
        session = PlayerSession("player", 3)
        result = await round_engine.start_round(session)

        assert result.accepted
        assert result.round.phase == RoundPhase.in_progress
        assert session.predictions_left == 2
        usage_tracker.consume_one.assert_awaited_once_with("player")

    @pytest.mark.asyncio
    async def test_double_start_is_a_no_op(self, round_engine, usage_tracker):
        session = PlayerSession("player", 3)
        await round_engine.start_round(session)
        second = await round_engine.start_round(session)

        assert not second.accepted
        assert second.error == ErrorKind.state_conflict
        assert session.predictions_left == 2
        assert usage_tracker.consume_one.await_count == 1

    @pytest.mark.asyncio
    async def test_interleaved_start_while_tracker_pending(self, scheduler):
        release = asyncio.Event()

        class SlowTracker:
            calls = 0

            async def consume_one(self, identity):
                SlowTracker.calls += 1
                await release.wait()
                return UsageResponseModel(success=True)

        engine = RoundEngine(SlowTracker(), scheduler, rng=np.random.default_rng(0))
        session = PlayerSession("player", 2)
        first = asyncio.create_task(engine.start_round(session))
        await asyncio.sleep(0)
        second = await engine.start_round(session)
        release.set()
        first_result = await first

        assert first_result.accepted
        assert second.error == ErrorKind.state_conflict
        assert SlowTracker.calls == 1
        assert session.predictions_left == 1

    @pytest.mark.asyncio
    async def test_outcome_waits_while_tracker_pending(self, scheduler):
        release = asyncio.Event()

        class SlowTracker:
            async def consume_one(self, identity):
                await release.wait()
                return UsageResponseModel(success=True)

        engine = RoundEngine(SlowTracker(), scheduler, rng=np.random.default_rng(0))
        session = PlayerSession("player", 2)
        start = asyncio.create_task(engine.start_round(session))
        await asyncio.sleep(0)
        waiter = asyncio.create_task(engine.wait_for_outcome(session))
        await asyncio.sleep(0)
        assert not waiter.done()

        release.set()
        assert (await start).accepted
        assert not waiter.done()

        await scheduler.advance(3.0)
        snapshot = await asyncio.wait_for(waiter, timeout=1)
        assert snapshot.phase == RoundPhase.complete
        assert snapshot.display_value.endswith("x")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "answer",
        [UsageResponseModel(success=False), UpstreamError("usage", "timeout")],
    )
    async def test_refused_start_releases_outcome_waiter(self, scheduler, answer):
        release = asyncio.Event()

        class SlowTracker:
            async def consume_one(self, identity):
                await release.wait()
                if isinstance(answer, Exception):
                    raise answer
                return answer

        engine = RoundEngine(SlowTracker(), scheduler, rng=np.random.default_rng(0))
        session = PlayerSession("player", 2)
        start = asyncio.create_task(engine.start_round(session))
        await asyncio.sleep(0)
        waiter = asyncio.create_task(engine.wait_for_outcome(session))
        await asyncio.sleep(0)

        release.set()
        assert not (await start).accepted
        snapshot = await asyncio.wait_for(waiter, timeout=1)

        assert snapshot.phase == RoundPhase.idle
        assert session.predictions_left == 2

    @pytest.mark.asyncio
    async def test_start_refused_while_complete(self, round_engine, scheduler):
        session = PlayerSession("player", 3)
        await round_engine.start_round(session)
        await scheduler.advance(3.0)
        result = await round_engine.start_round(session)

        assert not result.accepted
        assert result.error == ErrorKind.state_conflict
        assert session.predictions_left == 2

    @pytest.mark.asyncio
    async def test_tracker_refusal_keeps_quota(self, round_engine, usage_tracker, scheduler):
        usage_tracker.consume_one.return_value = UsageResponseModel(
            success=False, message="No predictions left on server"
        )
        session = PlayerSession("player", 3)
        result = await round_engine.start_round(session)

        assert not result.accepted
        assert result.error == ErrorKind.upstream_error
        assert result.message == "No predictions left on server"
        assert session.predictions_left == 3
        assert session.round.phase == RoundPhase.idle
        assert scheduler.created == []

    @pytest.mark.asyncio
    async def test_tracker_refusal_without_message(self, round_engine, usage_tracker):
        usage_tracker.consume_one.return_value = UsageResponseModel(success=False)
        result = await round_engine.start_round(PlayerSession("player", 3))
        assert result.message_key == "couldNotUsePrediction"

    @pytest.mark.asyncio
    async def test_tracker_transport_failure(self, round_engine, usage_tracker):
        usage_tracker.consume_one.side_effect = UpstreamError("usage", "timeout")
        session = PlayerSession("player", 3)
        result = await round_engine.start_round(session)

        assert result.error == ErrorKind.upstream_error
        assert session.predictions_left == 3
        assert session.round.phase == RoundPhase.idle

    @pytest.mark.asyncio
    async def test_quota_decreases_to_zero_then_limit(self, round_engine, usage_tracker, scheduler):
        session = PlayerSession("player", 2)
        for expected_left in (1, 0):
            result = await round_engine.start_round(session)
            assert result.accepted
            assert session.predictions_left == expected_left
            await scheduler.advance(3.0)
            round_engine.advance_to_next_round(session)

        refused = await round_engine.start_round(session)
        assert not refused.accepted
        assert refused.error == ErrorKind.quota_exceeded
        assert refused.round.mode == SessionMode.limit_reached
        assert session.predictions_left == 0
        assert usage_tracker.consume_one.await_count == 2

    @pytest.mark.asyncio
    async def test_last_round_reports_limit_only_after_completion(self, round_engine, scheduler):
        session = PlayerSession("player", 1)
        started = await round_engine.start_round(session)
        assert started.round.mode == SessionMode.allowed
        await scheduler.advance(3.0)
        assert round_engine.snapshot(session).mode == SessionMode.limit_reached


class TestReveal:
    @pytest.mark.asyncio
    async def test_decoys_then_final_value(self, round_engine, scheduler):
        session = PlayerSession("player", 3)
        await round_engine.start_round(session)
        ticker, finisher = scheduler.created

        await scheduler.advance(1.0)
        assert session.round.phase == RoundPhase.in_progress
        assert ticker.fire_count == 20
        decoy = session.round.display_value
        assert decoy.endswith("x") and 1.0 <= float(decoy[:-1]) < 10.0

        await scheduler.advance(2.0)
        assert session.round.phase == RoundPhase.complete
        assert finisher.fire_count == 1
        assert 1.10 <= session.round.final_value < 3.10
        assert session.round.display_value == f"{session.round.final_value:.2f}x"

    @pytest.mark.asyncio
    async def test_no_decoy_after_completion(self, round_engine, scheduler):
        session = PlayerSession("player", 3)
        queue = round_engine.subscribe(session)
        await round_engine.start_round(session)
        ticker, _ = scheduler.created

        await scheduler.advance(3.0)
        fired = ticker.fire_count
        await scheduler.advance(5.0)

        assert ticker.fire_count == fired
        assert ticker.cancelled
        assert scheduler.jobs == []
        events = []
        while not queue.empty():
            events.append(queue.get_nowait()[0])
        assert events.count("round_complete") == 1
        assert events[-1] == "round_complete"

    @pytest.mark.asyncio
    async def test_wait_for_outcome(self, round_engine, scheduler):
        session = PlayerSession("player", 3)
        await round_engine.start_round(session)
        waiter = asyncio.create_task(round_engine.wait_for_outcome(session))
        await asyncio.sleep(0)
        assert not waiter.done()

        await scheduler.advance(3.0)
        snapshot = await waiter
        assert snapshot.phase == RoundPhase.complete
        assert snapshot.final_value is not None

    @pytest.mark.asyncio
    async def test_custom_timing(self, usage_tracker, scheduler):
        engine = RoundEngine(
            usage_tracker, scheduler, timing=RoundTiming(reveal_seconds=0.2, decoy_interval_seconds=0.1)
        )
        session = PlayerSession("player", 1)
        await engine.start_round(session)
        await scheduler.advance(0.2)
        assert session.round.phase == RoundPhase.complete


class TestAdvance:
    @pytest.mark.asyncio
    async def test_advance_resets_without_quota(self, round_engine, scheduler, usage_tracker):
        session = PlayerSession("player", 3)
        await round_engine.start_round(session)
        await scheduler.advance(3.0)
        result = round_engine.advance_to_next_round(session)

        assert result.accepted
        assert result.round.phase == RoundPhase.idle
        assert result.round.display_value is None
        assert session.predictions_left == 2
        assert usage_tracker.consume_one.await_count == 1

    @pytest.mark.asyncio
    async def test_advance_refused_while_in_progress(self, round_engine):
        session = PlayerSession("player", 3)
        await round_engine.start_round(session)
        result = round_engine.advance_to_next_round(session)
        assert not result.accepted
        assert result.error == ErrorKind.state_conflict
        assert session.round.phase == RoundPhase.in_progress

    def test_advance_refused_when_idle(self, round_engine):
        result = round_engine.advance_to_next_round(PlayerSession("player", 3))
        assert result.error == ErrorKind.state_conflict


class TestTeardown:
    @pytest.mark.asyncio
    async def test_teardown_cancels_timers(self, round_engine, scheduler):
        session = PlayerSession("player", 3)
        queue = round_engine.subscribe(session)
        await round_engine.start_round(session)
        ticker, finisher = scheduler.created
        await scheduler.advance(0.5)

        round_engine.teardown(session)
        await scheduler.advance(5.0)

        assert ticker.cancelled and finisher.cancelled
        assert finisher.fire_count == 0
        assert session.round.phase == RoundPhase.idle
        assert session.listeners == []
        last = None
        while not queue.empty():
            last = queue.get_nowait()
        assert last is None

    @pytest.mark.asyncio
    async def test_stale_callback_is_ignored(self, round_engine, scheduler):
        session = PlayerSession("player", 3)
        await round_engine.start_round(session)
        await scheduler.advance(3.0)
        final_display = session.round.display_value

        # A callback dispatched for this round after it completed changes nothing
        await round_engine._publish_decoy(session, session.round.generation)
        await round_engine._finish_round(session, session.round.generation)
        assert session.round.display_value == final_display
