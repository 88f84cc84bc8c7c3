from unittest.mock import AsyncMock

import numpy as np
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from aviator_predictor.config_store import PromoConfigStore
from aviator_predictor.manager import PredictorController
from aviator_predictor.models.dc_models import VerificationOutcome, VerificationStatus
from aviator_predictor.models.gateway_models import (
    AffiliateLinkResponseModel,
    UsageResponseModel,
)
from aviator_predictor.round_engine import RoundEngine
from aviator_predictor.session_gate import SessionGate

ADMIN_PASSWORD = "s3cret-Admin"


class FakeTimer:
    def __init__(self, scheduler, due_ms, interval_ms, func, args, seq):
        self.scheduler = scheduler
        self.due_ms = due_ms
        self.interval_ms = interval_ms
        self.func = func
        self.args = args
        self.seq = seq
        self.cancelled = False
        self.fire_count = 0

    def cancel(self):
        self.cancelled = True
        if self in self.scheduler.jobs:
            self.scheduler.jobs.remove(self)


class FakeScheduler:
    """Manual clock in whole milliseconds. advance() runs due callbacks in order."""

    def __init__(self):
        self.now_ms = 0
        self.jobs = []
        self.created = []
        self._seq = 0

    def _add(self, seconds, interval, func, args):
        self._seq += 1
        step = round(seconds * 1000)
        timer = FakeTimer(self, self.now_ms + step, step if interval else None, func, args, self._seq)
        self.jobs.append(timer)
        self.created.append(timer)
        return timer

    def call_every(self, seconds, func, *args):
        return self._add(seconds, True, func, args)

    def call_later(self, seconds, func, *args):
        return self._add(seconds, False, func, args)

    async def advance(self, seconds):
        target = self.now_ms + round(seconds * 1000)
        while True:
            due = [job for job in self.jobs if job.due_ms <= target]
            if not due:
                break
            job = min(due, key=lambda j: (j.due_ms, j.seq))
            self.now_ms = job.due_ms
            if job.interval_ms is None:
                job.cancel()
            else:
                job.due_ms += job.interval_ms
            job.fire_count += 1
            await job.func(*job.args)
        self.now_ms = target


class FakeRedis:
    def __init__(self):
        self.data = {}
        self.fail = False

    async def get(self, key):
        if self.fail:
            raise RedisConnectionError("redis down")
        return self.data.get(key)

    async def set(self, key, value):
        if self.fail:
            raise RedisConnectionError("redis down")
        self.data[key] = value
        return True


def allowed(predictions_left):
    return VerificationOutcome(
        status=VerificationStatus.allowed,
        predictions_left=predictions_left,
        reported_success=True,
    )


def outcome(status, reported_success=False):
    return VerificationOutcome(status=status, reported_success=reported_success)


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def gateway():
    mock = AsyncMock()
    mock.verify.return_value = allowed(5)
    return mock


@pytest.fixture
def usage_tracker():
    mock = AsyncMock()
    mock.consume_one.return_value = UsageResponseModel(success=True)
    return mock


@pytest.fixture
def link_provider():
    mock = AsyncMock()
    mock.get_link.return_value = AffiliateLinkResponseModel(
        success=True, link="https://partner.example/reg?ref=abc"
    )
    return mock


@pytest.fixture
def round_engine(usage_tracker, scheduler):
    return RoundEngine(usage_tracker, scheduler, rng=np.random.default_rng(2024))


@pytest.fixture
def config_store(fake_redis):
    return PromoConfigStore(fake_redis, admin_password_getter=lambda: ADMIN_PASSWORD)


@pytest.fixture
def controller(gateway, round_engine, config_store, link_provider):
    return PredictorController(
        session_gate=SessionGate(gateway),
        round_engine=round_engine,
        config_store=config_store,
        link_provider=link_provider,
    )
