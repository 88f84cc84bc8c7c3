import asyncio
from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

from uuid6 import uuid7

from aviator_predictor.models.dc_models import RoundPhase


class RoundState:
    """State of the single round owned by a session."""

    def __init__(self):
        self.phase: RoundPhase = RoundPhase.idle
        self.display_value: Optional[str] = None
        self.final_value: Optional[float] = None
        self.is_rare: Optional[bool] = None
        # Incremented for every started round; timer callbacks compare it to
        # drop work scheduled for an earlier round.
        self.generation: int = 0
        self.ticker: Any = None
        self.finisher: Any = None
        self.done: Optional[asyncio.Event] = None

    def cancel_timers(self) -> None:
        for handle in (self.ticker, self.finisher):
            if handle is not None:
                handle.cancel()
        self.ticker = None
        self.finisher = None

    def reset(self) -> None:
        self.phase = RoundPhase.idle
        self.display_value = None
        self.final_value = None
        self.is_rare = None


class PlayerSession:
    def __init__(self, identity: str, predictions_left: int, session_id: UUID | None = None):
        self.session_id: UUID = session_id or uuid7()
        self.identity: str = identity
        self.predictions_left: int = predictions_left
        self.round: RoundState = RoundState()
        self.listeners: List[asyncio.Queue] = []
        self.closed: bool = False
        self.last_seen: datetime = datetime.now()

    def touch(self) -> None:
        self.last_seen = datetime.now()
