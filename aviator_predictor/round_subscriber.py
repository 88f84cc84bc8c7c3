import asyncio
import json
import logging
from typing import AsyncGenerator

from aviator_predictor.player_session import PlayerSession
from aviator_predictor.round_engine import RoundEngine

HEART_BEAT = 15


class RoundSubscriber:
    """Round event subscriber to feed SSE responses."""

    def __init__(self, round_engine: RoundEngine, session: PlayerSession, heart_beat: float = HEART_BEAT):
        """Initialize RoundSubscriber with the engine and the watched session."""
        self.round_engine: RoundEngine = round_engine
        self.session: PlayerSession = session
        self.heart_beat: float = heart_beat

    async def event_generator(self) -> AsyncGenerator[str, None]:
        """Event generator to handle SSE events.

        The current round state is sent first as "round_state", then every
        change published by the engine. The stream ends when the session is
        torn down.
        """
        queue = self.round_engine.subscribe(self.session)
        try:
            payload = json.dumps(self.round_engine.snapshot(self.session).model_dump(mode="json"))
            yield f"event: round_state\ndata: {payload}\n\n"
            while True:
                try:
                    message = await asyncio.wait_for(queue.get(), timeout=self.heart_beat)
                except asyncio.TimeoutError:
                    yield ": heartbeat\n\n"
                    continue
                if message is None:
                    break
                event, snapshot = message
                payload = json.dumps(snapshot.model_dump(mode="json"))
                logging.debug(f"Payload: {payload}")
                yield f"event: {event}\ndata: {payload}\n\n"
        finally:
            logging.info(f"Unsubscribing from session {self.session.session_id}")
            self.round_engine.unsubscribe(self.session, queue)
