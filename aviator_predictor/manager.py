import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Protocol
from uuid import UUID

from aviator_predictor.authentication.admin_authentication import AdminAuthentication
from aviator_predictor.config_store import PromoConfigStore
from aviator_predictor.domain.messages import message_text
from aviator_predictor.errors import ErrorKind, UpstreamError
from aviator_predictor.models.dc_models import (
    AdminAuthResult,
    AffiliateLinkResult,
    GateResult,
    LinkPurpose,
    LogoutResult,
    PromoCodeResult,
    RoundResult,
    RoundSnapshot,
)
from aviator_predictor.models.gateway_models import AffiliateLinkResponseModel
from aviator_predictor.player_session import PlayerSession
from aviator_predictor.round_engine import RoundEngine
from aviator_predictor.session_gate import SessionGate

LINK_UNAVAILABLE_KEYS = {
    LinkPurpose.registration: "registrationLinkNotAvailable",
    LinkPurpose.deposit: "depositLinkNotAvailable",
}


class LinkProvider(Protocol):
    async def get_link(self) -> AffiliateLinkResponseModel: ...


class PredictorController:
    """Owns the logged in sessions and routes caller requests to the gate,
    the round engine and the config store.
    """

    def __init__(
        self,
        session_gate: SessionGate,
        round_engine: RoundEngine,
        config_store: PromoConfigStore,
        link_provider: LinkProvider,
    ):
        self.session_gate = session_gate
        self.round_engine = round_engine
        self.config_store = config_store
        self.admin_auth = AdminAuthentication(config_store)
        self.link_provider = link_provider
        self.sessions: Dict[UUID, PlayerSession] = {}

    async def verify(self, identity: str) -> GateResult:
        """Verify a player and open a session when allowed

        Args:
            identity (str): Player ID

        Returns:
            GateResult: result of the session gate, with session_id set on success
        """
        result: GateResult = await self.session_gate.verify(identity)
        if not result.success:
            return result
        session = PlayerSession(identity, result.predictions_left or 0)
        self.sessions[session.session_id] = session
        logging.info(f"Session {session.session_id} opened for {identity!r}")
        return result.model_copy(update={"session_id": session.session_id})

    def get_session(self, session_id: UUID) -> Optional[PlayerSession]:
        session = self.sessions.get(session_id)
        if session is not None:
            session.touch()
        return session

    def round_state(self, session_id: UUID) -> Optional[RoundSnapshot]:
        session = self.get_session(session_id)
        if session is None:
            return None
        return self.round_engine.snapshot(session)

    async def start_round(self, session_id: UUID) -> RoundResult:
        session = self.get_session(session_id)
        if session is None:
            return self._session_not_found()
        return await self.round_engine.start_round(session)

    def advance_to_next_round(self, session_id: UUID) -> RoundResult:
        session = self.get_session(session_id)
        if session is None:
            return self._session_not_found()
        return self.round_engine.advance_to_next_round(session)

    async def wait_for_outcome(self, session_id: UUID) -> Optional[RoundSnapshot]:
        session = self.get_session(session_id)
        if session is None:
            return None
        return await self.round_engine.wait_for_outcome(session)

    def logout(self, session_id: UUID) -> LogoutResult:
        session = self.sessions.pop(session_id, None)
        if session is None:
            return LogoutResult(
                success=False, error=ErrorKind.not_found, message=message_text("sessionNotFound")
            )
        self.round_engine.teardown(session)
        logging.info(f"Session {session_id} closed")
        return LogoutResult(success=True)

    async def get_code(self) -> PromoCodeResult:
        return await self.config_store.get_code()

    async def set_code(self, candidate: Any, credential: Optional[str]) -> PromoCodeResult:
        return await self.config_store.set_code(candidate, credential)

    def verify_admin(self, credential: Optional[str]) -> AdminAuthResult:
        return self.admin_auth.verify(credential)

    async def get_affiliate_link(self, purpose: LinkPurpose) -> AffiliateLinkResult:
        """Fetch the affiliate link used for registration or deposit."""
        try:
            response: AffiliateLinkResponseModel = await self.link_provider.get_link()
        except UpstreamError:
            return AffiliateLinkResult(
                success=False,
                error=ErrorKind.upstream_error,
                message_key="unexpectedErrorOccurred",
                message=message_text("unexpectedErrorOccurred"),
            )
        if not response.success or not response.link:
            key = LINK_UNAVAILABLE_KEYS[purpose]
            return AffiliateLinkResult(
                success=False,
                error=ErrorKind.upstream_error,
                message_key=key,
                message=response.message or message_text(key),
            )
        return AffiliateLinkResult(success=True, link=response.link)

    async def sweep_idle_sessions(self, max_idle: timedelta) -> int:
        """Close sessions that have not been used for max_idle. Returns the number closed."""
        threshold = datetime.now() - max_idle
        expired = [
            session_id
            for session_id, session in self.sessions.items()
            if session.last_seen < threshold
        ]
        for session_id in expired:
            self.logout(session_id)
        if expired:
            logging.info(f"Closed {len(expired)} idle sessions")
        return len(expired)

    def shutdown(self) -> None:
        for session_id in list(self.sessions):
            self.logout(session_id)

    def _session_not_found(self) -> RoundResult:
        return RoundResult(
            accepted=False,
            error=ErrorKind.not_found,
            message_key="sessionNotFound",
            message=message_text("sessionNotFound"),
        )
