import logging
from typing import Dict, Protocol

from aviator_predictor.domain.messages import message_text
from aviator_predictor.errors import ErrorKind, UpstreamError
from aviator_predictor.models.dc_models import (
    GateResult,
    SessionMode,
    VerificationOutcome,
    VerificationStatus,
)

ESCALATION_THRESHOLD = 3

# status -> (mode, message key, error kind)
FAILURE_POLICY = {
    VerificationStatus.needs_deposit: (SessionMode.needs_deposit, "needsDeposit", None),
    VerificationStatus.needs_redeposit: (SessionMode.needs_redeposit, "needsRedeposit", None),
    VerificationStatus.invalid_identity: (SessionMode.blocked, "invalidPlayerIdError", ErrorKind.validation_error),
    VerificationStatus.server_error: (SessionMode.blocked, "serverErrorError", ErrorKind.upstream_error),
}


class Verifier(Protocol):
    async def verify(self, identity: str) -> VerificationOutcome: ...


class SessionGate:
    """Turns verification outcomes into session modes.

    The gate never decides whether a player is registered or has deposited; the
    gateway does. It only owns the per-identity count of NOT_REGISTERED answers
    used to escalate the message shown to the player.
    """

    def __init__(self, gateway: Verifier):
        self.gateway = gateway
        self.attempt_counter: Dict[str, int] = {}

    def attempts(self, identity: str) -> int:
        return self.attempt_counter.get(identity, 0)

    async def verify(self, identity: str) -> GateResult:
        """Verify an identity and decide the mode the caller should switch to

        Args:
            identity (str): Player ID, used verbatim as the counter key

        Returns:
            GateResult: allowed result with quota, or a failure that asks the
                caller to clear the identity input
        """
        if not identity or not identity.strip():
            return self._failure(
                identity, SessionMode.blocked, None, "pleaseEnterPlayerId", ErrorKind.validation_error
            )

        try:
            outcome: VerificationOutcome = await self.gateway.verify(identity)
        except UpstreamError as e:
            # Same message as SERVER_ERROR, but never counted as a failed attempt
            logging.warning(f"Verification gateway unavailable for {identity!r}: {e}")
            return self._failure(
                identity,
                SessionMode.blocked,
                VerificationStatus.server_error,
                "serverErrorError",
                ErrorKind.upstream_error,
            )

        if outcome.status == VerificationStatus.allowed:
            # Allowed with nothing left still opens a session, in the deposit mode
            mode = SessionMode.limit_reached if outcome.predictions_left == 0 else SessionMode.allowed
            return GateResult(
                success=True,
                mode=mode,
                status=outcome.status,
                predictions_left=outcome.predictions_left,
                attempts=self.attempts(identity),
            )

        if outcome.status == VerificationStatus.not_registered:
            count = self.attempts(identity) + 1
            self.attempt_counter[identity] = count
            key = (
                "noRegistrationFoundAfterAttempts"
                if count >= ESCALATION_THRESHOLD
                else "youAreNotRegistered"
            )
            logging.info(f"{identity!r} not registered (attempt {count})")
            return self._failure(
                identity, SessionMode.blocked, outcome.status, key, ErrorKind.not_found
            )

        if outcome.status in FAILURE_POLICY:
            mode, key, error = FAILURE_POLICY[outcome.status]
            return self._failure(identity, mode, outcome.status, key, error)

        key = "loginFailedNoCount" if outcome.reported_success else "unknownErrorError"
        return self._failure(
            identity, SessionMode.blocked, outcome.status, key, ErrorKind.upstream_error
        )

    def _failure(
        self,
        identity: str,
        mode: SessionMode,
        status: VerificationStatus | None,
        message_key: str,
        error: ErrorKind | None,
    ) -> GateResult:
        return GateResult(
            success=False,
            mode=mode,
            status=status,
            attempts=self.attempts(identity),
            message_key=message_key,
            message=message_text(message_key),
            error=error,
            clear_identity_input=True,
        )
