from pydantic import BaseModel, Field
from enum import Enum
from uuid import UUID
from typing import Any, Optional

from aviator_predictor.errors import ErrorKind


class SessionMode(str, Enum):
    allowed = "allowed"
    needs_deposit = "needs_deposit"
    needs_redeposit = "needs_redeposit"
    blocked = "blocked"  # error message shown, identity input cleared
    limit_reached = "limit_reached"  # quota used up, caller goes to the deposit flow


class VerificationStatus(str, Enum):
    allowed = "allowed"
    needs_deposit = "needs_deposit"
    needs_redeposit = "needs_redeposit"
    not_registered = "not_registered"
    invalid_identity = "invalid_identity"
    server_error = "server_error"
    unknown = "unknown"


class RoundPhase(str, Enum):
    idle = "idle"
    in_progress = "in_progress"
    complete = "complete"


class LinkPurpose(str, Enum):
    registration = "registration"
    deposit = "deposit"


class VerificationOutcome(BaseModel):
    """Normalized gateway answer. Only the allowed status carries a quota."""
    status: VerificationStatus
    predictions_left: Optional[int] = Field(default=None, ge=0)
    message: Optional[str] = None
    reported_success: bool = False  # backend said success but sent no quota


class VerifyUserModel(BaseModel):
    player_id: str = Field(alias="playerId")

    class Config:
        populate_by_name = True


class GateResult(BaseModel):
    success: bool
    mode: SessionMode
    status: VerificationStatus | None = None
    predictions_left: Optional[int] = None
    attempts: int = 0
    message_key: Optional[str] = None
    message: Optional[str] = None
    error: Optional[ErrorKind] = None
    clear_identity_input: bool = False
    session_id: Optional[UUID] = None


class RoundSnapshot(BaseModel):
    session_id: UUID
    phase: RoundPhase
    display_value: Optional[str] = None
    final_value: Optional[float] = None
    is_rare: Optional[bool] = None
    predictions_left: int
    mode: SessionMode


class RoundResult(BaseModel):
    accepted: bool
    error: Optional[ErrorKind] = None
    message_key: Optional[str] = None
    message: Optional[str] = None
    round: Optional[RoundSnapshot] = None


class PromoCodeUpdateModel(BaseModel):
    # promo_code is not typed as str: a non-string value is a validation failure, not a 422
    promo_code: Any = Field(default=None, alias="promoCode")
    password: Optional[str] = None

    class Config:
        populate_by_name = True


class AdminPasswordModel(BaseModel):
    password: Optional[str] = None


class PromoCodeResult(BaseModel):
    success: bool
    promo_code: Optional[str] = Field(default=None, alias="promoCode")
    message: Optional[str] = None
    error: Optional[ErrorKind] = None

    class Config:
        populate_by_name = True


class AdminAuthResult(BaseModel):
    success: bool
    message: Optional[str] = None
    error: Optional[ErrorKind] = None


class AffiliateLinkResult(BaseModel):
    success: bool
    link: Optional[str] = None
    message_key: Optional[str] = None
    message: Optional[str] = None
    error: Optional[ErrorKind] = None


class LogoutResult(BaseModel):
    success: bool
    error: Optional[ErrorKind] = None
    message: Optional[str] = None
