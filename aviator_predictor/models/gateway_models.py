from pydantic import BaseModel, Field
from typing import Optional


class VerificationResponseModel(BaseModel):
    """Raw answer of the verification backend."""
    success: bool
    status: Optional[str] = None  # NEEDS_DEPOSIT, NEEDS_REDEPOSIT, NOT_REGISTERED, INVALID_ID, SERVER_ERROR
    predictions_left: Optional[int] = Field(default=None, alias="predictionsLeft")
    message: Optional[str] = None

    class Config:
        populate_by_name = True


class UsageResponseModel(BaseModel):
    success: bool
    message: Optional[str] = None


class AffiliateLinkResponseModel(BaseModel):
    success: bool
    link: Optional[str] = None
    message: Optional[str] = None
