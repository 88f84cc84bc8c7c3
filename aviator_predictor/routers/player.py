import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Response

from aviator_predictor.dependencies import get_controller, status_for
from aviator_predictor.manager import PredictorController
from aviator_predictor.models.dc_models import (
    AffiliateLinkResult,
    GateResult,
    LinkPurpose,
    LogoutResult,
    VerifyUserModel,
)

player_router = APIRouter(prefix="/api")


class PlayerAPI:
    @staticmethod
    @player_router.post("/verify-user", response_model=GateResult, response_model_exclude_none=True)
    async def verify_user(
        body: VerifyUserModel,
        controller: PredictorController = Depends(get_controller),
    ) -> GateResult:
        """Verify a Player ID. Every gate decision is a 200; the mode tells the caller what to show."""
        result = await controller.verify(body.player_id)
        logging.debug(f"verify-user result: {result}")
        return result

    @staticmethod
    @player_router.delete("/sessions/{session_id}", response_model=LogoutResult)
    async def logout(
        session_id: UUID,
        response: Response,
        controller: PredictorController = Depends(get_controller),
    ) -> LogoutResult:
        result = controller.logout(session_id)
        response.status_code = status_for(result.error)
        return result


class AffiliateAPI:
    @staticmethod
    @player_router.get("/get-affiliate-link", response_model=AffiliateLinkResult)
    async def get_affiliate_link(
        response: Response,
        purpose: LinkPurpose = LinkPurpose.registration,
        controller: PredictorController = Depends(get_controller),
    ) -> AffiliateLinkResult:
        result = await controller.get_affiliate_link(purpose)
        response.status_code = status_for(result.error)
        return result
