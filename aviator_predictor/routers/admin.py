from fastapi import APIRouter, Depends, Response, status

from aviator_predictor.dependencies import get_controller, status_for
from aviator_predictor.errors import ErrorKind
from aviator_predictor.manager import PredictorController
from aviator_predictor.models.dc_models import (
    AdminAuthResult,
    AdminPasswordModel,
    PromoCodeResult,
    PromoCodeUpdateModel,
)

admin_router = APIRouter(prefix="/api")


class PromoCodeAPI:
    @staticmethod
    @admin_router.get("/get-promo-code", response_model=PromoCodeResult)
    @admin_router.get("/promo-code", response_model=PromoCodeResult)
    async def get_promo_code(
        controller: PredictorController = Depends(get_controller),
    ) -> PromoCodeResult:
        """Always 200: on a store failure the default code is sent with success=false."""
        return await controller.get_code()

    @staticmethod
    @admin_router.post("/set-promo-code", response_model=PromoCodeResult, response_model_exclude_none=True)
    @admin_router.post("/promo-code", response_model=PromoCodeResult, response_model_exclude_none=True)
    async def set_promo_code(
        body: PromoCodeUpdateModel,
        response: Response,
        controller: PredictorController = Depends(get_controller),
    ) -> PromoCodeResult:
        result = await controller.set_code(body.promo_code, body.password)
        if result.error == ErrorKind.upstream_error:
            response.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        else:
            response.status_code = status_for(result.error)
        return result


class AdminAPI:
    @staticmethod
    @admin_router.post("/verify-admin", response_model=AdminAuthResult, response_model_exclude_none=True)
    async def verify_admin(
        body: AdminPasswordModel,
        response: Response,
        controller: PredictorController = Depends(get_controller),
    ) -> AdminAuthResult:
        result = controller.verify_admin(body.password)
        response.status_code = status_for(result.error)
        return result
