import logging
from typing import Any

import httpx
from pydantic import BaseModel

from aviator_predictor.errors import UpstreamError
from aviator_predictor.load_secrets import (
    affiliate_link_url,
    use_prediction_url,
    verify_user_url,
)
from aviator_predictor.models.dc_models import VerificationOutcome, VerificationStatus
from aviator_predictor.models.gateway_models import (
    AffiliateLinkResponseModel,
    UsageResponseModel,
    VerificationResponseModel,
)

STATUS_MAP = {
    "NEEDS_DEPOSIT": VerificationStatus.needs_deposit,
    "NEEDS_REDEPOSIT": VerificationStatus.needs_redeposit,
    "NOT_REGISTERED": VerificationStatus.not_registered,
    "INVALID_ID": VerificationStatus.invalid_identity,
    "SERVER_ERROR": VerificationStatus.server_error,
}


class ExternalApiClient:
    """Base class for the JSON endpoints of the player backend.

    The backend answers failures with a JSON body as well, so the status code is
    not checked: any body that matches the response model is returned. Only
    transport errors and unparsable bodies raise UpstreamError.
    """

    service_name = "external"

    def __init__(self, client: httpx.AsyncClient, url: str):
        self.client: httpx.AsyncClient = client
        self.url: str = url

    async def _request(self, method: str, model: type[BaseModel], payload: dict | None = None) -> Any:
        try:
            response = await self.client.request(method, self.url, json=payload)
            data = response.json()
            return model.model_validate(data)
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            logging.error(f"{self.service_name} request to {self.url} failed: {e}")
            raise UpstreamError(self.service_name, str(e)) from e


class VerificationGateway(ExternalApiClient):
    service_name = "verification"

    def __init__(self, client: httpx.AsyncClient, url: str = verify_user_url):
        super().__init__(client, url)

    async def verify(self, identity: str) -> VerificationOutcome:
        """Ask the backend whether the player may use the predictor

        Args:
            identity (str): Player ID exactly as entered

        Raises:
            UpstreamError: The backend could not be reached or sent garbage

        Returns:
            VerificationOutcome: Normalized outcome
        """
        raw: VerificationResponseModel = await self._request(
            "POST", VerificationResponseModel, {"playerId": identity}
        )
        outcome = normalize_verification(raw)
        logging.info(f"Verification of {identity!r}: {outcome.status.value}")
        return outcome


class UsageTracker(ExternalApiClient):
    service_name = "usage"

    def __init__(self, client: httpx.AsyncClient, url: str = use_prediction_url):
        super().__init__(client, url)

    async def consume_one(self, identity: str) -> UsageResponseModel:
        return await self._request("POST", UsageResponseModel, {"playerId": identity})


class AffiliateLinkProvider(ExternalApiClient):
    service_name = "affiliate"

    def __init__(self, client: httpx.AsyncClient, url: str = affiliate_link_url):
        super().__init__(client, url)

    async def get_link(self) -> AffiliateLinkResponseModel:
        return await self._request("GET", AffiliateLinkResponseModel)


def normalize_verification(raw: VerificationResponseModel) -> VerificationOutcome:
    """Turn a raw backend answer into exactly one outcome tag."""
    if raw.success and raw.predictions_left is not None:
        return VerificationOutcome(
            status=VerificationStatus.allowed,
            predictions_left=max(raw.predictions_left, 0),
            message=raw.message,
            reported_success=True,
        )
    status = STATUS_MAP.get(raw.status or "", VerificationStatus.unknown)
    return VerificationOutcome(
        status=status, message=raw.message, reported_success=raw.success
    )
