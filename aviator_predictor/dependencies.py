from fastapi import Request, status

from aviator_predictor.errors import ErrorKind
from aviator_predictor.manager import PredictorController

ERROR_STATUS = {
    ErrorKind.validation_error: status.HTTP_400_BAD_REQUEST,
    ErrorKind.auth_error: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.quota_exceeded: status.HTTP_403_FORBIDDEN,
    ErrorKind.not_found: status.HTTP_404_NOT_FOUND,
    ErrorKind.state_conflict: status.HTTP_409_CONFLICT,
    ErrorKind.config_error: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.upstream_error: status.HTTP_502_BAD_GATEWAY,
}


def get_controller(request: Request) -> PredictorController:
    return request.app.state.controller


def status_for(error: ErrorKind | None) -> int:
    if error is None:
        return status.HTTP_200_OK
    return ERROR_STATUS[error]
