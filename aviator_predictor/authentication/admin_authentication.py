from typing import Optional

from aviator_predictor.config_store import PromoConfigStore
from aviator_predictor.domain.messages import message_text
from aviator_predictor.errors import ErrorKind
from aviator_predictor.models.dc_models import AdminAuthResult


class AdminAuthentication:
    """One-shot admin password challenge in front of the admin tools.

    Failures are reported as they happen: no retry count, no backoff.
    """

    def __init__(self, config_store: PromoConfigStore):
        self.config_store = config_store

    def verify(self, credential: Optional[str]) -> AdminAuthResult:
        if not credential:
            return AdminAuthResult(
                success=False,
                error=ErrorKind.validation_error,
                message=message_text("passwordRequired"),
            )
        return self.config_store.check_credential(credential)
