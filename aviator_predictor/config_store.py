import logging
import secrets
from typing import Any, Callable, Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from aviator_predictor.domain.messages import message_text
from aviator_predictor.errors import ErrorKind
from aviator_predictor.load_secrets import get_admin_password
from aviator_predictor.models.dc_models import AdminAuthResult, PromoCodeResult

PROMO_CODE_KEY = "app_config:promo_code"
DEFAULT_PROMO_CODE = "OGGY"
MIN_PROMO_CODE_LENGTH = 3


class PromoConfigStore:
    """Single promotional code kept under one Redis key.

    Reads are public and always produce a code. Writes are gated by the admin
    password and are last-write-wins.
    """

    def __init__(
        self,
        redis: Redis,
        admin_password_getter: Callable[[], Optional[str]] = get_admin_password,
    ):
        self.redis: Redis = redis
        self.admin_password_getter = admin_password_getter

    async def get_code(self) -> PromoCodeResult:
        """Read the current promo code

        A store failure is not surfaced to the caller: the default code is
        returned with success=False and the failure is logged.

        Returns:
            PromoCodeResult: current code or DEFAULT_PROMO_CODE
        """
        try:
            promo_code = await self.redis.get(PROMO_CODE_KEY)
        except (RedisError, OSError) as e:
            logging.error(f"[GET PROMO CODE ERROR]: {e}")
            return PromoCodeResult(
                success=False,
                promo_code=DEFAULT_PROMO_CODE,
                message=message_text("promoCodeReadFailed"),
            )
        return PromoCodeResult(success=True, promo_code=promo_code or DEFAULT_PROMO_CODE)

    def check_credential(self, credential: Optional[str]) -> AdminAuthResult:
        """Check the admin password. Not counted, not rate limited."""
        admin_password = self.admin_password_getter()
        if not admin_password:
            logging.error("ADMIN_PASSWORD is not set")
            return AdminAuthResult(
                success=False,
                error=ErrorKind.config_error,
                message=message_text("adminNotConfigured"),
            )
        if credential is None or not secrets.compare_digest(
            credential.encode(), admin_password.encode()
        ):
            logging.warning("Rejected admin credential")
            return AdminAuthResult(
                success=False,
                error=ErrorKind.auth_error,
                message=message_text("incorrectAdminPassword"),
            )
        return AdminAuthResult(success=True)

    async def set_code(self, candidate: Any, credential: Optional[str]) -> PromoCodeResult:
        """Replace the promo code

        Args:
            candidate (Any): New code; trimmed and upper-cased before saving
            credential (Optional[str]): Admin password

        Returns:
            PromoCodeResult: normalized code on success, otherwise the first
                failing check (config, auth, validation, store)
        """
        auth = self.check_credential(credential)
        if not auth.success:
            return PromoCodeResult(success=False, error=auth.error, message=auth.message)

        if not isinstance(candidate, str) or len(candidate.strip()) < MIN_PROMO_CODE_LENGTH:
            return PromoCodeResult(
                success=False,
                error=ErrorKind.validation_error,
                message=message_text("promoCodeTooShort"),
            )

        promo_code = candidate.strip().upper()
        try:
            await self.redis.set(PROMO_CODE_KEY, promo_code)
        except (RedisError, OSError) as e:
            logging.error(f"[SET PROMO CODE ERROR]: {e}")
            return PromoCodeResult(
                success=False,
                error=ErrorKind.upstream_error,
                message=message_text("promoCodeSaveFailed"),
            )
        logging.info(f"Promo code updated to {promo_code}")
        return PromoCodeResult(
            success=True,
            promo_code=promo_code,
            message=f"Promo code successfully updated to: {promo_code}",
        )
