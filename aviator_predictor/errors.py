from enum import Enum


class ErrorKind(str, Enum):
    validation_error = "validation_error"  # malformed input, e.g. short promo code
    auth_error = "auth_error"  # wrong admin credential
    config_error = "config_error"  # server missing a required secret
    not_found = "not_found"  # identity or session not recognized
    quota_exceeded = "quota_exceeded"
    upstream_error = "upstream_error"  # gateway/store transport failure
    state_conflict = "state_conflict"  # round in the wrong phase


class UpstreamError(Exception):
    """Raised by the adapters when an external collaborator cannot be reached
    or answers with something that cannot be parsed.
    """

    def __init__(self, service: str, detail: str):
        super().__init__(f"{service}: {detail}")
        self.service = service
        self.detail = detail
