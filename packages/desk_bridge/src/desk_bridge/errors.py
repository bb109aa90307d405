"""
Bridge Errors

Error taxonomy shared by the desk client, the messaging gateway and the
dispatchers. None of these are retried by the bridge itself.
"""

from typing import Any


class BridgeError(Exception):
    """Base error for the bridge."""

    code = "BRIDGE_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        if code:
            self.code = code
        self.details = details or {}


class ValidationError(BridgeError):
    """Empty or unparseable phone, peer id or tenant id."""

    code = "VALIDATION_ERROR"


class NotFoundError(BridgeError):
    """Unknown tenant, inbox, contact or conversation."""

    code = "NOT_FOUND"


class UpstreamError(BridgeError):
    """Non-2xx from the desk API, or a messaging capability failure."""

    code = "UPSTREAM_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message, code=code, details=details)
        self.status_code = status_code


class TransientInfraError(BridgeError):
    """Dedup store unreachable. Callers degrade instead of aborting."""

    code = "TRANSIENT_INFRA"
