"""Standard error codes for the relay HTTP endpoints.

The webhook endpoint never surfaces these; they are used by the checkout
proxy and the print-signing endpoints.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class ErrorCode(str, Enum):
    """Standard error codes."""

    # Checkout proxy
    MERCHANT_NOT_CONFIGURED = "ERR_CHECKOUT_001"
    INVALID_UNIT_PRICE = "ERR_CHECKOUT_002"
    GATEWAY_PROXY_ERROR = "ERR_CHECKOUT_003"

    # Print signing
    BAD_SIGN_REQUEST = "ERR_QZ_001"
    SIGNING_FAILED = "ERR_QZ_002"
    CERTIFICATE_NOT_FOUND = "ERR_QZ_003"


# Human-readable error messages
ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.MERCHANT_NOT_CONFIGURED: "CIELO_MERCHANT_ID não configurado",
    ErrorCode.INVALID_UNIT_PRICE: "UnitPrice inválido (centavos >= 1).",
    ErrorCode.GATEWAY_PROXY_ERROR: "Proxy error",
    ErrorCode.BAD_SIGN_REQUEST: "bad-request",
    ErrorCode.SIGNING_FAILED: "sign-error",
    ErrorCode.CERTIFICATE_NOT_FOUND: "cert-not-found",
}


class ErrorResponse(BaseModel):
    """Standard JSON body for failed requests."""

    model_config = ConfigDict(strict=True)

    success: bool = False
    error_code: ErrorCode
    message: str
    details: Optional[dict[str, Any]] = None

    @classmethod
    def from_code(
        cls,
        code: ErrorCode,
        details: Optional[dict[str, Any]] = None,
    ) -> "ErrorResponse":
        """Create an ErrorResponse from an error code.

        Args:
            code: The error code
            details: Optional additional context about the error

        Returns:
            An ErrorResponse carrying the message for the code.
        """
        return cls(error_code=code, message=ERROR_MESSAGES[code], details=details)


class RelayError(Exception):
    """Exception raised by relay operations.

    Converted to an ErrorResponse by the API exception handlers.
    """

    def __init__(
        self,
        code: ErrorCode,
        details: Optional[dict[str, Any]] = None,
    ):
        self.code = code
        self.message = ERROR_MESSAGES[code]
        self.details = details
        super().__init__(self.message)

    def to_error_response(self) -> ErrorResponse:
        """Convert this exception to an ErrorResponse."""
        return ErrorResponse.from_code(self.code, self.details)
