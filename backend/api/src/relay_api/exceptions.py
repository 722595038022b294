"""FastAPI exception handlers for converting RelayError to HTTP responses.

The ErrorCode-to-HTTP status mapping:
- 400 Bad Request: invalid checkout items or sign requests
- 500 Internal Server Error: missing configuration, key or certificate

Usage:
    from relay_api.exceptions import register_exception_handlers
    register_exception_handlers(app)
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.status import HTTP_400_BAD_REQUEST, HTTP_500_INTERNAL_SERVER_ERROR

from relay_shared.models.errors import ErrorCode, RelayError

# Map ErrorCode to HTTP status codes
ERROR_CODE_TO_HTTP_STATUS: dict[ErrorCode, int] = {
    ErrorCode.INVALID_UNIT_PRICE: HTTP_400_BAD_REQUEST,
    ErrorCode.BAD_SIGN_REQUEST: HTTP_400_BAD_REQUEST,
    ErrorCode.MERCHANT_NOT_CONFIGURED: HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.GATEWAY_PROXY_ERROR: HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.SIGNING_FAILED: HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.CERTIFICATE_NOT_FOUND: HTTP_500_INTERNAL_SERVER_ERROR,
}


def get_http_status_for_error(code: ErrorCode) -> int:
    """Get HTTP status code for an ErrorCode, defaulting to 400."""
    return ERROR_CODE_TO_HTTP_STATUS.get(code, HTTP_400_BAD_REQUEST)


async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    """Handle RelayError exceptions and convert to JSON response.

    Args:
        request: The incoming request (unused but required by FastAPI)
        exc: The RelayError exception

    Returns:
        JSONResponse with error details and appropriate status code.
    """
    return JSONResponse(
        status_code=get_http_status_for_error(exc.code),
        content=exc.to_error_response().model_dump(mode="json"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app.

    Args:
        app: The FastAPI application instance.
    """
    app.add_exception_handler(RelayError, relay_error_handler)  # type: ignore[arg-type]
