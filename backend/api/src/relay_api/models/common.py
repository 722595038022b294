"""Shared API response models."""

from pydantic import BaseModel, ConfigDict, Field

from relay_shared.models.errors import ErrorCode, ErrorResponse

__all__ = [
    "CheckoutHealthResponse",
    "ErrorCode",
    "ErrorResponse",
    "HealthResponse",
    "SignResponse",
]


class HealthResponse(BaseModel):
    """Liveness response."""

    ok: bool = True


class CheckoutHealthResponse(BaseModel):
    """Checkout proxy liveness, with the configured gateway base URL."""

    ok: bool = True
    base: str = Field(..., examples=["https://cieloecommerce.cielo.com.br"])


class SignResponse(BaseModel):
    """Signature for a QZ Tray print request."""

    model_config = ConfigDict(strict=True)

    signature: str = Field(..., description="Base64 RSA-SHA256 signature")
