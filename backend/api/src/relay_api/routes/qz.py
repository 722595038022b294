"""QZ Tray certificate and signing endpoints."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse

from relay_api.dependencies import get_certificates, get_signer
from relay_api.models.common import SignResponse
from relay_shared.models.errors import ErrorCode, RelayError
from relay_shared.services.signing import CertificateStore, SigningError, SigningKeyProvider
from relay_shared.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/qz", tags=["qz"])


@router.get("/cert", response_class=PlainTextResponse)
def get_certificate(
    store: CertificateStore = Depends(get_certificates),
) -> PlainTextResponse:
    """Serve the public certificate QZ Tray uses to verify signatures."""
    try:
        cert = store.get_certificate()
    except OSError as e:
        logger.error("Certificate not readable: %s", e)
        raise RelayError(ErrorCode.CERTIFICATE_NOT_FOUND, details={"message": str(e)}) from e
    return PlainTextResponse(cert)


@router.post("/sign", response_model=SignResponse)
async def sign_request(
    request: Request,
    signer: SigningKeyProvider = Depends(get_signer),
) -> SignResponse:
    """Sign a QZ Tray request string with the merchant's private key."""
    try:
        body = await request.json()
    except ValueError:
        body = None

    message = body.get("request") if isinstance(body, dict) else None
    if not isinstance(message, str) or not message:
        raise RelayError(ErrorCode.BAD_SIGN_REQUEST, details={"message": "`request` inválido"})

    try:
        signature = signer.sign(message)
    except (SigningError, ValueError, TypeError) as e:
        logger.error("Signing failed: %s", e)
        raise RelayError(ErrorCode.SIGNING_FAILED, details={"message": str(e)}) from e

    return SignResponse(signature=signature)
