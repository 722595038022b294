"""Checkout proxy endpoints.

Forwards storefront carts to Cielo's order API and relays Cielo's answer
(status code and body) back to the storefront.
"""

from typing import Any

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response

from relay_api.dependencies import get_checkout_client
from relay_api.models.common import CheckoutHealthResponse
from relay_shared.models.errors import ErrorCode, RelayError
from relay_shared.services.cielo_checkout import CieloCheckoutClient, build_gateway_order
from relay_shared.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["checkout"])


async def _json_body(request: Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


@router.post(
    "/checkout",
    summary="Create a Cielo checkout order",
    description="""
Accepts either a Cielo-shaped order (`Cart.Items[].Name`) or a storefront
cart (`cart.items`, `items` or `itens`, prices in reais) and creates the
order at Cielo. Cielo's status code and body are relayed as-is.
""",
)
async def create_checkout(
    request: Request,
    client: CieloCheckoutClient = Depends(get_checkout_client),
) -> Response:
    """Proxy a checkout order to Cielo."""
    if not client.merchant_id:
        raise RelayError(ErrorCode.MERCHANT_NOT_CONFIGURED)

    payload = build_gateway_order(await _json_body(request))

    try:
        result = await client.create_order(payload)
    except httpx.HTTPError as e:
        logger.error("Cielo checkout request failed: %s", e)
        raise RelayError(
            ErrorCode.GATEWAY_PROXY_ERROR,
            details={"message": str(e) or type(e).__name__},
        ) from e

    if result.ok:
        if isinstance(result.body, str):
            return Response(
                content=result.body,
                status_code=result.status_code,
                media_type="application/json",
            )
        return JSONResponse(status_code=result.status_code, content=result.body)

    logger.warning("Cielo rejected order %s: %s", payload["OrderNumber"], result.status_code)
    content = (
        result.body
        if isinstance(result.body, (dict, list))
        else {"error": "Cielo error", "raw": result.body}
    )
    return JSONResponse(status_code=result.status_code, content=content)


@router.get("/checkout/health", response_model=CheckoutHealthResponse)
async def checkout_health(
    client: CieloCheckoutClient = Depends(get_checkout_client),
) -> CheckoutHealthResponse:
    """Report the gateway base URL in use."""
    return CheckoutHealthResponse(base=client.base_url)
