"""Cielo checkout order creation.

Shapes a storefront cart into the Cielo "public orders" payload and posts
it to the gateway. Every HTTP status from Cielo is returned as data so the
API layer can relay it unchanged.
"""

import os
import re
import time
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field

from relay_shared.models.errors import ErrorCode, RelayError
from relay_shared.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CIELO_BASE = "https://cieloecommerce.cielo.com.br"
ORDERS_PATH = "/api/public/v1/orders"
GATEWAY_TIMEOUT_SECONDS = 20.0
DEFAULT_SOFT_DESCRIPTOR = "Nomefantasia"
SOFT_DESCRIPTOR_MAX_LENGTH = 20


def to_cents(value: Any) -> int:
    """Convert a price to integer cents.

    Strings use Brazilian formatting ("1.234,56"). Integers of 100 or more
    are taken as already in cents; other numbers are major units.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, str):
        text = value.replace(".", "").replace(",", ".").strip()
        try:
            amount = Decimal(text)
        except InvalidOperation:
            return 0
        if not amount.is_finite():
            return 0
        return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    if isinstance(value, int):
        return value if value >= 100 else value * 100
    if isinstance(value, (float, Decimal)):
        amount = Decimal(str(value))
        if amount == amount.to_integral_value() and amount >= 100:
            return int(amount)
        return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return 0


def ensure_order_number(value: Any) -> str:
    """Strip whitespace from an order number, or generate PED<millis>."""
    if isinstance(value, str) and value.strip():
        number = value
    else:
        number = f"PED{int(time.time() * 1000)}"
    return re.sub(r"\s+", "", number)


def ensure_soft_descriptor(value: Any) -> str:
    """Alphanumeric descriptor of at most 20 characters."""
    cleaned = re.sub(r"[^a-zA-Z0-9]", "", str(value or DEFAULT_SOFT_DESCRIPTOR))
    return cleaned[:SOFT_DESCRIPTOR_MAX_LENGTH] or DEFAULT_SOFT_DESCRIPTOR


def _number(value: Any, default: float = 0) -> float | int:
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return default
    return int(parsed) if parsed.is_integer() else parsed


def looks_like_cielo_payload(body: Any) -> bool:
    """True when the body is already in Cielo's Cart.Items shape."""
    cart = body.get("Cart") if isinstance(body, dict) else None
    if not isinstance(cart, dict):
        return False
    items = cart.get("Items")
    if not isinstance(items, list) or not items or not isinstance(items[0], dict):
        return False
    return bool(items[0].get("Name"))


def map_storefront_items(items: list[Any]) -> list[dict[str, Any]]:
    """Map storefront cart items (prices in reais) to Cielo items (cents)."""
    mapped: list[dict[str, Any]] = []
    for p in items or []:
        p = p if isinstance(p, dict) else {}
        mapped.append(
            {
                "Name": p.get("nome") or p.get("name") or "Produto",
                "Description": p.get("descricao") or p.get("description") or "Item",
                "UnitPrice": to_cents(p.get("preco", p.get("price", 0))),
                "Quantity": _number(p.get("quantidade", p.get("quantity", 1)), 1) or 1,
                "Type": p.get("type") or "Asset",
                "Sku": str(p.get("id") or p.get("sku") or "SKU"),
                "Weight": _number(p.get("peso", p.get("weight", 0))),
            }
        )
    return mapped


def _shipping_block(shipping: Any) -> dict[str, Any]:
    shipping = shipping if isinstance(shipping, dict) else {}
    block = {
        "Type": shipping.get("Type") or "FixedAmount",
        "Price": to_cents(shipping.get("Price", 0)),
        "SourceZipCode": shipping.get("SourceZipCode"),
        "TargetZipCode": shipping.get("TargetZipCode"),
        "Services": shipping.get("Services"),
        "Address": shipping.get("Address"),
    }
    return {k: v for k, v in block.items() if v is not None}


def build_gateway_order(body: dict[str, Any]) -> dict[str, Any]:
    """Build the Cielo order payload from either supported request shape.

    Raises:
        RelayError: INVALID_UNIT_PRICE if any item costs less than one cent
    """
    if looks_like_cielo_payload(body):
        cart = body["Cart"]
        discount = cart.get("Discount") if isinstance(cart.get("Discount"), dict) else {}
        payload: dict[str, Any] = {
            "OrderNumber": ensure_order_number(body.get("OrderNumber")),
            "SoftDescriptor": ensure_soft_descriptor(body.get("SoftDescriptor")),
            "Cart": {
                "Discount": {
                    "Type": discount.get("Type") or "Percent",
                    "Value": _number(discount.get("Value", 0)),
                },
                "Items": [
                    {
                        "Name": it.get("Name"),
                        "Description": it.get("Description"),
                        "UnitPrice": to_cents(it.get("UnitPrice")),
                        "Quantity": _number(it.get("Quantity") or 1, 1),
                        "Type": it.get("Type") or "Asset",
                        "Sku": str(it.get("Sku") or "SKU"),
                        "Weight": _number(it.get("Weight") or 0),
                    }
                    for it in cart["Items"]
                    if isinstance(it, dict)
                ],
            },
            "Shipping": _shipping_block(body.get("Shipping")),
        }
        customer = body.get("Customer")
    else:
        cart = body.get("cart") if isinstance(body.get("cart"), dict) else {}
        front_items = cart.get("items") or body.get("items") or body.get("itens") or []
        payload = {
            "OrderNumber": ensure_order_number(body.get("orderNumber")),
            "SoftDescriptor": ensure_soft_descriptor(body.get("softDescriptor")),
            "Cart": {
                "Discount": {"Type": "Percent", "Value": 0},
                "Items": map_storefront_items(front_items),
            },
            "Shipping": _shipping_block(body.get("shipping")),
        }
        customer = body.get("customer")

    if customer:
        payload["Customer"] = customer

    if any(not item["UnitPrice"] or item["UnitPrice"] < 1 for item in payload["Cart"]["Items"]):
        raise RelayError(ErrorCode.INVALID_UNIT_PRICE)

    return payload


class GatewayResponse(BaseModel):
    """Status and body returned by Cielo; body is JSON when parseable."""

    model_config = ConfigDict(frozen=True)

    status_code: int = Field(..., description="HTTP status returned by Cielo")
    body: Any = Field(default=None, description="Parsed JSON, or the raw text")

    @property
    def ok(self) -> bool:
        return self.status_code in (200, 201)


class CieloCheckoutClient:
    """Client for the Cielo checkout order endpoint.

    Usage:
        client = CieloCheckoutClient()
        result = await client.create_order(build_gateway_order(body))
    """

    def __init__(
        self,
        merchant_id: str | None = None,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            merchant_id: Cielo MerchantId. Defaults to CIELO_MERCHANT_ID env var.
            base_url: Gateway base URL. Defaults to CIELO_BASE env var.
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.merchant_id = merchant_id or os.getenv("CIELO_MERCHANT_ID")
        self.base_url = (base_url or os.getenv("CIELO_BASE") or DEFAULT_CIELO_BASE).rstrip("/")
        self._transport = transport

    async def create_order(self, payload: dict[str, Any]) -> GatewayResponse:
        """Post an order to Cielo.

        Args:
            payload: Order built by build_gateway_order()

        Returns:
            GatewayResponse with Cielo's status code and body

        Raises:
            RelayError: MERCHANT_NOT_CONFIGURED when no merchant id is set
            httpx.HTTPError: on transport failures (timeouts, DNS, ...)
        """
        if not self.merchant_id:
            raise RelayError(ErrorCode.MERCHANT_NOT_CONFIGURED)

        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=GATEWAY_TIMEOUT_SECONDS,
            transport=self._transport,
        ) as client:
            response = await client.post(
                ORDERS_PATH,
                json=payload,
                headers={
                    "Accept": "application/json",
                    "Content-Type": "application/json",
                    "MerchantId": self.merchant_id,
                },
            )

        logger.info(
            "Cielo order %s answered %s", payload.get("OrderNumber"), response.status_code
        )

        body: Any = response.text
        if body:
            try:
                body = response.json()
            except ValueError:
                pass
        return GatewayResponse(status_code=response.status_code, body=body)
