"""Checkout intent model."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .enums import IntentStatus


class CheckoutIntent(BaseModel):
    """A shopper's declared order, stored before redirecting to the gateway.

    Created by the storefront checkout flow; only the reconciliation engine
    changes its status. Unknown attributes (scheduling, customer data) are
    kept as extras.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    intent_id: str = Field(..., description="Primary key")
    order_number: str = Field(..., alias="orderNumber")
    itens: list[Any] = Field(default_factory=list)
    total: Any = Field(default=0, description="Currency amount in major units")
    tipo_servico: str | None = Field(default=None, alias="tipoServico")
    status: IntentStatus | str = Field(default=IntentStatus.CRIADO)
    last_notification: str | None = Field(default=None, alias="lastNotification")
    last_payload: dict[str, Any] | None = Field(default=None, alias="lastPayload")

    @classmethod
    def from_item(cls, item: dict[str, Any]) -> "CheckoutIntent":
        """Build an intent from a raw DynamoDB item."""
        return cls.model_validate(item)

    def extra_fields(self) -> dict[str, Any]:
        """Attributes stored on the intent that have no declared field."""
        return dict(self.model_extra or {})
