"""Order (pedido) model written by the reconciliation engine."""

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .enums import OrderStatus


class OrderItem(BaseModel):
    """One line item of an order, prices in major currency units."""

    model_config = ConfigDict(populate_by_name=True)

    nome: str = Field(..., description="Item name")
    quantidade: int = Field(default=1, ge=0)
    preco: Decimal = Field(..., description="Unit price in major units (BRL)")
    tamanho: str = Field(default="unico")
    observacao: str = Field(default="")
    adicionais: list[Any] = Field(default_factory=list)
    sku: str | None = Field(default=None)


class PaymentRecord(BaseModel):
    """The pagamento sub-record of an order."""

    model_config = ConfigDict(populate_by_name=True)

    provedor: str = Field(default="online")
    gateway: str = Field(default="cielo")
    order_number: str = Field(..., alias="orderNumber")
    raw: dict[str, Any] = Field(default_factory=dict, description="Normalized notification")
    status: int | None = Field(default=None, description="Numeric gateway status")
    last_notification: str = Field(..., alias="lastNotification")


class Order(BaseModel):
    """Durable customer-facing record of an approved transaction.

    At most one order exists per (orderNumber, dateKey).
    """

    model_config = ConfigDict(populate_by_name=True)

    pedido_id: str = Field(..., description="Primary key: {orderNumber}#{dateKey}")
    order_number: str = Field(..., alias="orderNumber")
    date_key: str = Field(..., alias="dateKey", description="YYYY-MM-DD in the reference timezone")
    itens: list[OrderItem] = Field(default_factory=list)
    itens_count: int = Field(default=0, alias="itensCount")
    total: Decimal = Field(default=Decimal("0"))
    status: OrderStatus = Field(default=OrderStatus.APROVADO)
    tipo_servico: str = Field(default="Online", alias="tipoServico")
    pagamento: PaymentRecord
    created_at: str | None = Field(default=None, alias="createdAt")
    updated_at: str = Field(..., alias="updatedAt")
    extras: dict[str, Any] = Field(
        default_factory=dict,
        exclude=True,
        description="Optional intent metadata copied verbatim (scheduling, customer)",
    )

    def to_item(self) -> dict[str, Any]:
        """Serialize to a DynamoDB item using ledger field names."""
        item = self.model_dump(mode="python", by_alias=True, exclude_none=True)
        item["status"] = self.status.value
        item.update(self.extras)
        return item
