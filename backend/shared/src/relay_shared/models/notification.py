"""Normalized view of an inbound payment notification."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class PaymentClassification(BaseModel):
    """Interpretation of the payment status carried by a notification."""

    model_config = ConfigDict(frozen=True)

    code: int | None = Field(
        default=None,
        description="Numeric gateway status (1..5) when present",
        examples=[2],
    )
    raw_text: str = Field(
        default="",
        description="Status value as received, stringified",
        examples=["2", "Paid"],
    )
    is_paid: bool = Field(default=False, description="True when the payment is captured")
    reason_tag: str = Field(
        default="unknown",
        description="pendente, pago, negado, expirado, cancelado, text:<value> or unknown",
        examples=["pago", "text:authorized"],
    )


class NormalizedNotification(BaseModel):
    """A decoded notification body plus its two semantic fields."""

    payload: dict[str, Any] = Field(
        default_factory=dict, description="Canonical key-value mapping of the body"
    )
    raw_text: str = Field(default="", description="Body text as received, for audit")
    order_number: str = Field(
        default="", description="Order identifier; empty when none could be found"
    )
    classification: PaymentClassification = Field(
        default_factory=PaymentClassification
    )
