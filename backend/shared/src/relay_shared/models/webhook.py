"""Audit, orphan and acknowledgement models for the webhook endpoint."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class WebhookLogEntry(BaseModel):
    """One append-only audit record of a received notification."""

    stage: str = Field(..., description="Engine branch that produced the entry")
    order_number: str | None = Field(default=None)
    headers: dict[str, str] = Field(default_factory=dict)
    classification: dict[str, Any] | None = Field(default=None)
    payload_sample: str = Field(default="", description="Truncated raw body")
    correlation_id: str | None = Field(default=None)
    error: str | None = Field(default=None)
    details: dict[str, Any] | None = Field(default=None)


class AuditWriteResult(BaseModel):
    """Outcome of an audit write. Callers may ignore the error variant."""

    model_config = ConfigDict(frozen=True)

    ok: bool
    log_id: str | None = None
    error: str | None = None


class WebhookOrphan(BaseModel):
    """Approved payment whose order number matched no checkout intent."""

    orphan_id: str
    order_number: str = Field(..., alias="orderNumber")
    status_code: int | None = Field(default=None, alias="statusCode")
    reason: str
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: str = Field(..., alias="createdAt")

    model_config = ConfigDict(populate_by_name=True)


class WebhookAck(BaseModel):
    """Acknowledgement returned to the gateway (always with HTTP 200)."""

    ok: bool
    processed: bool | None = None
    approved: bool | None = None
    pending: bool | None = None
    ignored: bool | None = None
    reason: str | None = None
    error: str | None = None
