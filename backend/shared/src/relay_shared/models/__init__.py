"""Pydantic models for the checkout relay ledger."""

from .enums import GatewayPaymentStatus, IntentStatus, OrderStatus, WebhookStage
from .errors import ErrorCode, ErrorResponse, RelayError
from .intent import CheckoutIntent
from .notification import NormalizedNotification, PaymentClassification
from .order import Order, OrderItem, PaymentRecord
from .webhook import AuditWriteResult, WebhookAck, WebhookLogEntry, WebhookOrphan

__all__ = [
    "AuditWriteResult",
    "CheckoutIntent",
    "ErrorCode",
    "ErrorResponse",
    "GatewayPaymentStatus",
    "IntentStatus",
    "NormalizedNotification",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentClassification",
    "PaymentRecord",
    "RelayError",
    "WebhookAck",
    "WebhookLogEntry",
    "WebhookOrphan",
    "WebhookStage",
]
