"""Enumeration types for the order ledger."""

from enum import Enum


class IntentStatus(str, Enum):
    """Status of a checkout intent."""

    CRIADO = "criado"
    PENDENTE = "pendente"
    NAO_APROVADO = "nao_aprovado"
    APROVADO = "aprovado"


class OrderStatus(str, Enum):
    """Status of an order (pedido). Only approved orders are written here."""

    APROVADO = "aprovado"


class GatewayPaymentStatus(int, Enum):
    """Numeric payment status codes sent by the Cielo checkout notification."""

    PENDING = 1
    PAID = 2
    DECLINED = 3
    EXPIRED = 4
    CANCELLED = 5


class WebhookStage(str, Enum):
    """Engine branch that produced an audit entry."""

    NOT_POST = "not-post"
    RECEIVED = "received"
    NO_ORDER_NUMBER = "no-order-number"
    INTENT_MISSING = "intent-missing"
    PENDENTE = "pendente"
    NAO_APROVADO = "nao-aprovado"
    APROVADO = "aprovado"
    ORPHAN = "orphan"
    UNRECOGNIZED_STATUS = "unrecognized-status"
    EXCEPTION = "exception"
