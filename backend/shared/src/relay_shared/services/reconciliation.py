"""Reconciliation of Cielo payment notifications against checkout intents.

Business logic for the webhook endpoint, separate from HTTP routing:

1. Normalize the body and extract order number and payment status.
2. Look up the checkout intent and stamp it with the notification.
3. Move the intent to pendente / nao_aprovado / aprovado.
4. On approval, upsert exactly one order per (orderNumber, dateKey).

Every stage is written to the audit log. handle() never raises: the gateway
always gets an acknowledgement so it does not escalate its own retries.
"""

import datetime as dt
import os
from collections.abc import Callable, Mapping
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any
from zoneinfo import ZoneInfo

from relay_shared.models.enums import GatewayPaymentStatus, IntentStatus, WebhookStage
from relay_shared.models.intent import CheckoutIntent
from relay_shared.models.notification import NormalizedNotification
from relay_shared.models.order import Order, OrderItem, PaymentRecord
from relay_shared.models.webhook import WebhookAck
from relay_shared.utils.logging import get_logger

from .audit_logger import AuditLogger
from .intent_repository import IntentRepository
from .order_repository import OrderRepository, order_key
from .orphan_repository import OrphanRepository
from .payload_normalizer import normalize_notification

if TYPE_CHECKING:
    from .dynamodb import DynamoDBService

logger = get_logger(__name__)

DEFAULT_REFERENCE_TIMEZONE = "America/Sao_Paulo"

DECLINED_CODES = frozenset(
    {
        GatewayPaymentStatus.DECLINED.value,
        GatewayPaymentStatus.EXPIRED.value,
        GatewayPaymentStatus.CANCELLED.value,
    }
)

INTENT_NOT_FOUND = "intent-not-found"

# Line item aliases, in priority order
ITEM_NAME_FIELDS = ("nome", "name", "Name")
ITEM_QUANTITY_FIELDS = ("quantidade", "quantity", "Quantity")
ITEM_MAJOR_PRICE_FIELDS = ("preco", "price", "valor")
ITEM_MINOR_PRICE_FIELDS = ("UnitPrice", "unitPrice", "precoCentavos", "priceCents")
ITEM_SIZE_FIELDS = ("tamanho", "size")
ITEM_NOTE_FIELDS = ("observacao", "obs", "note")
ITEM_EXTRAS_FIELDS = ("adicionais", "extras")
ITEM_SKU_FIELDS = ("sku", "Sku", "id")

DEFAULT_ITEM_NAME = "Produto"
DEFAULT_ITEM_SIZE = "unico"
DEFAULT_SERVICE_TYPE = "Online"

# Optional intent attributes copied onto the order as-is
INTENT_PASSTHROUGH_FIELDS = (
    "agendamento",
    "dataAgendamento",
    "horarioAgendamento",
    "cliente",
    "endereco",
    "entrega",
)


# === Pure helpers ===


def to_decimal(value: Any) -> Decimal | None:
    """Parse a number, numeric string or Brazilian-formatted string ("1,50")."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, str):
        text = value.strip()
        if "," in text:
            text = text.replace(".", "").replace(",", ".")
        try:
            parsed = Decimal(text)
        except InvalidOperation:
            return None
        return parsed if parsed.is_finite() else None
    return None


def _first_present(item: Mapping[str, Any], fields: tuple[str, ...]) -> Any:
    for name in fields:
        value = item.get(name)
        if value is not None and value != "":
            return value
    return None


def resolve_unit_price(item: Mapping[str, Any]) -> Decimal:
    """Unit price in major units.

    A positive major-unit price wins; otherwise the minor-unit price is
    divided by 100.
    """
    major = to_decimal(_first_present(item, ITEM_MAJOR_PRICE_FIELDS))
    if major is not None and major > 0:
        return major
    minor = to_decimal(_first_present(item, ITEM_MINOR_PRICE_FIELDS))
    if minor is not None:
        return minor / 100
    return Decimal("0")


def resolve_quantity(item: Mapping[str, Any]) -> int:
    """Item quantity; 1 when missing, non-numeric or negative."""
    quantity = to_decimal(_first_present(item, ITEM_QUANTITY_FIELDS))
    if quantity is None or quantity < 0:
        return 1
    return int(quantity)


def build_order_items(intent_items: list[Any]) -> list[OrderItem]:
    """Map intent line items to the order item shape."""
    items: list[OrderItem] = []
    for raw in intent_items:
        if not isinstance(raw, Mapping):
            continue
        extras = _first_present(raw, ITEM_EXTRAS_FIELDS)
        sku = _first_present(raw, ITEM_SKU_FIELDS)
        items.append(
            OrderItem(
                nome=str(_first_present(raw, ITEM_NAME_FIELDS) or DEFAULT_ITEM_NAME),
                quantidade=resolve_quantity(raw),
                preco=resolve_unit_price(raw),
                tamanho=str(_first_present(raw, ITEM_SIZE_FIELDS) or DEFAULT_ITEM_SIZE),
                observacao=str(_first_present(raw, ITEM_NOTE_FIELDS) or ""),
                adicionais=list(extras) if isinstance(extras, (list, tuple)) else [],
                sku=str(sku) if sku is not None else None,
            )
        )
    return items


def compute_date_key(now: dt.datetime, tz: ZoneInfo) -> str:
    """Calendar day of `now` in the reference timezone (YYYY-MM-DD)."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=dt.UTC)
    return now.astimezone(tz).date().isoformat()


class _Trail:
    """Where a request got to, for the exception audit entry."""

    def __init__(self) -> None:
        self.stage = WebhookStage.RECEIVED.value
        self.order_number: str | None = None


class ReconciliationEngine:
    """State machine driving intents and orders from gateway notifications.

    Notifications for the same order number are not locked against each
    other; idempotency comes from day-scoped lookup plus a conditional
    insert on the deterministic order key.
    """

    def __init__(
        self,
        db: "DynamoDBService",
        audit: AuditLogger | None = None,
        clock: Callable[[], dt.datetime] | None = None,
        reference_tz: str | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            db: DynamoDB service shared by the repositories
            audit: Audit logger; defaults to one writing through `db`
            clock: Returns the current aware datetime; defaults to UTC now
            reference_tz: IANA zone for day keys; defaults to REFERENCE_TIMEZONE env var
        """
        self.intents = IntentRepository(db)
        self.orders = OrderRepository(db)
        self.orphans = OrphanRepository(db)
        self.audit = audit or AuditLogger(db)
        self._clock = clock or (lambda: dt.datetime.now(dt.UTC))
        self.reference_tz = ZoneInfo(
            reference_tz or os.getenv("REFERENCE_TIMEZONE", DEFAULT_REFERENCE_TIMEZONE)
        )

    def handle(
        self,
        body: Mapping[str, Any] | str | bytes | None,
        headers: Mapping[str, str] | None = None,
        method: str = "POST",
    ) -> WebhookAck:
        """Process one inbound notification and build the acknowledgement.

        Never raises. Unexpected errors are audited and answered with
        ok=False so the sender still receives a success status.

        Args:
            body: Raw body bytes/text, or a mapping parsed upstream
            headers: Request headers (only allow-listed ones are audited)
            method: HTTP method of the request

        Returns:
            WebhookAck for the gateway
        """
        if method.upper() != "POST":
            self.audit.record(WebhookStage.NOT_POST.value, headers=headers, method=method)
            return WebhookAck(ok=True, ignored=True, reason="not-post")

        trail = _Trail()
        try:
            notification = normalize_notification(body)
            trail.order_number = notification.order_number or None
            return self.process(notification, headers, trail)
        except Exception as e:
            logger.exception("Webhook reconciliation failed at stage %s", trail.stage)
            self.audit.record(
                WebhookStage.EXCEPTION.value,
                order_number=trail.order_number,
                headers=headers,
                error=str(e) or type(e).__name__,
                failed_stage=trail.stage,
            )
            return WebhookAck(ok=False, error=str(e) or type(e).__name__)

    def process(
        self,
        notification: NormalizedNotification,
        headers: Mapping[str, str] | None = None,
        trail: _Trail | None = None,
    ) -> WebhookAck:
        """Run the state machine for a normalized notification.

        Raises whatever the store raises; handle() is the catching wrapper.
        """
        trail = trail or _Trail()
        now = self._clock()
        received_at = now.isoformat()
        order_number = notification.order_number
        classification = notification.classification
        audit_classification = classification.model_dump()

        self.audit.record(
            WebhookStage.RECEIVED.value,
            order_number=order_number,
            headers=headers,
            classification=audit_classification,
            payload=notification.raw_text or notification.payload,
        )

        if not order_number:
            self.audit.record(
                WebhookStage.NO_ORDER_NUMBER.value,
                headers=headers,
                classification=audit_classification,
                payload=notification.raw_text or notification.payload,
            )
            return WebhookAck(ok=True, ignored=True, reason="no-order-number")

        trail.stage = "intent-lookup"
        intent = self.intents.find_by_order_number(order_number)
        if intent is not None:
            trail.stage = "record-notification"
            self.intents.record_notification(
                intent.intent_id, notification.payload, received_at
            )

        code = classification.code

        if code == GatewayPaymentStatus.PENDING.value:
            trail.stage = WebhookStage.PENDENTE.value
            return self._set_intent_status(
                intent,
                order_number,
                IntentStatus.PENDENTE,
                WebhookStage.PENDENTE,
                WebhookAck(ok=True, processed=True, pending=True),
                audit_classification,
                received_at,
            )

        if code in DECLINED_CODES:
            trail.stage = WebhookStage.NAO_APROVADO.value
            return self._set_intent_status(
                intent,
                order_number,
                IntentStatus.NAO_APROVADO,
                WebhookStage.NAO_APROVADO,
                WebhookAck(
                    ok=True,
                    processed=True,
                    approved=False,
                    reason=classification.reason_tag,
                ),
                audit_classification,
                received_at,
            )

        if code == GatewayPaymentStatus.PAID.value or classification.is_paid:
            trail.stage = WebhookStage.APROVADO.value
            return self._approve(intent, notification, now, trail)

        self.audit.record(
            WebhookStage.UNRECOGNIZED_STATUS.value,
            order_number=order_number,
            classification=audit_classification,
        )
        return WebhookAck(ok=True, ignored=True, reason="unrecognized-status")

    def _set_intent_status(
        self,
        intent: CheckoutIntent | None,
        order_number: str,
        status: IntentStatus,
        stage: WebhookStage,
        ack: WebhookAck,
        audit_classification: dict[str, Any],
        updated_at: str,
    ) -> WebhookAck:
        if intent is None:
            self.audit.record(
                WebhookStage.INTENT_MISSING.value,
                order_number=order_number,
                classification=audit_classification,
                intended_status=status.value,
            )
            return ack.model_copy(update={"reason": INTENT_NOT_FOUND})

        self.intents.set_status(intent.intent_id, status, updated_at)
        self.audit.record(
            stage.value,
            order_number=order_number,
            classification=audit_classification,
            intent_id=intent.intent_id,
        )
        return ack

    def _approve(
        self,
        intent: CheckoutIntent | None,
        notification: NormalizedNotification,
        now: dt.datetime,
        trail: _Trail,
    ) -> WebhookAck:
        order_number = notification.order_number
        classification = notification.classification
        received_at = now.isoformat()

        if intent is None:
            trail.stage = WebhookStage.ORPHAN.value
            orphan = self.orphans.record(
                order_number, classification, notification.payload, received_at
            )
            self.audit.record(
                WebhookStage.ORPHAN.value,
                order_number=order_number,
                classification=classification.model_dump(),
                orphan_id=orphan.orphan_id,
            )
            return WebhookAck(ok=True, processed=True, approved=True, reason=INTENT_NOT_FOUND)

        trail.stage = "order-upsert"
        order, created = self.upsert_order(intent, notification, now)

        trail.stage = "intent-approve"
        self.intents.set_status(intent.intent_id, IntentStatus.APROVADO, received_at)

        self.audit.record(
            WebhookStage.APROVADO.value,
            order_number=order_number,
            classification=classification.model_dump(),
            pedido_id=order.pedido_id,
            created=created,
        )
        return WebhookAck(ok=True, processed=True, approved=True)

    def build_order(
        self,
        intent: CheckoutIntent,
        notification: NormalizedNotification,
        now: dt.datetime,
        pedido_id: str | None = None,
    ) -> Order:
        """Build the approved order for an intent, without storing it."""
        order_number = notification.order_number
        date_key = compute_date_key(now, self.reference_tz)
        stamped_at = now.isoformat()
        items = build_order_items(intent.itens)
        extras = {
            name: value
            for name, value in intent.extra_fields().items()
            if name in INTENT_PASSTHROUGH_FIELDS and value is not None
        }

        return Order(
            pedido_id=pedido_id or order_key(order_number, date_key),
            order_number=order_number,
            date_key=date_key,
            itens=items,
            itens_count=sum(item.quantidade for item in items),
            total=to_decimal(intent.total) or Decimal("0"),
            tipo_servico=intent.tipo_servico or DEFAULT_SERVICE_TYPE,
            pagamento=PaymentRecord(
                order_number=order_number,
                raw=notification.payload,
                status=notification.classification.code,
                last_notification=stamped_at,
            ),
            updated_at=stamped_at,
            extras=extras,
        )

    def upsert_order(
        self,
        intent: CheckoutIntent,
        notification: NormalizedNotification,
        now: dt.datetime,
    ) -> tuple[Order, bool]:
        """Create today's order for the intent, or merge into the existing one.

        Returns:
            Tuple of (order, created)
        """
        date_key = compute_date_key(now, self.reference_tz)
        existing = self.orders.find_for_day(
            notification.order_number, date_key, self.reference_tz
        )
        pedido_id = existing["pedido_id"] if existing else None
        order = self.build_order(intent, notification, now, pedido_id)

        if existing is None:
            if self.orders.insert(order, created_at=now.isoformat()):
                logger.info("Created order %s", order.pedido_id)
                return order, True
            # A concurrent delivery created it first; merge into that one
            logger.warning("Order %s already exists, merging", order.pedido_id)

        self.orders.merge_update(order.pedido_id, order)
        logger.info("Updated order %s", order.pedido_id)
        return order, False
