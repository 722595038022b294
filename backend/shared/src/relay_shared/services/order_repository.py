"""Day-scoped lookup and upsert of orders (pedidos)."""

import datetime as dt
from typing import TYPE_CHECKING, Any
from zoneinfo import ZoneInfo

from relay_shared.models.order import Order

if TYPE_CHECKING:
    from .dynamodb import DynamoDBService

# Fields set once at creation and never rewritten by a merge
IMMUTABLE_ORDER_FIELDS = frozenset({"pedido_id", "createdAt"})


def order_key(order_number: str, date_key: str) -> str:
    """Primary key for the single order of an order number on a given day."""
    return f"{order_number}#{date_key}"


def _created_on(created_at: Any, date_key: str, tz: ZoneInfo) -> bool:
    """Check whether an ISO createdAt falls on date_key in the reference zone."""
    if not isinstance(created_at, str) or not created_at:
        return False
    text = created_at[:-1] + "+00:00" if created_at.endswith("Z") else created_at
    try:
        moment = dt.datetime.fromisoformat(text)
    except ValueError:
        return False
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=dt.UTC)
    return moment.astimezone(tz).date().isoformat() == date_key


class OrderRepository:
    """Orders keyed by {orderNumber}#{dateKey}, indexed by orderNumber.

    The payment sub-record repeats the order number (pagamento.orderNumber);
    the top-level copy is what the index can see.
    """

    ORDERS_TABLE = "pedidos"
    ORDER_NUMBER_INDEX = "orderNumber-index"

    def __init__(self, db: "DynamoDBService") -> None:
        """Initialize the repository.

        Args:
            db: DynamoDB service instance
        """
        self.db = db

    def find_by_order_number(self, order_number: str) -> list[dict[str, Any]]:
        """Get every order stored for an order number, across all days."""
        return self.db.query_by_gsi(
            self.ORDERS_TABLE,
            self.ORDER_NUMBER_INDEX,
            "orderNumber",
            order_number,
        )

    def find_for_day(
        self, order_number: str, date_key: str, tz: ZoneInfo
    ) -> dict[str, Any] | None:
        """Find the order of an order number created on a given day.

        A stale order that reused the same number on a previous day is
        ignored. Orders without a dateKey are matched on createdAt.

        Args:
            order_number: Order identifier
            date_key: YYYY-MM-DD in the reference timezone
            tz: Reference timezone

        Returns:
            The matching order item, or None
        """
        matches = self.find_by_order_number(order_number)
        for item in matches:
            if item.get("dateKey") == date_key:
                return item
        for item in matches:
            if not item.get("dateKey") and _created_on(item.get("createdAt"), date_key, tz):
                return item
        return None

    def insert(self, order: Order, created_at: str) -> bool:
        """Create a new order.

        Args:
            order: Order to store
            created_at: Write-time timestamp, stored once

        Returns:
            True if created, False if an order with the same key already exists
        """
        item = order.to_item()
        item["createdAt"] = created_at
        return self.db.put_item(
            self.ORDERS_TABLE,
            item,
            condition_expression="attribute_not_exists(pedido_id)",
        )

    def merge_update(self, pedido_id: str, order: Order) -> dict[str, Any] | None:
        """Merge an order's fields into an existing document.

        createdAt is preserved from the stored document.
        """
        fields = {
            name: value
            for name, value in order.to_item().items()
            if name not in IMMUTABLE_ORDER_FIELDS
        }
        return self.db.merge_item(self.ORDERS_TABLE, {"pedido_id": pedido_id}, fields)
