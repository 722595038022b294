"""Read and merge-update access to checkout intents."""

from typing import TYPE_CHECKING, Any

from relay_shared.models.enums import IntentStatus
from relay_shared.models.intent import CheckoutIntent

if TYPE_CHECKING:
    from .dynamodb import DynamoDBService


class IntentRepository:
    """Checkout intents keyed by intent_id, looked up by orderNumber."""

    INTENTS_TABLE = "checkout-intents"
    ORDER_NUMBER_INDEX = "orderNumber-index"

    def __init__(self, db: "DynamoDBService") -> None:
        """Initialize the repository.

        Args:
            db: DynamoDB service instance
        """
        self.db = db

    def find_by_order_number(self, order_number: str) -> CheckoutIntent | None:
        """Get the intent registered for an order number.

        Args:
            order_number: Order identifier sent by the gateway

        Returns:
            The first matching intent, or None
        """
        items = self.db.query_by_gsi(
            self.INTENTS_TABLE,
            self.ORDER_NUMBER_INDEX,
            "orderNumber",
            order_number,
            limit=1,
        )
        return CheckoutIntent.from_item(items[0]) if items else None

    def merge(self, intent_id: str, fields: dict[str, Any]) -> dict[str, Any] | None:
        """Merge fields into an intent without touching the others."""
        return self.db.merge_item(self.INTENTS_TABLE, {"intent_id": intent_id}, fields)

    def record_notification(
        self, intent_id: str, payload: dict[str, Any], received_at: str
    ) -> None:
        """Stamp the intent with the latest notification for forensic replay."""
        self.merge(intent_id, {"lastNotification": received_at, "lastPayload": payload})

    def set_status(self, intent_id: str, status: IntentStatus, updated_at: str) -> None:
        """Set the intent status."""
        self.merge(intent_id, {"status": status.value, "updatedAt": updated_at})
