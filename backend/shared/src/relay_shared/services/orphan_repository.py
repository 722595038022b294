"""Storage for approved payments that matched no checkout intent."""

import datetime as dt
import uuid
from typing import TYPE_CHECKING, Any

from relay_shared.models.notification import PaymentClassification
from relay_shared.models.webhook import WebhookOrphan

if TYPE_CHECKING:
    from .dynamodb import DynamoDBService


class OrphanRepository:
    """Create-only store of orphaned approvals for manual reconciliation."""

    ORPHANS_TABLE = "webhook-orphans"

    def __init__(self, db: "DynamoDBService") -> None:
        self.db = db

    def record(
        self,
        order_number: str,
        classification: PaymentClassification,
        payload: dict[str, Any],
        created_at: str | None = None,
    ) -> WebhookOrphan:
        """Store an orphan record.

        Args:
            order_number: Order identifier from the notification
            classification: Payment status interpretation
            payload: Normalized notification body
            created_at: ISO timestamp; defaults to now (UTC)

        Returns:
            The stored WebhookOrphan
        """
        orphan = WebhookOrphan(
            orphan_id=f"ORF-{uuid.uuid4().hex[:12].upper()}",
            order_number=order_number,
            status_code=classification.code,
            reason=classification.reason_tag,
            payload=payload,
            created_at=created_at or dt.datetime.now(dt.UTC).isoformat(),
        )
        self.db.put_item(
            self.ORPHANS_TABLE,
            orphan.model_dump(by_alias=True, exclude_none=True),
            condition_expression="attribute_not_exists(orphan_id)",
        )
        return orphan
