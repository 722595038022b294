"""Best-effort audit trail for webhook notifications.

Every notification stage is written to the webhook-logs table and to the
process log. A failed table write never reaches the caller: append()
returns an AuditWriteResult whose error variant callers may ignore.
"""

import datetime as dt
import json
import uuid
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from relay_shared.models.webhook import AuditWriteResult, WebhookLogEntry
from relay_shared.utils.logging import get_correlation_id, get_logger, log_notification_stage

if TYPE_CHECKING:
    from .dynamodb import DynamoDBService

logger = get_logger(__name__)

# Headers worth keeping; everything else is dropped for size and privacy
AUDIT_HEADER_ALLOWLIST = (
    "content-type",
    "content-length",
    "user-agent",
    "x-forwarded-for",
    "x-request-id",
    "x-correlation-id",
)

PAYLOAD_SAMPLE_LIMIT = 2000


def select_headers(headers: Mapping[str, str] | None) -> dict[str, str]:
    """Keep only allow-listed headers, with lowercased names."""
    if not headers:
        return {}
    lowered = {str(k).lower(): str(v) for k, v in headers.items()}
    return {name: lowered[name] for name in AUDIT_HEADER_ALLOWLIST if name in lowered}


def payload_sample(payload: Any, limit: int = PAYLOAD_SAMPLE_LIMIT) -> str:
    """Serialize a payload and cut it to the sample size."""
    if isinstance(payload, str):
        text = payload
    else:
        text = json.dumps(payload, default=str, ensure_ascii=False)
    return text[:limit]


class AuditLogger:
    """Append-only writer for the webhook-logs table."""

    WEBHOOK_LOGS_TABLE = "webhook-logs"

    def __init__(self, db: "DynamoDBService") -> None:
        self._db = db

    def append(self, entry: WebhookLogEntry) -> AuditWriteResult:
        """Write one audit entry.

        Args:
            entry: The log entry to store

        Returns:
            AuditWriteResult; ok=False carries the swallowed error message
        """
        if entry.correlation_id is None:
            entry = entry.model_copy(update={"correlation_id": get_correlation_id()})

        classification = entry.classification or {}
        log_notification_stage(
            logger,
            entry.stage,
            entry.order_number,
            status_code=classification.get("code"),
            reason=classification.get("reason_tag"),
            error=entry.error,
        )

        log_id = f"LOG-{uuid.uuid4().hex[:16].upper()}"
        item: dict[str, Any] = {
            "log_id": log_id,
            "createdAt": dt.datetime.now(dt.UTC).isoformat(),
            **entry.model_dump(exclude_none=True),
        }

        try:
            self._db.put_item(self.WEBHOOK_LOGS_TABLE, item)
        except Exception as e:
            logger.warning("Failed to write webhook audit log (%s): %s", entry.stage, e)
            return AuditWriteResult(ok=False, error=str(e))

        return AuditWriteResult(ok=True, log_id=log_id)

    def record(
        self,
        stage: str,
        *,
        order_number: str | None = None,
        headers: Mapping[str, str] | None = None,
        classification: dict[str, Any] | None = None,
        payload: Any = None,
        error: str | None = None,
        **details: Any,
    ) -> AuditWriteResult:
        """Build and append an entry in one call."""
        entry = WebhookLogEntry(
            stage=stage,
            order_number=order_number or None,
            headers=select_headers(headers),
            classification=classification,
            payload_sample=payload_sample(payload) if payload is not None else "",
            error=error,
            details=details or None,
        )
        return self.append(entry)
