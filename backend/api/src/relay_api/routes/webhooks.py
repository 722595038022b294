"""Webhook endpoint for Cielo checkout payment notifications.

The gateway is always answered with HTTP 200, whatever happens here:
a non-success status would make it retry aggressively. Failures are
reported in the body (ok=false) and in the audit log instead.

This endpoint does NOT require authentication; Cielo does not sign its
checkout notifications.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.routing import APIRoute
from starlette.concurrency import run_in_threadpool
from starlette.routing import Match
from starlette.types import Scope

from relay_api.dependencies import get_reconciliation_engine
from relay_shared.models.enums import WebhookStage
from relay_shared.models.webhook import WebhookAck
from relay_shared.services.reconciliation import ReconciliationEngine
from relay_shared.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["webhooks"])

WEBHOOK_PATH = "/cielo-webhook"

# Acknowledged as ignored instead of 405 so the sender never retries.
# HEAD, TRACE and any other method reach the same handler via AnyMethodRoute.
IGNORED_METHODS = ["GET", "HEAD", "PUT", "PATCH", "DELETE", "OPTIONS"]


class AnyMethodRoute(APIRoute):
    """Route that fully matches its path for every HTTP method."""

    def matches(self, scope: Scope) -> tuple[Match, Scope]:
        match, child_scope = super().matches(scope)
        if match == Match.PARTIAL:
            return Match.FULL, child_scope
        return match, child_scope


@router.post(
    WEBHOOK_PATH,
    summary="Receive Cielo payment notifications",
    description="""
Receives Cielo checkout notifications as JSON or form-encoded text and
reconciles them against stored checkout intents:
- payment_status 1: intent becomes `pendente`
- payment_status 3/4/5: intent becomes `nao_aprovado`
- payment_status 2 (or a paid status text): intent becomes `aprovado` and
  today's order is created or updated

**Always answers 200**, with `ok=false` and `error` when processing failed.
""",
    response_model=WebhookAck,
    response_model_exclude_none=True,
)
async def handle_cielo_webhook(
    request: Request,
    engine: ReconciliationEngine = Depends(get_reconciliation_engine),
) -> WebhookAck:
    """Handle an incoming Cielo notification."""
    try:
        body = await request.body()
    except Exception as e:
        logger.exception("Failed to read webhook body")
        engine.audit.record(
            WebhookStage.EXCEPTION.value,
            headers=request.headers,
            error=str(e) or type(e).__name__,
            failed_stage="read-body",
        )
        return WebhookAck(ok=False, error=str(e) or type(e).__name__)

    return await run_in_threadpool(
        engine.handle, body, dict(request.headers), request.method
    )


async def ignore_non_post(
    request: Request,
    engine: ReconciliationEngine = Depends(get_reconciliation_engine),
) -> WebhookAck:
    """Answer 200 with an 'ignored' marker for any method but POST."""
    return await run_in_threadpool(
        engine.handle, None, dict(request.headers), request.method
    )


# Registered after the POST route, which keeps its full match for POST
router.add_api_route(
    WEBHOOK_PATH,
    ignore_non_post,
    methods=IGNORED_METHODS,
    summary="Acknowledge non-POST webhook calls",
    response_model=WebhookAck,
    response_model_exclude_none=True,
    include_in_schema=False,
    route_class_override=AnyMethodRoute,
)
