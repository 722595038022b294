"""FastAPI application for the Cielo checkout relay.

This package provides REST endpoints for:
- Cielo payment notifications (webhook reconciliation)
- Checkout order creation proxied to Cielo
- QZ Tray certificate and request signing
- Health checks
"""

import os
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from mangum import Mangum

from relay_api.exceptions import register_exception_handlers
from relay_api.middleware.correlation import CorrelationIdMiddleware
from relay_api.models.common import HealthResponse
from relay_api.routes.checkout import router as checkout_router
from relay_api.routes.qz import router as qz_router
from relay_api.routes.webhooks import router as webhooks_router
from relay_shared.utils.logging import configure_logging, get_logger

configure_logging()
logger = get_logger(__name__)

app = FastAPI(
    title="Cielo Checkout Relay",
    description="Checkout proxy and payment webhook reconciliation for the storefront",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[os.getenv("ALLOWED_ORIGIN", "*")],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)
app.add_middleware(CorrelationIdMiddleware)

# Register exception handlers for consistent error responses
register_exception_handlers(app)

# Routers live under /api, matching the storefront's paths
app.include_router(webhooks_router, prefix="/api")
app.include_router(checkout_router, prefix="/api")
app.include_router(qz_router, prefix="/api")


@app.get("/health", response_model=HealthResponse)
async def health() -> dict[str, Any]:
    """Root health check endpoint."""
    return {"ok": True}


# Lambda handler - Mangum wraps FastAPI for AWS Lambda + API Gateway
handler = Mangum(app, lifespan="off")


def run_server(host: str = "0.0.0.0", port: int | None = None, reload: bool = False) -> None:
    """Run the FastAPI server.

    Args:
        host: Host to bind to (default: 0.0.0.0)
        port: Port to listen on (default: PORT env var or 3001)
        reload: Enable hot reload for development (default: False)
    """
    import uvicorn

    port = port or int(os.getenv("PORT", "3001"))
    logger.info("Relay listening on port %s", port)
    if reload:
        # Use string reference for reload mode (uvicorn requirement)
        uvicorn.run(
            "relay_api.main:app",
            host=host,
            port=port,
            reload=True,
            reload_dirs=["backend/api/src", "backend/shared/src"],
        )
    else:
        uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server()
