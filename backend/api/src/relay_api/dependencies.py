"""FastAPI dependency injection providers for shared services.

Services are built once per process with @lru_cache and injected with
Depends(); tests swap them through app.dependency_overrides.

Service Dependency Graph:
    DynamoDBService (singleton via get_dynamodb_service)
        └── ReconciliationEngine
                ├── IntentRepository / OrderRepository / OrphanRepository
                └── AuditLogger
    CieloCheckoutClient
    SigningKeyProvider / CertificateStore (relay_shared.services.signing)

Testing:
    Use reset_services() to clear cached instances between tests.
"""

from functools import lru_cache

from relay_shared.services.cielo_checkout import CieloCheckoutClient
from relay_shared.services.dynamodb import get_dynamodb_service
from relay_shared.services.reconciliation import ReconciliationEngine
from relay_shared.services.signing import (
    CertificateStore,
    SigningKeyProvider,
    get_certificate_store,
    get_signing_key_provider,
)


@lru_cache
def get_reconciliation_engine() -> ReconciliationEngine:
    """Get cached ReconciliationEngine instance.

    Returns:
        ReconciliationEngine configured with the DynamoDB singleton.
    """
    return ReconciliationEngine(db=get_dynamodb_service())


@lru_cache
def get_checkout_client() -> CieloCheckoutClient:
    """Get cached CieloCheckoutClient configured from the environment."""
    return CieloCheckoutClient()


def get_signer() -> SigningKeyProvider:
    """Get the process-wide signing key provider."""
    return get_signing_key_provider()


def get_certificates() -> CertificateStore:
    """Get the process-wide certificate store."""
    return get_certificate_store()


def reset_services() -> None:
    """Clear all cached service instances.

    Call this in test fixtures to ensure clean state between tests.
    Also resets the underlying DynamoDB singleton.
    """
    from relay_shared.services.dynamodb import reset_dynamodb_service

    get_reconciliation_engine.cache_clear()
    get_checkout_client.cache_clear()
    get_signing_key_provider.cache_clear()
    get_certificate_store.cache_clear()

    reset_dynamodb_service()
