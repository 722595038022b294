"""Pytest configuration and fixtures for the checkout relay backend tests.

This module provides reusable fixtures for testing:
- DynamoDB mocking with moto (intents, orders, logs, orphans)
- Sample checkout intents
- A fixed clock for day-scoped order keys
"""

import datetime as dt
import os
from collections.abc import Callable
from typing import Any, Generator

import boto3
import pytest
from moto import mock_aws

# === Environment Setup ===

# Set environment variables for testing before imports
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-1")
os.environ["DYNAMODB_TABLE_PREFIX"] = "test-relay"
os.environ.setdefault("REFERENCE_TIMEZONE", "America/Sao_Paulo")

if not os.environ.get("AWS_PROFILE") and not os.environ.get("AWS_ACCESS_KEY_ID"):
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

TABLE_PREFIX = "test-relay"

# 2026-03-10 12:00 in São Paulo
FIXED_NOW = dt.datetime(2026, 3, 10, 15, 0, tzinfo=dt.UTC)
FIXED_DATE_KEY = "2026-03-10"


def _table_with_order_number_index(name: str, key: str) -> dict[str, Any]:
    return {
        "TableName": f"{TABLE_PREFIX}-{name}",
        "KeySchema": [{"AttributeName": key, "KeyType": "HASH"}],
        "AttributeDefinitions": [
            {"AttributeName": key, "AttributeType": "S"},
            {"AttributeName": "orderNumber", "AttributeType": "S"},
        ],
        "GlobalSecondaryIndexes": [
            {
                "IndexName": "orderNumber-index",
                "KeySchema": [{"AttributeName": "orderNumber", "KeyType": "HASH"}],
                "Projection": {"ProjectionType": "ALL"},
            },
        ],
        "BillingMode": "PAY_PER_REQUEST",
    }


def _simple_table(name: str, key: str) -> dict[str, Any]:
    return {
        "TableName": f"{TABLE_PREFIX}-{name}",
        "KeySchema": [{"AttributeName": key, "KeyType": "HASH"}],
        "AttributeDefinitions": [{"AttributeName": key, "AttributeType": "S"}],
        "BillingMode": "PAY_PER_REQUEST",
    }


LEDGER_TABLES = [
    _table_with_order_number_index("checkout-intents", "intent_id"),
    _table_with_order_number_index("pedidos", "pedido_id"),
    _simple_table("webhook-logs", "log_id"),
    _simple_table("webhook-orphans", "orphan_id"),
]


# === Singleton Reset ===


@pytest.fixture(autouse=True)
def reset_service_singletons() -> Generator[None, None, None]:
    """Reset cached services before and after each test.

    Tests using mock_aws need a fresh DynamoDBService created inside the
    mock context rather than one left over from a previous test.
    """
    from relay_api.dependencies import reset_services

    reset_services()
    yield
    reset_services()


# === DynamoDB Fixtures ===


@pytest.fixture
def aws_credentials() -> None:
    """Mocked AWS Credentials for moto."""
    if not os.environ.get("AWS_PROFILE"):
        os.environ["AWS_ACCESS_KEY_ID"] = "testing"
        os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
        os.environ["AWS_SECURITY_TOKEN"] = "testing"
        os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "eu-west-1"


@pytest.fixture
def ledger_tables(aws_credentials: None) -> Generator[None, None, None]:
    """Create the mocked ledger tables."""
    with mock_aws():
        client = boto3.client("dynamodb", region_name="eu-west-1")
        for table in LEDGER_TABLES:
            client.create_table(**table)
        yield


@pytest.fixture
def db(ledger_tables: None) -> Any:
    """DynamoDBService bound to the mocked tables."""
    from relay_shared.services.dynamodb import DynamoDBService

    return DynamoDBService()


@pytest.fixture
def scan_table(ledger_tables: None) -> Callable[[str], list[dict[str, Any]]]:
    """Return every item of a ledger table (name without prefix)."""

    def scan(name: str) -> list[dict[str, Any]]:
        resource = boto3.resource("dynamodb", region_name="eu-west-1")
        return resource.Table(f"{TABLE_PREFIX}-{name}").scan()["Items"]

    return scan


@pytest.fixture
def create_intent(db: Any) -> Callable[..., dict[str, Any]]:
    """Store a checkout intent and return the stored item."""

    def create(order_number: str = "PED123", **fields: Any) -> dict[str, Any]:
        item: dict[str, Any] = {
            "intent_id": f"INT-{order_number}",
            "orderNumber": order_number,
            "itens": [{"nome": "X", "quantidade": 2, "UnitPrice": 500}],
            "total": 10,
            "tipoServico": "Delivery",
            "status": "criado",
        }
        item.update(fields)
        db.put_item("checkout-intents", item)
        return item

    return create


@pytest.fixture
def clock() -> "MutableClock":
    """Clock fixed at FIXED_NOW that tests can move."""
    return MutableClock(FIXED_NOW)


class MutableClock:
    """Callable clock returning a settable aware datetime."""

    def __init__(self, now: dt.datetime) -> None:
        self.now = now

    def __call__(self) -> dt.datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now = self.now + dt.timedelta(**delta)


@pytest.fixture
def engine(db: Any, clock: MutableClock) -> Any:
    """ReconciliationEngine over the mocked tables with a fixed clock."""
    from relay_shared.services.reconciliation import ReconciliationEngine

    return ReconciliationEngine(db=db, clock=clock, reference_tz="America/Sao_Paulo")
