#!/usr/bin/env python3
"""Create the order ledger tables and, optionally, a sample checkout intent.

Tables are named {prefix}-{table}, where the prefix is relay-{env} unless
DYNAMODB_TABLE_PREFIX is set (the same rule the service uses):
- checkout-intents (intent_id, GSI orderNumber-index)
- pedidos (pedido_id, GSI orderNumber-index)
- webhook-logs (log_id)
- webhook-orphans (orphan_id)

Usage:
    python scripts/setup_tables.py --env dev
    python scripts/setup_tables.py --env dev --sample-intent PED123
    python scripts/setup_tables.py --env dev --endpoint-url http://localhost:8000
"""

import argparse
import os
import sys
from decimal import Decimal

import boto3
from botocore.exceptions import ClientError

ORDER_NUMBER_INDEX = "orderNumber-index"

# table -> (hash key, indexed by orderNumber)
LEDGER_TABLES: dict[str, tuple[str, bool]] = {
    "checkout-intents": ("intent_id", True),
    "pedidos": ("pedido_id", True),
    "webhook-logs": ("log_id", False),
    "webhook-orphans": ("orphan_id", False),
}


def table_definition(name: str, key: str, indexed: bool) -> dict:
    """Build the create_table arguments for one ledger table."""
    definition: dict = {
        "TableName": name,
        "KeySchema": [{"AttributeName": key, "KeyType": "HASH"}],
        "AttributeDefinitions": [{"AttributeName": key, "AttributeType": "S"}],
        "BillingMode": "PAY_PER_REQUEST",
    }
    if indexed:
        definition["AttributeDefinitions"].append(
            {"AttributeName": "orderNumber", "AttributeType": "S"}
        )
        definition["GlobalSecondaryIndexes"] = [
            {
                "IndexName": ORDER_NUMBER_INDEX,
                "KeySchema": [{"AttributeName": "orderNumber", "KeyType": "HASH"}],
                "Projection": {"ProjectionType": "ALL"},
            }
        ]
    return definition


def create_tables(client, prefix: str) -> None:
    """Create every missing ledger table and wait until it is active."""
    for table, (key, indexed) in LEDGER_TABLES.items():
        name = f"{prefix}-{table}"
        try:
            client.create_table(**table_definition(name, key, indexed))
        except ClientError as e:
            if e.response["Error"]["Code"] != "ResourceInUseException":
                raise
            print(f"  = {name} already exists")
            continue
        client.get_waiter("table_exists").wait(TableName=name)
        print(f"  ✓ Created {name}")


def create_sample_intent(resource, prefix: str, order_number: str) -> None:
    """Store a checkout intent the webhook can reconcile against."""
    table = resource.Table(f"{prefix}-checkout-intents")
    table.put_item(
        Item={
            "intent_id": f"INT-{order_number}",
            "orderNumber": order_number,
            "itens": [
                {"nome": "Pizza Margherita", "quantidade": 1, "preco": Decimal("45.90")},
                {"nome": "Refrigerante", "quantidade": 2, "UnitPrice": 700},
            ],
            "total": Decimal("59.90"),
            "tipoServico": "Delivery",
            "status": "criado",
        }
    )
    print(f"  ✓ Sample intent for {order_number}")


def main() -> int:
    """Run the setup script."""
    parser = argparse.ArgumentParser(description="Create the order ledger tables")
    parser.add_argument(
        "--env",
        choices=["dev", "staging", "prod"],
        default="dev",
        help="Target environment (default: dev)",
    )
    parser.add_argument(
        "--region",
        default=os.environ.get("AWS_DEFAULT_REGION", "eu-west-1"),
        help="AWS region (default: eu-west-1 or AWS_DEFAULT_REGION env var)",
    )
    parser.add_argument(
        "--endpoint-url",
        default=None,
        help="DynamoDB endpoint, e.g. a local DynamoDB",
    )
    parser.add_argument(
        "--sample-intent",
        metavar="ORDER_NUMBER",
        help="Also store a sample checkout intent with this order number",
    )

    args = parser.parse_args()
    prefix = os.environ.get("DYNAMODB_TABLE_PREFIX", f"relay-{args.env}")

    client = boto3.client("dynamodb", region_name=args.region, endpoint_url=args.endpoint_url)
    print(f"\nSetting up tables with prefix {prefix} (region: {args.region})\n")

    try:
        create_tables(client, prefix)
    except ClientError as e:
        print(f"  ❌ Failed to create tables: {e}")
        return 1

    if args.sample_intent:
        resource = boto3.resource(
            "dynamodb", region_name=args.region, endpoint_url=args.endpoint_url
        )
        create_sample_intent(resource, prefix, args.sample_intent)

    print("\n✅ Tables ready")
    return 0


if __name__ == "__main__":
    sys.exit(main())
