"""Unit tests for DynamoDBService query paging and value conversion."""

from decimal import Decimal
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from boto3.dynamodb.conditions import Key

from relay_shared.services.dynamodb import DynamoDBService, to_dynamodb_value


@pytest.fixture
def paged_table() -> MagicMock:
    """Table whose query returns two pages of results."""
    table = MagicMock()
    table.query.side_effect = [
        {
            "Items": [{"pedido_id": "A"}, {"pedido_id": "B"}],
            "LastEvaluatedKey": {"pedido_id": "B"},
        },
        {"Items": [{"pedido_id": "C"}]},
    ]
    return table


class TestQueryPaging:
    def test_reads_every_page(self, db: DynamoDBService, paged_table: MagicMock) -> None:
        with patch.object(db, "_get_table", return_value=paged_table):
            items = db.query_by_gsi("pedidos", "orderNumber-index", "orderNumber", "PED1")

        assert [i["pedido_id"] for i in items] == ["A", "B", "C"]
        second_call = paged_table.query.call_args_list[1].kwargs
        assert second_call["ExclusiveStartKey"] == {"pedido_id": "B"}
        assert second_call["IndexName"] == "orderNumber-index"

    def test_limit_stops_paging(self, db: DynamoDBService, paged_table: MagicMock) -> None:
        with patch.object(db, "_get_table", return_value=paged_table):
            items = db.query("pedidos", Key("orderNumber").eq("PED1"), limit=1)

        assert items == [{"pedido_id": "A"}]
        assert paged_table.query.call_count == 1

    def test_gsi_query_follows_store_pages(self, db: DynamoDBService) -> None:
        for index in range(30):
            db.put_item(
                "pedidos",
                {
                    "pedido_id": f"PED1#2025-01-{index + 1:02d}",
                    "orderNumber": "PED1",
                    "dateKey": f"2025-01-{index + 1:02d}",
                },
            )

        original_query = db._get_table("pedidos").query

        def small_pages(**kwargs: Any) -> dict[str, Any]:
            kwargs.setdefault("Limit", 4)
            return original_query(**kwargs)

        table = MagicMock()
        table.query.side_effect = small_pages
        with patch.object(db, "_get_table", return_value=table):
            items = db.query_by_gsi("pedidos", "orderNumber-index", "orderNumber", "PED1")

        assert len(items) == 30
        assert table.query.call_count > 1


class TestToDynamoDBValue:
    def test_converts_nested_values(self) -> None:
        assert to_dynamodb_value({"a": 1.5, "": [2.25, (1, 2)], "b": b"x"}) == {
            "a": Decimal("1.5"),
            "_": [Decimal("2.25"), [1, 2]],
            "b": "x",
        }
