"""DynamoDB implementation of the item store."""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import Any, Callable, Mapping, Optional

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import BotoCoreError, ClientError

from ..errors import BackendError, ConditionFailedError
from .base import INDEXES, Index, Item, KeyValueBackend, strip_none

logger = logging.getLogger(__name__)

# highest code point; upper bound for prefix range conditions
_PREFIX_END = "\U0010ffff"


def to_dynamo(value: Any) -> Any:
    """Convert floats to ``Decimal`` recursively, as boto3 requires."""
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {key: to_dynamo(val) for key, val in value.items()}
    if isinstance(value, list):
        return [to_dynamo(val) for val in value]
    return value


def from_dynamo(value: Any) -> Any:
    """Convert boto3 ``Decimal`` numbers back to ``int`` or ``float``."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {key: from_dynamo(val) for key, val in value.items()}
    if isinstance(value, list):
        return [from_dynamo(val) for val in value]
    return value


def table_definition(table_name: str) -> dict[str, Any]:
    """Arguments for ``create_table`` declaring the key schema and indexes."""
    attributes = {"PK": "S", "SK": "S"}
    indexes = []
    for index in INDEXES:
        attributes[index.hash_attr] = "S"
        key_schema = [{"AttributeName": index.hash_attr, "KeyType": "HASH"}]
        if index.range_attr:
            attributes[index.range_attr] = "N"
            key_schema.append({"AttributeName": index.range_attr, "KeyType": "RANGE"})
        indexes.append(
            {
                "IndexName": index.name,
                "KeySchema": key_schema,
                "Projection": {"ProjectionType": "ALL"},
            }
        )
    return {
        "TableName": table_name,
        "AttributeDefinitions": [
            {"AttributeName": name, "AttributeType": kind} for name, kind in attributes.items()
        ],
        "KeySchema": [
            {"AttributeName": "PK", "KeyType": "HASH"},
            {"AttributeName": "SK", "KeyType": "RANGE"},
        ],
        "GlobalSecondaryIndexes": indexes,
        "BillingMode": "PAY_PER_REQUEST",
    }


class DynamoDBBackend(KeyValueBackend):
    """Persist items in a DynamoDB table.

    The table uses ``PK``/``SK`` string keys and the global secondary indexes
    listed in :data:`flowstate.backends.base.INDEXES`. Boto3 calls are
    blocking and run in a worker thread.
    """

    name = "dynamodb"

    def __init__(
        self,
        table_name: str,
        *,
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        table: Any = None,
    ) -> None:
        self.table_name = table_name
        if table is None:
            resource = boto3.resource(
                "dynamodb", region_name=region, endpoint_url=endpoint_url
            )
            table = resource.Table(table_name)
        self._table = table

    # ------------------------------------------------------------------
    # Helper methods
    def _call(self, operation: str, **kwargs: Any) -> dict[str, Any]:
        try:
            return getattr(self._table, operation)(**kwargs)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code")
            if code == "ConditionalCheckFailedException":
                raise ConditionFailedError(f"Condition failed for {operation}") from exc
            raise BackendError(f"DynamoDB {operation} failed: {exc}") from exc
        except BotoCoreError as exc:
            raise BackendError(f"DynamoDB {operation} failed: {exc}") from exc
        except (TypeError, ValueError) as exc:
            # raised by boto3's TypeSerializer for values DynamoDB cannot hold
            raise BackendError(f"DynamoDB {operation} could not serialize item: {exc}") from exc

    def _query_until(
        self, limit: int, accept: Callable[[Item], bool], **kwargs: Any
    ) -> list[Item]:
        # FilterExpression and skipped items can leave a page short; keep
        # following LastEvaluatedKey until enough items are collected.
        items: list[Item] = []
        kwargs["Limit"] = limit + 1
        while True:
            response = self._call("query", **kwargs)
            items.extend(
                item
                for item in (from_dynamo(raw) for raw in response.get("Items", []))
                if accept(item)
            )
            last_key = response.get("LastEvaluatedKey")
            if len(items) >= limit or not last_key:
                return items[:limit]
            kwargs["ExclusiveStartKey"] = last_key

    def _create_table(self) -> None:
        client = self._table.meta.client
        try:
            client.create_table(**table_definition(self.table_name))
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") == "ResourceInUseException":
                logger.info(f"DynamoDB table {self.table_name} already exists")
                return
            raise BackendError(f"DynamoDB create_table failed: {exc}") from exc
        client.get_waiter("table_exists").wait(TableName=self.table_name)
        logger.info(f"Created DynamoDB table {self.table_name}")

    # ------------------------------------------------------------------
    # Backend API
    async def ensure_schema(self) -> None:
        await asyncio.to_thread(self._create_table)

    async def get_item(self, pk: str, sk: str) -> Optional[Item]:
        response = await asyncio.to_thread(
            self._call, "get_item", Key={"PK": pk, "SK": sk}
        )
        item = response.get("Item")
        return from_dynamo(item) if item else None

    async def put_item(self, item: Mapping[str, Any], *, if_absent: bool = False) -> None:
        kwargs: dict[str, Any] = {"Item": to_dynamo(strip_none(item))}
        if if_absent:
            kwargs["ConditionExpression"] = Attr("PK").not_exists() & Attr("SK").not_exists()
        await asyncio.to_thread(self._call, "put_item", **kwargs)

    async def update_item(
        self,
        pk: str,
        sk: str,
        changes: Mapping[str, Any],
        *,
        expected: Optional[Mapping[str, Any]] = None,
    ) -> Item:
        names: dict[str, str] = {}
        values: dict[str, Any] = {}
        sets: list[str] = []
        removes: list[str] = []
        for position, (attr, value) in enumerate(changes.items()):
            name = f"#f{position}"
            names[name] = attr
            if value is None:
                removes.append(name)
            else:
                values[f":u{position}"] = to_dynamo(value)
                sets.append(f"{name} = :u{position}")

        clauses = []
        if sets:
            clauses.append("SET " + ", ".join(sets))
        if removes:
            clauses.append("REMOVE " + ", ".join(removes))

        condition = Attr("PK").exists()
        for attr, value in (expected or {}).items():
            condition = condition & Attr(attr).eq(to_dynamo(value))

        kwargs: dict[str, Any] = {
            "Key": {"PK": pk, "SK": sk},
            "UpdateExpression": " ".join(clauses),
            "ConditionExpression": condition,
            "ExpressionAttributeNames": names,
            "ReturnValues": "ALL_NEW",
        }
        if values:
            kwargs["ExpressionAttributeValues"] = values
        response = await asyncio.to_thread(self._call, "update_item", **kwargs)
        return from_dynamo(response.get("Attributes", {}))

    async def delete_item(self, pk: str, sk: str) -> Optional[Item]:
        response = await asyncio.to_thread(
            self._call, "delete_item", Key={"PK": pk, "SK": sk}, ReturnValues="ALL_OLD"
        )
        attributes = response.get("Attributes")
        return from_dynamo(attributes) if attributes else None

    async def query(
        self,
        pk: str,
        *,
        sk_prefix: str,
        after: Optional[str] = None,
        descending: bool = False,
        limit: int,
    ) -> list[Item]:
        if after is None:
            sk_condition = Key("SK").begins_with(sk_prefix)
        elif descending:
            sk_condition = Key("SK").between(sk_prefix, after)
        else:
            sk_condition = Key("SK").between(after, sk_prefix + _PREFIX_END)
        return await asyncio.to_thread(
            self._query_until,
            limit,
            # BETWEEN is inclusive: drop the cursor item itself
            lambda item: item["SK"] != after,
            KeyConditionExpression=Key("PK").eq(pk) & sk_condition,
            ScanIndexForward=not descending,
        )

    async def query_index(
        self,
        index: Index,
        value: Any,
        *,
        after: Any = None,
        descending: bool = False,
        limit: int,
        entity_type: Optional[str] = None,
    ) -> list[Item]:
        key_condition = Key(index.hash_attr).eq(value)
        if index.range_attr is not None and after is not None:
            bound = Key(index.range_attr)
            key_condition = key_condition & (
                bound.lt(int(after)) if descending else bound.gt(int(after))
            )
        kwargs: dict[str, Any] = {
            "IndexName": index.name,
            "KeyConditionExpression": key_condition,
            "ScanIndexForward": not descending,
        }
        if entity_type is not None:
            kwargs["FilterExpression"] = Attr("entityType").eq(entity_type)
        return await asyncio.to_thread(
            self._query_until, limit, lambda item: True, **kwargs
        )
