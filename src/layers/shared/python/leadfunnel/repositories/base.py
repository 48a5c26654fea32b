"""Generic repository over the single DynamoDB table."""

import os
from typing import Any, Generic, TypeVar

import boto3
import structlog
from botocore.exceptions import ClientError

from leadfunnel.models.base import BaseModel
from leadfunnel.utils.exceptions import ConflictError

logger = structlog.get_logger()

T = TypeVar("T", bound=BaseModel)

CONDITION_FAILED = "ConditionalCheckFailedException"


def _condition_failed(error: ClientError) -> bool:
    return error.response["Error"]["Code"] == CONDITION_FAILED


class BaseRepository(Generic[T]):
    """Typed access to one entity kind stored in the table.

    Items are addressed by ``PK``/``SK``; a second access pattern may be
    indexed on ``GSI1PK``/``GSI1SK``. Writes of existing items are
    version-checked so concurrent dashboard edits cannot silently clobber
    each other.
    """

    def __init__(self, model_class: type[T], table_name: str | None = None):
        """Initialize repository.

        Args:
            model_class: Entity model items are parsed into.
            table_name: Defaults to the TABLE_NAME env var.
        """
        self.model_class = model_class
        self.table_name = table_name or os.environ.get("TABLE_NAME", "leadfunnel-dev")
        self._table = None

    @property
    def table(self):
        if self._table is None:
            self._table = boto3.resource("dynamodb").Table(self.table_name)
        return self._table

    def _to_item(self, entity: T, gsi_keys: dict[str, str] | None) -> dict[str, Any]:
        item = entity.to_dynamodb()
        item.update(entity.get_keys())
        item.update(gsi_keys or {})
        return item

    def get(self, pk: str, sk: str) -> T | None:
        """Fetch one item, or None if there is no such key."""
        try:
            response = self.table.get_item(Key={"PK": pk, "SK": sk})
        except ClientError as e:
            logger.error("DynamoDB get_item failed", error=str(e), pk=pk, sk=sk)
            raise

        item = response.get("Item")
        return self.model_class.from_dynamodb(item) if item else None

    def put(
        self,
        entity: T,
        condition_expression: str | None = None,
        gsi_keys: dict[str, str] | None = None,
    ) -> T:
        """Write an item, optionally guarded by a condition.

        Raises:
            ConflictError: The condition did not hold.
        """
        entity.update_timestamp()
        item = self._to_item(entity, gsi_keys)
        kwargs: dict[str, Any] = {"Item": item}
        if condition_expression:
            kwargs["ConditionExpression"] = condition_expression

        try:
            self.table.put_item(**kwargs)
        except ClientError as e:
            if _condition_failed(e):
                raise ConflictError("Item already exists") from e
            logger.error("DynamoDB put_item failed", error=str(e), pk=item["PK"])
            raise

        logger.debug("Item saved", pk=item["PK"], sk=item["SK"], model=self.model_class.__name__)
        return entity

    def create(self, entity: T, gsi_keys: dict[str, str] | None = None) -> T:
        """Write a new item; ConflictError if the key is taken."""
        return self.put(entity, condition_expression="attribute_not_exists(PK)", gsi_keys=gsi_keys)

    def update(self, entity: T, gsi_keys: dict[str, str] | None = None) -> T:
        """Overwrite an item if nobody else saved it since it was read.

        On conflict the entity's version is rolled back so the caller can
        reload and retry.

        Raises:
            ConflictError: The stored version moved on.
        """
        expected = entity.version
        entity.increment_version()
        entity.update_timestamp()
        item = self._to_item(entity, gsi_keys)

        try:
            self.table.put_item(
                Item=item,
                ConditionExpression="version = :expected",
                ExpressionAttributeValues={":expected": expected},
            )
        except ClientError as e:
            if _condition_failed(e):
                entity.version = expected
                raise ConflictError("Item was modified by another process") from e
            logger.error("DynamoDB update failed", error=str(e), pk=item["PK"])
            raise

        logger.debug("Item updated", pk=item["PK"], sk=item["SK"], version=entity.version)
        return entity

    def delete(self, pk: str, sk: str) -> bool:
        """Delete an item. Returns False if it was not there."""
        try:
            self.table.delete_item(Key={"PK": pk, "SK": sk}, ConditionExpression="attribute_exists(PK)")
        except ClientError as e:
            if _condition_failed(e):
                return False
            logger.error("DynamoDB delete_item failed", error=str(e), pk=pk, sk=sk)
            raise

        logger.debug("Item deleted", pk=pk, sk=sk)
        return True

    def query(
        self,
        pk: str,
        sk_begins_with: str | None = None,
        index_name: str | None = None,
        limit: int | None = None,
    ) -> list[T]:
        """List items under one partition key.

        Args:
            pk: Partition key; the GSI1PK value when ``index_name`` is "GSI1".
            sk_begins_with: Optional sort key prefix.
            index_name: Query a GSI instead of the table.
            limit: Maximum items to evaluate.
        """
        pk_name, sk_name = ("GSI1PK", "GSI1SK") if index_name == "GSI1" else ("PK", "SK")
        condition = f"{pk_name} = :pk"
        values: dict[str, Any] = {":pk": pk}
        if sk_begins_with:
            condition += f" AND begins_with({sk_name}, :prefix)"
            values[":prefix"] = sk_begins_with

        kwargs: dict[str, Any] = {"KeyConditionExpression": condition, "ExpressionAttributeValues": values}
        if index_name:
            kwargs["IndexName"] = index_name
        if limit:
            kwargs["Limit"] = limit

        try:
            response = self.table.query(**kwargs)
        except ClientError as e:
            logger.error("DynamoDB query failed", error=str(e), pk=pk, index=index_name)
            raise

        return [self.model_class.from_dynamodb(item) for item in response.get("Items", [])]
