"""Model bases: camelCase tenant documents and DynamoDB-stored entities."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Self

from pydantic import BaseModel as PydanticBaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from ulid import ULID

# Attributes owned by the repository layer, not by the model
KEY_ATTRIBUTES = ("PK", "SK", "GSI1PK", "GSI1SK")


def generate_ulid() -> str:
    return str(ULID())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_dynamo_value(value: Any) -> Any:
    """Prepare JSON-mode data for boto3: drop nulls, floats become Decimal."""
    if isinstance(value, dict):
        return {k: to_dynamo_value(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [to_dynamo_value(v) for v in value]
    if isinstance(value, float):
        return Decimal(str(value))
    return value


def from_dynamo_value(value: Any) -> Any:
    """Undo boto3's Decimal numbers so pydantic sees plain ints and floats."""
    if isinstance(value, dict):
        return {k: from_dynamo_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [from_dynamo_value(v) for v in value]
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    return value


class CamelModel(PydanticBaseModel):
    """Model for tenant-authored JSON documents.

    The dashboard stores config and questions with camelCase keys; Python code
    uses snake_case attributes. Both spellings are accepted on input.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_json_dict(self) -> dict[str, Any]:
        """Dump to the camelCase JSON shape, dropping unset optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class BaseModel(PydanticBaseModel):
    """An entity stored as one item in the single DynamoDB table.

    Subclasses define their key pattern through ``get_pk``/``get_sk``.
    ``version`` backs optimistic locking in the repository ``update``.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        use_enum_values=True,
        validate_assignment=True,
    )

    id: str = Field(default_factory=generate_ulid)
    version: int = Field(default=1, description="Optimistic locking version")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def get_pk(self) -> str:
        raise NotImplementedError(f"{type(self).__name__} must define get_pk()")

    def get_sk(self) -> str:
        raise NotImplementedError(f"{type(self).__name__} must define get_sk()")

    def get_keys(self) -> dict[str, str]:
        return {"PK": self.get_pk(), "SK": self.get_sk()}

    def to_dynamodb(self) -> dict[str, Any]:
        """Item attributes, without keys. Nested documents keep their camelCase aliases."""
        return to_dynamo_value(self.model_dump(mode="json", by_alias=True))

    @classmethod
    def from_dynamodb(cls, item: dict[str, Any]) -> Self:
        data = {k: v for k, v in item.items() if k not in KEY_ATTRIBUTES}
        return cls.model_validate(from_dynamo_value(data))

    def update_timestamp(self) -> None:
        self.updated_at = utc_now()

    def increment_version(self) -> None:
        self.version += 1
