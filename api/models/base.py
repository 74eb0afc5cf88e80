# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Base models and helpers shared by entities and request schemas.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from bson import ObjectId
from bson.errors import InvalidId


def is_object_id(value: Any) -> bool:
    """Check whether a value can be used as a MongoDB ObjectId."""
    if isinstance(value, ObjectId):
        return True
    return isinstance(value, str) and ObjectId.is_valid(value)


def to_object_id(value: Any) -> ObjectId:
    """
    Convert a string identifier to ObjectId.

    Raises:
        ValueError: If the value is not a 24-character hex identifier
    """
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise ValueError(f"Invalid ObjectId format: {value}")


def _stringify(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return stringify_ids(value)
    if isinstance(value, list):
        return [_stringify(item) for item in value]
    return value


def stringify_ids(document: Dict[str, Any]) -> Dict[str, Any]:
    """Convert every ObjectId in a document (nested included) to its string form."""
    return {key: _stringify(value) for key, value in document.items()}


class CamelModel(BaseModel):
    """Base model exposing camelCase field names on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        # Allow population by field name or alias
        populate_by_name=True,
        use_enum_values=True
    )


class BaseEntity(CamelModel):
    """Base entity with the audit fields stored on every document."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        validate_assignment=True
    )

    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    created_by: Optional[str] = None
    updated_by: Optional[str] = None

    @classmethod
    def from_document(cls, document: Dict[str, Any]):
        """Build the entity from a raw MongoDB document."""
        data = stringify_ids(document)
        # mongoose version key
        data.pop("__v", None)
        if "_id" in data:
            data["id"] = data.pop("_id")
        return cls.model_validate(data)

    def to_response(self) -> Dict[str, Any]:
        """Serialize for JSON responses using camelCase keys."""
        return self.model_dump(by_alias=True, mode="json")


def utcnow() -> datetime:
    """Naive UTC timestamp, the format pymongo stores by default."""
    return datetime.utcnow()
