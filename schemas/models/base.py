"""
Document base for MongoDB collections.

PyObjectId accepts an ObjectId or its 24-hex string form and renders as a
string in JSON. MongoDocument maps ``_id`` to ``id`` and carries the
created/updated timestamps that repositories stamp on every write.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, TypeVar

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, GetCoreSchemaHandler
from pydantic_core import core_schema

DocT = TypeVar("DocT", bound="MongoDocument")


class PyObjectId(ObjectId):
    """BSON ObjectId usable as a pydantic v2 field type."""

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls._coerce,
            serialization=core_schema.plain_serializer_function_ser_schema(
                str, when_used="json"
            ),
        )

    @classmethod
    def _coerce(cls, value: Any) -> ObjectId:
        oid = cls.parse(value)
        if oid is None:
            raise ValueError(f"Invalid ObjectId: {value!r}")
        return oid

    @staticmethod
    def parse(value: Any) -> Optional[ObjectId]:
        """ObjectId for *value*, or None when it is not a valid id."""
        if isinstance(value, ObjectId):
            return value
        if isinstance(value, str) and ObjectId.is_valid(value):
            return ObjectId(value)
        return None


class MongoDocument(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def stamp(self, now: datetime) -> None:
        """Set ``updated_at`` (and ``created_at`` on first write) to *now*."""
        self.created_at = self.created_at or now
        self.updated_at = now

    def to_mongo(self) -> dict:
        """Dict ready for ``insert_one``; a missing ``_id`` is left to MongoDB.

        Unset optional fields are written as explicit nulls so every document
        in the collection has the same shape.
        """
        data = self.model_dump(by_alias=True)
        if data.get("_id") is None:
            data.pop("_id", None)
        return data

    @classmethod
    def from_mongo(cls: type[DocT], data: Optional[dict]) -> Optional[DocT]:
        """Build a document from a raw pymongo dict; ``None`` passes through."""
        if data is None:
            return None
        return cls.model_validate(data)
