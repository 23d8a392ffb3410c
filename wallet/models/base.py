from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field, ConfigDict


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MongoModel(BaseModel):
    """Document model whose Mongo "_id" is exposed as a string id."""

    id: Optional[str] = Field(default=None, validation_alias="_id")

    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True
    )

    @classmethod
    def from_doc(cls, doc: Mapping[str, Any]):
        """Build a model from a raw Mongo document (ObjectId -> str)."""
        data = dict(doc)
        if "_id" in data:
            data["_id"] = str(data["_id"])
        return cls(**data)
