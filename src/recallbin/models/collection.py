"""Collection data model."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .item import utc_now

NAME_MAX_LENGTH = 200


class Collection(BaseModel):
    """A named grouping of saved items.

    ``item_count`` is denormalized: it is maintained by increments and
    decrements on membership changes and never recomputed from the items.
    """

    id: str
    name: str = Field(..., min_length=1, max_length=NAME_MAX_LENGTH)
    description: str = ""
    color: str = "#8B5CF6"
    item_count: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Collection name cannot be empty or whitespace")
        return v.strip()

    @field_validator("description", mode="before")
    @classmethod
    def none_to_empty(cls, v: Optional[str]) -> str:
        return v or ""

    def to_document(self) -> dict:
        return self.model_dump(mode="json", exclude={"id"})

    @classmethod
    def from_document(cls, doc_id: str, data: dict) -> "Collection":
        return cls(id=doc_id, **data)
