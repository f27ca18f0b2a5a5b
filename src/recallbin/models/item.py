"""Saved item data model."""

from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_TITLE_LENGTH = 500
MAX_DESCRIPTION_LENGTH = 5000
MAX_CONTENT_LENGTH = 50000


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_string_list(value: Any) -> List[str]:
    """Coerce a loosely-typed model field into a clean list of strings."""
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []
    cleaned = []
    for entry in value:
        if entry is None:
            continue
        text = str(entry).strip()
        if text:
            cleaned.append(text)
    return cleaned


class AIOutput(BaseModel):
    """Structured annotation produced by the enrichment service.

    Every field is best-effort: the model may omit any of them, so all of
    them default to ``None`` or an empty list.
    """

    title: Optional[str] = None
    content_type: Optional[str] = None
    category: Optional[str] = None
    summary: Optional[str] = None
    key_ideas: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    entities: List[str] = Field(default_factory=list)
    tone: Optional[str] = None
    confidence_level: Optional[str] = None
    suggested_search_queries: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

    @field_validator(
        "key_ideas", "tags", "entities", "suggested_search_queries", mode="before"
    )
    @classmethod
    def coerce_lists(cls, v: Any) -> List[str]:
        return _as_string_list(v)

    @field_validator(
        "title", "content_type", "category", "summary", "tone", "confidence_level",
        mode="before",
    )
    @classmethod
    def coerce_text(cls, v: Any) -> Optional[str]:
        if v is None or isinstance(v, (dict, list)):
            return None
        text = str(v).strip()
        return text or None


class RawInput(BaseModel):
    """Unmodified content as submitted by the client."""

    title: str = ""
    description: str = ""
    content_text: str = ""

    @field_validator("title", "description", "content_text", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("title")
    @classmethod
    def cap_title(cls, v: str) -> str:
        return v[:MAX_TITLE_LENGTH]

    @field_validator("description")
    @classmethod
    def cap_description(cls, v: str) -> str:
        return v[:MAX_DESCRIPTION_LENGTH]

    @field_validator("content_text")
    @classmethod
    def cap_content(cls, v: str) -> str:
        return v[:MAX_CONTENT_LENGTH]


class SavedItem(BaseModel):
    """A single saved piece of content, stored under the owner's namespace."""

    id: str = Field(..., description="Store-generated identifier")
    url: str = Field(default="", description="Saved URL, empty for freeform notes")
    platform: str = Field(default="unknown", description="Source tag, e.g. web or note")
    collection_id: Optional[str] = Field(None, description="Owning collection, if any")
    raw_input: RawInput = Field(default_factory=RawInput)
    ai_output: Optional[AIOutput] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    last_viewed_at: Optional[datetime] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "3f1c2b8a-5d1e-4c5e-9a55-0e8f3d7b9c21",
                "url": "https://react.dev/learn",
                "platform": "chrome-extension",
                "collection_id": None,
                "raw_input": {
                    "title": "Quick Start - React",
                    "description": "",
                    "content_text": "",
                },
                "ai_output": {
                    "title": "React Quick Start Guide",
                    "content_type": "documentation",
                    "summary": "Official introduction to React concepts.",
                    "tags": ["react", "javascript", "frontend"],
                    "confidence_level": "high",
                },
                "created_at": "2026-02-03T10:30:00Z",
                "updated_at": "2026-02-03T10:30:00Z",
                "last_viewed_at": None,
            }
        }
    )

    @property
    def display_title(self) -> str:
        """AI title, falling back to the submitted title."""
        if self.ai_output and self.ai_output.title:
            return self.ai_output.title
        return self.raw_input.title

    def to_document(self) -> dict:
        """Serialize for the document store (the id is the document key)."""
        return self.model_dump(mode="json", exclude={"id"})

    @classmethod
    def from_document(cls, doc_id: str, data: dict) -> "SavedItem":
        return cls(id=doc_id, **data)


def to_iso(dt: datetime) -> str:
    """Store timestamps the way pydantic serializes them (UTC, ``Z`` suffix)."""
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


class SaveRequest(BaseModel):
    """Input of the ingestion pipeline."""

    url: str = ""
    title: str = ""
    description: str = ""
    content_text: str = ""
    platform: str = "unknown"
    collection_id: Optional[str] = Field(None, alias="collectionId")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("url", "title", "description", "content_text", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> str:
        return "" if v is None else str(v).strip()

    @field_validator("platform", mode="before")
    @classmethod
    def default_platform(cls, v: Any) -> str:
        return str(v).strip() if v else "unknown"

    @field_validator("collection_id", mode="before")
    @classmethod
    def blank_collection_is_none(cls, v: Any) -> Optional[str]:
        if v is None or str(v).strip() in {"", "all", "null"}:
            return None
        return str(v).strip()
