"""Inspiration models - user-saved points of interest grouped by place."""

from datetime import datetime

from pydantic import ConfigDict, Field

from backend.tripweave.models.common import CamelModel


class InspirationItem(CamelModel):
    """A saved, undated point of interest. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str = ""
    category: str = "Other"
    source_location: str = ""
    source_type: str = "link"
    source_url: str | None = None
    time: str | None = None
    added_at: datetime = Field(default_factory=datetime.utcnow)


class LocationBucket(CamelModel):
    """All of one owner's inspiration items saved under one place."""

    id: str
    owner_id: str
    location: str
    items: list[InspirationItem] = Field(default_factory=list)
    version: int = 0
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
