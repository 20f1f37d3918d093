"""Pydantic models describing the persisted profile bundle."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..layout.models import PageKind

BUNDLE_VERSION = 1


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


class ProfileAction(BaseModel):
    """What pressing one button does."""

    model_config = ConfigDict(populate_by_name=True)

    invoke: Optional[str] = Field(default=None, description="Entity to act on.")
    jump_to: Optional[str] = Field(default=None, alias="jumpTo", description="Page to switch to.")
    return_to_previous: Optional[bool] = Field(default=None, alias="returnToPrevious")
    title: Optional[str] = Field(default=None)
    color: Optional[str] = Field(default=None, description="Accent color for the button icon.")
    background: Optional[str] = Field(default=None)


class PageRecord(BaseModel):
    """Occupied cells of one page keyed by ``"<col>,<row>"``."""

    id: str
    kind: PageKind
    name: str
    cells: dict[str, ProfileAction] = Field(default_factory=dict)

    def jump_targets(self) -> list[str]:
        return [action.jump_to for action in self.cells.values() if action.jump_to is not None]


class ProfileBundle(BaseModel):
    """Page graph handed to the packaging step."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    entry_page_id: str = Field(alias="entryPageId")
    pages: list[PageRecord] = Field(default_factory=list)

    @property
    def page_ids(self) -> list[str]:
        return [page.id for page in self.pages]

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class IndexEntry(BaseModel):
    id: str
    kind: PageKind
    name: str
    file: str


class ProfileIndex(BaseModel):
    """Top-level index written last; its presence marks a complete bundle."""

    model_config = ConfigDict(populate_by_name=True)

    version: int = Field(default=BUNDLE_VERSION)
    name: str
    entry_page_id: str = Field(alias="entryPageId")
    pages: list[IndexEntry] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=utc_now, alias="generatedAt")
