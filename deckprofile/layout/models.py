"""Typed representations of layout requests, cells, pages, and page graphs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Iterator, Literal, NamedTuple, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DisplayType(str, Enum):
    """How a group is presented on the deck."""

    FOLDER = "folder"
    PAGE = "page"
    FLAT = "flat"


class PageKind(str, Enum):
    """Role of a page within the navigation graph."""

    MAIN = "main"
    OVERFLOW = "overflow"
    PAGE_GROUP = "page_group"
    FOLDER_SUB = "folder_sub"


class SortMode(str, Enum):
    """Ordering applied to ungrouped entities."""

    SELECTION = "selection"
    ALPHABETICAL = "alphabetical"
    DOMAIN = "domain"
    AREA = "area"
    FLOOR = "floor"
    MANUAL = "manual"


class Category(str, Enum):
    """Accent color category derived from an entity domain."""

    CONTROLLABLE = "controllable"
    INFORMATIONAL = "informational"
    TRIGGER = "trigger"


class Corner(str, Enum):
    """Grid corner used to anchor navigation controls."""

    TOP_LEFT = "top-left"
    TOP_RIGHT = "top-right"
    BOTTOM_LEFT = "bottom-left"
    BOTTOM_RIGHT = "bottom-right"

    @property
    def is_top(self) -> bool:
        return self in (Corner.TOP_LEFT, Corner.TOP_RIGHT)

    @property
    def is_right(self) -> bool:
        return self in (Corner.TOP_RIGHT, Corner.BOTTOM_RIGHT)

    def mirrored(self) -> "Corner":
        """Return the corner on the same edge row at the other side."""
        return {
            Corner.TOP_LEFT: Corner.TOP_RIGHT,
            Corner.TOP_RIGHT: Corner.TOP_LEFT,
            Corner.BOTTOM_LEFT: Corner.BOTTOM_RIGHT,
            Corner.BOTTOM_RIGHT: Corner.BOTTOM_LEFT,
        }[self]


class Cell(NamedTuple):
    """Zero-indexed grid coordinate, origin top-left."""

    col: int
    row: int

    @property
    def key(self) -> str:
        return f"{self.col},{self.row}"


class DeviceGrid(BaseModel):
    """Button grid dimensions of a deck."""

    model_config = ConfigDict(frozen=True)

    cols: int
    rows: int

    @property
    def capacity(self) -> int:
        return self.cols * self.rows

    def contains(self, cell: Cell) -> bool:
        return 0 <= cell.col < self.cols and 0 <= cell.row < self.rows

    def cells(self) -> Iterator[Cell]:
        """Yield every cell in row-major order."""
        for row in range(self.rows):
            for col in range(self.cols):
                yield Cell(col, row)


class Style(BaseModel):
    """Color assignments for a group of buttons.

    Colors are either ``#RGB``/``#RRGGBB`` hex strings or names from the
    request palette.
    """

    model_config = ConfigDict(frozen=True)

    controllable_color: str = Field(default="#FFEB3B")
    informational_color: str = Field(default="#9E9E9E")
    trigger_color: str = Field(default="#FF5722")
    background_color: str = Field(default="#1C1C1C")

    def color_for(self, category: Category) -> str:
        if category is Category.CONTROLLABLE:
            return self.controllable_color
        if category is Category.TRIGGER:
            return self.trigger_color
        return self.informational_color


class ItemStyle(BaseModel):
    """Resolved per-button colors."""

    model_config = ConfigDict(frozen=True)

    style_name: str
    category: Category
    accent_color: str
    background_color: str


class Group(BaseModel):
    """A named, ordered set of entities with a display type."""

    model_config = ConfigDict(frozen=True)

    name: str
    entities: tuple[str, ...] = Field(default_factory=tuple)
    display_type: DisplayType = Field(default=DisplayType.FOLDER)
    style: Optional[str] = Field(default=None, description="Style name; the ungrouped style when unset.")

    @field_validator("name")
    def _normalize_name(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("group name cannot be empty")
        return cleaned


class NavigationPreferences(BaseModel):
    """Corner preferences for navigation and exit controls."""

    model_config = ConfigDict(frozen=True)

    nav_corner: Corner = Field(default=Corner.BOTTOM_RIGHT)
    up_corner: Optional[Corner] = Field(
        default=None,
        description="Corner for folder-up; defaults to the mirror of nav_corner.",
    )
    exit_corner: Optional[Corner] = Field(
        default=None,
        description="Corner for the entry page exit control; defaults to the up corner.",
    )
    exit_button: bool = Field(default=True)

    @property
    def resolved_up_corner(self) -> Corner:
        return self.up_corner or self.nav_corner.mirrored()

    @property
    def resolved_exit_corner(self) -> Corner:
        return self.exit_corner or self.resolved_up_corner


class LayoutRequest(BaseModel):
    """Immutable snapshot of everything a rebuild depends on, apart from entities."""

    model_config = ConfigDict(frozen=True)

    profile_name: str = Field(default="Home Assistant")
    device: DeviceGrid = Field(default_factory=lambda: DeviceGrid(cols=5, rows=3))
    groups: tuple[Group, ...] = Field(default_factory=tuple)
    ungrouped: tuple[str, ...] = Field(default_factory=tuple)
    sort_mode: SortMode = Field(default=SortMode.SELECTION)
    manual_order: tuple[str, ...] = Field(default_factory=tuple)
    styles: dict[str, Style] = Field(default_factory=lambda: {"ungrouped": Style()})
    palette: dict[str, str] = Field(default_factory=dict)
    ungrouped_style: str = Field(default="ungrouped")
    navigation: NavigationPreferences = Field(default_factory=NavigationPreferences)


class EntityItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["entity"] = "entity"
    entity_id: str
    domain: str
    label: str
    style: ItemStyle


class FolderButton(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["folder"] = "folder"
    group_name: str
    target_page_id: Optional[str] = None


class NavPrev(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["prev"] = "prev"
    target_page_id: Optional[str] = None


class NavNext(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["next"] = "next"
    target_page_id: Optional[str] = None


class FolderUp(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["up"] = "up"
    target_page_id: Optional[str] = None


class ExitButton(BaseModel):
    """Return to whatever the deck showed before the profile was activated."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["exit"] = "exit"


ContentItem = Annotated[
    Union[EntityItem, FolderButton, NavPrev, NavNext, FolderUp, ExitButton],
    Field(discriminator="kind"),
]

Layout = tuple[tuple[Optional[ContentItem], ...], ...]


class PageEdges(BaseModel):
    model_config = ConfigDict(frozen=True)

    prev: Optional[str] = None
    next: Optional[str] = None
    parent: Optional[str] = Field(default=None, description="Opener page for folder sub-pages.")


class Page(BaseModel):
    """One screenful of buttons."""

    model_config = ConfigDict(frozen=True)

    id: str
    kind: PageKind
    name: str
    layout: Layout
    group_name: Optional[str] = None
    edges: PageEdges = Field(default_factory=PageEdges)

    def item_at(self, cell: Cell) -> Optional[ContentItem]:
        return self.layout[cell.row][cell.col]

    def occupied(self) -> Iterator[tuple[Cell, ContentItem]]:
        """Yield occupied cells in row-major order."""
        for row_index, row in enumerate(self.layout):
            for col_index, item in enumerate(row):
                if item is not None:
                    yield Cell(col_index, row_index), item

    @property
    def entities(self) -> list[EntityItem]:
        return [item for _, item in self.occupied() if isinstance(item, EntityItem)]


@dataclass(slots=True, frozen=True)
class BuildInvariantViolation:
    """A reserved control that could not be placed; the build carries on without it."""

    segment: str
    page_index: int
    control: str
    message: str
    page_id: str | None = None


@dataclass(frozen=True)
class NavigationGraph:
    """Finished set of pages with resolved edges."""

    pages: tuple[Page, ...]
    entry_page_id: str
    diagnostics: tuple[BuildInvariantViolation, ...] = field(default_factory=tuple)

    def page(self, page_id: str) -> Page:
        for candidate in self.pages:
            if candidate.id == page_id:
                return candidate
        raise KeyError(page_id)

    @property
    def entry_page(self) -> Page:
        return self.page(self.entry_page_id)

    @property
    def page_ids(self) -> list[str]:
        return [page.id for page in self.pages]

    def linear_pages(self) -> list[Page]:
        return [page for page in self.pages if page.kind is not PageKind.FOLDER_SUB]

    def folder_chain(self, group_name: str) -> list[Page]:
        return [
            page
            for page in self.pages
            if page.kind is PageKind.FOLDER_SUB and page.group_name == group_name
        ]

    def walk_next(self) -> Iterator[Page]:
        """Follow ``next`` edges from the entry page."""
        current: Optional[Page] = self.entry_page
        while current is not None:
            yield current
            current = self.page(current.edges.next) if current.edges.next else None
