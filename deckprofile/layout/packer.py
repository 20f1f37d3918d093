"""Pack ordered content into fixed-capacity pages with navigation reservations."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from .geometry import ControlPlacement
from .models import (
    BuildInvariantViolation,
    Cell,
    ContentItem,
    DeviceGrid,
    ExitButton,
    FolderUp,
    Layout,
    NavNext,
    NavPrev,
)

logger = logging.getLogger(__name__)

# lowest priority first; content needs at least one free cell per page
_DROP_ORDER = ("prev", "next", "up")


@dataclass(slots=True)
class PackedPage:
    """A page's cells before identities and targets are assigned."""

    layout: Layout
    content_count: int
    controls: dict[str, Cell] = field(default_factory=dict)

    @property
    def has_prev(self) -> bool:
        return "prev" in self.controls

    @property
    def has_next(self) -> bool:
        return "next" in self.controls


@dataclass(slots=True)
class PackResult:
    pages: list[PackedPage] = field(default_factory=list)
    diagnostics: list[BuildInvariantViolation] = field(default_factory=list)


class PageBinPacker:
    """Distribute items across as few pages as possible.

    Every page except the first of a chain reserves a prev cell. A page
    reserves a next cell when items remain after its free cells are filled,
    or when it closes a segment that another segment follows. Free cells are
    filled row-major in input order.
    """

    def __init__(self, grid: DeviceGrid, placement: ControlPlacement) -> None:
        self.grid = grid
        self.placement = placement

    def pack(
        self,
        items: Sequence[ContentItem],
        *,
        segment: str,
        chain_start: bool = True,
        has_following: bool = False,
        permanent_up: bool = False,
        exit_on_first: bool = False,
    ) -> PackResult:
        result = PackResult()
        position = 0
        page_index = 0

        while True:
            remaining = len(items) - position
            controls: dict[str, Optional[Cell]] = {}
            up_role: Optional[str] = None
            if permanent_up:
                up_role = "up"
            elif exit_on_first and page_index == 0:
                up_role = "exit"
            if up_role is not None:
                controls["up"] = self.placement.up
            if not (chain_start and page_index == 0):
                controls["prev"] = self.placement.prev

            if remaining > self._free_count(controls) or has_following:
                controls["next"] = self.placement.next

            for role in [role for role, cell in controls.items() if cell is None]:
                self._record(result, segment, page_index, _role_name(role, up_role), "no cell available on this grid")
                del controls[role]

            if remaining > 0:
                for role in _DROP_ORDER:
                    if self._free_count(controls) > 0:
                        break
                    if role in controls:
                        self._record(
                            result,
                            segment,
                            page_index,
                            _role_name(role, up_role),
                            "dropped to leave room for content",
                        )
                        del controls[role]

            placed = self._build_page(items[position:], controls, up_role)
            result.pages.append(placed)
            position += placed.content_count
            page_index += 1
            if position >= len(items):
                break

        return result

    def _free_count(self, controls: dict[str, Optional[Cell]]) -> int:
        reserved = {cell for cell in controls.values() if cell is not None}
        return self.grid.capacity - len(reserved)

    def _build_page(
        self,
        items: Sequence[ContentItem],
        controls: dict[str, Optional[Cell]],
        up_role: Optional[str],
    ) -> PackedPage:
        grid: list[list[Optional[ContentItem]]] = [[None] * self.grid.cols for _ in range(self.grid.rows)]
        placed_controls: dict[str, Cell] = {}
        for role, cell in controls.items():
            if cell is None:
                continue
            grid[cell.row][cell.col] = _control_item(role, up_role)
            placed_controls[role] = cell

        count = 0
        for cell in self.grid.cells():
            if count >= len(items):
                break
            if grid[cell.row][cell.col] is not None:
                continue
            grid[cell.row][cell.col] = items[count]
            count += 1

        layout = tuple(tuple(row) for row in grid)
        return PackedPage(layout=layout, content_count=count, controls=placed_controls)

    @staticmethod
    def _record(result: PackResult, segment: str, page_index: int, control: str, reason: str) -> None:
        message = f"{control} control omitted on {segment} page {page_index + 1}: {reason}"
        logger.warning(message)
        result.diagnostics.append(
            BuildInvariantViolation(
                segment=segment,
                page_index=page_index,
                control=control,
                message=message,
            )
        )


def _role_name(role: str, up_role: Optional[str]) -> str:
    if role == "up" and up_role is not None:
        return up_role
    return role


def _control_item(role: str, up_role: Optional[str]) -> ContentItem:
    if role == "prev":
        return NavPrev()
    if role == "next":
        return NavNext()
    if up_role == "exit":
        return ExitButton()
    return FolderUp()
