"""Cell coordinates for navigation, folder-up, and exit controls."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .models import Cell, Corner, DeviceGrid


@dataclass(frozen=True, slots=True)
class ControlPlacement:
    """Where each reserved control goes on a grid; ``None`` means dropped."""

    prev: Optional[Cell]
    next: Optional[Cell]
    up: Optional[Cell]
    dropped: tuple[str, ...] = ()


def corner_cell(grid: DeviceGrid, corner: Corner) -> Cell:
    col = grid.cols - 1 if corner.is_right else 0
    row = 0 if corner.is_top else grid.rows - 1
    return Cell(col, row)


def _nav_pair(grid: DeviceGrid, nav_corner: Corner) -> tuple[Optional[Cell], Cell]:
    """Return ``(prev, next)`` on the nav corner's edge row, prev left of next."""
    row = 0 if nav_corner.is_top else grid.rows - 1
    if grid.cols == 1:
        return None, Cell(0, row)
    if nav_corner.is_right:
        return Cell(grid.cols - 2, row), Cell(grid.cols - 1, row)
    return Cell(0, row), Cell(1, row)


def resolve_controls(
    grid: DeviceGrid,
    nav_corner: Corner,
    up_corner: Corner,
    *,
    with_up: bool = True,
) -> ControlPlacement:
    """Place prev/next on the nav corner and up on its own corner.

    When up lands on a nav cell the nav pair moves one column toward the
    center. If that leaves the grid the colliding control gives way: up is
    kept, next survives over prev.
    """
    prev, next_cell = _nav_pair(grid, nav_corner)
    dropped: list[str] = []
    if prev is None:
        dropped.append("prev")

    up = corner_cell(grid, up_corner) if with_up else None
    if up is None or up not in (prev, next_cell):
        return ControlPlacement(prev=prev, next=next_cell, up=up, dropped=tuple(dropped))

    step = -1 if nav_corner.is_right else 1
    shifted_next = Cell(next_cell.col + step, next_cell.row)
    shifted_prev = Cell(prev.col + step, prev.row) if prev is not None else None
    shifted = [cell for cell in (shifted_prev, shifted_next) if cell is not None]
    if all(grid.contains(cell) and cell != up for cell in shifted):
        return ControlPlacement(prev=shifted_prev, next=shifted_next, up=up, dropped=tuple(dropped))

    if up == prev:
        return ControlPlacement(prev=None, next=next_cell, up=up, dropped=(*dropped, "prev"))

    # up took next's cell; next moves into prev's cell when there is one
    if prev is not None:
        return ControlPlacement(prev=None, next=prev, up=up, dropped=(*dropped, "prev"))
    return ControlPlacement(prev=None, next=None, up=up, dropped=(*dropped, "next"))
