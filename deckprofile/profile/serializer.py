"""Walk a finished page graph and emit the profile bundle."""

from __future__ import annotations

from ..entities import truncate_label
from ..layout.models import (
    ContentItem,
    EntityItem,
    ExitButton,
    FolderButton,
    FolderUp,
    NavigationGraph,
    NavNext,
    NavPrev,
)
from .models import PageRecord, ProfileAction, ProfileBundle

EXIT_TITLE = "← Back"


def serialize_graph(graph: NavigationGraph, *, name: str) -> ProfileBundle:
    """Map every occupied cell of every page to an action record."""
    pages: list[PageRecord] = []
    for page in graph.pages:
        cells: dict[str, ProfileAction] = {}
        for cell, item in page.occupied():
            if isinstance(item, ExitButton) and page.id != graph.entry_page_id:
                raise ValueError(f"Exit control found on non-entry page {page.id}")
            cells[cell.key] = action_for(item)
        pages.append(PageRecord(id=page.id, kind=page.kind, name=page.name, cells=cells))
    return ProfileBundle(name=name, entry_page_id=graph.entry_page_id, pages=pages)


def action_for(item: ContentItem) -> ProfileAction:
    if isinstance(item, EntityItem):
        return ProfileAction(
            invoke=item.entity_id,
            title=truncate_label(item.label),
            color=item.style.accent_color,
            background=item.style.background_color,
        )
    if isinstance(item, ExitButton):
        return ProfileAction(return_to_previous=True, title=EXIT_TITLE)
    if isinstance(item, FolderButton):
        return _jump(item.target_page_id, truncate_label(item.group_name), item)
    if isinstance(item, NavPrev):
        return _jump(item.target_page_id, "Prev", item)
    if isinstance(item, NavNext):
        return _jump(item.target_page_id, "Next", item)
    if isinstance(item, FolderUp):
        return _jump(item.target_page_id, "Up", item)
    raise TypeError(f"Unsupported content item: {item!r}")


def _jump(target: str | None, title: str, item: ContentItem) -> ProfileAction:
    if target is None:
        raise ValueError(f"Unresolved navigation target for {item.kind} control")
    return ProfileAction(jump_to=target, title=title)
