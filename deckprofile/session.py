"""Rebuild lifecycle for an editing session and its button subscriptions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, Optional

from .entities import EntityRecord
from .layout import build_layout
from .layout.models import Cell, LayoutRequest, NavigationGraph

logger = logging.getLogger(__name__)

Unsubscribe = Callable[[], None]


@dataclass(frozen=True, slots=True)
class ButtonHandle:
    """Identifies one live button: a page and a cell on it."""

    page_id: str
    cell: Cell


class SubscriptionRegistry:
    """Track per-button unsubscribe callbacks between attach and detach."""

    def __init__(self) -> None:
        self._entries: dict[ButtonHandle, Unsubscribe] = {}

    def attach(self, handle: ButtonHandle, unsubscribe: Unsubscribe) -> None:
        if handle in self._entries:
            self.detach(handle)
        self._entries[handle] = unsubscribe

    def detach(self, handle: ButtonHandle) -> bool:
        unsubscribe = self._entries.pop(handle, None)
        if unsubscribe is None:
            return False
        unsubscribe()
        return True

    def detach_all(self) -> int:
        handles = list(self._entries)
        for handle in handles:
            self.detach(handle)
        return len(handles)

    def __contains__(self, handle: object) -> bool:
        return handle in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ButtonHandle]:
        return iter(list(self._entries))


class LayoutSession:
    """Hold the current selection snapshot and the graph built from it.

    Every edit replaces the snapshot and rebuilds from scratch. The new graph
    is swapped in only once it has been built; subscriptions belonging to the
    old graph are detached at that point.
    """

    def __init__(
        self,
        entities: Iterable[EntityRecord],
        request: LayoutRequest,
        *,
        randomize_ids: bool = False,
    ) -> None:
        self._entities = tuple(entities)
        self._request = request
        self._randomize_ids = randomize_ids
        self._graph: Optional[NavigationGraph] = None
        self.registry = SubscriptionRegistry()

    @property
    def request(self) -> LayoutRequest:
        return self._request

    @property
    def entities(self) -> tuple[EntityRecord, ...]:
        return self._entities

    @property
    def graph(self) -> NavigationGraph:
        if self._graph is None:
            return self.rebuild()
        return self._graph

    def update(
        self,
        *,
        entities: Optional[Iterable[EntityRecord]] = None,
        request: Optional[LayoutRequest] = None,
    ) -> NavigationGraph:
        """Apply an edit; on ``ConfigurationError`` the previous state is kept."""
        new_entities = tuple(entities) if entities is not None else self._entities
        new_request = request if request is not None else self._request
        graph = self._build(new_entities, new_request)
        self._entities = new_entities
        self._request = new_request
        self._swap(graph)
        return graph

    def rebuild(self) -> NavigationGraph:
        graph = self._build(self._entities, self._request)
        self._swap(graph)
        return graph

    def attach(self, handle: ButtonHandle, unsubscribe: Unsubscribe) -> None:
        page = self.graph.page(handle.page_id)
        if page.item_at(handle.cell) is None:
            raise KeyError(f"No button at {handle.cell.key} on page {handle.page_id}")
        self.registry.attach(handle, unsubscribe)

    def detach(self, handle: ButtonHandle) -> bool:
        return self.registry.detach(handle)

    def _build(self, entities: tuple[EntityRecord, ...], request: LayoutRequest) -> NavigationGraph:
        return build_layout(entities, request, randomize_ids=self._randomize_ids)

    def _swap(self, graph: NavigationGraph) -> None:
        released = self.registry.detach_all()
        if released:
            logger.debug("Detached %s subscription(s) from the previous layout", released)
        self._graph = graph
