"""Assign page identities and wire prev/next/folder/up edges."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Iterable, Optional, Sequence

from .catalog import ContentCatalog, ResolvedCatalog
from .folders import FolderChain, FolderSubPageBuilder, folder_segment_label
from .geometry import resolve_controls
from .models import (
    BuildInvariantViolation,
    ContentItem,
    DeviceGrid,
    FolderButton,
    FolderUp,
    LayoutRequest,
    NavigationGraph,
    NavigationPreferences,
    NavNext,
    NavPrev,
    Page,
    PageEdges,
    PageKind,
)
from .packer import PackedPage, PageBinPacker
from .validation import validate_request

if TYPE_CHECKING:
    from ..entities import EntityRecord

logger = logging.getLogger(__name__)

MAIN_PAGE_NAME = "Main"


class IdFactory:
    """Produce page identifiers.

    Identifiers are name-based UUIDs derived from the profile name and the
    page's structural key, so identical input yields identical ids. Pass
    ``randomize=True`` for fresh random ids on every build.
    """

    def __init__(self, namespace: str, *, randomize: bool = False) -> None:
        self._namespace = uuid.uuid5(uuid.NAMESPACE_URL, f"deckprofile:{namespace}")
        self.randomize = randomize

    def page_id(self, key: str) -> str:
        if self.randomize:
            return str(uuid.uuid4())
        return str(uuid.uuid5(self._namespace, key))


@dataclass(slots=True)
class _LinearSegment:
    label: str
    key: str
    name: str
    first_kind: PageKind
    rest_kind: PageKind
    group_name: Optional[str]
    items: Sequence[ContentItem]


@dataclass(slots=True)
class _Draft:
    id: str
    kind: PageKind
    name: str
    group_name: Optional[str]
    packed: PackedPage
    edges: PageEdges


class NavigationGraphBuilder:
    """Build the page graph bottom-up.

    Folder sub-chains are packed and named first so every folder button's
    target exists before the opener page is finalized.
    """

    def __init__(
        self,
        grid: DeviceGrid,
        navigation: NavigationPreferences,
        *,
        id_factory: IdFactory,
    ) -> None:
        self.grid = grid
        self.navigation = navigation
        self.ids = id_factory
        linear_placement = resolve_controls(
            grid,
            navigation.nav_corner,
            navigation.resolved_exit_corner,
            with_up=navigation.exit_button,
        )
        folder_placement = resolve_controls(grid, navigation.nav_corner, navigation.resolved_up_corner)
        self._linear_packer = PageBinPacker(grid, linear_placement)
        self._folder_builder = FolderSubPageBuilder(PageBinPacker(grid, folder_placement))

    def build(self, catalog: ResolvedCatalog) -> NavigationGraph:
        diagnostics: list[BuildInvariantViolation] = []

        chains = self._folder_builder.build_all(catalog.folder_segments)
        folder_drafts = {name: self._folder_drafts(chain) for name, chain in chains.items()}
        diagnostics.extend(
            self._attach_ids(
                self._folder_builder.diagnostics,
                {folder_segment_label(name): drafts for name, drafts in folder_drafts.items()},
            )
        )

        linear, linear_diagnostics = self._linear_drafts(catalog)
        diagnostics.extend(linear_diagnostics)

        openers: dict[str, str] = {}
        ordered: list[_Draft] = []
        for draft in linear:
            ordered.append(draft)
            for group_name in _folder_buttons(draft.packed):
                openers[group_name] = draft.id
                ordered.extend(folder_drafts.get(group_name, []))

        for index, draft in enumerate(linear):
            draft.edges = PageEdges(
                prev=linear[index - 1].id if index > 0 else None,
                next=linear[index + 1].id if index + 1 < len(linear) else None,
            )
        for group_name, drafts in folder_drafts.items():
            opener = openers[group_name]
            for index, draft in enumerate(drafts):
                draft.edges = PageEdges(
                    prev=drafts[index - 1].id if index > 0 else None,
                    next=drafts[index + 1].id if index + 1 < len(drafts) else None,
                    parent=opener,
                )

        folder_entries = {name: drafts[0].id for name, drafts in folder_drafts.items() if drafts}
        pages = tuple(self._finalize(draft, folder_entries) for draft in ordered)
        logger.debug(
            "Built %s page(s): %s linear, %s folder sub-page(s)",
            len(pages),
            len(linear),
            len(pages) - len(linear),
        )
        return NavigationGraph(pages=pages, entry_page_id=linear[0].id, diagnostics=tuple(diagnostics))

    def _folder_drafts(self, chain: FolderChain) -> list[_Draft]:
        return [
            _Draft(
                id=self.ids.page_id(f"folder:{chain.group_name}:{index}"),
                kind=PageKind.FOLDER_SUB,
                name=_page_name(chain.group_name, index),
                group_name=chain.group_name,
                packed=packed,
                edges=PageEdges(),
            )
            for index, packed in enumerate(chain.pages, start=1)
        ]

    def _linear_drafts(self, catalog: ResolvedCatalog) -> tuple[list[_Draft], list[BuildInvariantViolation]]:
        segments: list[_LinearSegment] = []
        # an empty main page is only kept when nothing else would be shown
        if catalog.initial or not catalog.page_segments:
            segments.append(
                _LinearSegment(
                    label="main",
                    key="main",
                    name=MAIN_PAGE_NAME,
                    first_kind=PageKind.MAIN,
                    rest_kind=PageKind.OVERFLOW,
                    group_name=None,
                    items=catalog.initial,
                )
            )
        for segment in catalog.page_segments:
            segments.append(
                _LinearSegment(
                    label=f"page group '{segment.group.name}'",
                    key=f"page:{segment.group.name}",
                    name=segment.group.name,
                    first_kind=PageKind.PAGE_GROUP,
                    rest_kind=PageKind.PAGE_GROUP,
                    group_name=segment.group.name,
                    items=segment.items,
                )
            )

        drafts: list[_Draft] = []
        diagnostics: list[BuildInvariantViolation] = []
        for position, segment in enumerate(segments):
            result = self._linear_packer.pack(
                segment.items,
                segment=segment.label,
                chain_start=position == 0,
                has_following=position + 1 < len(segments),
                exit_on_first=position == 0 and self.navigation.exit_button,
            )
            segment_drafts = [
                _Draft(
                    id=self.ids.page_id(f"{segment.key}:{index}"),
                    kind=segment.first_kind if index == 1 else segment.rest_kind,
                    name=_page_name(segment.name, index),
                    group_name=segment.group_name,
                    packed=packed,
                    edges=PageEdges(),
                )
                for index, packed in enumerate(result.pages, start=1)
            ]
            diagnostics.extend(self._attach_ids(result.diagnostics, {segment.label: segment_drafts}))
            drafts.extend(segment_drafts)
        return drafts, diagnostics

    @staticmethod
    def _attach_ids(
        diagnostics: Iterable[BuildInvariantViolation],
        drafts_by_segment: dict[str, list[_Draft]],
    ) -> list[BuildInvariantViolation]:
        attached: list[BuildInvariantViolation] = []
        for diagnostic in diagnostics:
            drafts = drafts_by_segment.get(diagnostic.segment, [])
            if diagnostic.page_index < len(drafts):
                diagnostic = replace(diagnostic, page_id=drafts[diagnostic.page_index].id)
            attached.append(diagnostic)
        return attached

    @staticmethod
    def _finalize(draft: _Draft, folder_entries: dict[str, str]) -> Page:
        layout = tuple(
            tuple(_resolve_target(item, draft.edges, folder_entries) for item in row)
            for row in draft.packed.layout
        )
        return Page(
            id=draft.id,
            kind=draft.kind,
            name=draft.name,
            layout=layout,
            group_name=draft.group_name,
            edges=draft.edges,
        )


def _page_name(base: str, index: int) -> str:
    return base if index == 1 else f"{base} {index}"


def _folder_buttons(packed: PackedPage) -> list[str]:
    return [
        item.group_name
        for row in packed.layout
        for item in row
        if isinstance(item, FolderButton)
    ]


def _resolve_target(
    item: Optional[ContentItem],
    edges: PageEdges,
    folder_entries: dict[str, str],
) -> Optional[ContentItem]:
    if isinstance(item, NavPrev):
        return item.model_copy(update={"target_page_id": edges.prev})
    if isinstance(item, NavNext):
        return item.model_copy(update={"target_page_id": edges.next})
    if isinstance(item, FolderUp):
        return item.model_copy(update={"target_page_id": edges.parent})
    if isinstance(item, FolderButton):
        return item.model_copy(update={"target_page_id": folder_entries[item.group_name]})
    return item


def build_layout(
    entities: Iterable["EntityRecord"],
    request: LayoutRequest,
    *,
    randomize_ids: bool = False,
) -> NavigationGraph:
    """Rebuild the whole page graph from an entity list and a layout request.

    Raises ``ConfigurationError`` before building anything when the request
    is invalid.
    """
    styles = validate_request(request)
    catalog = ContentCatalog(entities, request, styles=styles).resolve()
    builder = NavigationGraphBuilder(
        request.device,
        request.navigation,
        id_factory=IdFactory(request.profile_name, randomize=randomize_ids),
    )
    return builder.build(catalog)
