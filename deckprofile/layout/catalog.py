"""Resolve groups and ungrouped selections into ordered content lists."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Iterable, Mapping, Optional

from .models import (
    Category,
    ContentItem,
    DisplayType,
    EntityItem,
    FolderButton,
    Group,
    ItemStyle,
    LayoutRequest,
    SortMode,
    Style,
)
from .validation import validate_request

if TYPE_CHECKING:
    from ..entities import EntityRecord

logger = logging.getLogger(__name__)

CONTROLLABLE_DOMAINS = frozenset(
    {
        "light",
        "switch",
        "fan",
        "cover",
        "lock",
        "climate",
        "media_player",
        "vacuum",
        "humidifier",
        "water_heater",
        "valve",
        "siren",
        "input_boolean",
        "input_number",
        "input_select",
        "number",
        "select",
    }
)
TRIGGER_DOMAINS = frozenset({"automation", "script", "scene", "button", "input_button"})
INFORMATIONAL_DOMAINS = frozenset(
    {
        "sensor",
        "binary_sensor",
        "camera",
        "weather",
        "device_tracker",
        "person",
        "sun",
        "zone",
        "calendar",
        "update",
    }
)


def classify_domain(domain: str) -> Category:
    """Map an entity domain to its accent color category."""
    if domain in CONTROLLABLE_DOMAINS:
        return Category.CONTROLLABLE
    if domain in TRIGGER_DOMAINS:
        return Category.TRIGGER
    return Category.INFORMATIONAL


@dataclass(slots=True)
class GroupSegment:
    """Entities of one page or folder group, ready for packing."""

    group: Group
    items: list[EntityItem]


@dataclass(slots=True)
class ResolvedCatalog:
    """Ordered content for the initial segment plus the per-group segments."""

    initial: list[ContentItem] = field(default_factory=list)
    page_segments: list[GroupSegment] = field(default_factory=list)
    folder_segments: list[GroupSegment] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def entity_count(self) -> int:
        count = sum(1 for item in self.initial if isinstance(item, EntityItem))
        for segment in (*self.page_segments, *self.folder_segments):
            count += len(segment.items)
        return count


class ContentCatalog:
    """Turn a layout request and entity records into packable content."""

    def __init__(
        self,
        entities: Iterable["EntityRecord"],
        request: LayoutRequest,
        *,
        styles: Optional[Mapping[str, Style]] = None,
    ) -> None:
        self._entities: dict[str, "EntityRecord"] = {}
        for entity in entities:
            self._entities.setdefault(entity.id, entity)
        self._request = request
        self._styles = dict(styles) if styles is not None else validate_request(request)

    def resolve(self) -> ResolvedCatalog:
        request = self._request
        result = ResolvedCatalog()
        folder_buttons: list[ContentItem] = []
        flat_items: list[ContentItem] = []

        for group in request.groups:
            items = self._entity_items(group.entities, group.style or request.ungrouped_style, result)
            if not items:
                logger.warning("Group '%s' has no known entities; skipping.", group.name)
                continue
            if group.display_type is DisplayType.FOLDER:
                folder_buttons.append(FolderButton(group_name=group.name))
                result.folder_segments.append(GroupSegment(group=group, items=items))
            elif group.display_type is DisplayType.PAGE:
                result.page_segments.append(GroupSegment(group=group, items=items))
            else:
                flat_items.extend(items)

        ungrouped = self._ungrouped_records(result)
        ungrouped_items = [self._to_item(record, request.ungrouped_style) for record in ungrouped]

        result.initial = [*folder_buttons, *flat_items, *ungrouped_items]
        return result

    def _entity_items(
        self,
        entity_ids: Iterable[str],
        style_name: str,
        result: ResolvedCatalog,
    ) -> list[EntityItem]:
        items: list[EntityItem] = []
        seen: set[str] = set()
        for entity_id in entity_ids:
            if entity_id in seen:
                continue
            seen.add(entity_id)
            record = self._entities.get(entity_id)
            if record is None:
                logger.warning("Unknown entity '%s'; skipping.", entity_id)
                result.skipped.append(entity_id)
                continue
            items.append(self._to_item(record, style_name))
        return items

    def _ungrouped_records(self, result: ResolvedCatalog) -> list["EntityRecord"]:
        grouped = {entity_id for group in self._request.groups for entity_id in group.entities}
        records: list["EntityRecord"] = []
        seen: set[str] = set()
        for entity_id in self._request.ungrouped:
            if entity_id in seen:
                continue
            seen.add(entity_id)
            if entity_id in grouped:
                logger.warning("Entity '%s' is already grouped; ignoring ungrouped selection.", entity_id)
                continue
            record = self._entities.get(entity_id)
            if record is None:
                logger.warning("Unknown entity '%s'; skipping.", entity_id)
                result.skipped.append(entity_id)
                continue
            records.append(record)
        return sort_entities(records, self._request.sort_mode, self._request.manual_order)

    def _to_item(self, record: "EntityRecord", style_name: str) -> EntityItem:
        style = self._styles[style_name]
        category = classify_domain(record.domain)
        return EntityItem(
            entity_id=record.id,
            domain=record.domain,
            label=record.label,
            style=ItemStyle(
                style_name=style_name,
                category=category,
                accent_color=style.color_for(category),
                background_color=style.background_color,
            ),
        )


def sort_entities(
    records: list["EntityRecord"],
    mode: SortMode,
    manual_order: Iterable[str] = (),
) -> list["EntityRecord"]:
    """Order ungrouped entities; ``selection`` keeps the given order."""
    if mode is SortMode.SELECTION:
        return list(records)
    if mode is SortMode.MANUAL:
        positions = {entity_id: index for index, entity_id in enumerate(manual_order)}
        fallback = len(positions)
        return sorted(records, key=lambda record: positions.get(record.id, fallback))
    return sorted(records, key=_SORT_KEYS[mode])


def _name_key(record: "EntityRecord") -> tuple[str, str]:
    return (record.label.casefold(), record.id)


def _optional_key(value: Optional[str]) -> tuple[bool, str]:
    # entities without a value sort last
    return (value is None, (value or "").casefold())


_SORT_KEYS: dict[SortMode, Callable[["EntityRecord"], tuple]] = {
    SortMode.ALPHABETICAL: _name_key,
    SortMode.DOMAIN: lambda record: (record.domain, *_name_key(record)),
    SortMode.AREA: lambda record: (*_optional_key(record.area), *_name_key(record)),
    SortMode.FLOOR: lambda record: (
        *_optional_key(record.floor),
        *_optional_key(record.area),
        *_name_key(record),
    ),
}
