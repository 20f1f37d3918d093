"""Entity records supplied by the entity source, plus membership tag helpers."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Iterable, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator

from .layout.models import DisplayType, Group
from .layout.validation import ConfigurationError

logger = logging.getLogger(__name__)

LABEL_PREFIX = "deck-assistant:"

DOMAIN_NAMES = {
    "light": "Lights",
    "switch": "Switches",
    "climate": "Climate/HVAC",
    "media_player": "Media Players",
    "sensor": "Sensors",
    "binary_sensor": "Binary Sensors",
    "cover": "Covers/Blinds",
    "fan": "Fans",
    "lock": "Locks",
    "vacuum": "Vacuums",
    "camera": "Cameras",
    "automation": "Automations",
    "script": "Scripts",
    "scene": "Scenes",
    "input_boolean": "Input Booleans",
    "input_number": "Input Numbers",
    "input_select": "Input Selects",
}


class EntityRecord(BaseModel):
    """One entity as reported by the entity source."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(description="Entity identifier, e.g. 'light.kitchen'.")
    domain: str = Field(default="", validate_default=True)
    display_name: Optional[str] = Field(default=None, alias="displayName")
    membership_tag: Optional[str] = Field(default=None, alias="membershipTag")
    area: Optional[str] = Field(default=None, description="Area or room name.")
    floor: Optional[str] = Field(default=None, description="Floor name.")

    @field_validator("domain")
    def _derive_domain(cls, value: str, info: ValidationInfo) -> str:
        if value:
            return value
        entity_id = info.data.get("id") or ""
        return entity_id.split(".", 1)[0]

    @property
    def label(self) -> str:
        return self.display_name or self.id


def load_entities(path: Path) -> list[EntityRecord]:
    """Load entity records from a JSON or YAML file.

    ``.json`` files are read as JSON, anything else as YAML. The file may hold
    a list of records or a mapping with an ``entities`` list.
    Raw state objects (``entity_id`` plus ``attributes.friendly_name``) are
    accepted as well.
    """
    data = _read_entity_file(Path(path)) or []
    if isinstance(data, dict):
        data = data.get("entities") or []
    if not isinstance(data, list):
        raise ConfigurationError(f"Entity file {path} should contain a list of entities.", field="entities_file")

    records: list[EntityRecord] = []
    for index, raw in enumerate(data):
        if not isinstance(raw, dict):
            logger.warning("Entity record #%s in %s should be a mapping; skipping.", index, path)
            continue
        try:
            records.append(EntityRecord.model_validate(_normalize_record(raw)))
        except ValidationError as exc:
            logger.warning("Skipping invalid entity record #%s in %s: %s", index, path, exc)
    return records


def _read_entity_file(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() == ".json":
            return json.loads(text)
        return yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Unable to parse {path}: {exc}", field="entities_file") from exc


def _normalize_record(raw: dict[str, Any]) -> dict[str, Any]:
    payload = dict(raw)
    if "id" not in payload and "entity_id" in payload:
        payload["id"] = payload.pop("entity_id")
    attributes = payload.pop("attributes", None)
    if isinstance(attributes, dict) and attributes.get("friendly_name") and not payload.get("displayName"):
        payload.setdefault("display_name", attributes["friendly_name"])
    if "friendly_name" in payload:
        payload.setdefault("display_name", payload.pop("friendly_name"))
    if "area_id" in payload:
        payload.setdefault("area", payload.pop("area_id"))
    return payload


def format_domain_name(domain: str) -> str:
    known = DOMAIN_NAMES.get(domain)
    if known:
        return known
    return domain[:1].upper() + domain[1:].replace("_", " ")


def truncate_label(label: str, limit: int = 12) -> str:
    if len(label) <= limit:
        return label
    return f"{label[: limit - 1]}…"


def slugify(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "_", text.lower()).strip("_")


def build_label_string(hierarchy: Iterable[str]) -> str:
    return LABEL_PREFIX + ":".join(hierarchy)


def parse_label_hierarchy(label: str) -> list[str]:
    if not label.startswith(LABEL_PREFIX):
        return []
    return [part for part in label[len(LABEL_PREFIX):].split(":") if part]


def groups_from_membership_tags(
    entities: Iterable[EntityRecord],
    *,
    display_type: DisplayType = DisplayType.FOLDER,
) -> list[Group]:
    """Rebuild groups from previously saved membership tags.

    Groups appear in order of their first tagged entity; untagged entities
    are left out.
    """
    members: dict[str, list[str]] = {}
    for entity in entities:
        if not entity.membership_tag:
            continue
        hierarchy = parse_label_hierarchy(entity.membership_tag)
        if not hierarchy:
            continue
        members.setdefault(hierarchy[0], []).append(entity.id)

    return [
        Group(
            name=slug.replace("_", " ").title(),
            entities=tuple(entity_ids),
            display_type=display_type,
        )
        for slug, entity_ids in members.items()
    ]


def tag_entities(entities: Iterable[EntityRecord], groups: Iterable[Group]) -> list[EntityRecord]:
    """Return ``entities`` with membership tags set from ``groups``.

    Grouped entities get ``deck-assistant:<group slug>``; the others keep
    whatever tag they had.
    """
    tags = {
        entity_id: build_label_string([slugify(group.name)])
        for group in groups
        for entity_id in group.entities
    }
    return [
        entity.model_copy(update={"membership_tag": tags[entity.id]}) if entity.id in tags else entity
        for entity in entities
    ]
