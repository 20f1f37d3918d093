"""Up-front checks for layout requests."""

from __future__ import annotations

import re
from typing import Mapping

from .models import DeviceGrid, LayoutRequest, Style

HEX_COLOR_PATTERN = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")
STYLE_COLOR_FIELDS = (
    "controllable_color",
    "informational_color",
    "trigger_color",
    "background_color",
)


class ConfigurationError(ValueError):
    """Raised when a layout request cannot produce any valid page."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


def validate_grid(device: DeviceGrid) -> None:
    if device.cols <= 0 or device.rows <= 0:
        raise ConfigurationError(
            f"Device grid must have positive dimensions, got {device.cols}x{device.rows}.",
            field="device",
        )


def resolve_color(value: str, palette: Mapping[str, str]) -> str:
    """Return the hex color for ``value``, looking names up in ``palette``."""
    text = value.strip()
    if HEX_COLOR_PATTERN.match(text):
        return text.upper()
    resolved = palette.get(text)
    if resolved is not None and HEX_COLOR_PATTERN.match(resolved.strip()):
        return resolved.strip().upper()
    raise ConfigurationError(f"Unresolvable color '{value}'.", field="styles")


def resolve_styles(request: LayoutRequest) -> dict[str, Style]:
    """Resolve every style's colors against the palette."""
    resolved: dict[str, Style] = {}
    for name, style in request.styles.items():
        updates = {}
        for field_name in STYLE_COLOR_FIELDS:
            try:
                updates[field_name] = resolve_color(getattr(style, field_name), request.palette)
            except ConfigurationError as exc:
                raise ConfigurationError(
                    f"Style '{name}' {field_name}: {exc}",
                    field=f"styles.{name}.{field_name}",
                ) from exc
        resolved[name] = style.model_copy(update=updates)
    return resolved


def validate_request(request: LayoutRequest) -> dict[str, Style]:
    """Check a request before any page is built and return its resolved styles."""
    validate_grid(request.device)

    styles = resolve_styles(request)
    if request.ungrouped_style not in styles:
        raise ConfigurationError(
            f"Ungrouped style '{request.ungrouped_style}' is not defined.",
            field="ungrouped_style",
        )

    seen_names: set[str] = set()
    owners: dict[str, str] = {}
    for group in request.groups:
        if group.name in seen_names:
            raise ConfigurationError(f"Duplicate group name '{group.name}'.", field="groups")
        seen_names.add(group.name)
        if group.style is not None and group.style not in styles:
            raise ConfigurationError(
                f"Group '{group.name}' references unknown style '{group.style}'.",
                field="groups",
            )
        for entity_id in group.entities:
            previous = owners.get(entity_id)
            if previous is not None and previous != group.name:
                raise ConfigurationError(
                    f"Entity '{entity_id}' belongs to both '{previous}' and '{group.name}'.",
                    field="groups",
                )
            owners[entity_id] = group.name

    return styles
