from pathlib import Path
from typing import Any, Iterable

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .devices import find_preset, model_for_type
from .entities import EntityRecord, groups_from_membership_tags
from .layout.models import (
    DeviceGrid,
    Group,
    LayoutRequest,
    NavigationPreferences,
    SortMode,
    Style,
)
from .layout.validation import ConfigurationError

CONFIG_FILENAME = "deckprofile.yml"


class Config(BaseModel):
    profile_name: str = Field(default="Home Assistant")
    device: DeviceGrid = Field(
        default_factory=lambda: DeviceGrid(cols=5, rows=3),
        description="Device preset name (e.g. 'StreamDeckXL'), SDK device type number, or an explicit {cols, rows} grid.",
    )
    entities_file: Path = Field(default=Path("entities.json"))
    output_dir: Path = Field(default=Path("dist"))
    archive: bool = Field(
        default=True,
        description="Write a single zip archive instead of a bundle directory.",
    )
    navigation: NavigationPreferences = Field(default_factory=NavigationPreferences)
    palette: dict[str, str] = Field(
        default_factory=dict,
        description="Named colors that styles may reference instead of hex values.",
    )
    styles: dict[str, Style] = Field(default_factory=lambda: {"ungrouped": Style()})
    ungrouped_style: str = Field(default="ungrouped")
    groups: list[Group] = Field(default_factory=list)
    ungrouped: list[str] = Field(default_factory=list)
    sort_mode: SortMode = Field(default=SortMode.SELECTION)
    manual_order: list[str] = Field(default_factory=list)
    use_membership_tags: bool = Field(
        default=False,
        description="Derive folder groups from entity membership tags when no groups are configured.",
    )

    @field_validator("device", mode="before")
    def _resolve_preset(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            # numeric device type as reported by the deck SDK
            value = model_for_type(value)
        if isinstance(value, str):
            preset = find_preset(value)
            if preset is None:
                raise ValueError(f"Unknown device preset '{value}'.")
            return {"cols": preset.cols, "rows": preset.rows}
        return value

    @field_validator("entities_file", "output_dir", mode="before")
    def _ensure_path(cls, value: Any) -> Path:
        return Path(value)

    @field_validator("styles")
    def _ensure_ungrouped_style(cls, value: dict[str, Style]) -> dict[str, Style]:
        value.setdefault("ungrouped", Style())
        return value

    def to_request(self, entities: Iterable[EntityRecord] = ()) -> LayoutRequest:
        """Snapshot the configuration as an immutable layout request."""
        groups = list(self.groups)
        if not groups and self.use_membership_tags:
            groups = groups_from_membership_tags(entities)
        return LayoutRequest(
            profile_name=self.profile_name,
            device=self.device,
            groups=tuple(groups),
            ungrouped=tuple(self.ungrouped),
            sort_mode=self.sort_mode,
            manual_order=tuple(self.manual_order),
            styles=dict(self.styles),
            palette=dict(self.palette),
            ungrouped_style=self.ungrouped_style,
            navigation=self.navigation,
        )


def load_config(path: str | Path) -> Config:
    """Load configuration and resolve relative paths based on the config location.

    The ``path`` argument may point to a file (e.g., ``/deck/deckprofile.yml``)
    or a directory containing that file. Relative paths inside the
    configuration are interpreted relative to the directory holding the file.
    """
    candidate = Path(path)
    data: Any = {}
    if candidate.is_dir():
        # A directory without a config file falls back to defaults.
        config_file = candidate / CONFIG_FILENAME
        if config_file.exists():
            data = _read_yaml(config_file)
        base_dir = candidate.resolve()
    else:
        if not candidate.exists():
            raise FileNotFoundError(candidate)
        data = _read_yaml(candidate)
        base_dir = candidate.parent.resolve()

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration at {candidate} should be a mapping.")

    try:
        cfg = Config(**data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration in {candidate}: {exc}") from exc

    def _abs_required(value: Path) -> Path:
        return value if value.is_absolute() else (base_dir / value).resolve()

    cfg.entities_file = _abs_required(cfg.entities_file)
    cfg.output_dir = _abs_required(cfg.output_dir)
    return cfg


def _read_yaml(path: Path) -> Any:
    try:
        with path.open("r", encoding="utf-8") as handle:
            return yaml.safe_load(handle) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Unable to parse {path}: {exc}") from exc
