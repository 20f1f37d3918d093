"""Page layout engine: catalog, packing, folder chains, and the page graph."""

from .catalog import ContentCatalog, ResolvedCatalog, classify_domain, sort_entities
from .folders import FolderSubPageBuilder
from .geometry import ControlPlacement, resolve_controls
from .graph import IdFactory, NavigationGraphBuilder, build_layout
from .models import (
    BuildInvariantViolation,
    Category,
    Cell,
    Corner,
    DeviceGrid,
    DisplayType,
    EntityItem,
    ExitButton,
    FolderButton,
    FolderUp,
    Group,
    LayoutRequest,
    NavigationGraph,
    NavigationPreferences,
    NavNext,
    NavPrev,
    Page,
    PageKind,
    SortMode,
    Style,
)
from .packer import PageBinPacker
from .validation import ConfigurationError, validate_request

__all__ = [
    "BuildInvariantViolation",
    "Category",
    "Cell",
    "ConfigurationError",
    "ContentCatalog",
    "ControlPlacement",
    "Corner",
    "DeviceGrid",
    "DisplayType",
    "EntityItem",
    "ExitButton",
    "FolderButton",
    "FolderSubPageBuilder",
    "FolderUp",
    "Group",
    "IdFactory",
    "LayoutRequest",
    "NavNext",
    "NavPrev",
    "NavigationGraph",
    "NavigationGraphBuilder",
    "NavigationPreferences",
    "Page",
    "PageBinPacker",
    "PageKind",
    "ResolvedCatalog",
    "SortMode",
    "Style",
    "build_layout",
    "classify_domain",
    "resolve_controls",
    "sort_entities",
    "validate_request",
]
