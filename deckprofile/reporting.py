"""Build reporting helpers for deck profiles."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from pydantic import BaseModel, Field

from .layout.models import DeviceGrid, NavigationGraph, PageKind

REPORT_FILENAME = "build-report.json"


class LayoutStats(BaseModel):
    pages: int
    main: int
    overflow: int
    page_group: int
    folder_sub: int
    entities: int


class BuildReport(BaseModel):
    profile: str
    generated_at: datetime
    duration_seconds: float
    device: str
    entry_page_id: str
    layout: LayoutStats
    diagnostics: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


def build_layout_stats(graph: NavigationGraph) -> LayoutStats:
    counts = {kind: 0 for kind in PageKind}
    entities = 0
    for page in graph.pages:
        counts[page.kind] += 1
        entities += len(page.entities)
    return LayoutStats(
        pages=len(graph.pages),
        main=counts[PageKind.MAIN],
        overflow=counts[PageKind.OVERFLOW],
        page_group=counts[PageKind.PAGE_GROUP],
        folder_sub=counts[PageKind.FOLDER_SUB],
        entities=entities,
    )


def assemble_report(
    *,
    profile: str,
    duration_seconds: float,
    device: DeviceGrid,
    graph: NavigationGraph,
    skipped_entities: Iterable[str] = (),
) -> BuildReport:
    warnings = [f"Unknown entity skipped: {entity_id}" for entity_id in skipped_entities]
    return BuildReport(
        profile=profile,
        generated_at=datetime.now(timezone.utc),
        duration_seconds=duration_seconds,
        device=f"{device.cols}x{device.rows}",
        entry_page_id=graph.entry_page_id,
        layout=build_layout_stats(graph),
        diagnostics=[diagnostic.message for diagnostic in graph.diagnostics],
        warnings=warnings,
    )


def write_report(report: BuildReport, output_dir: Path) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    target = output_dir / REPORT_FILENAME
    with target.open("w", encoding="utf-8") as handle:
        json.dump(report.model_dump(mode="json"), handle, ensure_ascii=False, indent=2)
    return target
