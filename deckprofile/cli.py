"""CLI entrypoints for deck profile generation."""

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Optional, Sequence

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import Config, load_config
from .devices import DEVICE_PRESETS
from .entities import EntityRecord, load_entities, truncate_label
from .layout import build_layout
from .layout.models import (
    EntityItem,
    ExitButton,
    FolderButton,
    FolderUp,
    LayoutRequest,
    NavigationGraph,
    NavNext,
    NavPrev,
    Page,
)
from .layout.validation import ConfigurationError
from .profile import (
    SerializationError,
    archive_filename,
    serialize_graph,
    write_profile_archive,
    write_profile_bundle,
)
from .reporting import BuildReport, assemble_report, write_report

console = Console()
app = typer.Typer(help="Lay out smart-home entities onto grid button decks.")

ConfigPathOption = Annotated[
    str,
    typer.Option("--config", "-c", help="Path to configuration file."),
]


@dataclass(slots=True)
class BuildOutputs:
    """Aggregate results from the build pipeline."""

    graph: NavigationGraph
    report: BuildReport
    written: list[Path]
    report_path: Path


@app.command()
def build(
    config_path: ConfigPathOption = "deckprofile.yml",
    directory: Annotated[
        bool,
        typer.Option("--directory", help="Write a bundle directory instead of an archive."),
    ] = False,
) -> None:
    """Build the page graph and write the profile bundle."""
    config = _load(config_path)
    entities = _load_entities(config)
    request = _request(config, entities)

    start = time.perf_counter()
    graph = _build_graph(entities, request)
    bundle = serialize_graph(graph, name=config.profile_name)

    try:
        if directory or not config.archive:
            written = write_profile_bundle(bundle, config.output_dir / "bundle")
        else:
            archive_path = config.output_dir / archive_filename(config.profile_name)
            written = [write_profile_archive(bundle, archive_path)]
    except SerializationError as exc:
        console.print(f"[bold red]Write failed[/]: {exc}")
        raise typer.Exit(code=1) from exc

    report = assemble_report(
        profile=config.profile_name,
        duration_seconds=time.perf_counter() - start,
        device=request.device,
        graph=graph,
        skipped_entities=_unknown_entities(request, entities),
    )
    outputs = BuildOutputs(
        graph=graph,
        report=report,
        written=written,
        report_path=write_report(report, config.output_dir),
    )
    _print_build_summary(outputs, config)


@app.command()
def preview(
    config_path: ConfigPathOption = "deckprofile.yml",
    page: Annotated[
        Optional[str],
        typer.Option("--page", "-p", help="Only show the page with this name."),
    ] = None,
) -> None:
    """Print every page of the layout as a grid."""
    config = _load(config_path)
    entities = _load_entities(config)
    graph = _build_graph(entities, _request(config, entities))

    pages = [candidate for candidate in graph.pages if page is None or candidate.name == page]
    if not pages:
        console.print(f"[bold red]No page named[/] '{page}'.")
        raise typer.Exit(code=1)
    for candidate in pages:
        console.print(_page_table(candidate, entry=candidate.id == graph.entry_page_id))
    _print_diagnostics(graph)


@app.command()
def devices() -> None:
    """List the known device presets."""
    table = Table(title="Device presets")
    table.add_column("Model")
    table.add_column("Name")
    table.add_column("Grid", justify="right")
    for preset in DEVICE_PRESETS.values():
        table.add_row(preset.model, preset.name, f"{preset.cols}x{preset.rows}")
    console.print(table)


def _load(config_path: str) -> Config:
    try:
        return load_config(config_path)
    except FileNotFoundError as exc:
        console.print(f"[bold red]Configuration not found[/]: {exc}")
        raise typer.Exit(code=1) from exc
    except ConfigurationError as exc:
        console.print(f"[bold red]Invalid configuration[/]: {exc}")
        raise typer.Exit(code=1) from exc


def _load_entities(config: Config) -> list[EntityRecord]:
    try:
        return load_entities(config.entities_file)
    except FileNotFoundError as exc:
        console.print(f"[bold red]Entity file not found[/]: {_display_path(config.entities_file)}")
        raise typer.Exit(code=1) from exc
    except ConfigurationError as exc:
        console.print(f"[bold red]Invalid entity file[/]: {exc}")
        raise typer.Exit(code=1) from exc


def _request(config: Config, entities: Sequence[EntityRecord]) -> LayoutRequest:
    return config.to_request(entities)


def _build_graph(entities: Sequence[EntityRecord], request: LayoutRequest) -> NavigationGraph:
    try:
        return build_layout(entities, request)
    except ConfigurationError as exc:
        console.print(f"[bold red]Invalid configuration[/]: {exc}")
        raise typer.Exit(code=1) from exc


def _unknown_entities(request: LayoutRequest, entities: Sequence[EntityRecord]) -> list[str]:
    known = {entity.id for entity in entities}
    requested = [entity_id for group in request.groups for entity_id in group.entities]
    requested.extend(request.ungrouped)
    return sorted({entity_id for entity_id in requested if entity_id not in known})


def _print_build_summary(outputs: BuildOutputs, config: Config) -> None:
    stats = outputs.report.layout
    console.print(
        "[bold green]Layout[/]: "
        f"{stats.pages} page(s) "
        f"(main {stats.main}, overflow {stats.overflow}, "
        f"page groups {stats.page_group}, folder pages {stats.folder_sub}) "
        f"holding {stats.entities} entity button(s)"
    )
    console.print(
        "[bold green]Bundle[/]: "
        f"written {len(outputs.written)} file(s) to {_display_path(config.output_dir)}"
    )
    console.print(f"[bold green]Report[/]: {_display_path(outputs.report_path)}")
    _print_diagnostics(outputs.graph)
    for warning in outputs.report.warnings:
        console.print(f"[bold yellow]Warning[/]: {warning}")


def _print_diagnostics(graph: NavigationGraph) -> None:
    for diagnostic in graph.diagnostics:
        console.print(f"[bold yellow]Layout[/]: {diagnostic.message}")


def _page_table(page: Page, *, entry: bool) -> Table:
    title = f"{escape(page.name)} ({page.kind.value})"
    if entry:
        title += ", entry"
    table = Table(title=title, show_header=False, show_lines=True)
    for _ in page.layout[0]:
        table.add_column(justify="center", min_width=10)
    for row in page.layout:
        table.add_row(*(_cell_label(item) for item in row))
    return table


def _cell_label(item: object) -> str:
    if item is None:
        return ""
    if isinstance(item, EntityItem):
        return f"[{item.style.accent_color}]{escape(truncate_label(item.label, 10))}[/]"
    if isinstance(item, FolderButton):
        return f"[bold]▸ {escape(truncate_label(item.group_name, 8))}[/]"
    if isinstance(item, NavPrev):
        return "◀ Prev"
    if isinstance(item, NavNext):
        return "Next ▶"
    if isinstance(item, FolderUp):
        return "▲ Up"
    if isinstance(item, ExitButton):
        return "← Back"
    return "?"


def _display_path(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)
