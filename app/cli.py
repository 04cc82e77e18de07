from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
import uvicorn
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from adapters.filesystem.canvas_repository import FileSystemCanvasRepository
from adapters.filesystem.json_utils import dump_json_bytes
from app.config import AppSettings, load_settings
from app.web_main import create_app
from domain.artboard_presets import ARTBOARD_PRESETS
from domain.component_sizes import get_default_size
from domain.models import Artboard, CanvasDocument, Point
from domain.services.placement import find_initial_position
from domain.services.snap_resolver import resolve_snap
from domain.services.sub_grid import calculate_fine_grain_layout
from domain.services.z_order import parse_z_order_operation, update_component_z_order

app = typer.Typer(no_args_is_help=True)
console = Console()

CONFIG_OPTION = typer.Option(None, "--config", help="Engine YAML config file.")


def _settings(config_path: Optional[Path]) -> AppSettings:
    try:
        return load_settings(config_path)
    except (FileNotFoundError, ValidationError) as exc:
        console.print(f"[red]Invalid configuration:[/] {exc}")
        raise typer.Exit(code=1) from exc


def _load_document(path: Path) -> CanvasDocument:
    try:
        return FileSystemCanvasRepository().load_by_path(path)
    except FileNotFoundError as exc:
        console.print(f"[red]File not found:[/] {path}")
        raise typer.Exit(code=1) from exc
    except ValueError as exc:
        console.print(f"[red]Validation failed:[/] {exc}")
        raise typer.Exit(code=1) from exc


def _artboard(document: CanvasDocument, artboard_id: Optional[str]) -> Artboard:
    if artboard_id is None and len(document.artboards) == 1:
        return document.artboards[0]
    artboard = document.artboard(artboard_id) if artboard_id else None
    if artboard is None:
        console.print(f"[red]Artboard not found:[/] {artboard_id or '(pass --artboard)'}")
        raise typer.Exit(code=1)
    return artboard


@app.command("validate")
def validate(input_path: Path = typer.Argument(..., help="Canvas document to validate.")) -> None:
    document = _load_document(input_path)
    components = sum(len(artboard.components) for artboard in document.artboards)
    console.print(
        f"[green]Valid canvas document:[/] {input_path} "
        f"({len(document.artboards)} artboards, {components} components)"
    )


@app.command("snap")
def snap(
    input_path: Path = typer.Argument(..., help="Canvas document."),
    component_id: str = typer.Option(..., "--component", help="Component to move."),
    x: float = typer.Option(..., help="Raw target x in artboard coordinates."),
    y: float = typer.Option(..., help="Raw target y in artboard coordinates."),
    artboard_id: Optional[str] = typer.Option(None, "--artboard"),
    bypass: bool = typer.Option(False, help="Skip all snapping, as with Alt held."),
    as_json: bool = typer.Option(False, "--json", help="Print the full result as JSON."),
    config_path: Optional[Path] = CONFIG_OPTION,
) -> None:
    settings = _settings(config_path)
    artboard = _artboard(_load_document(input_path), artboard_id)
    component = artboard.component(component_id)
    if component is None:
        console.print(f"[red]Component not found:[/] {component_id}")
        raise typer.Exit(code=1)

    result = resolve_snap(
        Point(x, y),
        component.instance_id,
        component.position.to_rect().size,
        artboard.sibling_bounds(exclude_id=component.instance_id),
        settings.engine.snap.to_snap_settings(),
        bypass=bypass,
    )
    if as_json:
        typer.echo(dump_json_bytes(result).decode("utf-8"))
        return
    console.print(
        f"[green]{result.source.value}[/] -> ({result.position.x:g}, {result.position.y:g})"
        f" with {len(result.guides)} guide(s)"
    )


@app.command("place")
def place(
    input_path: Path = typer.Argument(..., help="Canvas document."),
    component_type: str = typer.Option("default", "--type", help="Component type to insert."),
    artboard_id: Optional[str] = typer.Option(None, "--artboard"),
    config_path: Optional[Path] = CONFIG_OPTION,
) -> None:
    settings = _settings(config_path)
    artboard = _artboard(_load_document(input_path), artboard_id)
    size = get_default_size(component_type)
    existing = [component.position.to_rect() for component in artboard.components]
    position = find_initial_position(
        size,
        existing,
        artboard.dimensions.to_size(),
        settings.engine.placement.to_placement_config(),
    )
    console.print(
        f"[green]{component_type}[/] {size.width:g}x{size.height:g} at ({position.x:g}, {position.y:g})"
    )


@app.command("layout")
def layout(
    input_path: Path = typer.Argument(..., help="Canvas document."),
    widget_id: str = typer.Option(..., "--widget", help="Widget whose components to lay out."),
    container_width: float = typer.Option(..., help="Widget content width in pixels."),
    artboard_id: Optional[str] = typer.Option(None, "--artboard"),
    config_path: Optional[Path] = CONFIG_OPTION,
) -> None:
    settings = _settings(config_path)
    artboard = _artboard(_load_document(input_path), artboard_id)
    widget = next((item for item in artboard.widgets if item.id == widget_id), None)
    if widget is None:
        console.print(f"[red]Widget not found:[/] {widget_id}")
        raise typer.Exit(code=1)

    grid_settings = settings.engine.grid
    widget_layout = calculate_fine_grain_layout(
        widget.components, container_width, grid_settings.to_widget_grid(), grid_settings.fine_grain
    )
    table = Table(title=f"Widget {widget_id}")
    for column in ("component", "type", "col", "row", "span", "pixels"):
        table.add_column(column)
    for result in widget_layout.layouts:
        position = widget_layout.stored_positions[result.instance_id]
        bounds = result.pixel_bounds
        table.add_row(
            result.instance_id,
            result.component_type,
            str(position.col),
            str(position.row),
            f"{position.col_span}x{position.row_span}",
            f"{bounds.x:g},{bounds.y:g} {bounds.width:g}x{bounds.height:g}",
        )
    console.print(table)
    console.print(f"Total height: {widget_layout.total_height:g}px")


@app.command("z-order")
def z_order(
    input_path: Path = typer.Argument(..., help="Canvas document."),
    component_id: str = typer.Option(..., "--component"),
    operation: str = typer.Option(..., help="bring_to_front, send_to_back, bring_forward or send_backward."),
    artboard_id: Optional[str] = typer.Option(None, "--artboard"),
    write: bool = typer.Option(False, help="Save the restacked document in place."),
) -> None:
    try:
        parsed = parse_z_order_operation(operation)
    except ValueError as exc:
        console.print(f"[red]{exc}[/]")
        raise typer.Exit(code=1) from exc
    document = _load_document(input_path)
    artboard = _artboard(document, artboard_id)
    if artboard.component(component_id) is None:
        console.print(f"[red]Component not found:[/] {component_id}")
        raise typer.Exit(code=1)

    artboard.components = update_component_z_order(artboard.components, component_id, parsed)
    for component in sorted(artboard.components, key=lambda item: item.position.z_index):
        console.print(f"{component.position.z_index}: {component.instance_id}")
    if write:
        FileSystemCanvasRepository().save(document, input_path)
        console.print(f"[green]Wrote[/] {input_path}")


@app.command("presets")
def presets() -> None:
    table = Table(title="Artboard presets")
    for column in ("format", "category", "size", "label"):
        table.add_column(column)
    for preset in ARTBOARD_PRESETS.values():
        dimensions = preset.dimensions
        table.add_row(
            preset.format,
            preset.category,
            f"{dimensions.width_px:g}x{dimensions.height_px:g}",
            dimensions.label,
        )
    console.print(table)


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1"),
    port: int = typer.Option(8000),
    config_path: Optional[Path] = CONFIG_OPTION,
) -> None:
    settings = _settings(config_path)
    console.print(f"[green]Serving[/] {settings.title} on http://{host}:{port}")
    uvicorn.run(create_app(settings), host=host, port=port)


if __name__ == "__main__":
    app()
