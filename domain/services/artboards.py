from __future__ import annotations

import math
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from typing import List, Optional

from domain.artboard_presets import default_artboard_name, require_artboard_preset
from domain.models import Artboard, ArtboardDimensions, CanvasPosition, Point, Size
from domain.services.geometry import contains_point, rects_touch_or_overlap

FIRST_ARTBOARD_POSITION = Point(100.0, 100.0)
ARTBOARD_SPACING = 100.0
MAX_OFF_CANVAS = 10000.0
ARTBOARD_CELL_SIZE = 8
ARTBOARD_GRID_MARGIN = 4
MIN_ARTBOARD_COLUMNS = 8
ARTBOARD_CONTAINER_PADDING = 16.0


def generate_artboard_id() -> str:
    return f"artboard-{uuid.uuid4().hex[:12]}"


def generate_component_id() -> str:
    return f"component-{uuid.uuid4().hex[:12]}"


def calculate_default_position(existing: Sequence[Artboard]) -> Point:
    """First artboard at (100, 100); later ones flow to the right of the last."""
    if not existing:
        return FIRST_ARTBOARD_POSITION
    last = existing[-1]
    return Point(last.position.x + last.dimensions.width_px + ARTBOARD_SPACING, last.position.y)


def create_artboard(
    format_id: str,
    existing: Sequence[Artboard] = (),
    *,
    name: str | None = None,
    position: Point | None = None,
    background_color: str | None = None,
    artboard_id: str | None = None,
) -> Artboard:
    preset = require_artboard_preset(format_id)
    target = position or calculate_default_position(existing)
    return Artboard(
        id=artboard_id or generate_artboard_id(),
        name=name or default_artboard_name(format_id),
        format=format_id,
        dimensions=preset.dimensions.model_copy(),
        position=CanvasPosition(x=target.x, y=target.y),
        background_color=background_color or "#ffffff",
        grid_padding=ARTBOARD_CONTAINER_PADDING,
    )


def duplicate_artboard(artboards: Sequence[Artboard], artboard_id: str, count: int = 1) -> List[Artboard]:
    """Copies of one artboard appended after the rightmost edge of the canvas.

    Copies get fresh component ids and are never locked.
    """
    source = next((artboard for artboard in artboards if artboard.id == artboard_id), None)
    if source is None or count < 1:
        return []

    max_right = max(
        [source.position.x] + [a.position.x + a.dimensions.width_px for a in artboards]
    )
    start_x = max_right + ARTBOARD_SPACING
    copies: List[Artboard] = []
    for index in range(count):
        suffix = f" {index + 1}" if count > 1 else ""
        components = [
            component.model_copy(update={"instance_id": generate_component_id()}, deep=True)
            for component in source.components
        ]
        copy = source.model_copy(
            update={
                "id": generate_artboard_id(),
                "name": f"{source.name} Copy{suffix}",
                "position": CanvasPosition(x=start_x, y=source.position.y),
                "components": components,
                "locked": False,
            },
            deep=True,
        )
        copies.append(copy)
        start_x += copy.dimensions.width_px + ARTBOARD_SPACING
    return copies


def is_point_in_artboard(point: Point, artboard: Artboard) -> bool:
    return contains_point(artboard.to_rect(), point)


def artboards_overlap(first: Artboard, second: Artboard) -> bool:
    return rects_touch_or_overlap(first.to_rect(), second.to_rect())


def find_artboard_at_position(point: Point, artboards: Sequence[Artboard]) -> Optional[Artboard]:
    for artboard in reversed(artboards):
        if artboard.visible and is_point_in_artboard(point, artboard):
            return artboard
    return None


def validate_artboard_position(position: Point, canvas_size: Size) -> Point:
    return Point(
        max(-MAX_OFF_CANVAS, min(position.x, canvas_size.width + MAX_OFF_CANVAS)),
        max(-MAX_OFF_CANVAS, min(position.y, canvas_size.height + MAX_OFF_CANVAS)),
    )


def canvas_to_artboard(point: Point, artboard: Artboard) -> Point:
    return Point(point.x - artboard.position.x, point.y - artboard.position.y)


def artboard_to_canvas(point: Point, artboard: Artboard) -> Point:
    return Point(point.x + artboard.position.x, point.y + artboard.position.y)


def scale_dimensions(dimensions: ArtboardDimensions, scale: float) -> Size:
    return Size(round(dimensions.width_px * scale), round(dimensions.height_px * scale))


@dataclass(frozen=True)
class ArtboardGridConfig:
    columns: int
    cell_height: int
    margin: int
    max_rows: int = 0
    effective_width: float = 0.0
    effective_height: float = 0.0


def artboard_grid_config(width_px: float) -> ArtboardGridConfig:
    effective_width = width_px - ARTBOARD_GRID_MARGIN * 2
    columns = max(MIN_ARTBOARD_COLUMNS, math.floor(effective_width / ARTBOARD_CELL_SIZE))
    return ArtboardGridConfig(columns, ARTBOARD_CELL_SIZE, ARTBOARD_GRID_MARGIN)


def effective_grid_config(
    dimensions: ArtboardDimensions,
    padding: float = ARTBOARD_CONTAINER_PADDING,
) -> ArtboardGridConfig:
    width = dimensions.width_px - padding * 2
    height = dimensions.height_px - padding * 2
    base = artboard_grid_config(width)
    return ArtboardGridConfig(
        columns=base.columns,
        cell_height=base.cell_height,
        margin=base.margin,
        max_rows=math.ceil(height / base.cell_height),
        effective_width=width,
        effective_height=height,
    )
