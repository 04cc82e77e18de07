from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from domain.models import EntityBounds, Point, Rect, Size
from domain.services.geometry import (
    constrain_to_bounds,
    is_within_bounds,
    rects_overlap,
)

logger = logging.getLogger(__name__)

PLACEMENT_PADDING = 8.0
CASCADE_OFFSET = 24.0
SPIRAL_STEP = 8.0
MAX_CELL_SEARCH_RADIUS = 200


@dataclass(frozen=True)
class PlacementConfig:
    padding: float = PLACEMENT_PADDING
    cascade_offset: float = CASCADE_OFFSET
    spiral_step: float = SPIRAL_STEP


@dataclass(frozen=True)
class GridCell:
    x: int
    y: int
    w: int
    h: int
    id: str = ""


def _collides(candidate: Rect, existing: Sequence[Rect]) -> bool:
    return any(rects_overlap(candidate, other) for other in existing)


def _lattice(start: float, stop: float, step: float) -> list[float]:
    values: list[float] = []
    value = start
    while value <= stop:
        values.append(value)
        value += step
    return values


def find_initial_position(
    size: Size,
    existing: Sequence[Rect],
    container: Size,
    config: PlacementConfig | None = None,
) -> Point:
    """First collision-free slot for a new rect, scanning rows top-left first.

    When no slot is free the rect cascades diagonally from the last placed
    rect, wrapping to a new row instead of overflowing the right edge.
    """
    config = config or PlacementConfig()
    padding = config.padding
    step = max(padding, 1.0)
    max_x = container.width - size.width - padding
    max_y = container.height - size.height - padding

    for y in _lattice(padding, max_y, step):
        for x in _lattice(padding, max_x, step):
            candidate = Rect(x, y, size.width, size.height)
            if not _collides(candidate, existing):
                return Point(x, y)

    position = cascade_position(size, existing, container, config)
    logger.debug("No free slot for %sx%s, cascading to %s", size.width, size.height, position)
    return position


def cascade_position(
    size: Size,
    existing: Sequence[Rect],
    container: Size,
    config: PlacementConfig | None = None,
) -> Point:
    config = config or PlacementConfig()
    padding = config.padding
    if not existing:
        return Point(padding, padding)

    last = existing[-1]
    x = last.x + config.cascade_offset
    y = last.y + config.cascade_offset
    if x + size.width > container.width:
        x = padding
        y = max(item.bottom for item in existing) + padding

    max_x = max(0.0, container.width - size.width)
    max_y = max(0.0, container.height - size.height)
    return Point(max(0.0, min(x, max_x)), max(0.0, min(y, max_y)))


def find_non_overlapping_position(
    rect: Rect,
    components: Sequence[EntityBounds],
    container: Size,
    exclude_id: str | None = None,
    config: PlacementConfig | None = None,
) -> Point:
    config = config or PlacementConfig()
    others = [item.rect for item in components if item.id != exclude_id]

    constrained = constrain_to_bounds(rect, container)
    moved = rect.moved_to(constrained.x, constrained.y)
    if not _collides(moved, others):
        return moved.position

    step = max(config.spiral_step, 1.0)
    max_radius = max(container.width, container.height)
    radius = step
    while radius < max_radius:
        steps = int(round(radius / step))
        for ix in range(-steps, steps + 1):
            for iy in range(-steps, steps + 1):
                if abs(ix) != steps and abs(iy) != steps:
                    continue
                candidate = rect.moved_to(rect.x + ix * step, rect.y + iy * step)
                if not is_within_bounds(candidate, container):
                    continue
                if not _collides(candidate, others):
                    return candidate.position
        radius += step

    max_y = max((item.bottom for item in others), default=-step) + step
    logger.debug("Spiral search exhausted for %s, stacking below content", rect)
    return Point(
        max(0.0, min(rect.x, container.width - rect.width)),
        min(max_y, container.height - rect.height),
    )


def _cells_collide(x: int, y: int, source: GridCell, existing: Sequence[GridCell]) -> bool:
    for other in existing:
        if source.id and other.id == source.id:
            continue
        if x < other.x + other.w and x + source.w > other.x and y < other.y + other.h and y + source.h > other.y:
            return True
    return False


def find_next_free_cell(
    source: GridCell,
    existing: Sequence[GridCell],
    columns: int,
    max_rows: int,
) -> tuple[int, int]:
    """Nearest free grid slot for a copy of ``source``, preferring right then below."""

    def fits(x: int, y: int) -> bool:
        return (
            x >= 0
            and y >= 0
            and x + source.w <= columns
            and y + source.h <= max_rows
            and not _cells_collide(x, y, source, existing)
        )

    for x, y in ((source.x + source.w, source.y), (source.x, source.y + source.h)):
        if fits(x, y):
            return (x, y)

    for radius in range(1, MAX_CELL_SEARCH_RADIUS):
        for dy in range(-radius, radius + 1):
            ty = source.y + dy
            if fits(source.x + radius, ty):
                return (source.x + radius, ty)
            if fits(source.x - radius, ty):
                return (source.x - radius, ty)
        for dx in range(-radius + 1, radius):
            tx = source.x + dx
            if fits(tx, source.y + radius):
                return (tx, source.y + radius)
            if fits(tx, source.y - radius):
                return (tx, source.y - radius)

    logger.debug("Grid is full, offsetting copy of %s", source.id or "widget")
    return (source.x + 2, source.y + 2)
