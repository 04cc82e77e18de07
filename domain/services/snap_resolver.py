from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

from domain.models import (
    EntityBounds,
    Point,
    Rect,
    ResizeHandle,
    ResizeSnapResult,
    SnapCandidate,
    SnapDebug,
    SnapResult,
    SnapSource,
    Size,
)
from domain.services.alignment import find_alignment_guides, snap_to_guides
from domain.services.geometry import clamp_non_negative_size

GRID_SIZE_PX = 8.0
SNAP_THRESHOLD_PX = 5.0

RESIZE_MOVING_ID = "__resize__"


@dataclass(frozen=True)
class SnapSettings:
    grid_size: float = GRID_SIZE_PX
    threshold: float = SNAP_THRESHOLD_PX
    alignment_enabled: bool = True
    grid_enabled: bool = True


def snap_to_grid(value: float, grid_size: float = GRID_SIZE_PX) -> float:
    if not math.isfinite(value) or not math.isfinite(grid_size) or grid_size <= 0:
        return value
    return math.floor(value / grid_size + 0.5) * grid_size


def snap_to_grid_within_threshold(
    value: float,
    grid_size: float = GRID_SIZE_PX,
    threshold: float = SNAP_THRESHOLD_PX,
) -> float:
    if (
        not math.isfinite(value)
        or not math.isfinite(grid_size)
        or grid_size <= 0
        or not math.isfinite(threshold)
        or threshold < 0
    ):
        return value
    snapped = snap_to_grid(value, grid_size)
    return snapped if abs(snapped - value) <= threshold else value


def _candidate(raw: Point, snapped: Point) -> SnapCandidate:
    return SnapCandidate(snapped.x, snapped.y, snapped.x - raw.x, snapped.y - raw.y)


def _manhattan(candidate: SnapCandidate) -> float:
    return abs(candidate.dx) + abs(candidate.dy)


def _moved(candidate: SnapCandidate) -> bool:
    return candidate.dx != 0 or candidate.dy != 0


def resolve_snap(
    raw_position: Point,
    moving_id: str,
    moving_size: Size,
    siblings: Sequence[EntityBounds] | None = None,
    settings: SnapSettings | None = None,
    bypass: bool = False,
) -> SnapResult:
    """Snap a moving rect's top-left corner.

    Alignment with sibling edges and centres competes with grid snapping; the
    candidate with the smaller Manhattan displacement wins, alignment on ties.
    """
    settings = settings or SnapSettings()
    raw = Point(raw_position.x, raw_position.y)
    if bypass:
        return SnapResult(
            position=raw,
            source=SnapSource.NONE,
            guides=[],
            debug=SnapDebug(raw, None, None, SnapSource.NONE, 0.0, 0.0),
        )

    moving = EntityBounds(moving_id, raw.x, raw.y, moving_size.width, moving_size.height)
    others = [item for item in siblings or [] if item.id != moving_id]
    guides = (
        find_alignment_guides(moving, others, settings.threshold)
        if others and settings.alignment_enabled
        else []
    )
    aligned = snap_to_guides(raw, moving, guides, settings.threshold) if guides else raw
    alignment = _candidate(raw, aligned)

    gridded = raw
    if settings.grid_enabled:
        gridded = Point(
            snap_to_grid_within_threshold(raw.x, settings.grid_size, settings.threshold),
            snap_to_grid_within_threshold(raw.y, settings.grid_size, settings.threshold),
        )
    grid = _candidate(raw, gridded)

    alignment_moved = _moved(alignment)
    grid_moved = _moved(grid)
    if alignment_moved and (not grid_moved or _manhattan(alignment) <= _manhattan(grid)):
        chosen, source, chosen_guides = aligned, SnapSource.ALIGNMENT, guides
    elif grid_moved:
        chosen, source, chosen_guides = gridded, SnapSource.GRID, []
    else:
        chosen, source, chosen_guides = raw, SnapSource.NONE, []

    return SnapResult(
        position=chosen,
        source=source,
        guides=list(chosen_guides),
        debug=SnapDebug(
            raw=raw,
            alignment=alignment,
            grid=grid,
            chosen_source=source,
            chosen_dx=chosen.x - raw.x,
            chosen_dy=chosen.y - raw.y,
        ),
    )


def _rect_distance(candidate: Rect, raw: Rect) -> float:
    return (
        abs(candidate.x - raw.x)
        + abs(candidate.y - raw.y)
        + abs(candidate.width - raw.width)
        + abs(candidate.height - raw.height)
    )


def _project_alignment(raw: Rect, start: Rect, aligned: Point, handle: ResizeHandle) -> Rect:
    x, y, width, height = raw.x, raw.y, raw.width, raw.height
    if handle.moves_right:
        aligned_right = aligned.x + raw.width
        width = aligned_right - raw.x
    if handle.moves_left:
        x = aligned.x
        width = start.right - x
    if handle.moves_bottom:
        aligned_bottom = aligned.y + raw.height
        height = aligned_bottom - raw.y
    if handle.moves_top:
        y = aligned.y
        height = start.bottom - y
    return clamp_non_negative_size(Rect(x, y, width, height))


def _project_grid(raw: Rect, start: Rect, handle: ResizeHandle, settings: SnapSettings) -> Rect:
    x, y, width, height = raw.x, raw.y, raw.width, raw.height
    grid_size = settings.grid_size
    threshold = settings.threshold
    if handle.moves_right:
        width = snap_to_grid_within_threshold(raw.right, grid_size, threshold) - raw.x
    if handle.moves_left:
        x = snap_to_grid_within_threshold(raw.x, grid_size, threshold)
        width = start.right - x
    if handle.moves_bottom:
        height = snap_to_grid_within_threshold(raw.bottom, grid_size, threshold) - raw.y
    if handle.moves_top:
        y = snap_to_grid_within_threshold(raw.y, grid_size, threshold)
        height = start.bottom - y
    return clamp_non_negative_size(Rect(x, y, width, height))


def resolve_resize_snap(
    raw_rect: Rect,
    start_rect: Rect,
    handle: ResizeHandle,
    siblings: Sequence[EntityBounds] | None = None,
    settings: SnapSettings | None = None,
    bypass: bool = False,
    moving_id: str = RESIZE_MOVING_ID,
) -> ResizeSnapResult:
    """Snap the edges a resize handle controls, keeping the opposite edges pinned.

    Min/max size constraints are not enforced here; callers clamp afterwards.
    """
    settings = settings or SnapSettings()
    raw = clamp_non_negative_size(raw_rect)
    start = clamp_non_negative_size(start_rect)
    if bypass:
        return ResizeSnapResult(rect=raw, source=SnapSource.NONE, guides=[])

    others = [item for item in siblings or [] if item.id != moving_id]
    moving = EntityBounds.from_rect(moving_id, raw)
    guides = (
        find_alignment_guides(moving, others, settings.threshold)
        if others and settings.alignment_enabled
        else []
    )
    aligned_position = (
        snap_to_guides(raw.position, moving, guides, settings.threshold) if guides else raw.position
    )
    aligned = _project_alignment(raw, start, aligned_position, handle)
    gridded = _project_grid(raw, start, handle, settings) if settings.grid_enabled else raw

    alignment_distance = _rect_distance(aligned, raw)
    grid_distance = _rect_distance(gridded, raw)
    if alignment_distance != 0 and (grid_distance == 0 or alignment_distance <= grid_distance):
        return ResizeSnapResult(rect=aligned, source=SnapSource.ALIGNMENT, guides=list(guides))
    if grid_distance != 0:
        return ResizeSnapResult(rect=gridded, source=SnapSource.GRID, guides=[])
    return ResizeSnapResult(rect=raw, source=SnapSource.NONE, guides=[])
