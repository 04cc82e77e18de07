from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from domain.models import ArtboardComponent, GridPosition, Rect, SizeMode
from domain.services.geometry import clamp, round_half_up

logger = logging.getLogger(__name__)

GRID_FINE_GRAIN = 2
GRID_BASE_COLUMNS = 12
GRID_MAX_COLUMNS = GRID_BASE_COLUMNS * GRID_FINE_GRAIN
MIN_FINE_ROW_HEIGHT = 16
INITIAL_OCCUPANCY_ROWS = 10
PLACEMENT_ROW_LIMIT = 100
GRID_RESIZE_DIRECTIONS = ("e", "s", "se")


@dataclass(frozen=True)
class WidgetGridConfig:
    columns: int = GRID_BASE_COLUMNS
    row_height: float = 40.0
    gap: float = 8.0

    def __post_init__(self) -> None:
        if self.columns < 1:
            msg = f"Grid needs at least one column, got {self.columns}"
            raise ValueError(msg)
        if self.row_height <= 0:
            msg = f"Row height must be positive, got {self.row_height}"
            raise ValueError(msg)
        if self.gap < 0:
            msg = f"Gap must be non-negative, got {self.gap}"
            raise ValueError(msg)

    def column_width(self, container_width: float) -> float:
        return (container_width - self.gap * (self.columns - 1)) / self.columns


DEFAULT_WIDGET_GRID = WidgetGridConfig()


def fine_grain_config(
    config: WidgetGridConfig = DEFAULT_WIDGET_GRID,
    factor: int = GRID_FINE_GRAIN,
) -> WidgetGridConfig:
    """Grid with ``factor`` times the columns and proportionally shorter rows."""
    return WidgetGridConfig(
        columns=config.columns * factor,
        row_height=max(MIN_FINE_ROW_HEIGHT, round_half_up(config.row_height / factor)),
        gap=config.gap,
    )


def upscale_grid_units(value: int, factor: int = GRID_FINE_GRAIN) -> int:
    return round_half_up(value * factor)


def downscale_grid_units(value: float, factor: int = GRID_FINE_GRAIN) -> int:
    return round_half_up(value / factor)


def upscale_grid_position(position: GridPosition, factor: int = GRID_FINE_GRAIN) -> GridPosition:
    return GridPosition(
        col=upscale_grid_units(position.col, factor),
        row=upscale_grid_units(position.row, factor),
        col_span=upscale_grid_units(position.col_span, factor),
        row_span=upscale_grid_units(position.row_span, factor),
    )


def downscale_grid_position(position: GridPosition, factor: int = GRID_FINE_GRAIN) -> GridPosition:
    return GridPosition(
        col=max(0, downscale_grid_units(position.col, factor)),
        row=max(0, downscale_grid_units(position.row, factor)),
        col_span=max(1, downscale_grid_units(position.col_span, factor)),
        row_span=max(1, downscale_grid_units(position.row_span, factor)),
    )


@dataclass(frozen=True)
class ComponentIntrinsicSize:
    min_cols: int
    max_cols: int
    default_cols: int
    min_rows: int
    max_rows: int
    default_rows: int
    aspect_ratio: Optional[float] = None
    size_mode: SizeMode = SizeMode.INTRINSIC

    @property
    def keeps_ratio(self) -> bool:
        return bool(self.aspect_ratio) and self.size_mode == SizeMode.FIXED_RATIO

    def clamp_cols(self, value: int) -> int:
        return int(clamp(value, self.min_cols, self.max_cols))

    def clamp_rows(self, value: int) -> int:
        return int(clamp(value, self.min_rows, self.max_rows))


_WIDE_CHART = ComponentIntrinsicSize(4, 12, 6, 3, 8, 4, 16 / 9, SizeMode.FIXED_RATIO)

COMPONENT_INTRINSIC_SIZES: Dict[str, ComponentIntrinsicSize] = {
    "chart-line": _WIDE_CHART,
    "chart-bar": _WIDE_CHART,
    "chart-doughnut": ComponentIntrinsicSize(3, 6, 4, 3, 6, 4, 1.0, SizeMode.FIXED_RATIO),
    "chart": _WIDE_CHART,
    "heading": ComponentIntrinsicSize(2, 12, 12, 1, 2, 1, None, SizeMode.FILL),
    "kpi": ComponentIntrinsicSize(2, 6, 3, 2, 4, 3, None, SizeMode.INTRINSIC),
    "default": ComponentIntrinsicSize(3, 12, 6, 2, 6, 3, None, SizeMode.INTRINSIC),
}


def get_intrinsic_size(component_type: str) -> ComponentIntrinsicSize:
    return COMPONENT_INTRINSIC_SIZES.get(component_type, COMPONENT_INTRINSIC_SIZES["default"])


@dataclass
class OccupancyMap:
    """Row-major cell occupancy that grows downwards on demand."""

    columns: int
    rows: List[List[bool]] = field(default_factory=list)

    @classmethod
    def empty(cls, columns: int, rows: int = INITIAL_OCCUPANCY_ROWS) -> OccupancyMap:
        return cls(columns, [[False] * columns for _ in range(rows)])

    def ensure_rows(self, count: int) -> None:
        while len(self.rows) < count:
            self.rows.append([False] * self.columns)

    def mark(self, position: GridPosition) -> None:
        self.ensure_rows(position.end_row)
        for row in range(max(0, position.row), position.end_row):
            for col in range(max(0, position.col), min(position.end_col, self.columns)):
                self.rows[row][col] = True

    def is_free(self, col: int, row: int, col_span: int, row_span: int) -> bool:
        if col < 0 or row < 0 or col + col_span > self.columns:
            return False
        self.ensure_rows(row + row_span)
        return not any(
            self.rows[r][c] for r in range(row, row + row_span) for c in range(col, col + col_span)
        )


def find_next_available_position(
    occupancy: OccupancyMap,
    col_span: int,
    row_span: int,
    columns: int | None = None,
) -> GridPosition:
    columns = columns if columns is not None else occupancy.columns
    col_span = max(1, min(col_span, columns))
    row_span = max(1, row_span)
    row = 0
    while row <= PLACEMENT_ROW_LIMIT:
        for col in range(0, columns - col_span + 1):
            if occupancy.is_free(col, row, col_span, row_span):
                return GridPosition(col, row, col_span, row_span)
        row += 1
    logger.warning("No free cells within %s rows for %sx%s", PLACEMENT_ROW_LIMIT, col_span, row_span)
    return GridPosition(0, row, col_span, row_span)


@dataclass(frozen=True)
class LayoutInput:
    instance_id: str
    component_type: str
    grid_position: GridPosition | None = None

    @classmethod
    def from_component(cls, component: ArtboardComponent) -> LayoutInput:
        position = component.grid_position.to_grid_position() if component.grid_position else None
        return cls(component.instance_id, component.component_type, position)


@dataclass(frozen=True)
class LayoutResult:
    instance_id: str
    component_type: str
    grid_position: GridPosition
    pixel_bounds: Rect


def grid_position_to_pixels(
    position: GridPosition,
    col_width: float,
    config: WidgetGridConfig = DEFAULT_WIDGET_GRID,
) -> Rect:
    return Rect(
        x=position.col * (col_width + config.gap),
        y=position.row * (config.row_height + config.gap),
        width=position.col_span * col_width + (position.col_span - 1) * config.gap,
        height=position.row_span * config.row_height + (position.row_span - 1) * config.gap,
    )


def _ratio_rows(intrinsic: ComponentIntrinsicSize, col_span: int, col_width: float, config: WidgetGridConfig) -> int:
    width = col_span * col_width + (col_span - 1) * config.gap
    target_height = width / (intrinsic.aspect_ratio or 1.0)
    return intrinsic.clamp_rows(round_half_up(target_height / config.row_height))


def calculate_widget_layout(
    components: Iterable[LayoutInput | ArtboardComponent],
    container_width: float,
    config: WidgetGridConfig = DEFAULT_WIDGET_GRID,
) -> List[LayoutResult]:
    """Lay out a widget's components on its grid.

    Components carrying an explicit grid position keep it and block those
    cells; the rest take their intrinsic default spans and flow into the
    first free slot, top-left first.
    """
    inputs = [
        item if isinstance(item, LayoutInput) else LayoutInput.from_component(item)
        for item in components
    ]
    if not inputs:
        return []

    occupancy = OccupancyMap.empty(config.columns)
    col_width = config.column_width(container_width)
    results: List[LayoutResult] = []

    for item in inputs:
        if item.grid_position is None:
            continue
        occupancy.mark(item.grid_position)
        results.append(
            LayoutResult(
                item.instance_id,
                item.component_type,
                item.grid_position,
                grid_position_to_pixels(item.grid_position, col_width, config),
            )
        )

    for item in inputs:
        if item.grid_position is not None:
            continue
        intrinsic = get_intrinsic_size(item.component_type)
        col_span = min(intrinsic.clamp_cols(intrinsic.default_cols), config.columns)
        row_span = intrinsic.clamp_rows(intrinsic.default_rows)
        if intrinsic.keeps_ratio:
            row_span = _ratio_rows(intrinsic, col_span, col_width, config)
        position = find_next_available_position(occupancy, col_span, row_span, config.columns)
        occupancy.mark(position)
        results.append(
            LayoutResult(
                item.instance_id,
                item.component_type,
                position,
                grid_position_to_pixels(position, col_width, config),
            )
        )

    return results


def calculate_total_height(
    layouts: Sequence[LayoutResult],
    config: WidgetGridConfig = DEFAULT_WIDGET_GRID,
) -> float:
    if not layouts:
        return 0.0
    max_row = max(layout.grid_position.end_row for layout in layouts)
    return max_row * (config.row_height + config.gap) - config.gap


@dataclass(frozen=True)
class FineGrainLayout:
    """Editor layout on the fine grid with the coarse positions that get stored."""

    grid: WidgetGridConfig
    layouts: List[LayoutResult]
    stored_positions: Dict[str, GridPosition]

    @property
    def total_height(self) -> float:
        return calculate_total_height(self.layouts, self.grid)


def calculate_fine_grain_layout(
    components: Iterable[LayoutInput | ArtboardComponent],
    container_width: float,
    config: WidgetGridConfig = DEFAULT_WIDGET_GRID,
    factor: int = GRID_FINE_GRAIN,
) -> FineGrainLayout:
    """Lay out on ``config`` and render on its fine-grain counterpart.

    Positions in ``layouts`` are fine units; ``stored_positions`` are the
    downscaled units a document persists.
    """
    fine = fine_grain_config(config, factor)
    fine_width = fine.column_width(container_width)
    layouts: List[LayoutResult] = []
    for result in calculate_widget_layout(components, container_width, config):
        position = upscale_grid_position(result.grid_position, factor)
        layouts.append(
            LayoutResult(
                result.instance_id,
                result.component_type,
                position,
                grid_position_to_pixels(position, fine_width, fine),
            )
        )
    stored = {layout.instance_id: downscale_grid_position(layout.grid_position, factor) for layout in layouts}
    return FineGrainLayout(fine, layouts, stored)


@dataclass(frozen=True)
class ComponentDimensions:
    width: float
    height: float
    col_span: int
    row_span: int


def calculate_component_dimensions(
    intrinsic: ComponentIntrinsicSize,
    container_width: float,
    config: WidgetGridConfig = DEFAULT_WIDGET_GRID,
) -> ComponentDimensions:
    col_width = config.column_width(container_width)
    col_span = intrinsic.default_cols
    width = col_span * col_width + (col_span - 1) * config.gap
    row_span = intrinsic.default_rows
    if intrinsic.keeps_ratio:
        target_height = width / (intrinsic.aspect_ratio or 1.0)
        row_span = intrinsic.clamp_rows(math.ceil(target_height / config.row_height))
    height = row_span * config.row_height + (row_span - 1) * config.gap
    return ComponentDimensions(width, height, col_span, row_span)


def resize_grid_component(
    component_type: str,
    position: GridPosition,
    delta_cols: int,
    delta_rows: int,
    config: WidgetGridConfig = DEFAULT_WIDGET_GRID,
    cell_width: float | None = None,
    direction: str = "se",
) -> GridPosition:
    """Resize by whole cells within the component's span limits.

    ``direction`` names the edges being dragged: ``e`` changes columns, ``s``
    changes rows. Fixed-ratio components recompute the paired span from the
    driving one, using the pixel width of a cell and the row height;
    ``cell_width`` defaults to square cells.
    """
    if direction not in GRID_RESIZE_DIRECTIONS:
        msg = f"Unsupported grid resize direction: {direction!r}"
        raise ValueError(msg)
    intrinsic = get_intrinsic_size(component_type)
    cell_width = cell_width if cell_width and cell_width > 0 else config.row_height
    max_cols = max(1, min(intrinsic.max_cols, config.columns - position.col))
    col_span = position.col_span
    row_span = position.row_span

    def fit_cols(value: int) -> int:
        return min(max_cols, max(intrinsic.min_cols, value))

    if "e" in direction:
        col_span = fit_cols(position.col_span + delta_cols)
    if "s" in direction:
        row_span = intrinsic.clamp_rows(position.row_span + delta_rows)

    if intrinsic.keeps_ratio:
        ratio = intrinsic.aspect_ratio or 1.0
        drives_cols = "e" in direction and (delta_cols != 0 or "s" not in direction)
        drives_rows = "s" in direction and (delta_rows != 0 or "e" not in direction)
        if drives_cols:
            row_span = intrinsic.clamp_rows(round_half_up(col_span * cell_width / ratio / config.row_height))
        elif drives_rows:
            col_span = fit_cols(round_half_up(row_span * config.row_height * ratio / cell_width))

    return GridPosition(position.col, position.row, col_span, row_span)
