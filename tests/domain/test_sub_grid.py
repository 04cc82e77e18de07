from __future__ import annotations

import pytest

from domain.models import GridPosition, Rect
from domain.services.sub_grid import (
    LayoutInput,
    OccupancyMap,
    WidgetGridConfig,
    calculate_component_dimensions,
    calculate_fine_grain_layout,
    calculate_total_height,
    calculate_widget_layout,
    downscale_grid_position,
    downscale_grid_units,
    find_next_available_position,
    fine_grain_config,
    get_intrinsic_size,
    grid_position_to_pixels,
    resize_grid_component,
    upscale_grid_position,
    upscale_grid_units,
)
from tests.helpers.canvas_fixtures import make_component


@pytest.mark.parametrize("factor", [1, 2, 3, 4])
def test_grid_units_round_trip(factor: int) -> None:
    for value in range(-5, 50):
        assert downscale_grid_units(upscale_grid_units(value, factor), factor) == value


def test_downscaled_position_keeps_minimum_spans() -> None:
    assert downscale_grid_position(GridPosition(0, 0, 1, 1)) == GridPosition(0, 0, 1, 1)
    assert downscale_grid_position(GridPosition(5, 3, 3, 1)) == GridPosition(3, 2, 2, 1)
    assert upscale_grid_position(GridPosition(1, 2, 3, 4)) == GridPosition(2, 4, 6, 8)


def test_fine_grain_config_halves_rows_with_floor() -> None:
    assert fine_grain_config() == WidgetGridConfig(columns=24, row_height=20, gap=8)
    assert fine_grain_config(WidgetGridConfig(row_height=24)).row_height == 16


def test_invalid_grid_config_is_rejected() -> None:
    with pytest.raises(ValueError, match="at least one column"):
        WidgetGridConfig(columns=0)
    with pytest.raises(ValueError, match="Row height"):
        WidgetGridConfig(row_height=0)


def test_next_available_position_skips_occupied_rows() -> None:
    occupancy = OccupancyMap.empty(4)
    occupancy.mark(GridPosition(0, 0, 4, 1))

    assert find_next_available_position(occupancy, 2, 1) == GridPosition(0, 1, 2, 1)
    assert find_next_available_position(occupancy, 10, 1) == GridPosition(0, 1, 4, 1)
    assert not occupancy.is_free(-1, 0, 1, 1)


def test_occupancy_grows_on_demand() -> None:
    occupancy = OccupancyMap.empty(2, rows=1)

    occupancy.mark(GridPosition(0, 3, 1, 2))

    assert len(occupancy.rows) == 5
    assert not occupancy.is_free(0, 4, 1, 1)
    assert occupancy.is_free(1, 4, 1, 1)


def test_widget_layout_flows_around_explicit_positions() -> None:
    components = [
        make_component("title", 0, 0, 0, 0, "heading", grid_position={"col": 0, "row": 0, "colSpan": 12, "rowSpan": 1}),
        make_component("chart", 0, 0, 0, 0, "chart-line"),
        make_component("kpi", 0, 0, 0, 0, "kpi"),
    ]

    layouts = calculate_widget_layout(components, container_width=1000)
    by_id = {layout.instance_id: layout for layout in layouts}

    assert by_id["title"].pixel_bounds == Rect(0, 0, 1000, 40)
    assert by_id["chart"].grid_position == GridPosition(0, 1, 6, 7)
    assert by_id["chart"].pixel_bounds == Rect(0, 48, 496, 328)
    assert by_id["kpi"].grid_position == GridPosition(6, 1, 3, 3)
    assert by_id["kpi"].pixel_bounds.x == 504
    assert calculate_total_height(layouts) == 376


def test_widget_layout_accepts_layout_inputs() -> None:
    layouts = calculate_widget_layout(
        [LayoutInput("a", "kpi"), LayoutInput("b", "kpi"), LayoutInput("c", "kpi"), LayoutInput("d", "kpi"), LayoutInput("e", "kpi")],
        container_width=1000,
    )

    assert [layout.grid_position.col for layout in layouts] == [0, 3, 6, 9, 0]
    assert layouts[-1].grid_position.row == 3
    assert calculate_widget_layout([], 1000) == []
    assert calculate_total_height([]) == 0


def test_grid_position_to_pixels_includes_inner_gaps() -> None:
    rect = grid_position_to_pixels(GridPosition(1, 2, 2, 2), col_width=50, config=WidgetGridConfig(gap=10))

    assert rect == Rect(60, 100, 110, 90)


def test_component_dimensions_round_ratio_rows_up() -> None:
    dimensions = calculate_component_dimensions(get_intrinsic_size("chart-line"), 1000)

    assert (dimensions.col_span, dimensions.row_span) == (6, 7)
    assert dimensions.width == 496
    assert dimensions.height == 328


def test_unknown_type_uses_default_intrinsic_size() -> None:
    assert get_intrinsic_size("mystery") == get_intrinsic_size("default")


def test_resize_grid_component_clamps_to_limits_and_edge() -> None:
    assert resize_grid_component("kpi", GridPosition(0, 0, 3, 3), 10, 0) == GridPosition(0, 0, 6, 3)
    assert resize_grid_component("kpi", GridPosition(8, 0, 3, 3), 10, 0) == GridPosition(8, 0, 4, 3)
    assert resize_grid_component("kpi", GridPosition(0, 0, 3, 3), -10, -10) == GridPosition(0, 0, 2, 2)


def test_resize_fixed_ratio_component_recomputes_paired_span() -> None:
    position = GridPosition(0, 0, 4, 4)

    assert resize_grid_component("chart-doughnut", position, 1, 0) == GridPosition(0, 0, 5, 5)
    assert resize_grid_component("chart-doughnut", position, 0, -1) == GridPosition(0, 0, 3, 3)


def test_resize_direction_limits_changed_axes() -> None:
    position = GridPosition(0, 0, 3, 3)

    assert resize_grid_component("kpi", position, 1, 5, direction="e") == GridPosition(0, 0, 4, 3)
    assert resize_grid_component("kpi", position, 5, 1, direction="s") == GridPosition(0, 0, 3, 4)
    assert resize_grid_component(
        "chart-doughnut", GridPosition(0, 0, 4, 4), 0, 1, direction="s"
    ) == GridPosition(0, 0, 5, 5)

    with pytest.raises(ValueError, match="Unsupported grid resize direction"):
        resize_grid_component("kpi", position, 1, 1, direction="w")


def test_fine_grain_layout_renders_on_fine_grid_and_stores_coarse_units() -> None:
    inputs = [
        LayoutInput("title", "heading", GridPosition(0, 0, 12, 1)),
        LayoutInput("kpi", "kpi"),
    ]

    layout = calculate_fine_grain_layout(inputs, 1000)

    assert layout.grid.columns == 24
    assert [item.grid_position for item in layout.layouts] == [
        GridPosition(0, 0, 24, 2),
        GridPosition(0, 2, 6, 6),
    ]
    assert layout.layouts[1].pixel_bounds == Rect(0, 56, 244, 160)
    assert layout.stored_positions == {
        "title": GridPosition(0, 0, 12, 1),
        "kpi": GridPosition(0, 1, 3, 3),
    }
    assert layout.total_height == 216


def test_fine_grain_factor_one_matches_coarse_layout() -> None:
    inputs = [LayoutInput("kpi", "kpi")]

    layout = calculate_fine_grain_layout(inputs, 1000, factor=1)
    coarse = calculate_widget_layout(inputs, 1000)

    assert layout.layouts == coarse
    assert layout.total_height == calculate_total_height(coarse)
