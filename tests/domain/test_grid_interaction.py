from __future__ import annotations

from typing import List, Optional, Tuple

import pytest

from adapters.memory.pointer_events import InMemoryPointerEvents
from domain.models import GridPosition
from domain.services.grid_interaction import GridInteractionController, visible_rows
from domain.services.interaction import InteractionSlot, InteractionState
from domain.services.sub_grid import WidgetGridConfig
from tests.helpers.canvas_fixtures import pointer

Commit = Tuple[str, GridPosition]


def _controller(
    slot: InteractionSlot,
    events: InMemoryPointerEvents,
    commits: List[Commit],
    previews: Optional[List[Optional[GridPosition]]] = None,
    cell_width: float = 76.0,
    available_height: float = 0.0,
) -> GridInteractionController:
    return GridInteractionController(
        slot,
        events,
        config=WidgetGridConfig(),
        cell_width=lambda: cell_width,
        available_height=lambda: available_height,
        on_update_grid_position=lambda entity_id, position: commits.append((entity_id, position)),
        on_preview_change=(
            (lambda _entity_id, position: previews.append(position)) if previews is not None else None
        ),
    )


def test_visible_rows() -> None:
    config = WidgetGridConfig()

    assert visible_rows(0, config) == 0
    assert visible_rows(200, config) == 4
    assert visible_rows(10, config) == 1


def test_drag_moves_by_whole_cells_and_commits_once(
    slot: InteractionSlot, events: InMemoryPointerEvents
) -> None:
    commits: List[Commit] = []
    previews: List[Optional[GridPosition]] = []
    controller = _controller(slot, events, commits, previews)

    assert controller.begin_drag(pointer(0, 0), "kpi", GridPosition(0, 0, 3, 3))
    assert controller.active_id == "kpi"
    events.move(pointer(80, 20))
    events.move(pointer(170, 100))

    assert controller.preview == GridPosition(2, 2, 3, 3)
    assert commits == []

    events.up(pointer(170, 100))

    assert commits == [("kpi", GridPosition(2, 2, 3, 3))]
    assert previews[-1] is None
    assert controller.state == InteractionState.IDLE
    assert events.listener_count == 0


def test_drag_is_clamped_to_columns_and_visible_rows(
    slot: InteractionSlot, events: InMemoryPointerEvents
) -> None:
    commits: List[Commit] = []
    controller = _controller(slot, events, commits, available_height=200)
    controller.begin_drag(pointer(0, 0), "kpi", GridPosition(0, 0, 3, 3))

    assert controller.update(pointer(5000, 5000)) == GridPosition(9, 1, 3, 3)
    assert controller.update(pointer(-5000, -5000)) == GridPosition(0, 0, 3, 3)


def test_resize_east_respects_intrinsic_max(slot: InteractionSlot, events: InMemoryPointerEvents) -> None:
    commits: List[Commit] = []
    controller = _controller(slot, events, commits)
    controller.begin_resize(pointer(0, 0), "kpi", "kpi", GridPosition(0, 0, 3, 3), "e")

    assert controller.update(pointer(170, 500)) == GridPosition(0, 0, 5, 3)
    assert controller.update(pointer(5000, 0)) == GridPosition(0, 0, 6, 3)


def test_resize_south_east_changes_both_spans(slot: InteractionSlot, events: InMemoryPointerEvents) -> None:
    commits: List[Commit] = []
    controller = _controller(slot, events, commits)
    controller.begin_resize(pointer(0, 0), "box", "default", GridPosition(2, 1, 4, 3), "se")

    controller.update(pointer(84, 96))
    controller.end()

    assert commits == [("box", GridPosition(2, 1, 5, 5))]


def test_fixed_ratio_resize_keeps_square(slot: InteractionSlot, events: InMemoryPointerEvents) -> None:
    commits: List[Commit] = []
    controller = _controller(slot, events, commits, cell_width=40.0)
    controller.begin_resize(pointer(0, 0), "donut", "chart-doughnut", GridPosition(0, 0, 4, 4), "e")

    assert controller.update(pointer(48, 0)) == GridPosition(0, 0, 5, 5)


def test_fixed_ratio_south_east_resize_keeps_square(
    slot: InteractionSlot, events: InMemoryPointerEvents
) -> None:
    commits: List[Commit] = []
    controller = _controller(slot, events, commits, cell_width=40.0)
    controller.begin_resize(pointer(0, 0), "donut", "chart-doughnut", GridPosition(0, 0, 4, 4), "se")

    events.move(pointer(48, 0))
    events.up(pointer(48, 0))

    assert commits == [("donut", GridPosition(0, 0, 5, 5))]


def test_begin_selects_component(slot: InteractionSlot, events: InMemoryPointerEvents) -> None:
    selected: List[str] = []
    controller = GridInteractionController(
        slot, events, cell_width=lambda: 76.0, on_select=selected.append
    )
    other = GridInteractionController(slot, events, cell_width=lambda: 76.0, on_select=selected.append)

    assert controller.begin_drag(pointer(0, 0), "kpi", GridPosition(0, 0, 3, 3))
    assert not other.begin_resize(pointer(0, 0), "chart", "chart", GridPosition(3, 0, 6, 4), "e")

    assert selected == ["kpi"]


def test_unsupported_direction_is_rejected(slot: InteractionSlot, events: InMemoryPointerEvents) -> None:
    controller = _controller(slot, events, [])

    with pytest.raises(ValueError, match="Unsupported grid resize direction"):
        controller.begin_resize(pointer(0, 0), "kpi", "kpi", GridPosition(0, 0, 3, 3), "nw")
    assert not slot.is_busy


def test_cancel_and_busy_slot(slot: InteractionSlot, events: InMemoryPointerEvents) -> None:
    commits: List[Commit] = []
    controller = _controller(slot, events, commits)
    other = _controller(slot, events, commits)
    controller.begin_drag(pointer(0, 0), "kpi", GridPosition(0, 0, 3, 3))

    assert not other.begin_drag(pointer(0, 0), "chart", GridPosition(3, 0, 3, 3))

    events.move(pointer(170, 0))
    controller.cancel()

    assert commits == []
    assert not slot.is_busy
    assert events.listener_count == 0
    assert controller.end() is None
