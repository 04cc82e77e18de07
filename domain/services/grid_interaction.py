from __future__ import annotations

import logging
import math
from collections.abc import Callable
from contextlib import ExitStack
from dataclasses import dataclass

from domain.models import GridPosition, Point
from domain.ports.events import PointerEventSource
from domain.services.geometry import round_half_up, safe_scale
from domain.services.interaction import (
    InteractionKind,
    InteractionSession,
    InteractionSlot,
    InteractionState,
    PointerCapture,
    PointerEvent,
)
from domain.services.sub_grid import (
    DEFAULT_WIDGET_GRID,
    GRID_RESIZE_DIRECTIONS,
    WidgetGridConfig,
    grid_position_to_pixels,
    resize_grid_component,
)

logger = logging.getLogger(__name__)


def visible_rows(available_height: float, config: WidgetGridConfig) -> int:
    """Whole rows that fit the viewport; 0 means unknown and disables row clamping."""
    if available_height <= 0:
        return 0
    return max(1, math.floor((available_height + config.gap) / (config.row_height + config.gap)))


def _clamp_row(row: int, row_span: int, rows: int) -> int:
    if rows == 0:
        return max(0, row)
    return min(max(0, row), max(0, rows - row_span))


def _clamp_row_span(row_span: int, start_row: int, rows: int) -> int:
    if rows == 0:
        return row_span
    return min(row_span, max(1, rows - start_row))


@dataclass
class _GridGesture:
    session: InteractionSession
    start: GridPosition
    component_type: str = "default"
    direction: str | None = None
    preview: GridPosition | None = None


class GridInteractionController:
    """Cell-quantised drag and resize of components inside a widget grid."""

    def __init__(
        self,
        slot: InteractionSlot,
        events: PointerEventSource,
        *,
        config: WidgetGridConfig = DEFAULT_WIDGET_GRID,
        cell_width: Callable[[], float],
        available_height: Callable[[], float] = lambda: 0.0,
        scale: Callable[[], float] = lambda: 1.0,
        on_select: Callable[[str], None] | None = None,
        on_update_grid_position: Callable[[str, GridPosition], None] | None = None,
        on_preview_change: Callable[[str, GridPosition | None], None] | None = None,
    ) -> None:
        self.config = config
        self._slot = slot
        self._events = events
        self._cell_width = cell_width
        self._available_height = available_height
        self._scale = scale
        self._on_select = on_select
        self._on_update_grid_position = on_update_grid_position
        self._on_preview_change = on_preview_change
        self._gesture: _GridGesture | None = None
        self._capture = ExitStack()

    @property
    def state(self) -> InteractionState:
        return InteractionState.ACTIVE if self._gesture is not None else InteractionState.IDLE

    @property
    def active_id(self) -> str | None:
        return self._gesture.session.entity_id if self._gesture is not None else None

    @property
    def preview(self) -> GridPosition | None:
        return self._gesture.preview if self._gesture is not None else None

    def begin_drag(self, pointer: PointerEvent, entity_id: str, position: GridPosition) -> bool:
        return self._begin(pointer, entity_id, position, InteractionKind.GRID_DRAG)

    def begin_resize(
        self,
        pointer: PointerEvent,
        entity_id: str,
        component_type: str,
        position: GridPosition,
        direction: str,
    ) -> bool:
        if direction not in GRID_RESIZE_DIRECTIONS:
            msg = f"Unsupported grid resize direction: {direction!r}"
            raise ValueError(msg)
        return self._begin(
            pointer,
            entity_id,
            position,
            InteractionKind.GRID_RESIZE,
            component_type=component_type,
            direction=direction,
        )

    def update(self, pointer: PointerEvent) -> GridPosition | None:
        gesture = self._gesture
        if gesture is None:
            return None
        scale = safe_scale(self._scale())
        dx = (pointer.screen.x - gesture.session.anchor_mouse.x) / scale
        dy = (pointer.screen.y - gesture.session.anchor_mouse.y) / scale
        cell_width = self._cell_width()
        delta_cols = round_half_up(dx / (cell_width + self.config.gap))
        delta_rows = round_half_up(dy / (self.config.row_height + self.config.gap))
        rows = visible_rows(self._available_height(), self.config)

        if gesture.direction is None:
            position = self._dragged(gesture.start, delta_cols, delta_rows, rows)
        else:
            position = self._resized(gesture, delta_cols, delta_rows, rows, cell_width)

        gesture.preview = position
        if self._on_preview_change is not None:
            self._on_preview_change(gesture.session.entity_id, position)
        return position

    def end(self) -> GridPosition | None:
        gesture = self._gesture
        if gesture is None:
            return None
        try:
            if gesture.preview is not None and self._on_update_grid_position is not None:
                self._on_update_grid_position(gesture.session.entity_id, gesture.preview)
        finally:
            self._teardown(gesture)
        return gesture.preview

    def cancel(self) -> None:
        gesture = self._gesture
        if gesture is not None:
            logger.debug("Cancelled grid gesture on %s", gesture.session.entity_id)
            self._teardown(gesture)

    def lose_capture(self) -> GridPosition | None:
        return self.end()

    def _dragged(self, start: GridPosition, delta_cols: int, delta_rows: int, rows: int) -> GridPosition:
        col = max(0, min(self.config.columns - start.col_span, start.col + delta_cols))
        row = _clamp_row(max(0, start.row + delta_rows), start.row_span, rows)
        return GridPosition(col, row, start.col_span, start.row_span)

    def _resized(
        self,
        gesture: _GridGesture,
        delta_cols: int,
        delta_rows: int,
        rows: int,
        cell_width: float,
    ) -> GridPosition:
        start = gesture.start
        resized = resize_grid_component(
            gesture.component_type,
            start,
            delta_cols,
            delta_rows,
            self.config,
            cell_width,
            direction=gesture.direction or "se",
        )
        row_span = _clamp_row_span(resized.row_span, start.row, rows)
        return GridPosition(start.col, start.row, resized.col_span, row_span)

    def _begin(
        self,
        pointer: PointerEvent,
        entity_id: str,
        position: GridPosition,
        kind: InteractionKind,
        component_type: str = "default",
        direction: str | None = None,
    ) -> bool:
        if self._gesture is not None:
            return False
        session = InteractionSession(
            kind=kind,
            entity_id=entity_id,
            anchor_mouse=Point(pointer.screen.x, pointer.screen.y),
            start_rect=grid_position_to_pixels(position, self._cell_width(), self.config),
        )
        if not self._slot.acquire(session, on_cancel=self.cancel):
            return False
        try:
            self._capture.enter_context(
                PointerCapture(self._events, self._handle_move, self._handle_up)
            )
        except Exception:
            self._slot.release(session)
            raise
        pointer.stop_propagation()
        self._gesture = _GridGesture(session, position, component_type, direction, position)
        if self._on_select is not None:
            self._on_select(entity_id)
        return True

    def _handle_move(self, pointer: PointerEvent) -> None:
        try:
            self.update(pointer)
        except Exception:
            self.cancel()
            raise

    def _handle_up(self, pointer: PointerEvent) -> None:
        self.end()

    def _teardown(self, gesture: _GridGesture) -> None:
        self._gesture = None
        try:
            self._capture.close()
        finally:
            self._slot.release(gesture.session)
            if self._on_preview_change is not None:
                self._on_preview_change(gesture.session.entity_id, None)
