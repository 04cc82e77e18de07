from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from contextlib import ExitStack
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from domain.component_sizes import get_aspect_ratio, get_max_size, get_min_size
from domain.models import (
    AlignmentGuide,
    EntityBounds,
    Point,
    Rect,
    ResizeHandle,
    Size,
    parse_handle,
)
from domain.ports.events import PointerEventSource, PointerHandler, Subscription
from domain.services.geometry import (
    clamp_non_negative_size,
    clamp_position_to_container,
    clamp_rect_to_container,
)
from domain.services.snap_resolver import SnapSettings, resolve_resize_snap, resolve_snap
from domain.services.viewport import screen_delta_to_world

logger = logging.getLogger(__name__)

GuidesCallback = Callable[[List[AlignmentGuide]], None]
PreviewCallback = Callable[[Optional[Rect]], None]


class InteractionState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"


class InteractionKind(str, Enum):
    DRAG = "drag"
    RESIZE = "resize"
    ARTBOARD_DRAG = "artboard_drag"
    GRID_DRAG = "grid_drag"
    GRID_RESIZE = "grid_resize"


class PointerTarget(str, Enum):
    BODY = "body"
    RESIZE_HANDLE = "resize_handle"
    HEADER = "header"
    DRAG_HANDLE = "drag_handle"


@dataclass
class PointerEvent:
    screen: Point
    alt: bool = False
    shift: bool = False
    ctrl: bool = False
    meta: bool = False
    target: PointerTarget = PointerTarget.BODY
    propagation_stopped: bool = False

    def stop_propagation(self) -> None:
        self.propagation_stopped = True


@dataclass
class InteractionSession:
    kind: InteractionKind
    entity_id: str
    anchor_mouse: Point
    start_rect: Rect
    handle: ResizeHandle | None = None
    preview: Rect | None = None


@dataclass
class InteractionSlot:
    """Holds the single active gesture of a document."""

    active: InteractionSession | None = None
    _on_cancel: Callable[[], None] | None = field(default=None, repr=False)

    @property
    def is_busy(self) -> bool:
        return self.active is not None

    def acquire(self, session: InteractionSession, on_cancel: Callable[[], None] | None = None) -> bool:
        if self.active is not None:
            logger.debug(
                "Refused %s on %s: %s on %s is active",
                session.kind.value,
                session.entity_id,
                self.active.kind.value,
                self.active.entity_id,
            )
            return False
        self.active = session
        self._on_cancel = on_cancel
        return True

    def release(self, session: InteractionSession) -> None:
        if self.active is session:
            self.active = None
            self._on_cancel = None

    def cancel_active(self) -> bool:
        callback = self._on_cancel
        if self.active is None or callback is None:
            return False
        callback()
        return True


class PointerCapture:
    """Document-level move/up listeners that live exactly as long as a gesture."""

    def __init__(self, events: PointerEventSource, on_move: PointerHandler, on_up: PointerHandler) -> None:
        self._events = events
        self._on_move = on_move
        self._on_up = on_up
        self._subscription: Subscription | None = None

    @property
    def attached(self) -> bool:
        return self._subscription is not None

    def __enter__(self) -> PointerCapture:
        self._subscription = self._events.subscribe(self._on_move, self._on_up)
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()

    def release(self) -> None:
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            subscription.close()


def _constant_scale() -> float:
    return 1.0


def _no_siblings() -> Sequence[EntityBounds]:
    return []


def _no_container() -> Size | None:
    return None


class InteractionController:
    """Shared IDLE -> ACTIVE -> IDLE lifecycle for pointer gestures on one entity."""

    kind = InteractionKind.DRAG

    def __init__(
        self,
        entity_id: str,
        slot: InteractionSlot,
        events: PointerEventSource,
        *,
        scale: Callable[[], float] = _constant_scale,
        siblings: Callable[[], Sequence[EntityBounds]] = _no_siblings,
        container: Callable[[], Size | None] = _no_container,
        snap_settings: SnapSettings | None = None,
        locked: bool = False,
        on_select: Callable[[], None] | None = None,
        on_guides_change: GuidesCallback | None = None,
        on_preview_change: PreviewCallback | None = None,
    ) -> None:
        self.entity_id = entity_id
        self.locked = locked
        self.snap_settings = snap_settings or SnapSettings()
        self._slot = slot
        self._events = events
        self._scale = scale
        self._siblings = siblings
        self._container = container
        self._on_select = on_select
        self._on_guides_change = on_guides_change
        self._on_preview_change = on_preview_change
        self._session: InteractionSession | None = None
        self._capture = ExitStack()

    @property
    def state(self) -> InteractionState:
        return InteractionState.ACTIVE if self._session is not None else InteractionState.IDLE

    @property
    def session(self) -> InteractionSession | None:
        return self._session

    @property
    def preview(self) -> Rect | None:
        return self._session.preview if self._session is not None else None

    def display_rect(self, authoritative: Rect) -> Rect:
        preview = self.preview
        return preview if preview is not None else authoritative

    def update(
        self,
        pointer: PointerEvent,
        siblings: Sequence[EntityBounds] | None = None,
    ) -> Rect | None:
        session = self._session
        if session is None:
            return None
        current_siblings = list(siblings) if siblings is not None else list(self._siblings())
        delta = screen_delta_to_world(
            pointer.screen.x - session.anchor_mouse.x,
            pointer.screen.y - session.anchor_mouse.y,
            self._scale(),
        )
        rect, guides = self._compute(session, delta, pointer, current_siblings)
        session.preview = rect
        self._publish_guides(guides)
        if self._on_preview_change is not None:
            self._on_preview_change(rect)
        return rect

    def end(self) -> Rect | None:
        session = self._session
        if session is None:
            return None
        preview = session.preview
        try:
            if preview is not None:
                self._commit(preview)
                logger.debug("Committed %s of %s: %s", session.kind.value, self.entity_id, preview)
        finally:
            self._teardown(session)
        return preview

    def cancel(self) -> None:
        session = self._session
        if session is None:
            return
        logger.debug("Cancelled %s of %s", session.kind.value, self.entity_id)
        self._teardown(session)

    def lose_capture(self) -> Rect | None:
        if self._session is not None:
            logger.info("Pointer capture lost during %s of %s", self._session.kind.value, self.entity_id)
        return self.end()

    def _begin(
        self,
        pointer: PointerEvent,
        rect: Rect,
        handle: ResizeHandle | None = None,
    ) -> bool:
        if self.locked:
            logger.debug("Ignoring %s on locked entity %s", self.kind.value, self.entity_id)
            return False
        if self._session is not None:
            return False
        start = clamp_non_negative_size(rect)
        session = InteractionSession(
            kind=self.kind,
            entity_id=self.entity_id,
            anchor_mouse=pointer.screen,
            start_rect=start,
            handle=handle,
            preview=start,
        )
        if not self._slot.acquire(session, on_cancel=self.cancel):
            return False
        try:
            self._capture.enter_context(PointerCapture(self._events, self._handle_move, self._handle_up))
        except Exception:
            self._slot.release(session)
            raise
        self._session = session
        pointer.stop_propagation()
        if self._on_select is not None:
            self._on_select()
        return True

    def _handle_move(self, pointer: PointerEvent) -> None:
        try:
            self.update(pointer)
        except Exception:
            self.cancel()
            raise

    def _handle_up(self, pointer: PointerEvent) -> None:
        self.end()

    def _teardown(self, session: InteractionSession) -> None:
        self._session = None
        try:
            self._capture.close()
        finally:
            self._slot.release(session)
            self._publish_guides([])
            if self._on_preview_change is not None:
                self._on_preview_change(None)

    def _publish_guides(self, guides: List[AlignmentGuide]) -> None:
        if self._on_guides_change is not None:
            self._on_guides_change(list(guides))

    def _compute(
        self,
        session: InteractionSession,
        delta: Point,
        pointer: PointerEvent,
        siblings: Sequence[EntityBounds],
    ) -> tuple[Rect, List[AlignmentGuide]]:
        raise NotImplementedError

    def _commit(self, rect: Rect) -> None:
        raise NotImplementedError


class DragController(InteractionController):
    kind = InteractionKind.DRAG

    def __init__(
        self,
        entity_id: str,
        slot: InteractionSlot,
        events: PointerEventSource,
        *,
        on_position_change: Callable[[Point], None] | None = None,
        **options,
    ) -> None:
        super().__init__(entity_id, slot, events, **options)
        self._on_position_change = on_position_change

    def begin(self, pointer: PointerEvent, rect: Rect) -> bool:
        if pointer.target == PointerTarget.RESIZE_HANDLE:
            return False
        return self._begin(pointer, rect)

    def _compute(
        self,
        session: InteractionSession,
        delta: Point,
        pointer: PointerEvent,
        siblings: Sequence[EntityBounds],
    ) -> tuple[Rect, List[AlignmentGuide]]:
        start = session.start_rect
        raw = start.position.offset(delta.x, delta.y)
        result = resolve_snap(
            raw,
            self.entity_id,
            start.size,
            siblings,
            self.snap_settings,
            bypass=pointer.alt,
        )
        position = clamp_position_to_container(result.position, start.size, self._container())
        return Rect.from_position(position, start.size), result.guides

    def _commit(self, rect: Rect) -> None:
        if self._on_position_change is not None:
            self._on_position_change(rect.position)


def raw_resize_rect(start: Rect, handle: ResizeHandle, delta: Point, min_size: Size) -> Rect:
    x, y, width, height = start.x, start.y, start.width, start.height
    if handle.moves_right:
        width = max(min_size.width, start.width + delta.x)
    if handle.moves_left:
        width = max(min_size.width, start.width - delta.x)
        x = start.x + (start.width - width)
    if handle.moves_bottom:
        height = max(min_size.height, start.height + delta.y)
    if handle.moves_top:
        height = max(min_size.height, start.height - delta.y)
        y = start.y + (start.height - height)
    return clamp_non_negative_size(Rect(x, y, width, height))


def _limit(value: float, lower: float, upper: float | None) -> float:
    if upper is not None:
        value = min(upper, value)
    return max(lower, value)


def _pin(rect: Rect, start: Rect, handle: ResizeHandle) -> Rect:
    x = start.right - rect.width if handle.moves_left else rect.x
    y = start.bottom - rect.height if handle.moves_top else rect.y
    return Rect(x, y, rect.width, rect.height)


def fit_aspect_ratio(
    rect: Rect,
    start: Rect,
    handle: ResizeHandle,
    ratio: float,
    min_size: Size,
    max_size: Size | None = None,
) -> Rect:
    """Recompute the non-driving dimension from ``ratio`` and keep the pair within limits.

    Horizontal handles drive the width; ``n``/``s`` drive the height.
    """
    if ratio <= 0:
        return rect
    max_width = max_size.width if max_size is not None else None
    max_height = max_size.height if max_size is not None else None

    if handle.is_horizontal:
        width = rect.width
        height = width / ratio
    else:
        height = rect.height
        width = height * ratio

    limited_width = _limit(width, min_size.width, max_width)
    if limited_width != width:
        width = limited_width
        height = width / ratio
    limited_height = _limit(height, min_size.height, max_height)
    if limited_height != height:
        height = limited_height
        width = _limit(height * ratio, min_size.width, max_width)

    return _pin(Rect(rect.x, rect.y, width, height), start, handle)


def clamp_resized_rect(
    rect: Rect,
    start: Rect,
    handle: ResizeHandle,
    min_size: Size,
    max_size: Size | None = None,
) -> Rect:
    width = _limit(rect.width, min_size.width, max_size.width if max_size else None)
    height = _limit(rect.height, min_size.height, max_size.height if max_size else None)
    if width == rect.width and height == rect.height:
        return rect
    return _pin(Rect(rect.x, rect.y, width, height), start, handle)


class ResizeController(InteractionController):
    kind = InteractionKind.RESIZE

    def __init__(
        self,
        entity_id: str,
        slot: InteractionSlot,
        events: PointerEventSource,
        *,
        min_size: Size = Size(0.0, 0.0),
        max_size: Size | None = None,
        aspect_ratio: float | None = None,
        lock_aspect_ratio: bool = False,
        on_bounds_change: Callable[[Rect], None] | None = None,
        **options,
    ) -> None:
        super().__init__(entity_id, slot, events, **options)
        self.min_size = min_size
        self.max_size = max_size
        self.aspect_ratio = aspect_ratio
        self.lock_aspect_ratio = lock_aspect_ratio
        self._on_bounds_change = on_bounds_change

    @classmethod
    def for_component(
        cls,
        component_type: str,
        entity_id: str,
        slot: InteractionSlot,
        events: PointerEventSource,
        **options,
    ) -> ResizeController:
        return cls(
            entity_id,
            slot,
            events,
            min_size=get_min_size(component_type),
            max_size=get_max_size(component_type),
            aspect_ratio=get_aspect_ratio(component_type),
            **options,
        )

    def begin(self, pointer: PointerEvent, rect: Rect, handle: ResizeHandle | str) -> bool:
        return self._begin(pointer, rect, parse_handle(handle))

    def _ratio(self, pointer: PointerEvent, start: Rect) -> float | None:
        if self.lock_aspect_ratio:
            if self.aspect_ratio:
                return self.aspect_ratio
            return start.width / start.height if start.width > 0 and start.height > 0 else None
        if self.aspect_ratio and pointer.shift:
            return self.aspect_ratio
        return None

    def _compute(
        self,
        session: InteractionSession,
        delta: Point,
        pointer: PointerEvent,
        siblings: Sequence[EntityBounds],
    ) -> tuple[Rect, List[AlignmentGuide]]:
        start = session.start_rect
        handle = session.handle or ResizeHandle.SE
        raw = raw_resize_rect(start, handle, delta, self.min_size)
        ratio = self._ratio(pointer, start)
        if ratio is not None:
            raw = fit_aspect_ratio(raw, start, handle, ratio, self.min_size, self.max_size)

        result = resolve_resize_snap(
            raw,
            start,
            handle,
            siblings,
            self.snap_settings,
            bypass=pointer.alt,
            moving_id=self.entity_id,
        )
        rect = clamp_resized_rect(result.rect, start, handle, self.min_size, self.max_size)
        rect = clamp_rect_to_container(rect, self._container())
        if ratio is not None:
            # the snapped and clamped driving edge decides the paired dimension
            rect = fit_aspect_ratio(rect, start, handle, ratio, self.min_size, self.max_size)
        return rect, result.guides

    def _commit(self, rect: Rect) -> None:
        if self._on_bounds_change is not None:
            self._on_bounds_change(rect)


class ArtboardDragController(InteractionController):
    """Moves an artboard by its header; artboards never snap."""

    kind = InteractionKind.ARTBOARD_DRAG

    def __init__(
        self,
        entity_id: str,
        slot: InteractionSlot,
        events: PointerEventSource,
        *,
        on_position_change: Callable[[Point], None] | None = None,
        **options,
    ) -> None:
        super().__init__(entity_id, slot, events, **options)
        self._on_position_change = on_position_change

    def begin(self, pointer: PointerEvent, rect: Rect) -> bool:
        if pointer.target != PointerTarget.HEADER:
            return False
        return self._begin(pointer, rect)

    def _compute(
        self,
        session: InteractionSession,
        delta: Point,
        pointer: PointerEvent,
        siblings: Sequence[EntityBounds],
    ) -> tuple[Rect, List[AlignmentGuide]]:
        start = session.start_rect
        position = clamp_position_to_container(
            start.position.offset(delta.x, delta.y), start.size, self._container()
        )
        return Rect.from_position(position, start.size), []

    def _commit(self, rect: Rect) -> None:
        if self._on_position_change is not None:
            self._on_position_change(rect.position)
