from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, List, Union

from pydantic import ValidationError

from domain.component_sizes import get_default_size
from domain.models import AlignmentGuide, DroppedComponent, EntityBounds, Point, Size
from domain.services.geometry import safe_scale
from domain.services.snap_resolver import SnapSettings, resolve_snap

logger = logging.getLogger(__name__)

DROP_PREVIEW_ID = "__drop-preview__"

DropPayload = Union[str, bytes, Mapping[str, Any], DroppedComponent, None]


class DropRejected(ValueError):
    pass


@dataclass(frozen=True)
class DropPreview:
    component_type: str
    position: Point
    size: Size
    bypass_snap: bool
    guides: List[AlignmentGuide] = field(default_factory=list)


def parse_dropped_payload(payload: DropPayload) -> DroppedComponent:
    if isinstance(payload, DroppedComponent):
        return payload
    if payload is None or payload == "" or payload == b"":
        msg = "Drop carried no component payload"
        raise DropRejected(msg)
    try:
        if isinstance(payload, (str, bytes)):
            return DroppedComponent.model_validate_json(payload)
        return DroppedComponent.model_validate(payload)
    except ValidationError as exc:
        msg = f"Malformed drop payload: {exc.error_count()} validation error(s)"
        raise DropRejected(msg) from exc


class DropHandler:
    """Previews and places components dragged in from the component palette."""

    def __init__(
        self,
        on_component_add: Callable[[str, Point], None],
        *,
        scale: Callable[[], float] = lambda: 1.0,
        siblings: Callable[[], Sequence[EntityBounds]] = lambda: [],
        container_origin: Callable[[], Point] = lambda: Point(0.0, 0.0),
        snap_settings: SnapSettings | None = None,
        on_preview_change: Callable[[DropPreview | None], None] | None = None,
    ) -> None:
        self._on_component_add = on_component_add
        self._scale = scale
        self._siblings = siblings
        self._container_origin = container_origin
        self._snap_settings = snap_settings or SnapSettings()
        self._on_preview_change = on_preview_change
        self.preview: DropPreview | None = None

    def drag_over(self, payload: DropPayload, screen: Point, alt: bool = False) -> DropPreview | None:
        try:
            component = parse_dropped_payload(payload)
        except DropRejected:
            # Some hosts only expose the payload on drop.
            self._set_preview(None)
            return None
        preview = self._snapped(component.id, screen, alt)
        self._set_preview(preview)
        return preview

    def drag_leave(self) -> None:
        self._set_preview(None)

    def drop(self, payload: DropPayload, screen: Point, alt: bool = False) -> Point:
        try:
            component = parse_dropped_payload(payload)
            preview = self._snapped(component.id, screen, alt)
            self._on_component_add(component.id, preview.position)
            logger.debug("Dropped %s at %s", component.id, preview.position)
            return preview.position
        except DropRejected:
            logger.warning("Rejected drop at %s", screen)
            raise
        finally:
            self._set_preview(None)

    def _snapped(self, component_type: str, screen: Point, alt: bool) -> DropPreview:
        origin = self._container_origin()
        scale = safe_scale(self._scale())
        raw = Point((screen.x - origin.x) / scale, (screen.y - origin.y) / scale)
        size = get_default_size(component_type)
        result = resolve_snap(
            raw,
            DROP_PREVIEW_ID,
            size,
            self._siblings(),
            self._snap_settings,
            bypass=alt,
        )
        return DropPreview(component_type, result.position, size, alt, result.guides)

    def _set_preview(self, preview: DropPreview | None) -> None:
        self.preview = preview
        if self._on_preview_change is not None:
            self._on_preview_change(preview)
