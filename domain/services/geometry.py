from __future__ import annotations

import math
from collections.abc import Iterable, Sequence

from domain.models import Point, Rect, Size


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def safe_scale(scale: float) -> float:
    if not math.isfinite(scale) or scale == 0:
        return 1.0
    return scale


def clamp_non_negative_size(rect: Rect) -> Rect:
    return Rect(rect.x, rect.y, max(0.0, rect.width), max(0.0, rect.height))


def rects_overlap(a: Rect, b: Rect) -> bool:
    """Exclusive overlap: rects that only share an edge do not overlap."""
    return not (
        a.right <= b.left
        or b.right <= a.left
        or a.bottom <= b.top
        or b.bottom <= a.top
    )


def rects_touch_or_overlap(a: Rect, b: Rect) -> bool:
    """Inclusive overlap used for artboard and widget checks; shared edges count."""
    return not (a.right < b.left or a.left > b.right or a.bottom < b.top or a.top > b.bottom)


def contains_point(rect: Rect, point: Point) -> bool:
    return rect.left <= point.x <= rect.right and rect.top <= point.y <= rect.bottom


def is_within_bounds(rect: Rect, container: Size) -> bool:
    return (
        rect.x >= 0
        and rect.y >= 0
        and rect.right <= container.width
        and rect.bottom <= container.height
    )


def constrain_to_bounds(rect: Rect, container: Size) -> Rect:
    width = min(rect.width, max(0.0, container.width))
    height = min(rect.height, max(0.0, container.height))
    return Rect(
        max(0.0, min(rect.x, container.width - width)),
        max(0.0, min(rect.y, container.height - height)),
        width,
        height,
    )


def clamp_position_to_container(position: Point, size: Size, container: Size | None) -> Point:
    if container is None:
        return position
    max_x = max(0.0, container.width - size.width)
    max_y = max(0.0, container.height - size.height)
    return Point(clamp(position.x, 0.0, max_x), clamp(position.y, 0.0, max_y))


def clamp_rect_to_container(rect: Rect, container: Size | None) -> Rect:
    if container is None:
        return rect
    left = clamp(rect.left, 0.0, max(0.0, container.width))
    top = clamp(rect.top, 0.0, max(0.0, container.height))
    right = clamp(rect.right, left, max(left, container.width))
    bottom = clamp(rect.bottom, top, max(top, container.height))
    return Rect(left, top, right - left, bottom - top)


def overlap_area(a: Rect, b: Rect) -> float | None:
    if not rects_overlap(a, b):
        return None
    overlap_x = max(0.0, min(a.right, b.right) - max(a.left, b.left))
    overlap_y = max(0.0, min(a.bottom, b.bottom) - max(a.top, b.top))
    return overlap_x * overlap_y


def minimum_push_vector(moving: Rect, obstacle: Rect) -> Point:
    if not rects_overlap(moving, obstacle):
        return Point(0.0, 0.0)
    options = [
        Point(obstacle.right - moving.left, 0.0),
        Point(-(moving.right - obstacle.left), 0.0),
        Point(0.0, obstacle.bottom - moving.top),
        Point(0.0, -(moving.bottom - obstacle.top)),
    ]
    best = options[0]
    for option in options[1:]:
        if abs(option.x) + abs(option.y) < abs(best.x) + abs(best.y):
            best = option
    return best


def bounding_rect(rects: Iterable[Rect]) -> Rect | None:
    items: Sequence[Rect] = list(rects)
    if not items:
        return None
    left = min(rect.left for rect in items)
    top = min(rect.top for rect in items)
    right = max(rect.right for rect in items)
    bottom = max(rect.bottom for rect in items)
    return Rect(left, top, right - left, bottom - top)
