from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import List, Tuple

from domain.models import AlignmentGuide, Axis, EntityBounds, Point

DEFAULT_ALIGNMENT_THRESHOLD = 5.0
GUIDE_MERGE_TOLERANCE = 1.0


@dataclass(frozen=True)
class ReferenceLines:
    left: float
    center_x: float
    right: float
    top: float
    center_y: float
    bottom: float

    def vertical(self) -> Tuple[float, float, float]:
        return (self.left, self.center_x, self.right)

    def horizontal(self) -> Tuple[float, float, float]:
        return (self.top, self.center_y, self.bottom)


def reference_lines(bounds: EntityBounds) -> ReferenceLines:
    return ReferenceLines(
        left=bounds.x,
        center_x=bounds.x + bounds.width / 2,
        right=bounds.x + bounds.width,
        top=bounds.y,
        center_y=bounds.y + bounds.height / 2,
        bottom=bounds.y + bounds.height,
    )


def _is_nearby(a: float, b: float, threshold: float) -> bool:
    return abs(a - b) <= threshold


def _merge_guides(guides: Iterable[AlignmentGuide]) -> List[AlignmentGuide]:
    merged: List[AlignmentGuide] = []
    for guide in guides:
        index = next(
            (
                idx
                for idx, existing in enumerate(merged)
                if existing.axis == guide.axis
                and abs(existing.position - guide.position) < GUIDE_MERGE_TOLERANCE
            ),
            None,
        )
        if index is None:
            merged.append(guide)
            continue
        existing = merged[index]
        merged[index] = AlignmentGuide(
            axis=existing.axis,
            position=existing.position,
            member_ids=existing.member_ids | guide.member_ids,
        )
    return merged


def find_alignment_guides(
    moving: EntityBounds,
    siblings: Sequence[EntityBounds],
    threshold: float = DEFAULT_ALIGNMENT_THRESHOLD,
) -> List[AlignmentGuide]:
    moving_lines = reference_lines(moving)
    candidates: List[AlignmentGuide] = []

    for other in siblings:
        if other.id == moving.id:
            continue
        other_lines = reference_lines(other)
        members = frozenset({moving.id, other.id})
        for axis, moving_values, other_values in (
            (Axis.VERTICAL, moving_lines.vertical(), other_lines.vertical()),
            (Axis.HORIZONTAL, moving_lines.horizontal(), other_lines.horizontal()),
        ):
            for other_value in other_values:
                if any(_is_nearby(value, other_value, threshold) for value in moving_values):
                    candidates.append(
                        AlignmentGuide(axis=axis, position=other_value, member_ids=members)
                    )

    return _merge_guides(candidates)


def snap_to_guides(
    position: Point,
    moving: EntityBounds,
    guides: Sequence[AlignmentGuide],
    threshold: float = DEFAULT_ALIGNMENT_THRESHOLD,
) -> Point:
    snapped_x = position.x
    snapped_y = position.y
    lines = reference_lines(
        EntityBounds(moving.id, position.x, position.y, moving.width, moving.height)
    )

    for guide in guides:
        if guide.axis == Axis.VERTICAL:
            if _is_nearby(lines.left, guide.position, threshold):
                snapped_x = guide.position
            elif _is_nearby(lines.center_x, guide.position, threshold):
                snapped_x = guide.position - moving.width / 2
            elif _is_nearby(lines.right, guide.position, threshold):
                snapped_x = guide.position - moving.width
        else:
            if _is_nearby(lines.top, guide.position, threshold):
                snapped_y = guide.position
            elif _is_nearby(lines.center_y, guide.position, threshold):
                snapped_y = guide.position - moving.height / 2
            elif _is_nearby(lines.bottom, guide.position, threshold):
                snapped_y = guide.position - moving.height

    return Point(snapped_x, snapped_y)


def guide_extent(
    guide: AlignmentGuide,
    bounds: Sequence[EntityBounds],
) -> Tuple[float, float] | None:
    aligned = [item for item in bounds if item.id in guide.member_ids]
    if not aligned:
        return None
    if guide.axis == Axis.VERTICAL:
        return (
            min(item.y for item in aligned),
            max(item.y + item.height for item in aligned),
        )
    return (
        min(item.x for item in aligned),
        max(item.x + item.width for item in aligned),
    )
