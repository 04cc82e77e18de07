from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from domain.models import EntityBounds, GridPosition, Point, Rect


class EntityStore(Protocol):
    """Authoritative, committed geometry for one container's entities."""

    def get(self, entity_id: str) -> Rect | None: ...

    def bounds(self, exclude_id: str | None = None) -> Sequence[EntityBounds]: ...

    def commit_position(self, entity_id: str, position: Point) -> None: ...

    def commit_bounds(self, entity_id: str, rect: Rect) -> None: ...


class GridPositionStore(Protocol):
    def grid_position(self, entity_id: str) -> GridPosition | None: ...

    def commit_grid_position(self, entity_id: str, position: GridPosition) -> None: ...
