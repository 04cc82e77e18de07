from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from typing import Dict, List, Optional

from domain.models import Artboard, EntityBounds, GridPosition, Point, Rect
from domain.ports.store import EntityStore, GridPositionStore

logger = logging.getLogger(__name__)

CommitListener = Callable[[str, Rect], None]


class InMemoryEntityStore(EntityStore, GridPositionStore):
    """Committed geometry for one container; controllers keep their own previews."""

    def __init__(self, entities: Iterable[EntityBounds] = ()) -> None:
        self._rects: Dict[str, Rect] = {}
        self._order: List[str] = []
        self._hidden: set[str] = set()
        self._grid: Dict[str, GridPosition] = {}
        self._listeners: List[CommitListener] = []
        self.commit_count = 0
        for entity in entities:
            self.add(entity.id, entity.rect)

    @classmethod
    def from_artboard(cls, artboard: Artboard) -> InMemoryEntityStore:
        store = cls()
        for component in artboard.components:
            store.add(component.instance_id, component.position.to_rect(), hidden=component.hidden)
            if component.grid_position is not None:
                store._grid[component.instance_id] = component.grid_position.to_grid_position()
        return store

    def add(self, entity_id: str, rect: Rect, hidden: bool = False) -> None:
        if entity_id not in self._rects:
            self._order.append(entity_id)
        self._rects[entity_id] = rect
        if hidden:
            self._hidden.add(entity_id)
        else:
            self._hidden.discard(entity_id)

    def remove(self, entity_id: str) -> None:
        self._rects.pop(entity_id, None)
        self._grid.pop(entity_id, None)
        self._hidden.discard(entity_id)
        if entity_id in self._order:
            self._order.remove(entity_id)

    def subscribe(self, listener: CommitListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def get(self, entity_id: str) -> Optional[Rect]:
        return self._rects.get(entity_id)

    def ids(self) -> List[str]:
        return list(self._order)

    def bounds(self, exclude_id: str | None = None) -> Sequence[EntityBounds]:
        return [
            EntityBounds.from_rect(entity_id, self._rects[entity_id])
            for entity_id in self._order
            if entity_id != exclude_id and entity_id not in self._hidden
        ]

    def siblings_of(self, entity_id: str) -> Callable[[], Sequence[EntityBounds]]:
        return lambda: self.bounds(exclude_id=entity_id)

    def commit_position(self, entity_id: str, position: Point) -> None:
        current = self._require(entity_id)
        self._commit(entity_id, current.moved_to(position.x, position.y))

    def commit_bounds(self, entity_id: str, rect: Rect) -> None:
        self._require(entity_id)
        self._commit(entity_id, rect)

    def grid_position(self, entity_id: str) -> Optional[GridPosition]:
        return self._grid.get(entity_id)

    def commit_grid_position(self, entity_id: str, position: GridPosition) -> None:
        self._require(entity_id)
        self._grid[entity_id] = position
        self.commit_count += 1

    def _require(self, entity_id: str) -> Rect:
        rect = self._rects.get(entity_id)
        if rect is None:
            msg = f"Unknown entity: {entity_id}"
            raise KeyError(msg)
        return rect

    def _commit(self, entity_id: str, rect: Rect) -> None:
        self._rects[entity_id] = rect
        self.commit_count += 1
        logger.debug("Committed %s -> %s", entity_id, rect)
        for listener in list(self._listeners):
            listener(entity_id, rect)
