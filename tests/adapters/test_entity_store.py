from __future__ import annotations

from typing import List, Tuple

import pytest

from adapters.memory.entity_store import InMemoryEntityStore
from domain.models import Artboard, GridPosition, Point, Rect
from tests.helpers.canvas_fixtures import make_component


def test_from_artboard_skips_hidden_components_in_bounds(artboard: Artboard) -> None:
    board = artboard.model_copy(
        update={
            "components": [
                *artboard.components,
                make_component("ghost", 0, 0, 10, 10, hidden=True),
                make_component(
                    "cell", 0, 0, 10, 10, grid_position={"col": 1, "row": 2, "colSpan": 3, "rowSpan": 4}
                ),
            ]
        }
    )

    store = InMemoryEntityStore.from_artboard(board)

    assert store.ids() == ["title", "chart", "kpi", "ghost", "cell"]
    assert [item.id for item in store.bounds(exclude_id="kpi")] == ["title", "chart", "cell"]
    assert store.grid_position("cell") == GridPosition(1, 2, 3, 4)
    assert store.get("chart") == Rect(200, 200, 400, 256)


def test_commits_notify_listeners(artboard: Artboard) -> None:
    store = InMemoryEntityStore.from_artboard(artboard)
    seen: List[Tuple[str, Rect]] = []
    unsubscribe = store.subscribe(lambda entity_id, rect: seen.append((entity_id, rect)))

    store.commit_position("kpi", Point(10, 20))
    store.commit_bounds("chart", Rect(0, 0, 50, 50))
    unsubscribe()
    store.commit_position("kpi", Point(0, 0))

    assert seen == [("kpi", Rect(10, 20, 184, 120)), ("chart", Rect(0, 0, 50, 50))]
    assert store.commit_count == 3


def test_unknown_entity_commit_raises() -> None:
    store = InMemoryEntityStore()

    with pytest.raises(KeyError, match="Unknown entity"):
        store.commit_position("nope", Point(0, 0))
    with pytest.raises(KeyError):
        store.commit_grid_position("nope", GridPosition(0, 0, 1, 1))


def test_remove_and_siblings_of(artboard: Artboard) -> None:
    store = InMemoryEntityStore.from_artboard(artboard)
    siblings = store.siblings_of("title")

    store.remove("chart")

    assert [item.id for item in siblings()] == ["kpi"]
    assert store.get("chart") is None
