from __future__ import annotations

import os
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from adapters.filesystem.json_utils import write_json_atomic
from adapters.memory.pointer_events import InMemoryPointerEvents
from app.config import AppSettings, EngineSettings, SnapConfig
from domain.models import (
    Artboard,
    ArtboardComponent,
    ArtboardDimensions,
    CanvasDocument,
    CanvasPosition,
)
from domain.services.interaction import InteractionSlot
from tests.helpers.canvas_fixtures import make_component


def _clear_canvas_env() -> None:
    for key in list(os.environ):
        if key.startswith("CANVAS_"):
            os.environ.pop(key, None)


_clear_canvas_env()


@pytest.fixture(autouse=True)
def clear_canvas_env() -> Generator[None, None, None]:
    _clear_canvas_env()
    yield
    _clear_canvas_env()


@pytest.fixture
def snap_config() -> SnapConfig:
    return SnapConfig(grid_size=8.0, threshold=5.0)


@pytest.fixture
def engine_settings(tmp_path: Path, snap_config: SnapConfig) -> EngineSettings:
    return EngineSettings(snap=snap_config, documents_dir=tmp_path / "canvas")


@pytest.fixture
def app_settings(engine_settings: EngineSettings) -> AppSettings:
    return AppSettings(title="Test Canvas", engine=engine_settings)


@pytest.fixture
def app_settings_factory(app_settings: AppSettings) -> Callable[..., AppSettings]:
    def _factory(**overrides: object) -> AppSettings:
        engine = app_settings.engine.model_copy(update=overrides)
        return app_settings.model_copy(update={"engine": engine})

    return _factory


@pytest.fixture
def events() -> InMemoryPointerEvents:
    return InMemoryPointerEvents()


@pytest.fixture
def slot() -> InteractionSlot:
    return InteractionSlot()


@pytest.fixture
def component_factory() -> Callable[..., ArtboardComponent]:
    return make_component


@pytest.fixture
def artboard() -> Artboard:
    return Artboard(
        id="board-1",
        name="Report",
        format="web-1440",
        dimensions=ArtboardDimensions(width_px=1440, height_px=900, aspect_ratio=1.6),
        position=CanvasPosition(x=100, y=100),
        components=[
            make_component("title", 0, 50, 100, 20, "heading", z_index=0),
            make_component("chart", 200, 200, 400, 256, "chart-line", z_index=1),
            make_component("kpi", 640, 200, 184, 120, "kpi", z_index=2),
        ],
    )


@pytest.fixture
def canvas_document(artboard: Artboard) -> CanvasDocument:
    return CanvasDocument(artboards=[artboard])


@pytest.fixture
def document_path(tmp_path: Path, canvas_document: CanvasDocument) -> Path:
    path = tmp_path / "report.canvas.json"
    write_json_atomic(path, canvas_document.model_dump(mode="json", by_alias=True))
    return path
