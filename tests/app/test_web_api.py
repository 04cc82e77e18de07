from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest
from fastapi.testclient import TestClient

from app.config import AppSettings, SnapConfig
from app.web_main import create_app


@pytest.fixture
def client(app_settings: AppSettings) -> TestClient:
    return TestClient(create_app(app_settings))


def _sibling(entity_id: str, x: float, y: float, width: float, height: float) -> dict[str, Any]:
    return {"id": entity_id, "x": x, "y": y, "width": width, "height": height}


def test_health_reports_snap_settings(client: TestClient) -> None:
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "grid_size": 8.0, "threshold": 5.0}


def test_snap_move_aligns_to_sibling_edge(client: TestClient) -> None:
    response = client.post(
        "/api/snap/move",
        json={
            "moving_id": "moving",
            "position": {"x": 101, "y": 50},
            "size": {"width": 40, "height": 20},
            "siblings": [_sibling("sibling", 0, 50, 100, 20)],
        },
    )

    payload = response.json()
    assert response.status_code == 200
    assert payload["source"] == "alignment"
    assert payload["position"] == {"x": 100.0, "y": 50.0}
    vertical = [guide for guide in payload["guides"] if guide["axis"] == "vertical"]
    assert vertical == [{"axis": "vertical", "position": 100.0, "member_ids": ["moving", "sibling"]}]


def test_snap_move_uses_configured_grid(app_settings_factory: Callable[..., AppSettings]) -> None:
    settings = app_settings_factory(snap=SnapConfig(grid_size=8, threshold=4))
    client = TestClient(create_app(settings))

    response = client.post(
        "/api/snap/move",
        json={"moving_id": "m", "position": {"x": 101, "y": 0}, "size": {"width": 10, "height": 10}},
    )

    assert response.json()["position"] == {"x": 104.0, "y": 0.0}
    assert response.json()["source"] == "grid"


def test_snap_move_validates_payload(client: TestClient) -> None:
    response = client.post(
        "/api/snap/move",
        json={"moving_id": "m", "position": {"x": 0, "y": 0}, "size": {"width": -1, "height": 10}},
    )

    assert response.status_code == 422


def test_snap_resize_clamps_negative_width(client: TestClient) -> None:
    response = client.post(
        "/api/snap/resize",
        json={
            "handle": "se",
            "raw_rect": {"x": 0, "y": 0, "width": -10, "height": 50},
            "start_rect": {"x": 0, "y": 0, "width": 100, "height": 50},
        },
    )

    assert response.status_code == 200
    assert response.json()["rect"]["width"] == 0


def test_snap_resize_rejects_unknown_handle(client: TestClient) -> None:
    response = client.post(
        "/api/snap/resize",
        json={
            "handle": "middle",
            "raw_rect": {"x": 0, "y": 0, "width": 10, "height": 10},
            "start_rect": {"x": 0, "y": 0, "width": 10, "height": 10},
        },
    )

    assert response.status_code == 400
    assert "Unknown resize handle" in response.json()["detail"]


def test_placement_by_size_and_by_type(client: TestClient) -> None:
    by_size = client.post(
        "/api/placement",
        json={"container": {"width": 1000, "height": 800}, "size": {"width": 100, "height": 50}},
    )
    by_type = client.post(
        "/api/placement",
        json={
            "container": {"width": 1000, "height": 800},
            "component_type": "kpi",
            "existing": [{"x": 0, "y": 0, "width": 200, "height": 100}],
        },
    )

    assert by_size.json()["position"] == {"x": 8.0, "y": 8.0}
    assert by_type.json() == {"position": {"x": 200.0, "y": 8.0}, "size": {"width": 184, "height": 120}}


def test_placement_needs_size_or_type(client: TestClient) -> None:
    response = client.post("/api/placement", json={"container": {"width": 1000, "height": 800}})

    assert response.status_code == 400


def test_ctrl_wheel_zoom_keeps_focus(client: TestClient) -> None:
    response = client.post(
        "/api/viewport/zoom",
        json={"wheel": {"delta_y": -100, "x": 100, "y": 100, "ctrl": True}},
    )

    viewport = response.json()["viewport"]
    assert viewport["scale"] == pytest.approx(1.1)
    assert 100 * viewport["scale"] + viewport["pan"]["x"] == pytest.approx(100)
    assert 100 * viewport["scale"] + viewport["pan"]["y"] == pytest.approx(100)


def test_plain_wheel_pans(client: TestClient) -> None:
    response = client.post(
        "/api/viewport/zoom",
        json={"wheel": {"delta_y": 120, "elapsed_ms": 10}},
    )

    assert response.json()["viewport"]["pan"] == {"x": 0.0, "y": -125.0}


def test_zoom_actions_and_keys(client: TestClient) -> None:
    zoom_in = client.post("/api/viewport/zoom", json={"action": "zoom_in"})
    reset = client.post("/api/viewport/zoom", json={"viewport": {"scale": 3}, "action": "reset"})
    ignored = client.post("/api/viewport/zoom", json={"key": {"key": "x", "ctrl": True}})
    missing = client.post("/api/viewport/zoom", json={})

    assert zoom_in.json()["viewport"]["scale"] == pytest.approx(1.1)
    assert reset.json()["viewport"]["scale"] == 1.0
    assert ignored.json()["consumed"] is False
    assert missing.status_code == 400


def test_z_order_endpoint(client: TestClient) -> None:
    response = client.post(
        "/api/z-order",
        json={
            "items": [{"id": "a", "z_index": 0}, {"id": "b", "z_index": 1}],
            "target_id": "a",
            "operation": "front",
        },
    )

    assert response.json() == {
        "operation": "bring_to_front",
        "items": [{"id": "b", "z_index": 0}, {"id": "a", "z_index": 1}],
    }


@pytest.mark.parametrize(
    ("target_id", "operation"),
    [("a", "sideways"), ("missing", "front")],
)
def test_z_order_endpoint_rejects_bad_input(client: TestClient, target_id: str, operation: str) -> None:
    response = client.post(
        "/api/z-order",
        json={"items": [{"id": "a"}], "target_id": target_id, "operation": operation},
    )

    assert response.status_code == 400


def test_widget_layout_endpoint(client: TestClient) -> None:
    component = {
        "instanceId": "k1",
        "componentType": "kpi",
        "position": {"x": 0, "y": 0, "width": 0, "height": 0},
    }
    response = client.post(
        "/api/widgets/layout",
        json={"components": [component, {**component, "instanceId": "k2"}], "container_width": 1000},
    )

    payload = response.json()
    assert response.status_code == 200
    assert payload["columns"] == 24
    assert [layout["grid_position"]["col"] for layout in payload["layouts"]] == [0, 6]
    assert payload["layouts"][1]["pixel_bounds"] == {"x": 252.0, "y": 0.0, "width": 244.0, "height": 160.0}
    assert payload["stored_positions"]["k2"] == {"col": 3, "row": 0, "col_span": 3, "row_span": 3}
    assert payload["total_height"] == 160

    single = client.post(
        "/api/widgets/layout",
        json={"components": [component], "container_width": 1000, "fine_grain": 1},
    ).json()
    assert single["columns"] == 12
    assert single["total_height"] == 136
