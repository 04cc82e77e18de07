from __future__ import annotations

import pytest

from domain.models import Point, Size, Viewport
from domain.services.viewport import (
    KeyInput,
    ScaleLimits,
    ViewportController,
    WheelInput,
    WheelPolicy,
    adjust_scale,
    clamp_scale,
    screen_delta_to_world,
    screen_to_world,
    visible_world_rect,
    wheel_pan_delta,
    world_to_screen,
)


class _FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_ctrl_wheel_zoom_keeps_point_under_cursor() -> None:
    controller = ViewportController(Viewport())
    focus = Point(100, 100)
    world_before = screen_to_world(focus, controller.viewport)

    controller.handle_wheel(WheelInput(0, -100, focus, ctrl=True))

    assert controller.scale == pytest.approx(1.1)
    after = world_to_screen(world_before, controller.viewport)
    assert after.x == pytest.approx(100)
    assert after.y == pytest.approx(100)


@pytest.mark.parametrize("target", [0.25, 2.0, 4.99])
def test_adjust_scale_keeps_focus_invariant(target: float) -> None:
    viewport = Viewport(scale=1.3, pan=Point(-40, 25), viewport_size=Size(800, 600))
    focus = Point(321, 77)
    world = screen_to_world(focus, viewport)

    zoomed = adjust_scale(viewport, lambda _prev: target, focus)

    mapped = world_to_screen(world, zoomed)
    assert mapped.x == pytest.approx(focus.x)
    assert mapped.y == pytest.approx(focus.y)


def test_adjust_scale_defaults_focus_to_viewport_center() -> None:
    viewport = Viewport(scale=1.0, pan=Point(0, 0), viewport_size=Size(800, 600))
    center_world = screen_to_world(Point(400, 300), viewport)

    zoomed = adjust_scale(viewport, lambda prev: prev * 2)

    assert zoomed.scale == 2.0
    assert world_to_screen(center_world, zoomed) == Point(400, 300)


def test_adjust_scale_at_limit_returns_same_viewport() -> None:
    viewport = Viewport(scale=5.0, pan=Point(3, 4))

    assert adjust_scale(viewport, lambda prev: prev * 10) is viewport


def test_clamp_scale_bounds_and_nan() -> None:
    assert clamp_scale(100) == 5.0
    assert clamp_scale(0.0001) == 0.1
    assert clamp_scale(float("nan")) == 0.1
    with pytest.raises(ValueError, match="Invalid scale limits"):
        ScaleLimits(2.0, 1.0)


def test_screen_world_round_trip_and_zero_scale_guard() -> None:
    viewport = Viewport(scale=2.0, pan=Point(10, -20))
    world = screen_to_world(Point(50, 60), viewport)

    assert world == Point(20, 40)
    assert world_to_screen(world, viewport) == Point(50, 60)
    assert screen_delta_to_world(10, 20, 0) == Point(10, 20)
    assert screen_delta_to_world(10, 20, 2) == Point(5, 10)


def test_visible_world_rect_divides_by_scale() -> None:
    viewport = Viewport(scale=2.0, pan=Point(-100, 0), viewport_size=Size(800, 600))

    rect = visible_world_rect(viewport)

    assert (rect.x, rect.y, rect.width, rect.height) == (50, 0, 400, 300)


def test_notch_wheel_uses_fixed_step_times_velocity() -> None:
    policy = WheelPolicy()

    slow = wheel_pan_delta(WheelInput(0, 120, Point(0, 0)), elapsed_ms=1000, policy=policy)
    fast = wheel_pan_delta(WheelInput(0, 120, Point(0, 0)), elapsed_ms=10, policy=policy)

    assert slow == Point(-0.0, -5.0)
    assert fast == Point(-0.0, -125.0)


def test_shift_wheel_pans_horizontally() -> None:
    delta = wheel_pan_delta(WheelInput(0, 30, Point(0, 0), shift=True), elapsed_ms=1000)

    assert delta.x == -30
    assert delta.y == 0


def test_large_continuous_delta_gets_boost() -> None:
    delta = wheel_pan_delta(WheelInput(30, 40, Point(0, 0)), elapsed_ms=1000)
    assert delta == Point(-30.0, -40.0)

    delta = wheel_pan_delta(WheelInput(0, 45, Point(0, 0)), elapsed_ms=1000, policy=WheelPolicy(notch_threshold=500))
    assert delta == Point(-0.0, -45.0)

    boosted = wheel_pan_delta(WheelInput(0, 120, Point(0, 0)), elapsed_ms=1000, policy=WheelPolicy(notch_threshold=500))
    assert boosted == Point(-0.0, -300.0)


def test_controller_tracks_wheel_timing_from_clock() -> None:
    clock = _FakeClock()
    controller = ViewportController(Viewport(), clock=clock)

    controller.handle_wheel(WheelInput(0, 100, Point(0, 0)))
    clock.now = 15.0
    controller.handle_wheel(WheelInput(0, 100, Point(0, 0)))

    assert controller.viewport.pan == Point(0, -5.0 - 125.0)


def test_keyboard_shortcuts_need_modifier() -> None:
    controller = ViewportController(Viewport())

    assert controller.handle_key(KeyInput("=", ctrl=True))
    assert controller.scale == pytest.approx(1.1)
    assert controller.handle_key(KeyInput("0", meta=True))
    assert controller.scale == 1.0
    assert controller.handle_key(KeyInput("-", ctrl=True))
    assert controller.scale == pytest.approx(0.9)
    assert not controller.handle_key(KeyInput("-"))
    assert not controller.handle_key(KeyInput("x", ctrl=True))


def test_observe_resize_never_goes_negative() -> None:
    controller = ViewportController(Viewport())

    viewport = controller.observe_resize(-10, 480)

    assert viewport.viewport_size == Size(0, 480)


def test_initial_scale_is_clamped() -> None:
    controller = ViewportController(Viewport(scale=50), limits=ScaleLimits(0.5, 2.0))

    assert controller.scale == 2.0
