from __future__ import annotations

import math
import time
from collections.abc import Callable
from dataclasses import dataclass, replace

from domain.models import Point, Rect, Size, Viewport
from domain.services.geometry import safe_scale

MIN_SCALE = 0.1
MAX_SCALE = 5.0

ScaleUpdater = Callable[[float], float]
Clock = Callable[[], float]


@dataclass(frozen=True)
class ScaleLimits:
    min_scale: float = MIN_SCALE
    max_scale: float = MAX_SCALE

    def __post_init__(self) -> None:
        if self.min_scale <= 0 or self.min_scale > self.max_scale:
            msg = f"Invalid scale limits: {self.min_scale}..{self.max_scale}"
            raise ValueError(msg)


@dataclass(frozen=True)
class WheelPolicy:
    zoom_in_factor: float = 1.1
    zoom_out_factor: float = 0.9
    notch_threshold: float = 50.0
    notch_size: float = 5.0
    fast_interval_ms: float = 20.0
    medium_interval_ms: float = 40.0
    slow_interval_ms: float = 80.0
    fast_multiplier: float = 25.0
    medium_multiplier: float = 10.0
    slow_multiplier: float = 3.0
    large_continuous_delta: float = 100.0
    large_continuous_multiplier: float = 2.5
    medium_continuous_delta: float = 50.0
    medium_continuous_multiplier: float = 1.5


@dataclass(frozen=True)
class WheelInput:
    delta_x: float
    delta_y: float
    screen: Point
    ctrl: bool = False
    meta: bool = False
    shift: bool = False

    @property
    def zoom_modifier(self) -> bool:
        return self.ctrl or self.meta


@dataclass(frozen=True)
class KeyInput:
    key: str
    ctrl: bool = False
    meta: bool = False
    shift: bool = False


def clamp_scale(value: float, limits: ScaleLimits | None = None) -> float:
    limits = limits or ScaleLimits()
    if math.isnan(value):
        return limits.min_scale
    return min(max(value, limits.min_scale), limits.max_scale)


def screen_to_world(screen_point: Point, viewport: Viewport) -> Point:
    scale = safe_scale(viewport.scale)
    return Point(
        (screen_point.x - viewport.pan.x) / scale,
        (screen_point.y - viewport.pan.y) / scale,
    )


def world_to_screen(world_point: Point, viewport: Viewport) -> Point:
    scale = safe_scale(viewport.scale)
    return Point(
        world_point.x * scale + viewport.pan.x,
        world_point.y * scale + viewport.pan.y,
    )


def screen_delta_to_world(dx: float, dy: float, scale: float) -> Point:
    factor = safe_scale(scale)
    return Point(dx / factor, dy / factor)


def viewport_center(viewport: Viewport) -> Point:
    return Point(viewport.viewport_size.width / 2, viewport.viewport_size.height / 2)


def adjust_scale(
    viewport: Viewport,
    updater: ScaleUpdater,
    focus_point: Point | None = None,
    limits: ScaleLimits | None = None,
) -> Viewport:
    prev_scale = safe_scale(viewport.scale)
    next_scale = clamp_scale(updater(prev_scale), limits)
    if next_scale == prev_scale:
        return viewport
    focus = focus_point if focus_point is not None else viewport_center(viewport)
    world_at_focus = Point(
        (focus.x - viewport.pan.x) / prev_scale,
        (focus.y - viewport.pan.y) / prev_scale,
    )
    new_pan = Point(
        focus.x - world_at_focus.x * next_scale,
        focus.y - world_at_focus.y * next_scale,
    )
    return replace(viewport, scale=next_scale, pan=new_pan)


def pan_by(viewport: Viewport, dx: float, dy: float) -> Viewport:
    return replace(viewport, pan=viewport.pan.offset(dx, dy))


def visible_world_rect(viewport: Viewport) -> Rect:
    top_left = screen_to_world(Point(0.0, 0.0), viewport)
    scale = safe_scale(viewport.scale)
    return Rect(
        top_left.x,
        top_left.y,
        viewport.viewport_size.width / scale,
        viewport.viewport_size.height / scale,
    )


def velocity_multiplier(
    elapsed_ms: float,
    delta_x: float,
    delta_y: float,
    is_notch: bool,
    policy: WheelPolicy,
) -> float:
    multiplier = 1.0
    if elapsed_ms < policy.fast_interval_ms:
        multiplier = policy.fast_multiplier
    elif elapsed_ms < policy.medium_interval_ms:
        multiplier = policy.medium_multiplier
    elif elapsed_ms < policy.slow_interval_ms:
        multiplier = policy.slow_multiplier

    if not is_notch:
        magnitude = math.hypot(delta_x, delta_y)
        if magnitude > policy.large_continuous_delta:
            multiplier = max(multiplier, policy.large_continuous_multiplier)
        elif magnitude > policy.medium_continuous_delta:
            multiplier = max(multiplier, policy.medium_continuous_multiplier)
    return multiplier


def wheel_pan_delta(
    wheel: WheelInput,
    elapsed_ms: float,
    policy: WheelPolicy | None = None,
) -> Point:
    """Pan offset for a plain wheel event; the caller tracks the event timing."""
    policy = policy or WheelPolicy()
    delta_x = wheel.delta_x
    delta_y = wheel.delta_y
    if wheel.shift and delta_y != 0 and delta_x == 0:
        delta_x, delta_y = delta_y, 0.0

    is_notch = abs(delta_x) >= policy.notch_threshold or abs(delta_y) >= policy.notch_threshold
    effective_x = delta_x
    effective_y = delta_y
    if is_notch:
        effective_x = math.copysign(policy.notch_size, delta_x) if delta_x else 0.0
        effective_y = math.copysign(policy.notch_size, delta_y) if delta_y else 0.0

    multiplier = velocity_multiplier(elapsed_ms, delta_x, delta_y, is_notch, policy)
    return Point(-effective_x * multiplier, -effective_y * multiplier)


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class ViewportController:
    """Owns the canvas viewport and reacts to wheel, keyboard and resize input."""

    def __init__(
        self,
        viewport: Viewport | None = None,
        limits: ScaleLimits | None = None,
        policy: WheelPolicy | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.limits = limits or ScaleLimits()
        self.policy = policy or WheelPolicy()
        initial = viewport or Viewport()
        self._viewport = replace(initial, scale=clamp_scale(initial.scale, self.limits))
        self._clock = clock or _monotonic_ms
        self._last_wheel_ms: float | None = None

    @property
    def viewport(self) -> Viewport:
        return self._viewport

    @property
    def scale(self) -> float:
        return self._viewport.scale

    def adjust_scale(self, updater: ScaleUpdater, focus_point: Point | None = None) -> Viewport:
        self._viewport = adjust_scale(self._viewport, updater, focus_point, self.limits)
        return self._viewport

    def set_pan(self, pan: Point) -> Viewport:
        self._viewport = replace(self._viewport, pan=pan)
        return self._viewport

    def zoom_in(self) -> Viewport:
        factor = self.policy.zoom_in_factor
        return self.adjust_scale(lambda prev: prev * factor)

    def zoom_out(self) -> Viewport:
        factor = self.policy.zoom_out_factor
        return self.adjust_scale(lambda prev: prev * factor)

    def reset_zoom(self) -> Viewport:
        return self.adjust_scale(lambda _prev: 1.0)

    def observe_resize(self, width: float, height: float) -> Viewport:
        size = Size(max(0.0, width), max(0.0, height))
        self._viewport = replace(self._viewport, viewport_size=size)
        return self._viewport

    def visible_world_rect(self) -> Rect:
        return visible_world_rect(self._viewport)

    def handle_wheel(self, wheel: WheelInput) -> Viewport:
        if wheel.zoom_modifier:
            factor = self.policy.zoom_out_factor if wheel.delta_y > 0 else self.policy.zoom_in_factor
            return self.adjust_scale(lambda prev: prev * factor, wheel.screen)

        now = self._clock()
        elapsed = math.inf if self._last_wheel_ms is None else now - self._last_wheel_ms
        self._last_wheel_ms = now
        delta = wheel_pan_delta(wheel, elapsed, self.policy)
        self._viewport = pan_by(self._viewport, delta.x, delta.y)
        return self._viewport

    def handle_key(self, key: KeyInput) -> bool:
        if not (key.ctrl or key.meta):
            return False
        if key.key in ("=", "+"):
            self.zoom_in()
            return True
        if key.key == "-":
            self.zoom_out()
            return True
        if key.key == "0":
            self.reset_zoom()
            return True
        return False
