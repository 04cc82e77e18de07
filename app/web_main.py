from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, List, Literal, Optional, cast

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import ORJSONResponse
from pydantic import BaseModel, Field

from adapters.filesystem.json_utils import dump_json_bytes
from app.config import AppSettings, load_settings
from domain.component_sizes import get_default_size
from domain.models import (
    ArtboardComponent,
    EntityBounds,
    Point,
    Rect,
    Size,
    UnknownHandleError,
    Viewport,
    parse_handle,
)
from domain.services.placement import PlacementConfig, find_initial_position
from domain.services.snap_resolver import SnapSettings, resolve_resize_snap, resolve_snap
from domain.services.sub_grid import WidgetGridConfig, calculate_fine_grain_layout
from domain.services.viewport import (
    KeyInput,
    ScaleLimits,
    ViewportController,
    WheelInput,
    WheelPolicy,
    pan_by,
    wheel_pan_delta,
)
from domain.services.z_order import parse_z_order_operation, update_z_order

logger = logging.getLogger(__name__)


class EngineJSONResponse(ORJSONResponse):
    def render(self, content: Any) -> bytes:
        return dump_json_bytes(content)


class PointPayload(BaseModel):
    x: float
    y: float

    def to_point(self) -> Point:
        return Point(self.x, self.y)


class SizePayload(BaseModel):
    width: float = Field(..., ge=0)
    height: float = Field(..., ge=0)

    def to_size(self) -> Size:
        return Size(self.width, self.height)


class RectPayload(BaseModel):
    x: float
    y: float
    width: float
    height: float

    def to_rect(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)


class BoundsPayload(RectPayload):
    id: str = Field(..., min_length=1)

    def to_bounds(self) -> EntityBounds:
        return EntityBounds(self.id, self.x, self.y, self.width, self.height)


class SnapMoveRequest(BaseModel):
    moving_id: str = Field(..., min_length=1)
    position: PointPayload
    size: SizePayload
    siblings: List[BoundsPayload] = Field(default_factory=list)
    bypass: bool = False


class SnapResizeRequest(BaseModel):
    moving_id: str = "__resize__"
    handle: str
    raw_rect: RectPayload
    start_rect: RectPayload
    siblings: List[BoundsPayload] = Field(default_factory=list)
    bypass: bool = False


class PlacementRequest(BaseModel):
    container: SizePayload
    size: Optional[SizePayload] = None
    component_type: Optional[str] = None
    existing: List[RectPayload] = Field(default_factory=list)


class ViewportPayload(BaseModel):
    scale: float = 1.0
    pan: PointPayload = PointPayload(x=0.0, y=0.0)
    viewport_size: SizePayload = SizePayload(width=0.0, height=0.0)

    def to_viewport(self) -> Viewport:
        return Viewport(self.scale, self.pan.to_point(), self.viewport_size.to_size())


class WheelPayload(BaseModel):
    delta_x: float = 0.0
    delta_y: float = 0.0
    x: float = 0.0
    y: float = 0.0
    ctrl: bool = False
    meta: bool = False
    shift: bool = False
    elapsed_ms: Optional[float] = Field(default=None, ge=0)

    def to_wheel(self) -> WheelInput:
        return WheelInput(
            self.delta_x,
            self.delta_y,
            Point(self.x, self.y),
            ctrl=self.ctrl,
            meta=self.meta,
            shift=self.shift,
        )


class KeyPayload(BaseModel):
    key: str
    ctrl: bool = False
    meta: bool = False
    shift: bool = False


class ZoomRequest(BaseModel):
    viewport: ViewportPayload = ViewportPayload()
    action: Optional[Literal["zoom_in", "zoom_out", "reset"]] = None
    wheel: Optional[WheelPayload] = None
    key: Optional[KeyPayload] = None


class StackItem(BaseModel):
    id: str = Field(..., min_length=1)
    z_index: int = 0


class ZOrderRequest(BaseModel):
    items: List[StackItem]
    target_id: str
    operation: str


class WidgetLayoutRequest(BaseModel):
    components: List[ArtboardComponent]
    container_width: float = Field(..., gt=0)
    columns: Optional[int] = Field(default=None, ge=1)
    row_height: Optional[float] = Field(default=None, gt=0)
    gap: Optional[float] = Field(default=None, ge=0)
    fine_grain: Optional[int] = Field(default=None, ge=1)


@dataclass(frozen=True)
class EngineContext:
    settings: AppSettings
    snap: SnapSettings
    scale_limits: ScaleLimits
    wheel_policy: WheelPolicy
    placement: PlacementConfig
    grid: WidgetGridConfig
    fine_grain: int


def build_context(settings: AppSettings) -> EngineContext:
    engine = settings.engine
    return EngineContext(
        settings=settings,
        snap=engine.snap.to_snap_settings(),
        scale_limits=engine.viewport.to_scale_limits(),
        wheel_policy=engine.wheel.to_wheel_policy(),
        placement=engine.placement.to_placement_config(),
        grid=engine.grid.to_widget_grid(),
        fine_grain=engine.grid.fine_grain,
    )


def get_context(request: Request) -> EngineContext:
    return cast(EngineContext, request.app.state.context)


def create_app(settings: AppSettings) -> FastAPI:
    app = FastAPI(title=settings.title, default_response_class=EngineJSONResponse)
    app.state.context = build_context(settings)

    @app.get("/api/health")
    def api_health(context: EngineContext = Depends(get_context)) -> EngineJSONResponse:
        return EngineJSONResponse(
            {
                "status": "ok",
                "grid_size": context.snap.grid_size,
                "threshold": context.snap.threshold,
            }
        )

    @app.post("/api/snap/move")
    def api_snap_move(
        payload: SnapMoveRequest,
        context: EngineContext = Depends(get_context),
    ) -> EngineJSONResponse:
        result = resolve_snap(
            payload.position.to_point(),
            payload.moving_id,
            payload.size.to_size(),
            [item.to_bounds() for item in payload.siblings],
            context.snap,
            bypass=payload.bypass,
        )
        return EngineJSONResponse(result)

    @app.post("/api/snap/resize")
    def api_snap_resize(
        payload: SnapResizeRequest,
        context: EngineContext = Depends(get_context),
    ) -> EngineJSONResponse:
        try:
            handle = parse_handle(payload.handle)
        except UnknownHandleError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        result = resolve_resize_snap(
            payload.raw_rect.to_rect(),
            payload.start_rect.to_rect(),
            handle,
            [item.to_bounds() for item in payload.siblings],
            context.snap,
            bypass=payload.bypass,
            moving_id=payload.moving_id,
        )
        return EngineJSONResponse(result)

    @app.post("/api/placement")
    def api_placement(
        payload: PlacementRequest,
        context: EngineContext = Depends(get_context),
    ) -> EngineJSONResponse:
        if payload.size is not None:
            size = payload.size.to_size()
        elif payload.component_type:
            size = get_default_size(payload.component_type)
        else:
            raise HTTPException(status_code=400, detail="size or component_type is required")
        position = find_initial_position(
            size,
            [item.to_rect() for item in payload.existing],
            payload.container.to_size(),
            context.placement,
        )
        return EngineJSONResponse({"position": position, "size": size})

    @app.post("/api/viewport/zoom")
    def api_viewport_zoom(
        payload: ZoomRequest,
        context: EngineContext = Depends(get_context),
    ) -> EngineJSONResponse:
        controller = ViewportController(
            payload.viewport.to_viewport(),
            limits=context.scale_limits,
            policy=context.wheel_policy,
        )
        consumed = True
        if payload.action == "zoom_in":
            controller.zoom_in()
        elif payload.action == "zoom_out":
            controller.zoom_out()
        elif payload.action == "reset":
            controller.reset_zoom()
        elif payload.wheel is not None:
            wheel = payload.wheel.to_wheel()
            if wheel.zoom_modifier:
                controller.handle_wheel(wheel)
            else:
                elapsed = payload.wheel.elapsed_ms if payload.wheel.elapsed_ms is not None else math.inf
                delta = wheel_pan_delta(wheel, elapsed, context.wheel_policy)
                controller.set_pan(pan_by(controller.viewport, delta.x, delta.y).pan)
        elif payload.key is not None:
            key = payload.key
            consumed = controller.handle_key(KeyInput(key.key, key.ctrl, key.meta, key.shift))
        else:
            raise HTTPException(status_code=400, detail="action, wheel or key is required")
        return EngineJSONResponse({"viewport": controller.viewport, "consumed": consumed})

    @app.post("/api/z-order")
    def api_z_order(payload: ZOrderRequest) -> EngineJSONResponse:
        try:
            operation = parse_z_order_operation(payload.operation)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        if payload.target_id not in {item.id for item in payload.items}:
            raise HTTPException(status_code=400, detail=f"Unknown target: {payload.target_id}")
        items = update_z_order(
            payload.items,
            payload.target_id,
            operation,
            get_id=lambda item: item.id,
            get_z=lambda item: item.z_index,
            set_z=lambda item, z: item.model_copy(update={"z_index": z}),
        )
        return EngineJSONResponse({"operation": operation, "items": items})

    @app.post("/api/widgets/layout")
    def api_widget_layout(
        payload: WidgetLayoutRequest,
        context: EngineContext = Depends(get_context),
    ) -> EngineJSONResponse:
        try:
            grid = WidgetGridConfig(
                columns=payload.columns or context.grid.columns,
                row_height=payload.row_height or context.grid.row_height,
                gap=payload.gap if payload.gap is not None else context.grid.gap,
            )
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        try:
            widget_layout = calculate_fine_grain_layout(
                payload.components,
                payload.container_width,
                grid,
                payload.fine_grain or context.fine_grain,
            )
        except Exception as exc:
            logger.exception("Widget layout failed")
            raise HTTPException(status_code=500, detail="Layout failed") from exc
        return EngineJSONResponse(
            {
                "columns": widget_layout.grid.columns,
                "layouts": widget_layout.layouts,
                "stored_positions": widget_layout.stored_positions,
                "total_height": widget_layout.total_height,
            }
        )

    return app


app = create_app(load_settings())
