from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

DOCUMENT_SCHEMA_VERSION = 1


class Axis(str, Enum):
    VERTICAL = "vertical"
    HORIZONTAL = "horizontal"


class SnapSource(str, Enum):
    NONE = "none"
    ALIGNMENT = "alignment"
    GRID = "grid"


class ResizeHandle(str, Enum):
    NW = "nw"
    N = "n"
    NE = "ne"
    E = "e"
    SE = "se"
    S = "s"
    SW = "sw"
    W = "w"

    @property
    def moves_left(self) -> bool:
        return "w" in self.value

    @property
    def moves_right(self) -> bool:
        return "e" in self.value

    @property
    def moves_top(self) -> bool:
        return "n" in self.value

    @property
    def moves_bottom(self) -> bool:
        return "s" in self.value

    @property
    def is_horizontal(self) -> bool:
        return self.moves_left or self.moves_right

    @property
    def is_vertical(self) -> bool:
        return self.moves_top or self.moves_bottom


class ZOrderOperation(str, Enum):
    BRING_TO_FRONT = "bring_to_front"
    SEND_TO_BACK = "send_to_back"
    BRING_FORWARD = "bring_forward"
    SEND_BACKWARD = "send_backward"


class SizeMode(str, Enum):
    INTRINSIC = "intrinsic"
    FIXED_RATIO = "fixed-ratio"
    FILL = "fill"
    FULL = "full"


class UnknownHandleError(ValueError):
    pass


def parse_handle(value: str | ResizeHandle) -> ResizeHandle:
    if isinstance(value, ResizeHandle):
        return value
    try:
        return ResizeHandle(str(value).strip().lower())
    except ValueError as exc:
        msg = f"Unknown resize handle: {value!r}"
        raise UnknownHandleError(msg) from exc


@dataclass(frozen=True)
class Point:
    x: float
    y: float

    def offset(self, dx: float, dy: float) -> Point:
        return Point(self.x + dx, self.y + dy)


@dataclass(frozen=True)
class Size:
    width: float
    height: float


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    @property
    def left(self) -> float:
        return self.x

    @property
    def top(self) -> float:
        return self.y

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2

    @property
    def position(self) -> Point:
        return Point(self.x, self.y)

    @property
    def size(self) -> Size:
        return Size(self.width, self.height)

    def moved_to(self, x: float, y: float) -> Rect:
        return replace(self, x=x, y=y)

    @classmethod
    def from_position(cls, position: Point, size: Size) -> Rect:
        return cls(position.x, position.y, size.width, size.height)


@dataclass(frozen=True)
class EntityBounds:
    id: str
    x: float
    y: float
    width: float
    height: float

    @property
    def rect(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)

    @classmethod
    def from_rect(cls, entity_id: str, rect: Rect) -> EntityBounds:
        return cls(entity_id, rect.x, rect.y, rect.width, rect.height)


@dataclass(frozen=True)
class Viewport:
    scale: float = 1.0
    pan: Point = Point(0.0, 0.0)
    viewport_size: Size = Size(0.0, 0.0)


@dataclass(frozen=True)
class AlignmentGuide:
    axis: Axis
    position: float
    member_ids: frozenset[str] = frozenset()


@dataclass(frozen=True)
class GridPosition:
    col: int
    row: int
    col_span: int
    row_span: int

    @property
    def end_col(self) -> int:
        return self.col + self.col_span

    @property
    def end_row(self) -> int:
        return self.row + self.row_span


@dataclass(frozen=True)
class SnapCandidate:
    x: float
    y: float
    dx: float
    dy: float


@dataclass(frozen=True)
class SnapDebug:
    raw: Point
    alignment: SnapCandidate | None
    grid: SnapCandidate | None
    chosen_source: SnapSource
    chosen_dx: float
    chosen_dy: float


@dataclass(frozen=True)
class SnapResult:
    position: Point
    source: SnapSource
    guides: List[AlignmentGuide] = field(default_factory=list)
    debug: SnapDebug | None = None


@dataclass(frozen=True)
class ResizeSnapResult:
    rect: Rect
    source: SnapSource
    guides: List[AlignmentGuide] = field(default_factory=list)


class _PayloadModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class CanvasPosition(_PayloadModel):
    x: float
    y: float


class ComponentPosition(_PayloadModel):
    x: float
    y: float
    width: float = Field(..., ge=0)
    height: float = Field(..., ge=0)
    z_index: int = 0
    rotation: Optional[float] = None

    def to_rect(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)


class GridPositionPayload(_PayloadModel):
    col: int = Field(..., ge=0)
    row: int = Field(..., ge=0)
    col_span: int = Field(..., ge=1)
    row_span: int = Field(..., ge=1)

    def to_grid_position(self) -> GridPosition:
        return GridPosition(self.col, self.row, self.col_span, self.row_span)


class ArtboardComponent(_PayloadModel):
    instance_id: str = Field(..., min_length=1)
    component_type: str = Field(..., min_length=1)
    position: ComponentPosition
    config: Dict[str, Any] = Field(default_factory=dict)
    locked: bool = False
    hidden: bool = False
    flip_x: bool = False
    flip_y: bool = False
    grid_position: Optional[GridPositionPayload] = None

    def to_bounds(self) -> EntityBounds:
        return EntityBounds.from_rect(self.instance_id, self.position.to_rect())


class Widget(_PayloadModel):
    id: str = Field(..., min_length=1)
    x: int = Field(0, ge=0)
    y: int = Field(0, ge=0)
    w: int = Field(1, ge=1)
    h: int = Field(1, ge=1)
    z_index: int = 0
    components: List[ArtboardComponent] = Field(default_factory=list)


class ArtboardDimensions(_PayloadModel):
    width_px: float = Field(..., gt=0)
    height_px: float = Field(..., gt=0)
    aspect_ratio: float = Field(..., gt=0)
    dpi: int = 96
    label: str = ""
    width_mm: Optional[float] = None
    height_mm: Optional[float] = None

    def to_size(self) -> Size:
        return Size(self.width_px, self.height_px)


class Artboard(_PayloadModel):
    id: str = Field(..., min_length=1)
    name: str = ""
    format: str = "custom"
    dimensions: ArtboardDimensions
    position: CanvasPosition
    zoom: float = 1.0
    background_color: str = "#ffffff"
    components: List[ArtboardComponent] = Field(default_factory=list)
    widgets: List[Widget] = Field(default_factory=list)
    locked: bool = False
    visible: bool = True
    show_grid: bool = True
    show_rulers: bool = False
    clip_content: bool = True
    grid_padding: float = 16.0

    @field_validator("components", mode="after")
    @classmethod
    def ensure_unique_component_ids(
        cls, components: List[ArtboardComponent]
    ) -> List[ArtboardComponent]:
        seen: Set[str] = set()
        for component in components:
            if component.instance_id in seen:
                msg = f"Duplicate instance_id found: {component.instance_id}"
                raise ValueError(msg)
            seen.add(component.instance_id)
        return components

    def to_rect(self) -> Rect:
        return Rect(
            self.position.x,
            self.position.y,
            self.dimensions.width_px,
            self.dimensions.height_px,
        )

    def component(self, instance_id: str) -> ArtboardComponent | None:
        return next((c for c in self.components if c.instance_id == instance_id), None)

    def sibling_bounds(self, exclude_id: str | None = None) -> List[EntityBounds]:
        return [
            component.to_bounds()
            for component in self.components
            if component.instance_id != exclude_id and not component.hidden
        ]


class CanvasDocument(_PayloadModel):
    version: int = DOCUMENT_SCHEMA_VERSION
    artboards: List[Artboard] = Field(default_factory=list)
    stack_order: List[str] = Field(default_factory=list)

    @field_validator("version", mode="after")
    @classmethod
    def ensure_supported_version(cls, version: int) -> int:
        if version != DOCUMENT_SCHEMA_VERSION:
            msg = f"Unsupported canvas document version: {version}"
            raise ValueError(msg)
        return version

    @model_validator(mode="after")
    def fill_stack_order(self) -> CanvasDocument:
        known = [artboard.id for artboard in self.artboards]
        preserved = [artboard_id for artboard_id in self.stack_order if artboard_id in known]
        for artboard_id in known:
            if artboard_id not in preserved:
                preserved.append(artboard_id)
        self.stack_order = preserved
        return self

    def artboard(self, artboard_id: str) -> Artboard | None:
        return next((a for a in self.artboards if a.id == artboard_id), None)


class DroppedComponent(_PayloadModel):
    id: str = Field(..., min_length=1)
    name: Optional[str] = None
