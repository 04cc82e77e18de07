from __future__ import annotations

import math
import os
from pathlib import Path
from typing import ClassVar

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources import PydanticBaseSettingsSource, YamlConfigSettingsSource

from domain.services.placement import PlacementConfig
from domain.services.snap_resolver import GRID_SIZE_PX, SNAP_THRESHOLD_PX, SnapSettings
from domain.services.sub_grid import GRID_FINE_GRAIN, WidgetGridConfig
from domain.services.viewport import MAX_SCALE, MIN_SCALE, ScaleLimits, WheelPolicy

DEFAULT_CONFIG_PATH = Path("config/canvas/engine.yaml")
CONFIG_PATH_ENV = "CANVAS_CONFIG_PATH"


class SnapConfig(BaseModel):
    grid_size: float = GRID_SIZE_PX
    threshold: float = SNAP_THRESHOLD_PX
    alignment_enabled: bool = True
    grid_enabled: bool = True

    @field_validator("grid_size", "threshold", mode="after")
    @classmethod
    def ensure_finite(cls, value: float) -> float:
        if not math.isfinite(value) or value < 0:
            msg = f"snap distances must be finite and non-negative, got {value}"
            raise ValueError(msg)
        return value

    def to_snap_settings(self) -> SnapSettings:
        return SnapSettings(
            grid_size=self.grid_size,
            threshold=self.threshold,
            alignment_enabled=self.alignment_enabled,
            grid_enabled=self.grid_enabled and self.grid_size > 0,
        )


class ViewportConfig(BaseModel):
    min_scale: float = Field(MIN_SCALE, gt=0)
    max_scale: float = Field(MAX_SCALE, gt=0)
    initial_scale: float = 1.0

    @model_validator(mode="after")
    def ensure_ordered(self) -> ViewportConfig:
        if self.min_scale > self.max_scale:
            msg = f"viewport.min_scale ({self.min_scale}) exceeds max_scale ({self.max_scale})"
            raise ValueError(msg)
        return self

    def to_scale_limits(self) -> ScaleLimits:
        return ScaleLimits(self.min_scale, self.max_scale)


class WheelConfig(BaseModel):
    zoom_in_factor: float = Field(1.1, gt=1)
    zoom_out_factor: float = Field(0.9, gt=0, lt=1)
    notch_threshold: float = Field(50.0, gt=0)
    notch_size: float = Field(5.0, gt=0)
    fast_interval_ms: float = 20.0
    medium_interval_ms: float = 40.0
    slow_interval_ms: float = 80.0
    fast_multiplier: float = 25.0
    medium_multiplier: float = 10.0
    slow_multiplier: float = 3.0
    large_continuous_delta: float = Field(100.0, gt=0)
    large_continuous_multiplier: float = Field(2.5, gt=0)
    medium_continuous_delta: float = Field(50.0, gt=0)
    medium_continuous_multiplier: float = Field(1.5, gt=0)

    @model_validator(mode="after")
    def ensure_buckets_ascending(self) -> WheelConfig:
        if not self.fast_interval_ms <= self.medium_interval_ms <= self.slow_interval_ms:
            msg = "wheel interval buckets must be ascending (fast <= medium <= slow)"
            raise ValueError(msg)
        if self.medium_continuous_delta > self.large_continuous_delta:
            msg = "medium_continuous_delta must not exceed large_continuous_delta"
            raise ValueError(msg)
        return self

    def to_wheel_policy(self) -> WheelPolicy:
        return WheelPolicy(
            zoom_in_factor=self.zoom_in_factor,
            zoom_out_factor=self.zoom_out_factor,
            notch_threshold=self.notch_threshold,
            notch_size=self.notch_size,
            fast_interval_ms=self.fast_interval_ms,
            medium_interval_ms=self.medium_interval_ms,
            slow_interval_ms=self.slow_interval_ms,
            fast_multiplier=self.fast_multiplier,
            medium_multiplier=self.medium_multiplier,
            slow_multiplier=self.slow_multiplier,
            large_continuous_delta=self.large_continuous_delta,
            large_continuous_multiplier=self.large_continuous_multiplier,
            medium_continuous_delta=self.medium_continuous_delta,
            medium_continuous_multiplier=self.medium_continuous_multiplier,
        )


class SubGridConfig(BaseModel):
    columns: int = Field(12, ge=1)
    row_height: float = Field(40.0, gt=0)
    gap: float = Field(8.0, ge=0)
    fine_grain: int = Field(GRID_FINE_GRAIN, ge=1)

    def to_widget_grid(self) -> WidgetGridConfig:
        return WidgetGridConfig(columns=self.columns, row_height=self.row_height, gap=self.gap)


class PlacementSettings(BaseModel):
    padding: float = Field(8.0, ge=0)
    cascade_offset: float = Field(24.0, ge=0)
    spiral_step: float = Field(8.0, gt=0)

    def to_placement_config(self) -> PlacementConfig:
        return PlacementConfig(
            padding=self.padding,
            cascade_offset=self.cascade_offset,
            spiral_step=self.spiral_step,
        )


class EngineSettings(BaseModel):
    snap: SnapConfig = SnapConfig()
    viewport: ViewportConfig = ViewportConfig()
    wheel: WheelConfig = WheelConfig()
    grid: SubGridConfig = SubGridConfig()
    placement: PlacementSettings = PlacementSettings()
    documents_dir: Path = Path("data/canvas")


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="CANVAS_", env_nested_delimiter="__")

    title: str = "Canvas Geometry Engine"
    engine: EngineSettings = EngineSettings()

    _yaml_path: ClassVar[Path | None] = None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        sources: list[PydanticBaseSettingsSource] = [
            init_settings,
            env_settings,
            dotenv_settings,
            file_secret_settings,
        ]
        if cls._yaml_path:
            sources.append(YamlConfigSettingsSource(settings_cls, yaml_file=cls._yaml_path))
        return tuple(sources)


def load_settings(config_path: Path | None = None) -> AppSettings:
    env_path = os.getenv(CONFIG_PATH_ENV)
    resolved_path: Path | None = None

    if config_path is not None:
        resolved_path = config_path
    elif env_path:
        resolved_path = Path(env_path)
    elif DEFAULT_CONFIG_PATH.exists():
        resolved_path = DEFAULT_CONFIG_PATH

    previous = AppSettings._yaml_path
    try:
        if resolved_path is not None:
            if not resolved_path.exists():
                msg = f"Config file not found: {resolved_path}"
                raise FileNotFoundError(msg)
            AppSettings._yaml_path = resolved_path
        return AppSettings()
    finally:
        AppSettings._yaml_path = previous
