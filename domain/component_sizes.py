from __future__ import annotations

from typing import Dict, Optional

from domain.models import Size

DEFAULT_COMPONENT_TYPE = "default"

COMPONENT_DEFAULT_SIZES: Dict[str, Size] = {
    "chart-line": Size(400, 256),
    "chart-bar": Size(400, 256),
    "chart-doughnut": Size(280, 280),
    "chart": Size(400, 256),
    "text": Size(120, 40),
    "heading": Size(304, 48),
    "kpi": Size(184, 120),
    DEFAULT_COMPONENT_TYPE: Size(280, 200),
}

COMPONENT_MIN_SIZES: Dict[str, Size] = {
    "chart-line": Size(200, 152),
    "chart-bar": Size(200, 152),
    "chart-doughnut": Size(152, 152),
    "chart": Size(200, 152),
    "text": Size(40, 24),
    "heading": Size(80, 32),
    "kpi": Size(104, 80),
    DEFAULT_COMPONENT_TYPE: Size(80, 64),
}

# Types without an entry here resize without an upper bound.
COMPONENT_MAX_SIZES: Dict[str, Size] = {
    "heading": Size(800, 120),
    "kpi": Size(400, 304),
}

# width / height; absent means freeform.
COMPONENT_ASPECT_RATIOS: Dict[str, float] = {
    "chart-doughnut": 1.0,
}


def get_default_size(component_type: str) -> Size:
    return COMPONENT_DEFAULT_SIZES.get(component_type, COMPONENT_DEFAULT_SIZES[DEFAULT_COMPONENT_TYPE])


def get_min_size(component_type: str) -> Size:
    return COMPONENT_MIN_SIZES.get(component_type, COMPONENT_MIN_SIZES[DEFAULT_COMPONENT_TYPE])


def get_max_size(component_type: str) -> Optional[Size]:
    return COMPONENT_MAX_SIZES.get(component_type)


def get_aspect_ratio(component_type: str) -> Optional[float]:
    return COMPONENT_ASPECT_RATIOS.get(component_type)
