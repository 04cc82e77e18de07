from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from domain.models import ArtboardDimensions
from domain.services.geometry import round_half_up

PRINT_DPI = 300
SCREEN_DPI = 96
MM_PER_INCH = 25.4

CATEGORY_LABELS: Dict[str, str] = {
    "print": "Print",
    "presentation": "Slide",
    "web": "Web",
    "display": "Display",
    "mobile": "Mobile",
}


class UnknownFormatError(ValueError):
    pass


@dataclass(frozen=True)
class ArtboardPreset:
    format: str
    category: str
    dimensions: ArtboardDimensions
    description: str = ""


def mm_to_px(mm: float, dpi: int) -> int:
    return round_half_up(mm / MM_PER_INCH * dpi)


def _paper(width_mm: float, height_mm: float, label: str) -> ArtboardDimensions:
    return ArtboardDimensions(
        width_mm=width_mm,
        height_mm=height_mm,
        width_px=mm_to_px(width_mm, PRINT_DPI),
        height_px=mm_to_px(height_mm, PRINT_DPI),
        aspect_ratio=width_mm / height_mm,
        dpi=PRINT_DPI,
        label=f"{label} ({width_mm:g}×{height_mm:g}mm)",
    )


def _screen(width_px: int, height_px: int, label: str, aspect_ratio: float | None = None) -> ArtboardDimensions:
    return ArtboardDimensions(
        width_px=width_px,
        height_px=height_px,
        aspect_ratio=aspect_ratio or width_px / height_px,
        dpi=SCREEN_DPI,
        label=f"{label} ({width_px}×{height_px}px)",
    )


def _preset(format_id: str, category: str, dimensions: ArtboardDimensions, description: str) -> ArtboardPreset:
    return ArtboardPreset(format_id, category, dimensions, description)


ARTBOARD_PRESETS: Dict[str, ArtboardPreset] = {
    preset.format: preset
    for preset in (
        _preset("a4-portrait", "print", _paper(210, 297, "A4 Portrait"), "Standard A4 paper in portrait orientation"),
        _preset("a4-landscape", "print", _paper(297, 210, "A4 Landscape"), "Standard A4 paper in landscape orientation"),
        _preset("a3-portrait", "print", _paper(297, 420, "A3 Portrait"), "A3 paper in portrait orientation"),
        _preset("a3-landscape", "print", _paper(420, 297, "A3 Landscape"), "A3 paper in landscape orientation"),
        _preset("a2-portrait", "print", _paper(420, 594, "A2 Portrait"), "A2 paper in portrait orientation"),
        _preset("a2-landscape", "print", _paper(594, 420, "A2 Landscape"), "A2 paper in landscape orientation"),
        _preset("slide-16-9", "presentation", _screen(1920, 1080, "16:9 Slide"), "Widescreen presentation slide"),
        _preset("slide-4-3", "presentation", _screen(1024, 768, "4:3 Slide"), "Standard presentation slide"),
        _preset("web-1440", "web", _screen(1440, 900, "Web 1440px"), "Fixed width web layout at 1440px"),
        _preset("web-responsive", "web", _screen(1280, 800, "Web Responsive"), "Responsive web layout"),
        _preset("display-fhd", "display", _screen(1920, 1080, "Full HD Display"), "Full HD display or TV screen"),
        _preset("display-4k", "display", _screen(3840, 2160, "4K Display"), "4K Ultra HD display"),
        _preset(
            "mobile-portrait",
            "mobile",
            _screen(375, 667, "Mobile Portrait", 9 / 16),
            "Mobile device in portrait orientation",
        ),
        _preset(
            "mobile-landscape",
            "mobile",
            _screen(667, 375, "Mobile Landscape", 16 / 9),
            "Mobile device in landscape orientation",
        ),
    )
}


def get_artboard_preset(format_id: str) -> Optional[ArtboardPreset]:
    return ARTBOARD_PRESETS.get(format_id)


def require_artboard_preset(format_id: str) -> ArtboardPreset:
    preset = ARTBOARD_PRESETS.get(format_id)
    if preset is None:
        msg = f"Invalid artboard format: {format_id}"
        raise UnknownFormatError(msg)
    return preset


def presets_by_category(category: str) -> List[ArtboardPreset]:
    return [preset for preset in ARTBOARD_PRESETS.values() if preset.category == category]


def default_artboard_name(format_id: str) -> str:
    preset = ARTBOARD_PRESETS.get(format_id)
    if preset is None:
        return "Untitled Artboard"
    return CATEGORY_LABELS.get(preset.category, "Artboard")
