"""Geometry contract: canvas + safe zone + viewport scale to pixel boundaries.

WHY: "Fits in preview, clips on export" happens when the two surfaces
derive the caption band from slightly different numbers. Both must call
the same pure function with the same inputs and use its output verbatim.

HOW: compute_geometry() turns canvas size, four safe-zone percentages and
a viewport scale into a frozen CaptionGeometry. Composition-space values
are export pixels; viewport-space values are multiplied by viewport_scale
for the interactive preview.

RULES:
- Pure function, no state; equal inputs give field-for-field equal results
- The fitter's container width is available_caption_width (or the
  viewport width when fitting in viewport space)
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from caption_engine.config import (
    DEFAULT_COMPOSITION_HEIGHT,
    DEFAULT_COMPOSITION_WIDTH,
    DEFAULT_SAFE_AREA_PROFILE,
    DEFAULT_VIEWPORT_SCALE,
)
from caption_engine.geometry.safe_area import resolve_safe_area

AVG_CHAR_WIDTH_RATIO = 0.5


@dataclass(frozen=True)
class SafeZonePercents:
    """Safe-zone insets as percentages of the canvas dimension."""

    left: float = 5
    right: float = 5
    top: float = 10
    bottom: float = 15


@dataclass(frozen=True)
class CaptionGeometry:
    """Immutable pixel boundaries shared by every renderer."""

    composition_width: float
    composition_height: float
    safe_area_left: float
    safe_area_right: float
    safe_area_top: float
    safe_area_bottom: float
    available_caption_width: float
    caption_bottom_y: float
    viewport_scale: float
    viewport_caption_width: float
    viewport_padding: float


@dataclass(frozen=True)
class CaptionFitEstimate:
    fits: bool
    estimated_width: float
    max_width: float


def compute_geometry(
    composition_width: float = DEFAULT_COMPOSITION_WIDTH,
    composition_height: float = DEFAULT_COMPOSITION_HEIGHT,
    safe_zone: SafeZonePercents | None = None,
    viewport_scale: float = DEFAULT_VIEWPORT_SCALE,
) -> CaptionGeometry:
    """Derive the caption geometry for a canvas.

    Raises:
        ValueError: Non-positive canvas or scale, or horizontal insets that
            leave no room for captions.
    """
    safe_zone = safe_zone or SafeZonePercents()
    if composition_width <= 0 or composition_height <= 0:
        raise ValueError("Composition size must be positive")
    if viewport_scale <= 0:
        raise ValueError("viewport_scale must be positive")
    if safe_zone.left + safe_zone.right >= 100:
        raise ValueError("Left and right safe zones leave no caption width")

    left = composition_width * safe_zone.left / 100
    right = composition_width * safe_zone.right / 100
    top = composition_height * safe_zone.top / 100
    bottom = composition_height * safe_zone.bottom / 100
    available = composition_width - left - right

    return CaptionGeometry(
        composition_width=composition_width,
        composition_height=composition_height,
        safe_area_left=left,
        safe_area_right=right,
        safe_area_top=top,
        safe_area_bottom=bottom,
        available_caption_width=available,
        caption_bottom_y=composition_height - bottom,
        viewport_scale=viewport_scale,
        viewport_caption_width=available * viewport_scale,
        viewport_padding=left * viewport_scale,
    )


def geometry_for_profile(
    profile: str = DEFAULT_SAFE_AREA_PROFILE,
    composition_width: float = DEFAULT_COMPOSITION_WIDTH,
    composition_height: float = DEFAULT_COMPOSITION_HEIGHT,
    viewport_scale: float = DEFAULT_VIEWPORT_SCALE,
) -> CaptionGeometry:
    """compute_geometry() with safe-zone percentages taken from a platform profile."""
    insets = resolve_safe_area(profile, composition_width, composition_height).insets
    safe_zone = SafeZonePercents(
        left=insets.left / composition_width * 100,
        right=insets.right / composition_width * 100,
        top=insets.top / composition_height * 100,
        bottom=insets.bottom / composition_height * 100,
    )
    return compute_geometry(composition_width, composition_height, safe_zone, viewport_scale)


def debug_overlay_data(geometry: CaptionGeometry) -> dict[str, Any]:
    """Viewport-space boundaries for drawing a safe-area debug overlay."""
    scale = geometry.viewport_scale
    return {
        "safe_area_bounds": {
            "left": geometry.safe_area_left * scale,
            "right": geometry.safe_area_right * scale,
            "top": geometry.safe_area_top * scale,
            "bottom": geometry.safe_area_bottom * scale,
        },
        "caption_region": {
            "width": geometry.viewport_caption_width,
            "left": geometry.safe_area_left * scale,
            "bottom": (geometry.composition_height - geometry.caption_bottom_y) * scale,
        },
        "composition": {
            "width": geometry.composition_width,
            "height": geometry.composition_height,
        },
    }


def estimate_viewport_font_size(
    text: str,
    base_font_size: float,
    geometry: CaptionGeometry,
    max_lines: int = 2,
) -> int:
    """Rough viewport font size from an average character width of 0.5 em.

    Used where no measurer is at hand (thumbnails, overlays). The box fitter
    is authoritative for anything that is rendered.
    """
    available = geometry.available_caption_width
    font_size = float(base_font_size)
    max_chars = max(1, math.floor(available / (font_size * AVG_CHAR_WIDTH_RATIO)))
    lines_needed = math.ceil(len(text) / max_chars)
    if lines_needed > max_lines:
        chars_per_line = math.ceil(len(text) / max_lines)
        font_size = max(base_font_size * 0.5, available / (chars_per_line * AVG_CHAR_WIDTH_RATIO))
    # round half up
    return math.floor(font_size * geometry.viewport_scale + 0.5)


def validate_caption_fits(text: str, font_size: float, geometry: CaptionGeometry) -> CaptionFitEstimate:
    """Estimate whether ``text`` fits on one viewport line at ``font_size``."""
    estimated = len(text) * font_size * AVG_CHAR_WIDTH_RATIO
    return CaptionFitEstimate(
        fits=estimated <= geometry.viewport_caption_width,
        estimated_width=estimated,
        max_width=geometry.viewport_caption_width,
    )
