"""Canvas geometry shared by the preview and export renderers."""

from caption_engine.geometry.contract import (
    CaptionFitEstimate,
    CaptionGeometry,
    SafeZonePercents,
    compute_geometry,
    debug_overlay_data,
    estimate_viewport_font_size,
    geometry_for_profile,
    validate_caption_fits,
)
from caption_engine.geometry.safe_area import (
    SAFE_AREA_PROFILES,
    SafeAreaConfig,
    SafeAreaInsets,
    caption_max_width,
    caption_safe_y,
    get_safe_area_config,
    resolve_safe_area,
)

__all__ = [
    "CaptionFitEstimate",
    "CaptionGeometry",
    "SAFE_AREA_PROFILES",
    "SafeAreaConfig",
    "SafeAreaInsets",
    "SafeZonePercents",
    "caption_max_width",
    "caption_safe_y",
    "compute_geometry",
    "debug_overlay_data",
    "estimate_viewport_font_size",
    "geometry_for_profile",
    "get_safe_area_config",
    "resolve_safe_area",
    "validate_caption_fits",
]
