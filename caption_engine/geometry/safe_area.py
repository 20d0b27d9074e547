"""Platform safe-area profiles resolved to pixel insets.

WHY: Each short-video platform draws its own UI (buttons, captions,
progress bars) over the bottom and sides of the frame. Captions placed
inside a profile's insets stay readable on that platform.

HOW: Profiles are constants in the 1080x1920 reference frame. Horizontal
values scale by width / 1080, vertical values by height / 1920.

RULES:
- Unknown profile ids fall back to "universal" with a warning
- Profiles are frozen; resolve_safe_area() returns new scaled objects
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass

from caption_engine.config import (
    DEFAULT_COMPOSITION_HEIGHT,
    DEFAULT_COMPOSITION_WIDTH,
    REFERENCE_HEIGHT,
    REFERENCE_WIDTH,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SafeAreaInsets:
    top: float
    bottom: float
    left: float
    right: float


@dataclass(frozen=True)
class SafeAreaConfig:
    """One named platform preset (values in px)."""

    id: str
    name: str
    description: str
    insets: SafeAreaInsets
    caption_bottom_offset: float


SAFE_AREA_PROFILES: dict[str, SafeAreaConfig] = {
    "universal": SafeAreaConfig(
        id="universal",
        name="Universal",
        description="Safe for all platforms",
        insets=SafeAreaInsets(top=100, bottom=340, left=60, right=60),
        caption_bottom_offset=80,
    ),
    "tiktok": SafeAreaConfig(
        id="tiktok",
        name="TikTok",
        description="Clears the TikTok UI overlay",
        insets=SafeAreaInsets(top=120, bottom=350, left=60, right=60),
        caption_bottom_offset=80,
    ),
    "instagram_reels": SafeAreaConfig(
        id="instagram_reels",
        name="Instagram Reels",
        description="Clears the Reels UI overlay",
        insets=SafeAreaInsets(top=100, bottom=330, left=60, right=60),
        caption_bottom_offset=70,
    ),
    "youtube_shorts": SafeAreaConfig(
        id="youtube_shorts",
        name="YouTube Shorts",
        description="Clears the Shorts UI overlay",
        insets=SafeAreaInsets(top=80, bottom=280, left=60, right=60),
        caption_bottom_offset=60,
    ),
}


def get_safe_area_config(profile: str) -> SafeAreaConfig:
    """Look up a profile by id, falling back to "universal"."""
    config = SAFE_AREA_PROFILES.get(profile)
    if config is None:
        logger.warning("Unknown safe-area profile %r, using 'universal'", profile)
        return SAFE_AREA_PROFILES["universal"]
    return config


def resolve_safe_area(
    profile: str,
    width: float = DEFAULT_COMPOSITION_WIDTH,
    height: float = DEFAULT_COMPOSITION_HEIGHT,
) -> SafeAreaConfig:
    """Return the profile with insets and caption offset scaled to ``width`` x ``height``."""
    config = get_safe_area_config(profile)
    sx = width / REFERENCE_WIDTH
    sy = height / REFERENCE_HEIGHT
    insets = SafeAreaInsets(
        top=config.insets.top * sy,
        bottom=config.insets.bottom * sy,
        left=config.insets.left * sx,
        right=config.insets.right * sx,
    )
    return dataclasses.replace(
        config, insets=insets, caption_bottom_offset=config.caption_bottom_offset * sy
    )


def caption_safe_y(profile: str, height: float = DEFAULT_COMPOSITION_HEIGHT) -> float:
    """Baseline y (px from top) for the bottom of the caption block."""
    config = get_safe_area_config(profile)
    scale = height / REFERENCE_HEIGHT
    return height - config.insets.bottom * scale + config.caption_bottom_offset * scale


def caption_max_width(profile: str, width: float = DEFAULT_COMPOSITION_WIDTH) -> float:
    """Horizontal space between the left and right insets, in px."""
    config = get_safe_area_config(profile)
    scale = width / REFERENCE_WIDTH
    return width - config.insets.left * scale - config.insets.right * scale
