"""Configuration defaults, font search paths, and .env loading.

WHY: The preview surface and the export renderer must agree on canvas size,
viewport scale, safe-area profile and font family. Keeping those defaults in
one module (overridable from the environment) means both contexts read the
same values instead of hardcoding their own.

HOW: python-dotenv loads the .env file on import. Defaults are module-level
constants read through small typed helpers that fail loudly on garbage
values. font_search_dirs() combines CAPTION_FONT_DIRS with the usual system
font locations.

RULES:
- Every default can be overridden via an environment variable
- Numeric env values that do not parse raise ValueError naming the variable
- Nothing here touches the measurement surface; fonts are only located
- The reference canvas is 1080x1920 (9:16 vertical video)
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the working directory (where the host process runs)
load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


# ---------------------------------------------------------------------------
# Canvas defaults
# ---------------------------------------------------------------------------

REFERENCE_WIDTH = 1080
REFERENCE_HEIGHT = 1920
"""Canonical canvas that safe-area profile insets are expressed in."""

DEFAULT_COMPOSITION_WIDTH = _env_int("CAPTION_COMPOSITION_WIDTH", REFERENCE_WIDTH)
DEFAULT_COMPOSITION_HEIGHT = _env_int("CAPTION_COMPOSITION_HEIGHT", REFERENCE_HEIGHT)
DEFAULT_VIEWPORT_SCALE = _env_float("CAPTION_VIEWPORT_SCALE", 0.4)
DEFAULT_SAFE_AREA_PROFILE = os.getenv("CAPTION_SAFE_AREA_PROFILE", "universal").strip() or "universal"

# ---------------------------------------------------------------------------
# Typography defaults
# ---------------------------------------------------------------------------

DEFAULT_FONT_FAMILY = os.getenv(
    "CAPTION_FONT_FAMILY",
    "Inter, system-ui, -apple-system, BlinkMacSystemFont, sans-serif",
)
DEFAULT_FONT_WEIGHT = 700
DEFAULT_LETTER_SPACING_EM = -0.02

_SYSTEM_FONT_DIRS = (
    "/usr/share/fonts",
    "/usr/local/share/fonts",
    "~/.fonts",
    "~/.local/share/fonts",
    "/Library/Fonts",
    "/System/Library/Fonts",
    "~/Library/Fonts",
    "C:/Windows/Fonts",
)


def font_search_dirs() -> list[Path]:
    """Return existing directories to search for font files, in priority order.

    WHY: Font availability differs between a developer laptop, a render
    worker container and CI. Letting deployments prepend their own font
    directory keeps measurement identical wherever the same files are found.

    HOW: Reads CAPTION_FONT_DIRS (os.pathsep-separated) first, then the
    common system locations. Non-existent directories are dropped.

    RULES:
    - CAPTION_FONT_DIRS entries always come before system directories
    - Paths are expanded (~) and de-duplicated, order preserved
    """
    extra = [p for p in os.getenv("CAPTION_FONT_DIRS", "").split(os.pathsep) if p.strip()]
    seen: set[Path] = set()
    dirs: list[Path] = []
    for raw in [*extra, *_SYSTEM_FONT_DIRS]:
        path = Path(raw.strip()).expanduser()
        if path in seen or not path.is_dir():
            continue
        seen.add(path)
        dirs.append(path)
    return dirs
