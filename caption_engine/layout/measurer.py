"""Text measurement port with a Pillow implementation.

WHY: Every fitting decision depends on how wide a line renders. Preview and
export must get the same number for the same line, and the number must
never be an under-estimate, or captions clip on export even though they
fit in preview.

HOW: BaseMeasurer is an ABC with one abstract method, raw_width(). The
concrete measure_width() adds two deterministic safety terms on top:
  - letter-spacing compensation: |spacing_em| * font_size * (chars - 1)
  - rendering tolerance: font_size * 0.08
PillowMeasurer reads glyph advances from FreeType fonts via Pillow.
EstimatingMeasurer uses a fixed average character width and needs no font
files. get_default_measurer() hands out one PillowMeasurer per process.

RULES:
- Measurers are injected; the module-level default is only a convenience
- Font handles are created once per (family, weight, size) and reused
- A host without FreeType raises MeasurementUnavailableError, never guesses
- check_lines_fit() stops at the first line that overflows
"""

from __future__ import annotations

import logging
import re
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from PIL import ImageFont, features

from caption_engine.config import (
    DEFAULT_FONT_FAMILY,
    DEFAULT_FONT_WEIGHT,
    DEFAULT_LETTER_SPACING_EM,
    font_search_dirs,
)
from caption_engine.presets import RENDER_TOLERANCE_EM

logger = logging.getLogger(__name__)

_FONT_SUFFIXES = (".ttf", ".otf", ".ttc")

# CSS generic and system aliases resolved to concrete families, in order.
_GENERIC_FAMILIES: dict[str, tuple[str, ...]] = {
    "sans-serif": ("DejaVu Sans", "Liberation Sans", "Noto Sans", "Arial", "Helvetica"),
    "serif": ("DejaVu Serif", "Liberation Serif", "Noto Serif", "Times New Roman"),
    "monospace": ("DejaVu Sans Mono", "Liberation Mono", "Noto Sans Mono", "Courier New"),
}
_SYSTEM_ALIASES = {"system-ui", "-apple-system", "blinkmacsystemfont", "ui-sans-serif"}


class MeasurementUnavailableError(RuntimeError):
    """Raised when no text-measurement surface can be created.

    WHY: Without real glyph metrics no fit decision is trustworthy; failing
    fast is better than guessing a size that clips on export.
    """


@dataclass(frozen=True)
class LineFitCheck:
    """Result of checking a line plan against an available width."""

    fits: bool
    max_width: float


class BaseMeasurer(ABC):
    """Abstract measurement port.

    To add a measurement backend:
    1. Subclass BaseMeasurer
    2. Implement raw_width() returning the unpadded advance width in px
    3. Inject the instance into the fitter / engine
    """

    @abstractmethod
    def raw_width(self, text: str, font_size: float, font_family: str, font_weight: int) -> float:
        """Advance width of ``text`` in px, without safety terms."""

    def measure_width(
        self,
        text: str,
        font_size: float,
        font_family: str = DEFAULT_FONT_FAMILY,
        font_weight: int = DEFAULT_FONT_WEIGHT,
        letter_spacing_em: float = DEFAULT_LETTER_SPACING_EM,
    ) -> float:
        """Conservative rendered width of ``text`` in px."""
        spacing = abs(letter_spacing_em) * font_size * max(0, len(text) - 1)
        tolerance = font_size * RENDER_TOLERANCE_EM
        return self.raw_width(text, font_size, font_family, font_weight) + spacing + tolerance


class EstimatingMeasurer(BaseMeasurer):
    """Average-character-width estimate; deterministic and font-free."""

    def __init__(self, avg_char_width_ratio: float = 0.5) -> None:
        if avg_char_width_ratio <= 0:
            raise ValueError("avg_char_width_ratio must be positive")
        self.avg_char_width_ratio = avg_char_width_ratio

    def raw_width(self, text: str, font_size: float, font_family: str, font_weight: int) -> float:
        return len(text) * font_size * self.avg_char_width_ratio


def _normalize_name(name: str) -> str:
    return re.sub(r"[\s_\-]", "", name).lower()


def _family_names(font_family: str) -> list[str]:
    names = []
    for part in font_family.split(","):
        name = part.strip().strip("'\"")
        if name:
            names.append(name)
    return names


class PillowMeasurer(BaseMeasurer):
    """Glyph-accurate measurement with Pillow FreeType fonts.

    WHY: Real advance widths (kerning included) are what the renderers draw,
    so fit decisions made here hold on both surfaces when they load the same
    font files.

    HOW: Families from the CSS-style list are matched against font files in
    the configured search directories; the first hit wins. Generic families
    map to common concrete families, and Pillow's bundled scalable font is
    the last resort. Loaded fonts are cached per (family, weight, size).

    RULES:
    - Weight >= 600 prefers files whose name contains "bold"
    - Italic/oblique files are only chosen when nothing else matches
    - Explicit font file paths in the family list are used as-is
    """

    def __init__(self, font_dirs: Sequence[Path] | None = None) -> None:
        if not features.check_module("freetype2"):
            raise MeasurementUnavailableError(
                "Pillow was built without FreeType support; cannot measure text."
            )
        self._font_dirs = list(font_dirs) if font_dirs is not None else font_search_dirs()
        self._font_files: list[Path] | None = None
        self._fonts: dict[tuple[str, int, float], ImageFont.FreeTypeFont] = {}
        self._paths: dict[tuple[str, bool], Path | None] = {}
        self._lock = threading.Lock()

    def raw_width(self, text: str, font_size: float, font_family: str, font_weight: int) -> float:
        font = self._font(font_family, font_weight, font_size)
        return float(font.getlength(text))

    def resolve_font_path(self, font_family: str, font_weight: int) -> Path | None:
        """Return the font file used for ``font_family``, or None for the bundled font."""
        with self._lock:
            return self._cached_path(font_family, font_weight)

    def _cached_path(self, font_family: str, font_weight: int) -> Path | None:
        # Caller holds self._lock
        bold = font_weight >= 600
        key = (font_family, bold)
        if key not in self._paths:
            self._paths[key] = self._resolve(font_family, bold)
        return self._paths[key]

    def _font(self, font_family: str, font_weight: int, font_size: float) -> ImageFont.FreeTypeFont:
        key = (font_family, font_weight, font_size)
        with self._lock:
            font = self._fonts.get(key)
            if font is None:
                font = self._load_font(font_family, font_weight, font_size)
                self._fonts[key] = font
        return font

    def _load_font(self, font_family: str, font_weight: int, font_size: float) -> ImageFont.FreeTypeFont:
        path = self._cached_path(font_family, font_weight)
        try:
            if path is not None:
                logger.debug("Loading font %s at %spx", path, font_size)
                return ImageFont.truetype(str(path), font_size)
            logger.debug("No font file for %r; using Pillow's bundled font", font_family)
            return ImageFont.load_default(size=font_size)
        except (OSError, TypeError) as exc:
            raise MeasurementUnavailableError(
                "Cannot load a font for {!r}: {}".format(font_family, exc)
            ) from exc

    def _resolve(self, font_family: str, bold: bool) -> Path | None:
        for name in _family_names(font_family):
            if name.lower().endswith(_FONT_SUFFIXES):
                candidate = Path(name).expanduser()
                if candidate.is_file():
                    return candidate
                continue

            lowered = name.lower()
            if lowered in _SYSTEM_ALIASES:
                lowered = "sans-serif"
            for concrete in _GENERIC_FAMILIES.get(lowered, (name,)):
                path = self._find_font_file(concrete, bold)
                if path is not None:
                    return path
        return None

    def _find_font_file(self, family: str, bold: bool) -> Path | None:
        wanted = _normalize_name(family)
        matches = [p for p in self._index() if _normalize_name(p.stem).startswith(wanted)]
        if not matches:
            return None

        def rank(path: Path) -> tuple[bool, bool, int, str]:
            stem = path.stem.lower()
            slanted = "italic" in stem or "oblique" in stem
            return (slanted, ("bold" in stem) != bold, len(stem), str(path))

        return min(matches, key=rank)

    def _index(self) -> list[Path]:
        if self._font_files is None:
            files: list[Path] = []
            for directory in self._font_dirs:
                files.extend(
                    p for p in directory.rglob("*") if p.suffix.lower() in _FONT_SUFFIXES
                )
            self._font_files = sorted(files)
            logger.debug("Indexed %d font files in %d directories", len(files), len(self._font_dirs))
        return self._font_files


# ---------------------------------------------------------------------------
# Process-wide default
# ---------------------------------------------------------------------------

_default_measurer: BaseMeasurer | None = None
_default_lock = threading.Lock()


def get_default_measurer() -> BaseMeasurer:
    """Return the shared PillowMeasurer, creating it on first use."""
    global _default_measurer
    with _default_lock:
        if _default_measurer is None:
            _default_measurer = PillowMeasurer()
        return _default_measurer


def reset_default_measurer() -> None:
    """Drop the shared measurer so the next call creates a fresh one."""
    global _default_measurer
    with _default_lock:
        _default_measurer = None


def check_lines_fit(
    measurer: BaseMeasurer,
    lines: Sequence[str],
    available_width: float,
    font_size: float,
    font_family: str = DEFAULT_FONT_FAMILY,
    font_weight: int = DEFAULT_FONT_WEIGHT,
    letter_spacing_em: float = DEFAULT_LETTER_SPACING_EM,
) -> LineFitCheck:
    """Check every line against ``available_width`` at ``font_size``.

    Lines after the first overflowing one are not measured; max_width is
    the widest line seen up to that point.
    """
    max_width = 0.0
    for line in lines:
        width = measurer.measure_width(line, font_size, font_family, font_weight, letter_spacing_em)
        max_width = max(max_width, width)
        if width > available_width:
            return LineFitCheck(fits=False, max_width=max_width)
    return LineFitCheck(fits=True, max_width=max_width)
