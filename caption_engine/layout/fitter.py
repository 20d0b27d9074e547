"""Box fitter: largest font size and line plan that fit a container.

WHY: A caption must never clip, in preview or export. The fitter reserves
a safety margin up front and then only accepts a (lines, font size) pair
once every line has been measured against that reduced width.

HOW: available_width = (panel_width - 2 * padding) * (1 - 0.08), where
panel_width is a percentage of the container. For 1..max_lines target
lines, a line plan is composed (forced to an even word split when the
composer returns too few lines) and font sizes are tried from
base_font_size down to min_font_size in 2 px steps. The first plan/size
that fits wins. When nothing fits, the max_lines plan is returned at
min_font_size with fitted=False and a warning.

RULES:
- available_width is the only width anything is tested against
- A fitted=True result never reports lines that were not measured
- Unfittable text is a degraded result, not an exception
- Every step is appended to overflow_log for offline debugging
"""

from __future__ import annotations

import json
import logging
from typing import Sequence

from caption_engine.core.ir import FitResult
from caption_engine.layout.composer import compose_lines
from caption_engine.layout.measurer import BaseMeasurer, check_lines_fit, get_default_measurer
from caption_engine.models import FitSettings
from caption_engine.presets import FIT_SAFETY_MARGIN, FONT_SIZE_STEP, LONG_TOKEN_CHARS

logger = logging.getLogger(__name__)

UNBREAKABLE_WARNING = "Text contains an unbreakable long word that cannot fit without splitting"
CANNOT_FIT_WARNING = "Cannot fit text within constraints - showing at minimum size"


def available_width_for(container_width: float, settings: FitSettings) -> tuple[float, float]:
    """Return (panel_width, available_width) for a container."""
    panel_width = container_width * settings.panel_max_width_percent / 100
    available = (panel_width - 2 * settings.padding) * (1 - FIT_SAFETY_MARGIN)
    return panel_width, max(0.0, available)


def force_line_breaks(words: Sequence[str], target_lines: int) -> list[str]:
    """Split ``words`` into exactly ``target_lines`` lines of near-equal word count.

    Leftover words go to the first lines. With fewer words than lines, each
    word gets its own line.
    """
    target_lines = max(1, min(target_lines, len(words)))
    base, extra = divmod(len(words), target_lines)
    lines = []
    index = 0
    for i in range(target_lines):
        size = base + (1 if i < extra else 0)
        lines.append(" ".join(words[index:index + size]))
        index += size
    return lines


def _font_sizes(settings: FitSettings) -> range:
    return range(settings.base_font_size, settings.min_font_size - 1, -FONT_SIZE_STEP)


def _plan_for(text: str, words: list[str], target_lines: int, settings: FitSettings) -> list[str]:
    if target_lines == 1:
        return [" ".join(words)]
    plan = compose_lines(text, settings.layout_mode, max_lines=target_lines)
    if len(plan) < target_lines and len(words) >= target_lines:
        plan = force_line_breaks(words, target_lines)
    return plan


def _largest_fitting_size(
    plan: list[str],
    available: float,
    settings: FitSettings,
    measurer: BaseMeasurer,
    log: list[str],
) -> int | None:
    for font_size in _font_sizes(settings):
        check = check_lines_fit(
            measurer,
            plan,
            available,
            font_size,
            settings.font_family,
            settings.font_weight,
            settings.letter_spacing_em,
        )
        if check.fits:
            log.append("OK {}px fits ({:.0f}px <= {:.0f}px)".format(font_size, check.max_width, available))
            return font_size
        log.append("X {}px overflow ({:.0f}px > {:.0f}px)".format(font_size, check.max_width, available))
    return None


def fit_text_to_box(
    text: str,
    container_width: float,
    settings: FitSettings | None = None,
    measurer: BaseMeasurer | None = None,
    lines: Sequence[str] | None = None,
) -> FitResult:
    """Find the largest font size and line plan that fit ``container_width``.

    Args:
        text: Caption text; whitespace is normalized.
        container_width: Width of the rendering container in px.
        settings: Font and line bounds (defaults to FitSettings()).
        measurer: Measurement port (defaults to the shared PillowMeasurer).
        lines: Optional pre-composed plan, tried before the normal search.

    Returns:
        FitResult; fitted=False means the minimum-size fallback was used.
    """
    settings = settings or FitSettings()
    panel_width, available = available_width_for(container_width, settings)
    log = ["Container={:.0f}px Panel={:.0f}px Available={:.0f}px".format(
        container_width, panel_width, available
    )]

    words = text.split()
    if not words:
        return FitResult(
            lines=[""],
            font_size=settings.base_font_size,
            line_count=1,
            panel_width=panel_width,
            available_width=available,
            fitted=True,
            overflow_log=log,
        )

    measurer = measurer or get_default_measurer()

    def fitted(plan: list[str], font_size: int) -> FitResult:
        return FitResult(
            lines=plan,
            font_size=font_size,
            line_count=len(plan),
            panel_width=panel_width,
            available_width=available,
            fitted=True,
            overflow_log=log,
        )

    if lines and len(lines) <= settings.max_lines:
        plan = list(lines)
        log.append("Pre-composed Lines={}: {}".format(len(plan), json.dumps(plan)))
        font_size = _largest_fitting_size(plan, available, settings, measurer, log)
        if font_size is not None:
            return fitted(plan, font_size)

    for target_lines in range(1, settings.max_lines + 1):
        if len(words) < target_lines:
            continue
        plan = _plan_for(text, words, target_lines, settings)
        log.append("Lines={}: {}".format(target_lines, json.dumps(plan)))
        font_size = _largest_fitting_size(plan, available, settings, measurer, log)
        if font_size is not None:
            return fitted(plan, font_size)
        log.append("Trying more lines...")

    plan = _plan_for(text, words, settings.max_lines, settings)
    if any(len(word) > LONG_TOKEN_CHARS for word in words):
        warning = UNBREAKABLE_WARNING
    else:
        warning = CANNOT_FIT_WARNING
    log.append("Warning: Min size {}px".format(settings.min_font_size))
    logger.warning("%s (%d words, available %.0fpx)", warning, len(words), available)

    return FitResult(
        lines=plan,
        font_size=settings.min_font_size,
        line_count=len(plan),
        panel_width=panel_width,
        available_width=available,
        fitted=False,
        warning=warning,
        overflow_log=log,
    )
