"""Batch normalizer: one shared visual scale for a set of captions.

WHY: Cards in a multi-caption sequence look broken when each picks its own
size. The set should share one scale, but one pathological caption should
not shrink every other card with it.

HOW: Each caption is composed with the caller's layout mode and fitted
with that plan. raw = smallest font size / base font size; when raw is at
least 0.85 it becomes the shared scale, otherwise the scale stays 1 and the
outlier keeps its own smaller FitResult.font_size.

RULES:
- Empty input returns scale 1 with no results
- Blank captions get the fitter's neutral result
"""

from __future__ import annotations

import logging
from typing import Sequence

from caption_engine.core.ir import CaptionSetMeasurement, FitResult
from caption_engine.layout.composer import compose_lines
from caption_engine.layout.fitter import fit_text_to_box
from caption_engine.layout.measurer import BaseMeasurer
from caption_engine.models import FitSettings
from caption_engine.presets import BATCH_SCALE_THRESHOLD

logger = logging.getLogger(__name__)


def measure_caption_set(
    captions: Sequence[str],
    container_width: float,
    settings: FitSettings | None = None,
    measurer: BaseMeasurer | None = None,
) -> CaptionSetMeasurement:
    """Fit every caption and derive the shared scale factor."""
    settings = settings or FitSettings()
    base = settings.base_font_size
    if not captions:
        return CaptionSetMeasurement(
            global_scale_factor=1.0,
            individual_results=[],
            smallest_font_size=base,
            base_font_size=base,
        )

    results: list[FitResult] = []
    for caption in captions:
        plan = None
        if caption.strip():
            plan = compose_lines(caption, settings.layout_mode, max_lines=settings.max_lines)
        results.append(fit_text_to_box(caption, container_width, settings, measurer, lines=plan))

    smallest = min(r.font_size for r in results)
    raw_scale = smallest / base
    scale = raw_scale if raw_scale >= BATCH_SCALE_THRESHOLD else 1.0
    if scale == 1.0 and raw_scale < 1.0:
        logger.debug(
            "Scale %.2f below %.2f; outliers shrink individually", raw_scale, BATCH_SCALE_THRESHOLD
        )

    return CaptionSetMeasurement(
        global_scale_factor=scale,
        individual_results=results,
        smallest_font_size=smallest,
        base_font_size=base,
    )
